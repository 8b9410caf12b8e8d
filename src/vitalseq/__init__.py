"""vitalseq -- per-sequence physiological feature extraction for wearable sensor batches."""
