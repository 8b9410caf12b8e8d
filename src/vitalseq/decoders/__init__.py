"""Sample records and batch payload decoding."""

from vitalseq.decoders.samples import AccelSample, Channel, PulseSample, SkinTempSample
from vitalseq.decoders.batch import BatchDecoder, SensorBatch, ingest_batch

__all__ = [
    "AccelSample",
    "Channel",
    "PulseSample",
    "SkinTempSample",
    "BatchDecoder",
    "SensorBatch",
    "ingest_batch",
]
