"""CLI for the vitalseq feature-extraction core."""

import logging

import click

from vitalseq import config


@click.group()
def main() -> None:
    """vitalseq: wearable sensor sequences to feature vectors."""


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Directory for features.csv and the sleep/stress CSV.")
@click.option("--ppg-rate", default=25.0, show_default=True, help="PPG sampling rate in Hz.")
@click.option("--accel-rate", default=25.0, show_default=True, help="Accelerometer sampling rate in Hz.")
@click.option("--rpe", type=click.IntRange(0, 10), default=None, help="Exertion rating (0-10) for every sequence.")
@click.option(
    "--workers", default=1, show_default=True, type=click.IntRange(min=1),
    help="Worker threads (more than one makes sleep results order-dependent).",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
def process(
    file: str,
    output: str | None,
    ppg_rate: float,
    accel_rate: float,
    rpe: int | None,
    workers: int,
    verbose: bool,
) -> None:
    """Replay a batch capture and extract one feature vector per sequence."""
    from vitalseq.replay import replay_file

    if verbose:
        config.get_logger().setLevel(logging.DEBUG)

    vectors = replay_file(
        file,
        output_dir=output,
        ppg_sample_rate_hz=ppg_rate,
        accel_sample_rate_hz=accel_rate,
        rpe=rpe,
        max_workers=workers,
        verbose=verbose,
    )

    for fv in vectors:
        line = repr(fv)
        if fv.stress is not None:
            line += f" stress={fv.stress.score}({fv.stress.level.value})"
        if fv.sleep is not None:
            line += f" sleep={fv.sleep.state.value}({fv.sleep.confidence:.2f})"
        click.echo(line)

    click.echo(f"\n{len(vectors)} feature vector(s)")
    if output:
        click.echo(f"Output written to {output}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def inspect(file: str) -> None:
    """List sequences in a batch capture without processing them."""
    from vitalseq.replay import inspect_file

    summaries = inspect_file(file)
    if not summaries:
        click.echo("No batches found.")
        return
    for summary in summaries.values():
        click.echo(repr(summary))


@main.command()
def version() -> None:
    """Print the installed version."""
    click.echo(config.get_version())


if __name__ == "__main__":
    main()
