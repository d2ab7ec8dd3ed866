"""CLI interface for loudmeter."""

from pathlib import Path
import logging

import typer

from .errors import MeterError
from .interfaces.cli_handlers import format_report, measure_album, measure_file, write_report
from .utils.config import MeterConfig, load_meter_config

app = typer.Typer(help="loudmeter command line interface")


def _load_config(config_path: Path | None) -> MeterConfig:
    if config_path is None:
        return MeterConfig()
    return load_meter_config(config_path)


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _run_measure(
    *,
    audio_path: Path,
    config_path: Path | None,
    report_json: Path | None,
) -> None:
    config = _load_config(config_path)
    report = measure_file(audio_path, config)
    for line in format_report(report):
        typer.echo(line)
    if report_json is not None:
        write_report(report, report_json)
        typer.echo(f"Report written to: {report_json}")


def _run_album(
    *,
    audio_paths: list[Path],
    config_path: Path | None,
    report_json: Path | None,
) -> None:
    config = _load_config(config_path)
    album = measure_album(audio_paths, config)
    for track in album.tracks:
        for line in format_report(track):
            typer.echo(line)
        typer.echo("")

    def _fmt(value: float | None, unit: str) -> str:
        return "n/a" if value is None else f"{value:.1f} {unit}"

    typer.echo(f"Album integrated:   {_fmt(album.integrated_lufs, 'LUFS')}")
    typer.echo(f"Album range:        {_fmt(album.loudness_range_lu, 'LU')}")
    if report_json is not None:
        write_report(album, report_json)
        typer.echo(f"Report written to: {report_json}")


@app.command("measure")
def measure_command(
    audio: Path = typer.Argument(..., help="Path to the audio file to measure."),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Optional JSON/YAML meter configuration.",
    ),
    report_json: Path | None = typer.Option(
        None,
        "--report-json",
        help="Optional path to write the measurement report JSON.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Measure loudness, loudness range and peaks of one audio file."""

    _configure_logging(log_level)
    try:
        _run_measure(audio_path=audio, config_path=config, report_json=report_json)
    except MeterError as exc:
        typer.echo(f"[FAILED] {exc.code}: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        typer.echo(f"[FAILED] invalid_input: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("album")
def album_command(
    audio: list[Path] = typer.Argument(..., help="Audio files making up the album."),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Optional JSON/YAML meter configuration.",
    ),
    report_json: Path | None = typer.Option(
        None,
        "--report-json",
        help="Optional path to write the album report JSON.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Measure several files and their combined album loudness."""

    _configure_logging(log_level)
    try:
        _run_album(audio_paths=audio, config_path=config, report_json=report_json)
    except MeterError as exc:
        typer.echo(f"[FAILED] {exc.code}: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        typer.echo(f"[FAILED] invalid_input: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
