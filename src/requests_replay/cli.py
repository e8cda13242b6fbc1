import asyncio
from pathlib import Path

import typer

from requests_replay.core.persister import Persister
from requests_replay.reporters.terminal_reporter import TerminalReporter
from requests_replay.storage.har_storage import HarStorage


app = typer.Typer()


@app.command("list")
def list_recordings(directory: Path) -> None:
    storage = HarStorage(directory)
    for recording_id in storage.list_recordings():
        print(recording_id)


@app.command()
def show(
    directory: Path,
    recording_id: str,
    output: Path | None = typer.Option(None, "--output", "-o"),
) -> None:
    persister = Persister(HarStorage(directory))
    recording = asyncio.run(persister.find(recording_id))
    if recording is None:
        print(f"No recording {recording_id} in {directory}")
        raise typer.Exit(code=1)

    terminal_reporter = TerminalReporter(recording)
    if output:
        output.write_text(terminal_reporter.render(), encoding="utf-8")
        print(f"Recording summary written to {output}")
        return
    terminal_reporter.create()


@app.command()
def delete(directory: Path, recording_id: str) -> None:
    persister = Persister(HarStorage(directory))
    asyncio.run(persister.delete(recording_id))
    print(f"Deleted recording {recording_id}")


def main() -> None:
    app()


if __name__ == "__main__":
    app()
