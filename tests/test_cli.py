from pathlib import Path

from typer.testing import CliRunner

from requests_replay.cli import app
from requests_replay.storage.har_storage import HarStorage

runner = CliRunner()

RECORDING = {
    "log": {
        "_recordingName": "pets",
        "creator": {"name": "requests-replay", "version": "0.1.0"},
        "entries": [
            {
                "_id": "a",
                "_order": 0,
                "request": {"method": "GET", "url": "https://example.com/pet/1"},
                "response": {"status": 200},
            }
        ],
    }
}


def test_list_and_show(tmp_path: Path) -> None:
    HarStorage(tmp_path).save_recording("pets_1", RECORDING)

    result = runner.invoke(app, ["list", str(tmp_path)])
    assert result.exit_code == 0
    assert result.stdout.strip() == "pets_1"

    result = runner.invoke(app, ["show", str(tmp_path), "pets_1"])
    assert result.exit_code == 0
    assert "[GET] https://example.com/pet/1 returns 200" in result.stdout


def test_show_to_file(tmp_path: Path) -> None:
    HarStorage(tmp_path).save_recording("pets_1", RECORDING)
    output = tmp_path / "summary.txt"
    result = runner.invoke(app, ["show", str(tmp_path), "pets_1", "--output", str(output)])
    assert result.exit_code == 0
    assert output.read_text().startswith("Recording: pets")


def test_show_missing_recording(tmp_path: Path) -> None:
    result = runner.invoke(app, ["show", str(tmp_path), "nope"])
    assert result.exit_code == 1


def test_delete(tmp_path: Path) -> None:
    HarStorage(tmp_path).save_recording("pets_1", RECORDING)
    result = runner.invoke(app, ["delete", str(tmp_path), "pets_1"])
    assert result.exit_code == 0
    assert HarStorage(tmp_path).find_recording("pets_1") is None
