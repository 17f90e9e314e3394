"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest
import yaml

from supersync.cli import PromptConfirmation, build_parser, main
from supersync.config import CONFIG_FILE
from supersync.notifications import SyncSignal


@pytest.fixture(autouse=True)
def no_logging_reconfigure():
    """Keep main() from replacing pytest's log handlers."""
    with patch("supersync.cli.configure_logging"):
        yield


@pytest.fixture
def notes(disk_vault):
    (disk_vault / "notes" / "A.md").write_text('---\nsupersedes: "[[B]]"\n---\n# A\n')
    (disk_vault / "notes" / "B.md").write_text("# B\n")
    return disk_vault


class TestParser:
    """Tests for argument parsing."""

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_sync_arguments(self):
        args = build_parser().parse_args(["sync", "vault", "a.md", "b.md", "--yes"])
        assert args.vault == "vault"
        assert args.documents == ["a.md", "b.md"]
        assert args.yes is True

    def test_watch_interval(self):
        args = build_parser().parse_args(["watch", "vault", "--interval", "0.5"])
        assert args.interval == 0.5

    def test_config_set_requires_value(self):
        with pytest.raises(SystemExit):
            main(["config", "set", "enabled"])


class TestSyncCommand:
    """Tests for `supersync sync`."""

    def test_writes_reverse_relation(self, notes, capsys):
        code = main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/A.md"])

        assert code == 0
        assert (notes / "notes" / "B.md").read_text() == (
            '---\nsuperseded_by: "[[A]]"\nstatus: superseded\n---\n# B\n'
        )
        out = capsys.readouterr().out
        assert 'Bidirectional: Updated "B" as superseded by "A"' in out
        assert "applied=1" in out

    def test_missing_document_exit_code(self, notes, capsys):
        code = main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/Zzz.md"])

        assert code == 1
        assert "document not found" in capsys.readouterr().err

    def test_disabled_by_config(self, notes):
        (notes / CONFIG_FILE).write_text("enabled: false\n")

        main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/A.md"])

        assert (notes / "notes" / "B.md").read_text() == "# B\n"

    def test_prompt_declined(self, notes):
        (notes / CONFIG_FILE).write_text("confirmBeforeUpdate: true\n")

        with patch("builtins.input", return_value="n"):
            main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/A.md"])

        assert (notes / "notes" / "B.md").read_text() == "# B\n"

    def test_yes_skips_prompt(self, notes):
        (notes / CONFIG_FILE).write_text("confirmBeforeUpdate: true\n")

        with patch("builtins.input", side_effect=AssertionError("prompted")):
            main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/A.md", "--yes"])

        assert "superseded_by" in (notes / "notes" / "B.md").read_text()


    def test_invalid_env_setting_is_reported(self, notes, capsys, monkeypatch):
        monkeypatch.setenv("SUPERSYNC_ENABLED", "maybe")

        code = main(["--config", str(notes / CONFIG_FILE), "sync", str(notes), "notes/A.md"])

        assert code == 1
        assert "Error: SUPERSYNC_ENABLED must be a boolean" in capsys.readouterr().err
        assert (notes / "notes" / "B.md").read_text() == "# B\n"

    def test_invalid_file_setting_is_reported(self, notes, capsys):
        (notes / CONFIG_FILE).write_text("enabled: 7\n")

        code = main(["--config", str(notes / CONFIG_FILE), "scan", str(notes)])

        assert code == 1
        assert "Error:" in capsys.readouterr().err


class TestScanCommand:
    """Tests for `supersync scan`."""

    def test_scans_whole_vault(self, notes, capsys):
        (notes / "notes" / "C.md").write_text('---\nsupersedes: "[[B]]"\n---\n')

        code = main(["--config", str(notes / CONFIG_FILE), "scan", str(notes)])

        assert code == 0
        out = capsys.readouterr().out
        assert "Evaluated 3 document(s)" in out
        assert "applied=1" in out
        assert "blocked=1" in out


class TestConfigCommand:
    """Tests for `supersync config`."""

    def test_set_then_get(self, tmp_path, capsys):
        path = tmp_path / CONFIG_FILE

        assert main(["--config", str(path), "config", "set", "confirmBeforeUpdate", "yes"]) == 0
        assert yaml.safe_load(path.read_text()) == {"confirmBeforeUpdate": True}

        main(["--config", str(path), "config", "get", "confirmBeforeUpdate"])
        assert "confirmBeforeUpdate: True" in capsys.readouterr().out

    def test_set_invalid_value(self, tmp_path, capsys):
        path = tmp_path / CONFIG_FILE

        assert main(["--config", str(path), "config", "set", "enabled", "maybe"]) == 1
        assert not path.exists()

    def test_show(self, tmp_path, capsys):
        path = tmp_path / CONFIG_FILE
        path.write_text("enabled: false\n")

        main(["--config", str(path), "config", "show"])

        out = capsys.readouterr().out
        assert f"Configuration from: {path}" in out
        assert "enabled: false" in out


class TestPromptConfirmation:
    """Tests for the terminal prompt."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "answer,expected", [("y", True), ("YES", True), ("n", False), ("", False)]
    )
    async def test_answers(self, answer, expected, capsys):
        signal = SyncSignal.confirmation_prompt("B", "A")
        with patch("builtins.input", return_value=answer):
            assert await PromptConfirmation().confirm(signal) is expected
        assert 'Mark "B" as superseded by "A"?' in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_end_of_input_is_dismissal(self):
        signal = SyncSignal.confirmation_prompt("B", "A")
        with patch("builtins.input", side_effect=EOFError):
            assert await PromptConfirmation().confirm(signal) is None
