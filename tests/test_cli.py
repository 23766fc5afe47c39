"""Tests for the command-line interface.

WHY: The CLI is the quickest way to try the client by hand. Its exit
codes and stdout/stderr split are what shell scripts rely on.

HOW: dub_audio and check_connection are patched with AsyncMocks so no
request is made; main() is called with explicit argv and its output is
captured with capsys.
"""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest

from speechlab_dubber.api.models import DubbingResult
from speechlab_dubber.cli import build_parser, main
from speechlab_dubber.errors import RemoteJobFailed


@pytest.fixture(autouse=True)
def _credentials_env(monkeypatch):
    monkeypatch.setenv("SPEECHLAB_EMAIL", "cli@example.com")
    monkeypatch.setenv("SPEECHLAB_PASSWORD", "pw")
    monkeypatch.delenv("SPEECHLAB_MAX_WAIT_TIME_MINUTES", raising=False)
    monkeypatch.delenv("SPEECHLAB_CHECK_INTERVAL_SECONDS", raising=False)


def _result():
    return DubbingResult(
        project_id="proj-1",
        status="COMPLETE",
        target_language="es",
        sharing_link="https://share/1",
        project_details={"id": "proj-1"},
    )


class TestDubCommand:
    def test_prints_json_result(self, capsys):
        mock = AsyncMock(return_value=_result())
        with patch("speechlab_dubber.cli.dub_audio", new=mock):
            code = main(["dub", "https://x/a.wav", "--target", "es", "--max-wait", "5"])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["sharingLink"] == "https://share/1"
        assert out["targetLanguage"] == "es"

        options, settings = mock.call_args.args
        assert options["audio_url"] == "https://x/a.wav"
        assert options["target_language"] == "es"
        assert settings.email == "cli@example.com"
        assert settings.max_wait_time_minutes == 5

    def test_speechlab_error_exits_one(self, capsys):
        mock = AsyncMock(side_effect=RemoteJobFailed("Project proj-1 failed", stage="poll"))
        with patch("speechlab_dubber.cli.dub_audio", new=mock):
            code = main(["dub", "https://x/a.wav", "-t", "fr"])

        assert code == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[poll] Project proj-1 failed" in captured.err

    def test_target_is_required(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["dub", "https://x/a.wav"])
        assert excinfo.value.code == 2


class TestCheckCommand:
    def test_check_success(self, capsys):
        mock = AsyncMock(return_value=True)
        with patch("speechlab_dubber.cli.check_connection", new=mock):
            assert main(["check"]) == 0
        assert "connection OK" in capsys.readouterr().err

    def test_invalid_interval_exits_one(self, capsys, monkeypatch):
        monkeypatch.setenv("SPEECHLAB_CHECK_INTERVAL_SECONDS", "often")
        assert main(["check"]) == 1
        assert "SPEECHLAB_CHECK_INTERVAL_SECONDS" in capsys.readouterr().err

    def test_zero_interval_exits_one(self, capsys):
        assert main(["dub", "https://x/a.wav", "-t", "es", "--interval", "0"]) == 1
        assert "must be positive" in capsys.readouterr().err


class TestLogging:
    """Lifecycle lines are logged at INFO unless --debug asks for more."""

    @pytest.mark.parametrize(
        "argv, level",
        [(["check"], logging.INFO), (["--debug", "check"], logging.DEBUG)],
    )
    def test_log_level(self, monkeypatch, argv, level):
        monkeypatch.delenv("SPEECHLAB_DEBUG", raising=False)
        with patch("speechlab_dubber.cli.check_connection", new=AsyncMock(return_value=True)):
            with patch("speechlab_dubber.cli.logging.basicConfig") as basic_config:
                assert main(argv) == 0
        assert basic_config.call_args.kwargs["level"] == level


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
