from unittest.mock import patch

import pytest

import run


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    args = run.parse_args([])

    assert args.port == 8000
    assert args.host == "0.0.0.0"
    assert args.log_level == "INFO"


def test_parse_args_overrides():
    args = run.parse_args(["--port", "9100", "--host", "127.0.0.1", "--log-level", "DEBUG"])

    assert args.port == 9100
    assert args.host == "127.0.0.1"
    assert args.log_level == "DEBUG"


def test_main_requires_api_key(make_settings):
    with patch("run.load_settings", return_value=make_settings(api_key=None)), patch(
        "run.uvicorn.run"
    ) as mock_run:
        with pytest.raises(SystemExit) as exc_info:
            run.main([])

    assert exc_info.value.code == 1
    mock_run.assert_not_called()


def test_main_starts_uvicorn_with_ping_settings(make_settings):
    settings = make_settings().model_copy(update={"client_ping_interval_s": 15.0})

    with patch("run.load_settings", return_value=settings), patch("run.uvicorn.run") as mock_run:
        run.main(["--port", "9100", "--host", "127.0.0.1", "--log-level", "WARNING"])

    mock_run.assert_called_once()
    args, kwargs = mock_run.call_args
    assert args[0] == "agent_bridge.main:app"
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9100
    assert kwargs["log_level"] == "warning"
    assert kwargs["ws_ping_interval"] == 15.0
    assert kwargs["ws_ping_timeout"] == 15.0
