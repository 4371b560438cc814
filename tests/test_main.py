import json
from unittest import mock

import pytest

from userenricher.main import main, setup_logging


def test_setup_logging_prod_is_json_without_debug(capsys):
    log = setup_logging("prod")
    log.debug("hidden")
    log.info("visible", extra={"op": "test.op"})
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["msg"] == "visible"
    assert entry["level"] == "INFO"
    assert entry["op"] == "test.op"


def test_setup_logging_dev_includes_debug(capsys):
    log = setup_logging("dev")
    log.debug("details")
    entry = json.loads(capsys.readouterr().out.strip())
    assert entry["level"] == "DEBUG"
    assert entry["msg"] == "details"


def test_setup_logging_local_is_text(capsys):
    log = setup_logging("local")
    log.debug("hello world")
    out = capsys.readouterr().out
    assert "level=DEBUG" in out
    assert 'msg="hello world"' in out


def test_setup_logging_unknown_env():
    with pytest.raises(ValueError):
        setup_logging("staging")


def _prepare(tmp_path, monkeypatch, port):
    db_url = f"sqlite:///{tmp_path / 'app.db'}"
    (tmp_path / ".env").write_text(f"ENV=dev\nPORT={port}\nDB_URL={db_url}\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("PORT", port)
    monkeypatch.setenv("DB_URL", db_url)


def test_main_runs_server(tmp_path, monkeypatch, capsys):
    _prepare(tmp_path, monkeypatch, "127.0.0.1:8080")
    with mock.patch("uvicorn.run") as run:
        assert main([]) == 0
    run.assert_called_once()
    assert run.call_args.kwargs["host"] == "127.0.0.1"
    assert run.call_args.kwargs["port"] == 8080
    assert "starting application" in capsys.readouterr().out


def test_main_port_only_binds_all_interfaces(tmp_path, monkeypatch):
    _prepare(tmp_path, monkeypatch, ":8080")
    with mock.patch("uvicorn.run") as run:
        assert main([]) == 0
    assert run.call_args.kwargs["host"] == "0.0.0.0"


def test_main_reports_bad_address(tmp_path, monkeypatch, capsys):
    _prepare(tmp_path, monkeypatch, "nowhere")
    with mock.patch("uvicorn.run") as run:
        assert main([]) == 1
    run.assert_not_called()
    assert "failed to run server" in capsys.readouterr().out