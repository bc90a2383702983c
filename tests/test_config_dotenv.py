from __future__ import annotations

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from loginsight_forwarder import cli as cli_module
from loginsight_forwarder import config as forwarder_config


@pytest.fixture(autouse=True)
def _reset_dotenv_state() -> None:
    """Reset shared dotenv state around each test."""

    forwarder_config._reset_dotenv_state_for_testing()
    yield
    forwarder_config._reset_dotenv_state_for_testing()


def test_enable_dotenv_populates_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Loading the nearest .env injects values into the process environment."""

    nested = tmp_path / "nested"
    nested.mkdir()
    env_file = tmp_path / ".env"
    env_file.write_text("INSIGHT_SERVER_TOKEN=dotenv-token\n")
    monkeypatch.chdir(nested)
    monkeypatch.delenv("INSIGHT_SERVER_TOKEN", raising=False)

    loaded = forwarder_config.enable_dotenv()

    assert loaded == env_file.resolve()
    assert os.environ["INSIGHT_SERVER_TOKEN"] == "dotenv-token"

    os.environ.pop("INSIGHT_SERVER_TOKEN", None)


def test_enable_dotenv_respects_existing_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Existing environment variables keep precedence over .env entries."""

    nested = tmp_path / "nested"
    nested.mkdir()
    (tmp_path / ".env").write_text("INSIGHT_SERVER_TOKEN=dotenv-token\n")
    monkeypatch.chdir(nested)
    monkeypatch.setenv("INSIGHT_SERVER_TOKEN", "real-token")

    result = forwarder_config.enable_dotenv()

    assert result is not None
    assert os.environ["INSIGHT_SERVER_TOKEN"] == "real-token"


def test_enable_dotenv_searches_from_explicit_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    env_file = tmp_path / "a" / ".env"
    env_file.write_text("INSIGHT_QUEUE_SIZE=12\n")
    monkeypatch.delenv("INSIGHT_QUEUE_SIZE", raising=False)

    assert forwarder_config.enable_dotenv(search_from=deep) == env_file.resolve()
    assert os.environ["INSIGHT_QUEUE_SIZE"] == "12"

    os.environ.pop("INSIGHT_QUEUE_SIZE", None)


def test_enable_dotenv_loads_only_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / ".env").write_text("LOGINSIGHT_TEST_MARKER=first\n")
    (second / ".env").write_text("LOGINSIGHT_TEST_MARKER=second\n")
    monkeypatch.delenv("LOGINSIGHT_TEST_MARKER", raising=False)

    forwarder_config.enable_dotenv(search_from=first)
    again = forwarder_config.enable_dotenv(search_from=second)

    assert again == (first / ".env").resolve()
    assert os.environ["LOGINSIGHT_TEST_MARKER"] == "first"

    os.environ.pop("LOGINSIGHT_TEST_MARKER", None)


def test_cli_dotenv_toggle_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    """CLI flag wins over environment toggle when deciding whether to load .env."""

    runner = CliRunner()

    calls: list[tuple[tuple[object, ...], dict[str, object]]] = []

    def record_enable(*args: object, **kwargs: object) -> None:
        calls.append((args, kwargs))

    monkeypatch.setattr(forwarder_config, "enable_dotenv", record_enable)
    monkeypatch.delenv(forwarder_config.DOTENV_ENV_VAR, raising=False)

    result = runner.invoke(cli_module.cli, ["--use-dotenv", "info"])
    assert result.exit_code == 0
    assert len(calls) == 1

    calls.clear()
    env = {forwarder_config.DOTENV_ENV_VAR: "1"}
    result = runner.invoke(cli_module.cli, ["info"], env=env)
    assert result.exit_code == 0
    assert len(calls) == 1

    calls.clear()
    result = runner.invoke(cli_module.cli, ["--no-use-dotenv", "info"], env=env)
    assert result.exit_code == 0
    assert calls == []
