"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from cla_assistant.config import ClaSettings


def test_defaults(settings: ClaSettings, tmp_path: Path) -> None:
    assert settings.github_base_url == "https://api.github.com"
    assert settings.status_context == "licence/cla"
    assert settings.fanout_workers == 4
    assert settings.repos_state_file == tmp_path / "cla_state" / "repos.json"
    assert settings.signatures_state_file == tmp_path / "cla_state" / "signatures.json"


def test_environment_overrides(settings: ClaSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLA_STATUS_CONTEXT", "cla/acme")
    monkeypatch.setenv("CLA_FANOUT_WORKERS", "8")
    monkeypatch.setenv("CLA_STATE_PATH", "/var/lib/cla")

    loaded = ClaSettings()

    assert loaded.status_context == "cla/acme"
    assert loaded.fanout_workers == 8
    assert loaded.repos_state_file == Path("/var/lib/cla/repos.json")


def test_env_file(settings: ClaSettings, tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "CLA_APP_BASE_URL=https://cla.acme.test\nCLA_GITHUB_TOKEN=cli_token\n",
        encoding="utf-8",
    )

    loaded = ClaSettings(_env_file=env_file)

    assert loaded.app_base_url == "https://cla.acme.test"
    assert loaded.github_token == "cli_token"


def test_fanout_workers_must_be_positive(
    settings: ClaSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CLA_FANOUT_WORKERS", "0")

    with pytest.raises(ValidationError):
        ClaSettings()


def test_parsed_cors_origins(settings: ClaSettings) -> None:
    loaded = ClaSettings(cors_origins=" https://a.test, ,https://b.test ")

    assert loaded.parsed_cors_origins() == ["https://a.test", "https://b.test"]
