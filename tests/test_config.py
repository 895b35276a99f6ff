"""Tests for configuration loading and the UploadConfig defaults."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from radicacion.config import (
    BASE_URL_ENV_VAR,
    TOKEN_ENV_VAR,
    get_access_token,
    load_upload_config,
)
from radicacion.constants import MAX_FILE_SIZE_BYTES
from radicacion.models import UploadConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    monkeypatch.delenv(BASE_URL_ENV_VAR, raising=False)


class TestUploadConfig:

    def test_defaults_match_production_budget(self):
        config = UploadConfig()
        assert config.concurrency_limit == 3
        assert config.max_retries == 5
        assert config.base_delay == 1.5
        assert config.max_delay == 30.0
        assert config.jitter_ratio == 0.3
        assert config.batch_pause == 0.3
        assert config.recovery_passes == 3
        assert config.recovery_pass_delay == 5.0
        assert config.max_file_size == MAX_FILE_SIZE_BYTES

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"concurrency_limit": 0},
            {"max_retries": -1},
            {"recovery_passes": -1},
            {"base_delay": -1.5},
            {"max_delay": -30.0},
            {"jitter_ratio": -0.3},
            {"batch_pause": -0.3},
            {"recovery_pass_delay": -5.0},
            {"max_file_size": 0},
            {"request_timeout": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            UploadConfig(**kwargs)


class TestGetAccessToken:

    def test_keyring_wins(self, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
        with patch("radicacion.config.keyring.get_password", return_value="from-keyring"):
            assert get_access_token() == "from-keyring"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
        with patch("radicacion.config.keyring.get_password", return_value=None):
            assert get_access_token() == "from-env"

    def test_missing_everywhere_raises(self):
        with patch("radicacion.config.keyring.get_password", return_value=None):
            with pytest.raises(RuntimeError, match="set-token"):
                get_access_token()


class TestLoadUploadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        with patch("radicacion.config.keyring.get_password", return_value=None):
            config = load_upload_config(tmp_path / "absent.json")
        assert config == UploadConfig()

    def test_json_overrides_and_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "radicacion_config.json"
        path.write_text(
            json.dumps(
                {
                    "base_url": "https://portal.example",
                    "concurrency_limit": 2,
                    "recovery_pass_delay": 1.0,
                    "legacy_option": True,
                }
            )
        )
        with patch("radicacion.config.keyring.get_password", return_value="kr"):
            config = load_upload_config(path)

        assert config.base_url == "https://portal.example"
        assert config.concurrency_limit == 2
        assert config.recovery_pass_delay == 1.0
        assert config.max_retries == 5
        assert config.access_token == "kr"

    def test_base_url_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv(BASE_URL_ENV_VAR, "https://env.example")
        with patch("radicacion.config.keyring.get_password", return_value=None):
            config = load_upload_config(tmp_path / "absent.json")
        assert config.base_url == "https://env.example"

    def test_token_in_json_is_kept(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"access_token": "inline"}))
        with patch("radicacion.config.keyring.get_password") as get_password:
            config = load_upload_config(path)
        assert config.access_token == "inline"
        get_password.assert_not_called()

    def test_invalid_json_value_rejected(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"concurrency_limit": 0}))
        with pytest.raises(ValueError):
            load_upload_config(path)
