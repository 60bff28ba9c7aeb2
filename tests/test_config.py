"""
tests/test_config.py — YAML Configuration & Engine Bootstrap Tests
===================================================================
"""

from __future__ import annotations

import dataclasses
import os
from unittest.mock import patch

import pytest

from rallypoint.config import RallypointConfig, load_config
from rallypoint.database.engine import create_db_engine


def _write(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_required_keys_and_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, "community_name: Raiders\napi_port: 9000\n"))
        assert cfg.community_name == "Raiders"
        assert cfg.api_port == 9000
        assert cfg.allow_lfg_oversubscription is False
        assert cfg.thread_title_max_length == 200
        assert cfg.chat_history_limit == 100

    def test_policy_overrides(self, tmp_path):
        cfg = load_config(_write(tmp_path, (
            "community_name: Raiders\n"
            "api_port: '8080'\n"
            "allow_lfg_oversubscription: true\n"
            "thread_title_max_length: 120\n"
            "chat_history_limit: 25\n"
        )))
        assert cfg.api_port == 8080
        assert cfg.allow_lfg_oversubscription is True
        assert cfg.thread_title_max_length == 120
        assert cfg.chat_history_limit == 25

    @pytest.mark.parametrize("limit", [0, -5, 201, 300])
    def test_title_limit_outside_column_width_rejected(self, tmp_path, limit):
        path = _write(tmp_path, (
            "community_name: Raiders\n"
            "api_port: 9000\n"
            f"thread_title_max_length: {limit}\n"
        ))
        with pytest.raises(ValueError, match="between 1 and 200"):
            load_config(path)

    def test_missing_file_has_hint(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "absent.yaml")

    def test_missing_required_key(self, tmp_path):
        with pytest.raises(KeyError, match="api_port"):
            load_config(_write(tmp_path, "community_name: Raiders\n"))

    def test_config_is_frozen(self):
        cfg = RallypointConfig(community_name="x", api_port=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.api_port = 2


class TestCreateEngine:
    def test_requires_database_url(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("DATABASE_URL", None)
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                create_db_engine()
