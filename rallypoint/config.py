"""
rallypoint.config — YAML Configuration Loader
==============================================

Reads ``config.yaml`` for community identity and the few policy knobs the
service layer needs (LFG over-subscription, forum title limit, chat page
size).  Secrets and ``DATABASE_URL`` live in the environment, not here.

Usage::

    from rallypoint.config import load_config

    cfg = load_config()                    # reads ./config.yaml by default
    print(cfg.allow_lfg_oversubscription)  # False
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from rallypoint.constants import THREAD_TITLE_MAX_LENGTH


@dataclass(frozen=True, slots=True)
class RallypointConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # API
    api_port: int

    # Policy
    allow_lfg_oversubscription: bool = False  # let players_joined exceed players_needed
    thread_title_max_length: int = THREAD_TITLE_MAX_LENGTH
    chat_history_limit: int = 100


def load_config(path: str | Path = "config.yaml") -> RallypointConfig:
    """Read *path* and return a :class:`RallypointConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``thread_title_max_length`` is outside 1..THREAD_TITLE_MAX_LENGTH.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    title_max = int(raw.get("thread_title_max_length", THREAD_TITLE_MAX_LENGTH))
    # Cannot exceed the forum_threads.title column width.
    if not 1 <= title_max <= THREAD_TITLE_MAX_LENGTH:
        raise ValueError(
            f"thread_title_max_length must be between 1 and {THREAD_TITLE_MAX_LENGTH}, "
            f"got {title_max}."
        )

    return RallypointConfig(
        community_name=raw["community_name"],
        api_port=int(raw["api_port"]),
        allow_lfg_oversubscription=bool(raw.get("allow_lfg_oversubscription", False)),
        thread_title_max_length=title_max,
        chat_history_limit=int(raw.get("chat_history_limit", 100)),
    )
