"""
nsasa.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for portal identity and the scoring weights used by
the leaderboard.  Secrets and connection strings stay in the environment
(``DATABASE_URL``, ``JWT_SECRET``) and never appear in this file.

Usage::

    from nsasa.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.portal_name)       # "Nsasa Portal"
    print(cfg.scoring.level_weight)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Multipliers applied to the two leaderboard score inputs.

    The defaults reproduce the portal's historical formula
    ``floor(profile_completion * 10) + numeric_level * 5``.
    """

    completion_weight: float = 10.0
    level_weight: int = 5


@dataclass(frozen=True, slots=True)
class PortalConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    portal_name: str
    department: str

    # Leaderboard
    leaderboard_size: int = 10
    scoring: ScoringWeights = field(default_factory=ScoringWeights)


def load_config(path: str | Path = "config.yaml") -> PortalConfig:
    """Read *path* and return a :class:`PortalConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    scoring_raw = raw.get("scoring") or {}
    defaults = ScoringWeights()
    scoring = ScoringWeights(
        completion_weight=float(scoring_raw.get("completion_weight", defaults.completion_weight)),
        level_weight=int(scoring_raw.get("level_weight", defaults.level_weight)),
    )

    return PortalConfig(
        portal_name=raw["portal_name"],
        department=raw["department"],
        leaderboard_size=int(raw.get("leaderboard_size", 10)),
        scoring=scoring,
    )
