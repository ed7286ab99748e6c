from __future__ import annotations

from .load import load_config
from .schema import AppConfig, EnvOverrides, ScoringConfig

__all__ = ["AppConfig", "EnvOverrides", "ScoringConfig", "load_config"]
