"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "grabarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 30.0,
        "user_agent": "grabarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "diskcache",
        "dir": "./.cache/grabarr",
    },
    "release_categories": [4050],
    "auto_grab": {
        "min_score": 100,
        "min_seeders": 5,
        "dry_run": False,
    },
    "discover": {
        "trending_ttl_minutes": 15,
        "top_releases_ttl_minutes": 5,
        "popularity_types_ttl_minutes": 1440,
        "popularity_types": [1, 2, 3, 4, 5],
        "pacing_seconds": 0.5,
    },
}
