"""
Environment variable loading for the analytics engine.

- MULIKA_CLUSTER_COUNT: default k for clustering (default: 5)
- MULIKA_MAX_ITERATIONS: K-means iteration cap (default: 100)
- MULIKA_RANDOM_SEED: fixed seed for centroid initialization (default: unset)
- MULIKA_DUPLICATE_THRESHOLD: Jaccard threshold for duplicate grouping (default: 0.7)
- MULIKA_LOCAL_TIMEZONE: zone used for submission-hour checks (default: Africa/Nairobi)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is mulika_analytics/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"


def load_analytics_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def get_env_str(name: str, default: str | None = None) -> str | None:
    """Return a stripped env value, or default when unset/blank."""
    load_analytics_env()
    raw = (os.getenv(name) or "").strip()
    return raw or default

