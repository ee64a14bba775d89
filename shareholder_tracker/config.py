"""Central configuration for the shareholder tracker package."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

# Registrar category codes folded into the reporting buckets used downstream.
CATEGORY_MAP = {
    "AIF": "India FIs",
    "LTD": "Retail",
    "CM": "India FIs",
    "EMP": "Employees + ESOP",
    "FB": "FIIs",
    "FII": "FIIs",
    "FPC": "FIIs",
    "KMP": "Employees + ESOP",
    "MUT": "India FIs",
    "NRN": "Retail",
    "NRI": "Retail",
    "PPG": "Promoters",
    "PRG": "Promoters",
    "PRO": "Promoters",
    "QIB": "India FIs",
    "PUB": "Retail",
    "TRS": "Employees + ESOP",
    "TRU": "Retail",
    "HUF": "Retail",
}

FAST_TIER_LIMIT_BYTES = 2 * 1024 * 1024
FAST_TIER_QUOTA_BYTES = 5 * 1024 * 1024

# Observed production policy: holders that never reached this many shares on
# or after the listing date are left out of comparison and ranking views.
MIN_ACTIVITY_SHARES = 20_000
ACTIVITY_CUTOFF = date(2024, 9, 3)

BEHAVIOR_THRESHOLD = 1000


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw.replace(",", "").strip())


def _env_date(name: str, default: date) -> date:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return date.fromisoformat(raw.strip())


@dataclass(slots=True, frozen=True)
class Settings:
    data_dir: Path
    fast_tier_limit_bytes: int
    fast_tier_quota_bytes: int
    min_activity_shares: int
    activity_cutoff: date
    behavior_threshold: int
    category_map: dict[str, str] = field(default_factory=dict)


def load_settings() -> Settings:
    return Settings(
        data_dir=Path(os.environ.get("SHAREHOLDER_DATA_DIR", str(DEFAULT_DATA_DIR))),
        fast_tier_limit_bytes=_env_int("SHAREHOLDER_FAST_TIER_LIMIT", FAST_TIER_LIMIT_BYTES),
        fast_tier_quota_bytes=_env_int("SHAREHOLDER_FAST_TIER_QUOTA", FAST_TIER_QUOTA_BYTES),
        min_activity_shares=_env_int("SHAREHOLDER_MIN_ACTIVITY_SHARES", MIN_ACTIVITY_SHARES),
        activity_cutoff=_env_date("SHAREHOLDER_ACTIVITY_CUTOFF", ACTIVITY_CUTOFF),
        behavior_threshold=_env_int("SHAREHOLDER_BEHAVIOR_THRESHOLD", BEHAVIOR_THRESHOLD),
        category_map=dict(CATEGORY_MAP),
    )


SETTINGS = load_settings()
