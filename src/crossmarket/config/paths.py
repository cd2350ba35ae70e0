from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable


PROJECT_ROOT = Path(__file__).resolve().parents[3]
SRC_DIR = PROJECT_ROOT / "src"
CONFIG_DIR = PROJECT_ROOT / "config"  # YAML overrides live at project root, not in src/
DATA_DIR = Path(os.getenv("CROSSMARKET_DATA_DIR", PROJECT_ROOT / "data")).expanduser()
LOGS_DIR = DATA_DIR / "logs"

NAME_OVERRIDES_FILE = CONFIG_DIR / "brand_overrides.yaml"
FALLBACK_BRANDS_FILE = CONFIG_DIR / "fallback_brands.yaml"
COUNTRIES_FILE = CONFIG_DIR / "countries.yaml"
FEATURE_FLAGS_FILE = CONFIG_DIR / "feature_flags.yaml"


def ensure_directories(paths: Iterable[Path] | None = None) -> None:
    """Ensure runtime directories exist."""

    default_targets = [
        DATA_DIR,
        LOGS_DIR,
    ]
    targets = list(paths) if paths is not None else default_targets
    for directory in targets:
        directory.mkdir(parents=True, exist_ok=True)
