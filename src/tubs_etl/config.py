"""tubs_etl.config

Immutable run configuration for a copy run, optionally loaded from YAML.

Usage:
    from pathlib import Path
    from tubs_etl.config import load_run_config

    config = load_run_config(Path("config/copy_from_observer.yml"))
    config = config.with_overrides(limit=50)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_SOURCE_NAME = "FoxPro Observer"
DEFAULT_ENTERED_BY = "TubsTripProcessor"

VALID_GEAR_CODES = frozenset({"S", "L"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RunConfigValidationError(ValueError):
    """Raised when a run configuration file fails validation."""


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RunConfig:
    """Everything a copy run needs to know, passed explicitly to every stage."""

    source_name: str = DEFAULT_SOURCE_NAME
    gear_code: str = "S"
    limit: int = 12
    year_start: int = 1999
    year_end: int = 2000
    entered_by: str = DEFAULT_ENTERED_BY

    def with_overrides(self, **overrides: Any) -> RunConfig:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        updated = replace(self, **changes)
        validate_run_config(updated)
        return updated

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_run_config(config: RunConfig) -> None:
    if config.gear_code not in VALID_GEAR_CODES:
        raise RunConfigValidationError(
            f"gear_code must be one of {sorted(VALID_GEAR_CODES)}, got {config.gear_code!r}"
        )
    if config.limit < 1:
        raise RunConfigValidationError(f"limit must be positive, got {config.limit}")
    if config.year_start > config.year_end:
        raise RunConfigValidationError(
            f"year_start ({config.year_start}) is after year_end ({config.year_end})"
        )
    if not config.entered_by.strip():
        raise RunConfigValidationError("entered_by must not be blank")


def load_run_config(yaml_path: Path) -> RunConfig:
    """Load and validate a run configuration YAML file.

    Args:
        yaml_path: Absolute or relative path to the YAML file.

    Raises:
        RunConfigValidationError: on unknown keys, wrong types or bad values.
    """
    raw = yaml_path.read_text(encoding="utf-8")
    data: dict[str, Any] = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise RunConfigValidationError(f"{yaml_path}: top level must be a mapping")

    known = {f.name: f for f in fields(RunConfig)}
    unknown = set(data) - set(known)
    if unknown:
        raise RunConfigValidationError(f"{yaml_path}: unknown keys {sorted(unknown)}")

    for key in ("limit", "year_start", "year_end"):
        if key in data and (not isinstance(data[key], int) or isinstance(data[key], bool)):
            raise RunConfigValidationError(f"{yaml_path}: {key} must be an integer")
    for key in ("source_name", "gear_code", "entered_by"):
        if key in data and not isinstance(data[key], str):
            raise RunConfigValidationError(f"{yaml_path}: {key} must be a string")

    config = RunConfig(**data)
    validate_run_config(config)
    return config
