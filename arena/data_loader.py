"""
SurvivalArena — arena/data_loader.py
Settings schema and JIT loader for survival challenge configuration.
=============================================================================================
Version:     0.3
Stack:       Python 3.11+ | Pydantic v2 | tomllib
Status:      Core data validation and loading layer.

Resolution order (performed once, when a challenge record is loaded)
--------------------------------------------------------------------
  1. dedicated settings object on the challenge
  2. legacy rules["survival_settings"]
  3. built-in defaults (arena/data/survival_defaults.toml)

A partial settings object is merged over the defaults. Anything that fails
validation is reported as ConfigurationError and the defaults are used.
"""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from arena.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ================================================================================
# SCHEMAS
# ================================================================================

class Timeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class EliminationPolicy(str, Enum):
    LIVES = "lives"           # lose a life after N consecutive danger periods
    IMMEDIATE = "immediate"   # any danger detection eliminates outright


class SurvivalSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial_safe_radius: float = Field(default=1.0, gt=0.0, le=1.0)
    min_safe_radius: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("min_safe_radius", "final_safe_radius"),
    )
    danger_threshold: float = Field(default=1.0, gt=0.0, le=1.0)
    max_points_per_period: float = Field(default=10, gt=0)
    max_movement_per_period: float = Field(default=0.05, gt=0.0, le=1.0)
    timeframe: Timeframe = Timeframe.DAILY
    start_lives: int = Field(default=3, ge=1)
    elimination_policy: EliminationPolicy = EliminationPolicy.LIVES
    elimination_threshold: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _min_not_above_initial(self) -> "SurvivalSettings":
        if self.min_safe_radius > self.initial_safe_radius:
            raise ValueError(
                f"min_safe_radius {self.min_safe_radius} exceeds "
                f"initial_safe_radius {self.initial_safe_radius}"
            )
        return self

    @property
    def is_weekly(self) -> bool:
        return self.timeframe is Timeframe.WEEKLY

    def to_dict(self) -> Dict[str, Any]:
        """JSON/TOML-safe representation (enums as their string values)."""
        return self.model_dump(mode="json")


# ================================================================================
# LOADERS & CACHE (JIT)
# ================================================================================

DATA_DIR = Path(__file__).parent / "data"

_DEFAULTS_CACHE: Optional[SurvivalSettings] = None


def get_default_settings() -> SurvivalSettings:
    """Loads the built-in fallback settings from TOML. Cached globally."""
    global _DEFAULTS_CACHE
    if _DEFAULTS_CACHE is not None:
        return _DEFAULTS_CACHE

    path = DATA_DIR / "survival_defaults.toml"
    if not path.exists():
        _DEFAULTS_CACHE = SurvivalSettings()
        return _DEFAULTS_CACHE

    with open(path, "rb") as f:
        data = tomllib.load(f)

    _DEFAULTS_CACHE = SurvivalSettings(**data)
    return _DEFAULTS_CACHE


def parse_settings(raw: Mapping[str, Any]) -> SurvivalSettings:
    """
    Validate a (possibly partial) settings mapping merged over the defaults.
    Raises ConfigurationError instead of pydantic's ValidationError.
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Settings must be a mapping, got {type(raw).__name__}")

    merged = get_default_settings().to_dict()
    # Legacy key wins only when the canonical one is absent.
    if "final_safe_radius" in raw and "min_safe_radius" not in raw:
        merged.pop("min_safe_radius", None)
    merged.update({k: v for k, v in raw.items() if v is not None})
    try:
        return SurvivalSettings(**merged)
    except (ValidationError, TypeError) as exc:
        raise ConfigurationError(f"Invalid survival settings: {exc}") from exc


def resolve_settings(
    settings: Optional[Any] = None,
    rules: Optional[Mapping[str, Any]] = None,
    challenge_id: str = "?",
) -> SurvivalSettings:
    """
    Single normalization step producing the canonical settings value.
    Never raises: malformed input is logged and answered with the defaults.
    """
    if isinstance(settings, SurvivalSettings):
        return settings

    raw = settings
    if not raw and rules:
        raw = rules.get("survival_settings")
    if not raw:
        return get_default_settings()

    try:
        return parse_settings(raw)
    except ConfigurationError as exc:
        logger.warning(f"Challenge {challenge_id}: {exc}. Falling back to built-in defaults.")
        return get_default_settings()
