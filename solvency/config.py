"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import to_decimal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TierThresholds:
    """Upper (inclusive) health-factor bounds of each risk tier."""

    liquidatable: Decimal = Decimal("1.0")
    danger: Decimal = Decimal("1.1")
    moderate: Decimal = Decimal("1.5")


@dataclass(frozen=True)
class HealthConfig:
    display_cap: Decimal = Decimal("3.0")
    default_liquidation_threshold: Decimal = Decimal("0.85")
    safety_buffer_pct: Decimal = Decimal("0.001")
    amount_precision: int = 6
    tiers: TierThresholds = field(default_factory=TierThresholds)


@dataclass(frozen=True)
class LiquidationConfig:
    close_factor: Decimal = Decimal("0.5")
    bonus_rate: Decimal = Decimal("0.05")


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = 30.0
    max_size: int = 100


@dataclass(frozen=True)
class EngineConfig:
    engine: HealthConfig = field(default_factory=HealthConfig)
    liquidation: LiquidationConfig = field(default_factory=LiquidationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    network: str = ""
    snapshot_url: str = ""


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _decimal(raw: dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = raw.get(key)
    if value is None or value == "":
        return default
    return to_decimal(value)


def _build_tiers(raw: dict[str, Any]) -> TierThresholds:
    defaults = TierThresholds()
    return TierThresholds(
        liquidatable=_decimal(raw, "liquidatable", defaults.liquidatable),
        danger=_decimal(raw, "danger", defaults.danger),
        moderate=_decimal(raw, "moderate", defaults.moderate),
    )


def _build_engine(raw: dict[str, Any]) -> HealthConfig:
    defaults = HealthConfig()
    return HealthConfig(
        display_cap=_decimal(raw, "display_cap", defaults.display_cap),
        default_liquidation_threshold=_decimal(
            raw, "default_liquidation_threshold",
            defaults.default_liquidation_threshold,
        ),
        safety_buffer_pct=_decimal(
            raw, "safety_buffer_pct", defaults.safety_buffer_pct
        ),
        amount_precision=int(raw.get("amount_precision", defaults.amount_precision)),
        tiers=_build_tiers(raw.get("tiers") or {}),
    )


def _build_liquidation(raw: dict[str, Any]) -> LiquidationConfig:
    defaults = LiquidationConfig()
    return LiquidationConfig(
        close_factor=_decimal(raw, "close_factor", defaults.close_factor),
        bonus_rate=_decimal(raw, "bonus_rate", defaults.bonus_rate),
    )


def _build_cache(raw: dict[str, Any]) -> CacheConfig:
    return CacheConfig(
        ttl_seconds=float(raw.get("ttl_seconds", 30.0)),
        max_size=int(raw.get("max_size", 100)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    """Load and validate engine configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root; when that default file is absent the built-in
            defaults are used. An explicit path that does not exist raises.
    """
    load_dotenv()

    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.info("No config.yaml found, using built-in defaults")
            cfg = EngineConfig()
            _validate(cfg)
            return cfg
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = EngineConfig(
        engine=_build_engine(raw.get("engine") or {}),
        liquidation=_build_liquidation(raw.get("liquidation") or {}),
        cache=_build_cache(raw.get("cache") or {}),
        network=str(raw.get("network") or ""),
        snapshot_url=str(raw.get("snapshot_url") or ""),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _check_fraction(name: str, value: Decimal) -> None:
    if not Decimal(0) <= value <= Decimal(1):
        raise ValueError(f"{name} must be within [0, 1], got {value}")


def _validate(cfg: EngineConfig) -> None:
    """Raise on invalid configuration."""
    engine = cfg.engine
    if engine.display_cap <= 0:
        raise ValueError("display_cap must be positive")
    if engine.amount_precision < 0:
        raise ValueError("amount_precision must not be negative")
    _check_fraction("default_liquidation_threshold", engine.default_liquidation_threshold)
    _check_fraction("safety_buffer_pct", engine.safety_buffer_pct)
    _check_fraction("close_factor", cfg.liquidation.close_factor)
    _check_fraction("bonus_rate", cfg.liquidation.bonus_rate)

    tiers = engine.tiers
    if not (0 < tiers.liquidatable < tiers.danger < tiers.moderate):
        raise ValueError(
            "Tier thresholds must be strictly ascending: "
            f"{tiers.liquidatable} < {tiers.danger} < {tiers.moderate}"
        )

    if cfg.cache.max_size <= 0:
        raise ValueError("cache.max_size must be positive")
    if cfg.cache.ttl_seconds <= 0:
        raise ValueError("cache.ttl_seconds must be positive")
