"""Configuration for the txn_pipeline package.

All tunables live in small dataclasses with defaults matching the behaviour
the pipeline was calibrated against. :meth:`PipelineConfig.from_env` reads
``TXN_*`` overrides; the CLI loads a local ``.env`` first via python-dotenv.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation

from .exceptions import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class DedupConfig:
    """Windowed duplicate match parameters.

    Both bounds are strict (``<``). Tightening either one trades false
    positives (distinct same-amount transactions merged) for false negatives
    (clock skew between a notification and a statement row).
    """

    window_seconds: float = 60.0
    amount_tolerance: Decimal = Decimal("0.01")

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


@dataclass(frozen=True, slots=True)
class CascadeThresholds:
    rule: float = 0.85
    on_device: float = 0.70
    cloud: float = 0.70


@dataclass(frozen=True, slots=True)
class CloudConfig:
    model: str = "gpt-5"
    timeout_seconds: float = 15.0
    api_key_env: str = "OPENAI_API_KEY"


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    dedup: DedupConfig = field(default_factory=DedupConfig)
    thresholds: CascadeThresholds = field(default_factory=CascadeThresholds)
    cloud: CloudConfig = field(default_factory=CloudConfig)
    cloud_enabled: bool = False
    on_device_enabled: bool = False
    statement_workers: int = 1
    max_reported_errors: int = 5
    # Statement dates carry no zone; India has a single fixed offset.
    utc_offset_minutes: int = 330
    redelivery_cache_size: int = 1024
    database_url: str | None = None

    @property
    def tz(self) -> tzinfo:
        return timezone(timedelta(minutes=self.utc_offset_minutes))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineConfig:
        """Build a config from ``TXN_*`` environment variables.

        Unset variables keep their defaults. Malformed values raise
        :class:`~txn_pipeline.exceptions.ConfigurationError` naming the
        variable.
        """

        env = os.environ if environ is None else environ
        base = cls()
        dedup = DedupConfig(
            window_seconds=_float(env, "TXN_DEDUP_WINDOW_SECONDS", base.dedup.window_seconds),
            amount_tolerance=_decimal(
                env, "TXN_DEDUP_AMOUNT_TOLERANCE", base.dedup.amount_tolerance
            ),
        )
        cloud = CloudConfig(
            model=env.get("TXN_CLOUD_MODEL", base.cloud.model).strip() or base.cloud.model,
            timeout_seconds=_float(env, "TXN_CLOUD_TIMEOUT_SECONDS", base.cloud.timeout_seconds),
        )
        cfg = cls(
            dedup=dedup,
            thresholds=base.thresholds,
            cloud=cloud,
            cloud_enabled=_bool(env, "TXN_CLOUD_ENABLED", base.cloud_enabled),
            on_device_enabled=_bool(env, "TXN_ON_DEVICE_ENABLED", base.on_device_enabled),
            statement_workers=_int(env, "TXN_STATEMENT_WORKERS", base.statement_workers),
            max_reported_errors=_int(env, "TXN_MAX_REPORTED_ERRORS", base.max_reported_errors),
            utc_offset_minutes=_int(env, "TXN_UTC_OFFSET_MINUTES", base.utc_offset_minutes),
            redelivery_cache_size=_int(
                env, "TXN_REDELIVERY_CACHE_SIZE", base.redelivery_cache_size
            ),
            database_url=env.get("TXN_DATABASE_URL") or env.get("DATABASE_URL") or None,
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.dedup.window_seconds <= 0:
            raise ConfigurationError("dedup window must be positive")
        if self.dedup.amount_tolerance < 0:
            raise ConfigurationError("dedup amount tolerance must not be negative")
        if self.statement_workers < 1:
            raise ConfigurationError("statement_workers must be at least 1")
        if self.max_reported_errors < 0:
            raise ConfigurationError("max_reported_errors must not be negative")
        if self.redelivery_cache_size < 1:
            raise ConfigurationError("redelivery_cache_size must be at least 1")
        for name in ("rule", "on_device", "cloud"):
            value = getattr(self.thresholds, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"threshold {name} must be within [0, 1]: {value}")


# ---- env parsing helpers -----------------------------------------------------


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}")


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from exc


def _decimal(env: Mapping[str, str], key: str, default: Decimal) -> Decimal:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ConfigurationError(f"{key} must be a decimal, got {raw!r}") from exc


__all__ = ["CascadeThresholds", "CloudConfig", "DedupConfig", "PipelineConfig"]
