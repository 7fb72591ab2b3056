"""Structural checks on parsed ``EngineSettings``."""

from __future__ import annotations

from decimal import Decimal

from settlement_kernel.domain.settings import EngineSettings
from settlement_kernel.exceptions import ConfigurationError

# Epsilon above this would swallow real cent-level debts.
_MAX_EPSILON = Decimal("0.01")


def validate_engine_settings(settings: EngineSettings) -> EngineSettings:
    """Return ``settings`` unchanged or raise ``ConfigurationError``."""
    if not settings.epsilon.is_finite() or settings.epsilon <= 0:
        raise ConfigurationError("epsilon", "must be a positive finite number")
    if settings.epsilon > _MAX_EPSILON:
        raise ConfigurationError("epsilon", f"must not exceed {_MAX_EPSILON}")
    if not settings.infinite_capacity.is_finite():
        raise ConfigurationError(
            "infinite_capacity", "must be a finite sentinel, not infinity"
        )
    if settings.infinite_capacity <= settings.epsilon:
        raise ConfigurationError("infinite_capacity", "must be larger than epsilon")
    if settings.augmentation_floor < 1:
        raise ConfigurationError("augmentation_floor", "must be at least 1")
    if not settings.transaction_id_prefix.strip():
        raise ConfigurationError("transaction_id_prefix", "must not be blank")
    return settings
