"""
EngineSettings -- tunable numeric parameters shared by the settlement engines.

The engines receive a settings object as an explicit argument and never
read files or environment variables.  ``settlement_config`` builds one from
YAML; ``EngineSettings()`` gives the built-in defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.domain.values import DEFAULT_EPSILON


@dataclass(frozen=True)
class EngineSettings:
    """
    Attributes:
        epsilon: Amounts at or below this are treated as zero.
        infinite_capacity: Capacity of company -> SUPER_SINK edges.  Must
            exceed any cash total the cascade will see.
        augmentation_floor: Lower bound of the augmentation cap; the actual
            cap is ``max(augmentation_floor, node_count * edge_count)``.
        transaction_id_prefix: Prefix for counter-based transaction ids.
    """

    epsilon: Decimal = DEFAULT_EPSILON
    infinite_capacity: Decimal = Decimal("1e18")
    augmentation_floor: int = 1000
    transaction_id_prefix: str = "TX"

    def augmentation_cap(self, node_count: int, edge_count: int) -> int:
        return max(self.augmentation_floor, node_count * max(edge_count, 1))


DEFAULT_SETTINGS = EngineSettings()
