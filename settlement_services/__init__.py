"""
settlement_services -- Package init and public API.

Responsibility:
    Orchestration over the pure settlement engines: the end-to-end
    ``SettlementService`` (netting then cascade, with settings loaded from
    ``settlement_config``) and the narrative renderer that turns audit
    events into display text.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction:
        settlement_services/ -> settlement_engines/  (allowed)
        settlement_services/ -> settlement_config/   (allowed)
        settlement_services/ -> settlement_kernel/   (allowed)
        settlement_engines/  -> settlement_services/ (FORBIDDEN)
        settlement_kernel/   -> settlement_services/ (FORBIDDEN)

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("services")

from settlement_services.narrative import fmt_amount, names_from, render_events
from settlement_services.settlement_service import (
    SettlementOutcome,
    SettlementService,
    SettlementStatus,
)

__all__ = [
    "SettlementOutcome",
    "SettlementService",
    "SettlementStatus",
    "fmt_amount",
    "names_from",
    "render_events",
]
