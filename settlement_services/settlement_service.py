"""
settlement_services.settlement_service -- End-to-end intercompany settlement.

Responsibility:
    Run the full pipeline for one request: boundary validation, cycle
    netting, then the cash cascade on the netted obligations with the raw
    debt total as reconciliation baseline.  Returns a ``SettlementOutcome``
    instead of raising, so a rejected request is distinguishable from a
    successful empty result.

Architecture position:
    Services -- orchestration over engines + kernel.  Holds only immutable
    settings; every call builds its own id generator and engine state, so
    one service instance may be shared across threads.

Failure modes:
    - InvalidInputError from the engines -> ``SettlementStatus.REJECTED``
      with the error's ``code`` and message.  Any other exception
      propagates.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from settlement_config import get_active_settings
from settlement_engines.cascade import CascadeResult, cascade_optimize
from settlement_engines.netting import NettingResult, net_cycles
from settlement_kernel.domain.events import AuditEvent
from settlement_kernel.domain.identifiers import IdGenerator, SequentialIdGenerator
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.values import Company, Transaction
from settlement_kernel.exceptions import InvalidInputError
from settlement_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.settlement")


class SettlementStatus(str, Enum):
    """Status of a settlement run."""

    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SettlementOutcome:
    """Result of ``SettlementService.settle``."""

    status: SettlementStatus
    run_id: str
    netting: NettingResult | None = None
    cascade: CascadeResult | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == SettlementStatus.COMPLETED

    @property
    def netted_obligations(self) -> tuple[Transaction, ...]:
        return self.netting.transactions if self.netting else ()

    @property
    def payments(self) -> tuple[Transaction, ...]:
        return self.cascade.transactions if self.cascade else ()

    @property
    def final_balances(self) -> dict[str, Decimal]:
        return self.cascade.final_balances if self.cascade else {}

    @property
    def logs(self) -> tuple[AuditEvent, ...]:
        netting_logs = self.netting.logs if self.netting else ()
        cascade_logs = self.cascade.logs if self.cascade else ()
        return netting_logs + cascade_logs


class SettlementService:
    """
    Netting followed by cascade, with structured rejection of bad input.

    Contract:
        ``settle`` never raises for malformed input; it returns a REJECTED
        outcome carrying the typed error's code.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        id_generator_factory: Callable[[], IdGenerator] | None = None,
    ):
        self._settings = settings or DEFAULT_SETTINGS
        self._id_generator_factory = id_generator_factory or (
            lambda: SequentialIdGenerator(self._settings.transaction_id_prefix)
        )

    @classmethod
    def from_config(
        cls,
        set_name: str = "default",
        config_dir: Path | None = None,
    ) -> SettlementService:
        return cls(settings=get_active_settings(set_name, config_dir))

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def settle(
        self,
        companies: Sequence[Company],
        obligations: Sequence[Any],
        run_id: str | None = None,
    ) -> SettlementOutcome:
        """Net cycles, then cascade cash through the remaining debt."""
        run_id = run_id or str(uuid4())
        with LogContext.bind(run_id=run_id):
            ids = self._id_generator_factory()
            try:
                netting = net_cycles(
                    companies, obligations,
                    settings=self._settings, id_generator=ids,
                )
                cascade = cascade_optimize(
                    companies, netting.transactions,
                    original_total_debt=netting.original_total,
                    settings=self._settings, id_generator=ids,
                )
            except InvalidInputError as exc:
                logger.warning("settlement_rejected", extra={
                    "error_code": exc.code,
                    "error_message": str(exc),
                })
                return SettlementOutcome(
                    status=SettlementStatus.REJECTED,
                    run_id=run_id,
                    error_code=exc.code,
                    message=str(exc),
                )

            logger.info("settlement_completed", extra={
                "netted_count": len(netting.transactions),
                "payment_count": len(cascade.transactions),
                "netting_eliminated": str(netting.eliminated),
                "cascade_eliminated": str(cascade.total_reduced),
            })
            return SettlementOutcome(
                status=SettlementStatus.COMPLETED,
                run_id=run_id,
                netting=netting,
                cascade=cascade,
            )
