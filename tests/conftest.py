"""
Pytest fixtures for the settlement test suite.

Provides:
- Logging and log-context isolation between tests
- Small company / obligation builders shared across layers
- A YAML settings directory in tmp_path for configuration tests

No external services are required; every engine is pure and in-memory.
"""

from collections.abc import Callable
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from settlement_kernel.domain.values import Company, DebtObligation
from settlement_kernel.logging_config import LogContext, reset_logging


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Reset logger configuration and context fields around each test."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def make_companies() -> Callable[..., list[Company]]:
    """Build companies from ``id=balance`` keyword pairs, in order."""

    def _make(**balances: str | int) -> list[Company]:
        return [Company(id=cid, balance=Decimal(str(bal))) for cid, bal in balances.items()]

    return _make


@pytest.fixture
def make_debts() -> Callable[..., list[DebtObligation]]:
    """Build obligations from ``(source, target, amount)`` triples.

    Ids are ``D1``, ``D2``, ... in the order given.
    """

    def _make(*triples: tuple[str, str, str | int]) -> list[DebtObligation]:
        return [
            DebtObligation(id=f"D{i}", source=s, target=t, amount=Decimal(str(a)))
            for i, (s, t, a) in enumerate(triples, start=1)
        ]

    return _make


@pytest.fixture
def settings_dir(tmp_path: Path) -> Callable[..., Path]:
    """Write a settings YAML under tmp_path and return its directory."""

    def _write(set_name: str = "default", **engine: object) -> Path:
        document = {"config_id": set_name, "version": 1, "engine": engine}
        (tmp_path / f"{set_name}.yaml").write_text(yaml.safe_dump(document))
        return tmp_path

    return _write
