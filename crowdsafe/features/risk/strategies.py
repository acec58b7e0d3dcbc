# crowdsafe/features/risk/strategies.py
"""
Analysis strategies.

Both strategies return the same AnalysisResult shape. The deterministic one
is always available and is what `analyze_with_fallback` drops back to when
the preferred strategy raises for any reason.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from crowdsafe.core.audit import audit_logger
from crowdsafe.core.config import settings

from . import service
from .schemas import AnalysisResult, EventInput
from .tables import DEFAULT_TABLES, RiskTables

logger = logging.getLogger(__name__)


class AnalysisStrategy(ABC):
    name: str = "base"

    @abstractmethod
    async def analyze(
        self, event: EventInput, venue_capacity: int, now: datetime
    ) -> AnalysisResult:
        """Produce a full analysis for one event."""


class DeterministicAnalysisStrategy(AnalysisStrategy):
    name = "deterministic"

    def __init__(self, tables: RiskTables = DEFAULT_TABLES):
        self.tables = tables

    async def analyze(
        self, event: EventInput, venue_capacity: int, now: datetime
    ) -> AnalysisResult:
        return service.analyze(event, now, venue_capacity, self.tables)


async def analyze_with_fallback(
    event: EventInput,
    venue_capacity: int,
    now: datetime,
    strategy: Optional[AnalysisStrategy] = None,
    fallback: Optional[AnalysisStrategy] = None,
) -> AnalysisResult:
    """
    Run `strategy`, falling back to the deterministic analysis on failure.

    Input problems are raised before any strategy runs, so a bad event is
    reported as InvalidInputError rather than masked by the fallback.
    """
    service.validate_event_input(event)
    fallback = fallback or DeterministicAnalysisStrategy()

    strategy = strategy or fallback
    if isinstance(strategy, DeterministicAnalysisStrategy):
        # The rules engine has nothing to fall back to
        return await strategy.analyze(event, venue_capacity, now)

    try:
        return await strategy.analyze(event, venue_capacity, now)
    except Exception as e:
        logger.warning(
            f"{strategy.name} analysis failed ({type(e).__name__}: {e}), "
            f"falling back to {fallback.name}"
        )
        audit_logger.log_analysis_fallback(strategy.name, f"{type(e).__name__}: {e}")
        return await fallback.analyze(event, venue_capacity, now)


def get_analysis_strategy() -> AnalysisStrategy:
    """Strategy selected by configuration."""
    if settings.llm_enabled:
        from .llm_analyzer import LLMAnalysisStrategy

        return LLMAnalysisStrategy()
    return DeterministicAnalysisStrategy()
