"""
Monthly payout recompute.

For a (month, year) the orchestrator loads the rule once, then for every
active seller runs fetch deals -> calculate -> upsert payout -> replace
details as one transaction. A seller's failure is recorded and the pass
moves on; a missing rule aborts before anything is written.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.config import settings
from src.models import AuditAction
from src.services.commission import RuleTerms, SlaBonusPolicy, calculate_commission, no_sla_bonus
from src.services.deal_source import SellerRef, get_won_deals, list_active_sellers, month_bounds
from src.services.errors import CommissionError, PersistenceError
from src.services.payouts import replace_details, upsert_payout
from src.services.rules import get_rule_or_raise
from src.utils.audit import log_action

logger = logging.getLogger(__name__)


@dataclass
class SellerFailure:
    """A seller whose payout could not be recomputed."""

    seller_id: int
    seller_name: str
    reason: str


@dataclass
class RecomputeReport:
    """Outcome of one recompute pass."""

    month: int
    year: int
    total: int
    processed: int = 0
    failures: List[SellerFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def summary(self) -> str:
        return f"{self.processed} of {self.total} sellers processed successfully"


class PayoutOrchestrator:
    """Recompute every active seller's payout for a period."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        seller_roles: Optional[Sequence[str]] = None,
        concurrency: Optional[int] = None,
        sla_policy: SlaBonusPolicy = no_sla_bonus,
        money_quantum: Optional[Decimal] = None,
    ) -> None:
        self._session_factory = session_factory
        self._seller_roles = list(seller_roles or settings.seller_roles)
        self._concurrency = max(1, concurrency or settings.recompute_concurrency)
        self._sla_policy = sla_policy
        self._quantum = money_quantum or settings.money_quantum

    async def recompute(self, month: int, year: int, actor_id: Optional[int] = None) -> RecomputeReport:
        """
        Recompute all payouts of a month.

        Raises:
            ConfigurationError: no active rule for the period (nothing written)
            RuleValidationError: the rule holds invalid numbers (nothing written)
        """
        async with self._session_factory() as db:
            rule = await get_rule_or_raise(db, month, year)
            terms = RuleTerms.from_rule(rule)
            rule_id = rule.id
            sellers = await list_active_sellers(db, self._seller_roles)

        report = RecomputeReport(month=month, year=year, total=len(sellers))
        logger.info(f"Recomputing payouts for {month:02d}/{year}: {len(sellers)} sellers")

        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(seller: SellerRef) -> Optional[SellerFailure]:
            async with semaphore:
                try:
                    await self._recompute_seller(seller, terms, rule_id, month, year)
                except CommissionError as e:
                    logger.error(f"Payout recompute failed for seller {seller.id}: {e.message}")
                    return SellerFailure(seller.id, seller.display_name, e.message)
                except Exception as e:
                    logger.error(f"Unexpected error recomputing seller {seller.id}: {e}", exc_info=True)
                    return SellerFailure(seller.id, seller.display_name, f"Unexpected error: {e}")
                return None

        outcomes = await asyncio.gather(*(run(seller) for seller in sellers))

        report.failures = [f for f in outcomes if f is not None]
        report.processed = report.total - len(report.failures)

        if actor_id is not None:
            async with self._session_factory() as db:
                await log_action(
                    db,
                    user_id=actor_id,
                    action=AuditAction.RECOMPUTE_PAYOUTS,
                    target_type="payout",
                    action_metadata={
                        "month": month,
                        "year": year,
                        "processed": report.processed,
                        "failed": [f.seller_id for f in report.failures],
                    },
                )
                await db.commit()

        logger.info(f"Payout recompute {month:02d}/{year} done: {report.summary}")
        return report

    async def _recompute_seller(
        self,
        seller: SellerRef,
        terms: RuleTerms,
        rule_id: int,
        month: int,
        year: int,
    ) -> None:
        """Fetch, compute and write one seller's payout in a single transaction."""
        period_start, period_end = month_bounds(month, year)
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    deals = await get_won_deals(db, seller.id, period_start, period_end)
                    breakdown = calculate_commission(
                        terms, deals, self._sla_policy
                    ).quantized(self._quantum)

                    payout = await upsert_payout(db, seller.id, month, year, rule_id, breakdown)
                    await replace_details(db, payout, breakdown.lines)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Could not store payout for seller {seller.id}",
                details=str(e),
            ) from e

        logger.debug(
            f"Seller {seller.id}: {len(deals)} deals, total commission {breakdown.total_commission}"
        )
