"""
Commission rule store: one rule per (month, year).
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import AuditAction, CommissionRule
from src.schemas.commission import RULE_VALUE_FIELDS, CommissionRuleIn
from src.services.errors import ConfigurationError, NotFoundError, StateConflictError
from src.utils.audit import log_action

logger = logging.getLogger(__name__)


def next_period(month: int, year: int) -> Tuple[int, int]:
    """Return the (month, year) following the given period."""
    if month == 12:
        return 1, year + 1
    return month + 1, year


async def get_rule(db: AsyncSession, month: int, year: int) -> Optional[CommissionRule]:
    """Get the rule configured for a period, or None."""
    result = await db.execute(
        select(CommissionRule).where(
            CommissionRule.month == month,
            CommissionRule.year == year,
        )
    )
    return result.scalar_one_or_none()


async def get_rule_or_raise(db: AsyncSession, month: int, year: int) -> CommissionRule:
    """Get the active rule for a period, raising ConfigurationError when absent."""
    rule = await get_rule(db, month, year)
    if rule is None or not rule.is_active:
        raise ConfigurationError(
            "Commission rules not configured",
            details=f"No active commission rule found for {month:02d}/{year}.",
        )
    return rule


async def save_rule(db: AsyncSession, data: CommissionRuleIn, actor_id: int) -> CommissionRule:
    """
    Create or update the rule of data's period.

    The caller commits.
    """
    rule = await get_rule(db, data.month, data.year)
    created = rule is None
    if created:
        rule = CommissionRule(month=data.month, year=data.year)
        db.add(rule)

    for name in RULE_VALUE_FIELDS:
        setattr(rule, name, getattr(data, name))
    rule.created_by = actor_id

    await db.flush()
    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.SAVE_RULE,
        target_type="rule",
        target_id=rule.id,
        action_metadata={"month": data.month, "year": data.year, "created": created},
    )
    logger.info(
        f"Commission rule {data.month:02d}/{data.year} "
        f"{'created' if created else 'updated'} by user {actor_id}"
    )
    return rule


async def duplicate_rule_to_next_month(
    db: AsyncSession,
    month: int,
    year: int,
    actor_id: int,
) -> CommissionRule:
    """
    Copy a period's rule into the following month.

    Raises:
        NotFoundError: no rule for the source period
        StateConflictError: a rule already exists for the target period
    """
    source = await get_rule(db, month, year)
    if source is None:
        raise NotFoundError(f"No commission rule for {month:02d}/{year}")

    target_month, target_year = next_period(month, year)
    if await get_rule(db, target_month, target_year) is not None:
        raise StateConflictError(
            f"A commission rule already exists for {target_month:02d}/{target_year}"
        )

    copy = CommissionRule(
        month=target_month,
        year=target_year,
        created_by=actor_id,
        **{name: getattr(source, name) for name in RULE_VALUE_FIELDS},
    )
    db.add(copy)
    await db.flush()

    await log_action(
        db,
        user_id=actor_id,
        action=AuditAction.DUPLICATE_RULE,
        target_type="rule",
        target_id=copy.id,
        action_metadata={"source_rule_id": source.id},
    )
    logger.info(
        f"Commission rule {month:02d}/{year} duplicated to "
        f"{target_month:02d}/{target_year} by user {actor_id}"
    )
    return copy
