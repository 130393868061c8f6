"""
Monthly commission calculation for sellers.

Rules (percentages are whole-number scaled, 12.00 = 12%):
- Base commission: tier revenue x tier rate
- Volume bonus: tier revenue x tier bonus rate, once the tier's deal count
  reaches its threshold (standard and premium are independent)
- Objective bonus: one flat amount picked by % of the monthly objective
  reached (>=125, >=111, >=100), highest tier wins
- Large-deal bonus: flat amount per deal whose value reaches the threshold
- SLA bonus: pluggable policy, zero by default

All arithmetic uses Decimal. The calculator is pure: callers fetch the
rule and the seller's won deals and persist the result.
"""

import math
from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple

from src.models.prospect import PlanTier
from src.services.errors import ConfigurationError, RuleValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Objective achievement thresholds (% of objective)
OBJECTIVE_TIER_ABOVE_125 = Decimal("125")
OBJECTIVE_TIER_111_125 = Decimal("111")
OBJECTIVE_TIER_100_110 = Decimal("100")

# Fields a rule must carry; everything else defaults to 0
REQUIRED_RULE_FIELDS = (
    "standard_commission_pct",
    "premium_commission_pct",
    "objective_amount",
)
PERCENT_RULE_FIELDS = (
    "standard_commission_pct",
    "premium_commission_pct",
    "standard_volume_bonus_pct",
    "premium_volume_bonus_pct",
    "sla_threshold_pct",
)
COUNT_RULE_FIELDS = (
    "standard_volume_threshold",
    "premium_volume_threshold",
)


def to_decimal(name: str, value: Any) -> Decimal:
    """Convert a numeric input to Decimal, rejecting non-numeric and negative values."""
    if isinstance(value, bool):
        raise RuleValidationError(f"{name} must be numeric, got a boolean")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise RuleValidationError(f"{name} must be a finite number")
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise RuleValidationError(f"{name} must be numeric, got {value!r}") from None
    if not result.is_finite():
        raise RuleValidationError(f"{name} must be a finite number")
    if result < 0:
        raise RuleValidationError(f"{name} must not be negative, got {result}")
    return result


def _to_count(name: str, value: Any) -> int:
    count = to_decimal(name, value)
    if count != count.to_integral_value():
        raise RuleValidationError(f"{name} must be a whole number, got {count}")
    return int(count)


def _read(source: Any, name: str) -> Any:
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


@dataclass(frozen=True)
class RuleTerms:
    """Strict, Decimal-only view of a commission rule."""

    standard_commission_pct: Decimal
    premium_commission_pct: Decimal
    objective_amount: Decimal
    standard_volume_bonus_pct: Decimal = ZERO
    standard_volume_threshold: int = 0
    premium_volume_bonus_pct: Decimal = ZERO
    premium_volume_threshold: int = 0
    bonus_100_110: Decimal = ZERO
    bonus_111_125: Decimal = ZERO
    bonus_above_125: Decimal = ZERO
    large_deal_threshold: Decimal = ZERO
    large_deal_bonus: Decimal = ZERO
    first_premium_bonus: Decimal = ZERO
    exclusivity_bonus: Decimal = ZERO
    sla_threshold_pct: Decimal = ZERO
    sla_bonus_amount: Decimal = ZERO

    @classmethod
    def from_rule(cls, rule: Any) -> "RuleTerms":
        """
        Build terms from an ORM rule, a schema or a plain mapping.

        Raises:
            ConfigurationError: a required numeric field is missing
            RuleValidationError: a field is non-numeric, negative, or a
                percentage above 100
        """
        if isinstance(rule, cls):
            return rule

        missing = [name for name in REQUIRED_RULE_FIELDS if _read(rule, name) is None]
        if missing:
            raise ConfigurationError(
                "Commission rule is incomplete",
                details=f"Missing required fields: {', '.join(missing)}",
            )

        values = {}
        for field in fields(cls):
            raw = _read(rule, field.name)
            if raw is None:
                continue
            if field.name in COUNT_RULE_FIELDS:
                values[field.name] = _to_count(field.name, raw)
            else:
                values[field.name] = to_decimal(field.name, raw)

        for name in PERCENT_RULE_FIELDS:
            if name in values and values[name] > HUNDRED:
                raise RuleValidationError(f"{name} must be at most 100, got {values[name]}")

        return cls(**values)

    def base_rate(self, tier: PlanTier) -> Decimal:
        """Base commission percentage for a plan tier."""
        if tier == PlanTier.PREMIUM:
            return self.premium_commission_pct
        return self.standard_commission_pct


@dataclass(frozen=True)
class DealInput:
    """A won deal as seen by the calculator."""

    id: int
    plan_tier: PlanTier
    final_value: Decimal
    close_date: Optional[datetime] = None

    @classmethod
    def from_deal(cls, deal: Any) -> "DealInput":
        """Build from a Prospect row (or anything with the same attributes)."""
        if isinstance(deal, cls):
            return deal
        try:
            tier = PlanTier(_read(deal, "chosen_plan"))
        except ValueError:
            raise RuleValidationError(
                f"Deal {_read(deal, 'id')} has no valid plan tier"
            ) from None
        raw_value = _read(deal, "final_deal_value")
        value = ZERO if raw_value is None else to_decimal("final_deal_value", raw_value)
        return cls(
            id=_read(deal, "id"),
            plan_tier=tier,
            final_value=value,
            close_date=_read(deal, "close_date"),
        )


@dataclass(frozen=True)
class CommissionLine:
    """Base-rate commission for one deal. Bonuses are not attributed per deal."""

    prospect_id: int
    deal_value: Decimal
    deal_plan: PlanTier
    close_date: Optional[datetime]
    commission_rate: Decimal
    commission_amount: Decimal


@dataclass(frozen=True)
class CommissionBreakdown:
    """Full result of a seller's monthly calculation."""

    revenue_standard: Decimal
    revenue_premium: Decimal
    total_revenue: Decimal
    nb_deals_standard: int
    nb_deals_premium: int
    commission_standard: Decimal
    commission_premium: Decimal
    bonus_volume: Decimal
    bonus_objective: Decimal
    bonus_sla: Decimal
    bonus_special: Decimal
    total_commission: Decimal
    objective_pct: Optional[Decimal]
    lines: Tuple[CommissionLine, ...] = ()

    def quantized(self, quantum: Decimal = Decimal("0.01")) -> "CommissionBreakdown":
        """
        Round every money amount to the quantum (half-up).

        The total is re-summed from the rounded components so persisted
        rows always add up.
        """
        def q(value: Decimal) -> Decimal:
            return value.quantize(quantum, rounding=ROUND_HALF_UP)

        components = {
            "commission_standard": q(self.commission_standard),
            "commission_premium": q(self.commission_premium),
            "bonus_volume": q(self.bonus_volume),
            "bonus_objective": q(self.bonus_objective),
            "bonus_sla": q(self.bonus_sla),
            "bonus_special": q(self.bonus_special),
        }
        lines = tuple(
            replace(line, deal_value=q(line.deal_value), commission_amount=q(line.commission_amount))
            for line in self.lines
        )
        return replace(
            self,
            revenue_standard=q(self.revenue_standard),
            revenue_premium=q(self.revenue_premium),
            total_revenue=q(self.total_revenue),
            total_commission=sum(components.values(), ZERO),
            lines=lines,
            **components,
        )


# An SLA policy receives the rule terms and the seller's deals and returns
# the SLA bonus amount for the period.
SlaBonusPolicy = Callable[[RuleTerms, Sequence[DealInput]], Decimal]


def no_sla_bonus(terms: RuleTerms, deals: Sequence[DealInput]) -> Decimal:
    """Default SLA policy: no SLA criteria are tracked yet."""
    return ZERO


def objective_bonus(terms: RuleTerms, total_revenue: Decimal) -> Tuple[Decimal, Optional[Decimal]]:
    """
    Flat objective bonus and the achieved percentage.

    Returns (0, None) when no objective is configured.
    """
    if terms.objective_amount <= 0:
        return ZERO, None

    achieved_pct = total_revenue / terms.objective_amount * HUNDRED

    if achieved_pct >= OBJECTIVE_TIER_ABOVE_125:
        return terms.bonus_above_125, achieved_pct
    if achieved_pct >= OBJECTIVE_TIER_111_125:
        return terms.bonus_111_125, achieved_pct
    if achieved_pct >= OBJECTIVE_TIER_100_110:
        return terms.bonus_100_110, achieved_pct
    return ZERO, achieved_pct


def calculate_commission(
    rule: Any,
    deals: Iterable[Any],
    sla_policy: SlaBonusPolicy = no_sla_bonus,
) -> CommissionBreakdown:
    """
    Compute a seller's commission breakdown for one period.

    Args:
        rule: CommissionRule row, RuleTerms, or mapping with the rule fields
        deals: the seller's won deals already restricted to the period
        sla_policy: strategy computing the SLA bonus

    Returns:
        Unrounded CommissionBreakdown with one line per deal
    """
    terms = RuleTerms.from_rule(rule)
    deal_inputs = [DealInput.from_deal(d) for d in deals]

    standard_deals = [d for d in deal_inputs if d.plan_tier == PlanTier.STANDARD]
    premium_deals = [d for d in deal_inputs if d.plan_tier == PlanTier.PREMIUM]

    revenue_standard = sum((d.final_value for d in standard_deals), ZERO)
    revenue_premium = sum((d.final_value for d in premium_deals), ZERO)
    total_revenue = revenue_standard + revenue_premium

    # Base commission
    commission_standard = revenue_standard * terms.standard_commission_pct / HUNDRED
    commission_premium = revenue_premium * terms.premium_commission_pct / HUNDRED

    # Volume bonus, per tier
    bonus_volume = ZERO
    if len(standard_deals) >= terms.standard_volume_threshold:
        bonus_volume += revenue_standard * terms.standard_volume_bonus_pct / HUNDRED
    if len(premium_deals) >= terms.premium_volume_threshold:
        bonus_volume += revenue_premium * terms.premium_volume_bonus_pct / HUNDRED

    bonus_objective, objective_pct = objective_bonus(terms, total_revenue)

    # Large-deal bonus is per qualifying deal, any tier
    large_deals = sum(1 for d in deal_inputs if d.final_value >= terms.large_deal_threshold)
    bonus_special = terms.large_deal_bonus * large_deals

    bonus_sla = to_decimal("bonus_sla", sla_policy(terms, deal_inputs))

    total_commission = (
        commission_standard
        + commission_premium
        + bonus_volume
        + bonus_objective
        + bonus_sla
        + bonus_special
    )

    lines = []
    for deal in deal_inputs:
        rate = terms.base_rate(deal.plan_tier)
        lines.append(
            CommissionLine(
                prospect_id=deal.id,
                deal_value=deal.final_value,
                deal_plan=deal.plan_tier,
                close_date=deal.close_date,
                commission_rate=rate,
                commission_amount=deal.final_value * rate / HUNDRED,
            )
        )

    return CommissionBreakdown(
        revenue_standard=revenue_standard,
        revenue_premium=revenue_premium,
        total_revenue=total_revenue,
        nb_deals_standard=len(standard_deals),
        nb_deals_premium=len(premium_deals),
        commission_standard=commission_standard,
        commission_premium=commission_premium,
        bonus_volume=bonus_volume,
        bonus_objective=bonus_objective,
        bonus_sla=bonus_sla,
        bonus_special=bonus_special,
        total_commission=total_commission,
        objective_pct=objective_pct,
        lines=tuple(lines),
    )
