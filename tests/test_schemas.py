"""
Tests for request schemas, error mapping and token handling.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from src.api.errors import to_http_exception
from src.auth.jwt import create_access_token, get_token_from_request, verify_token
from src.schemas.commission import CommissionRuleIn, ProcessPaymentRequest, SimulationRequest
from src.services.errors import (
    ConfigurationError,
    NotFoundError,
    PersistenceError,
    RuleValidationError,
    StateConflictError,
)


def _rule(**kwargs):
    defaults = {
        "month": 3,
        "year": 2026,
        "standard_commission_pct": "8",
        "premium_commission_pct": "12",
        "objective_amount": "30000",
    }
    defaults.update(kwargs)
    return defaults


# ── CommissionRuleIn ──────────────────────────────────────


class TestCommissionRuleIn:
    def test_minimal_rule_defaults_to_zero(self):
        rule = CommissionRuleIn(**_rule())
        assert rule.standard_volume_bonus_pct == Decimal("0")
        assert rule.bonus_above_125 == Decimal("0")
        assert rule.large_deal_threshold == Decimal("0")
        assert rule.is_active is True

    @pytest.mark.parametrize("field", ["standard_commission_pct", "premium_commission_pct", "objective_amount"])
    def test_required_fields(self, field):
        data = _rule()
        del data[field]
        with pytest.raises(ValidationError):
            CommissionRuleIn(**data)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"standard_commission_pct": "-1"},
            {"premium_volume_bonus_pct": "100.5"},
            {"bonus_111_125": "-50"},
            {"standard_volume_threshold": -1},
            {"month": 13},
            {"month": 0},
            {"objective_amount": "lots"},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            CommissionRuleIn(**_rule(**overrides))

    def test_boundary_percentages(self):
        rule = CommissionRuleIn(**_rule(standard_commission_pct="0", premium_commission_pct="100"))
        assert rule.premium_commission_pct == Decimal("100")


class TestProcessPaymentRequest:
    def test_valid(self):
        req = ProcessPaymentRequest(
            seller_id=1,
            period_start=date(2026, 3, 1),
            period_end=date(2026, 3, 31),
            total_commission="150.50",
        )
        assert req.payment_method == "bank_transfer"
        assert req.total_commission == Decimal("150.50")

    def test_inverted_period(self):
        with pytest.raises(ValidationError):
            ProcessPaymentRequest(
                seller_id=1,
                period_start=date(2026, 4, 1),
                period_end=date(2026, 3, 31),
                total_commission="10",
            )

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            ProcessPaymentRequest(
                seller_id=1,
                period_start=date(2026, 3, 1),
                period_end=date(2026, 3, 31),
                total_commission="-1",
            )


class TestSimulationRequest:
    def test_unknown_plan(self):
        with pytest.raises(ValidationError):
            SimulationRequest(rule=_rule(), deals=[{"chosen_plan": "gold", "final_deal_value": "1"}])


# ── Error mapping ─────────────────────────────────────────


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (ConfigurationError("no rule"), 409),
            (NotFoundError("missing"), 404),
            (RuleValidationError("bad number"), 422),
            (PersistenceError("db down"), 503),
            (StateConflictError("already paid"), 409),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert to_http_exception(error).status_code == status_code

    def test_details_appended(self):
        exc = to_http_exception(ConfigurationError("Commission rules not configured", details="03/2026"))
        assert exc.detail == "Commission rules not configured: 03/2026"


# ── Tokens ────────────────────────────────────────────────


class TestTokens:
    def test_round_trip(self):
        token = create_access_token(7, "director")
        assert verify_token(token) == {"user_id": 7, "role": "director"}

    def test_garbage(self):
        assert verify_token("garbage") is None

    def test_bearer_header_preferred_over_cookie(self):
        request = SimpleNamespace(
            headers={"Authorization": "Bearer header-token"},
            cookies={"access_token": "cookie-token"},
        )
        assert get_token_from_request(request) == "header-token"

    def test_cookie_fallback(self):
        request = SimpleNamespace(headers={}, cookies={"access_token": "cookie-token"})
        assert get_token_from_request(request) == "cookie-token"
