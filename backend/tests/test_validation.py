"""
Payload validation and amount parsing.
"""

import pytest

from barflow.models import CreditCustomer, Product
from barflow.validation import (
    MAX_AMOUNT_CENTS,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    parse_amount_cents,
    validate_payload,
)


POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "sale_price_cents", "is_active", "stock"},
    required_on_create={"name", "sale_price_cents"},
)


class TestValidatePayload:
    def test_strips_and_coerces(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Aguila ", "sale_price_cents": "5000", "is_active": True},
            policy=POLICY,
            partial=False,
        )
        assert patch == {"name": "Aguila", "sale_price_cents": 5000, "is_active": True}

    @pytest.mark.parametrize("payload,message", [
        ({"name": "x"}, "Missing required fields"),
        ({"name": "x", "sale_price_cents": 1, "barcode": "1"}, "Field not allowed"),
        ({"name": "", "sale_price_cents": 1}, "cannot be blank"),
        ({"name": None, "sale_price_cents": 1}, "cannot be null"),
        ({"name": "x", "sale_price_cents": 1.5}, "not a decimal"),
        ({"name": "x", "sale_price_cents": "1e5"}, "scientific notation"),
        ({"name": "x" * 200, "sale_price_cents": 1}, "exceeds max length"),
    ])
    def test_rejections(self, payload, message):
        with pytest.raises(ValidationError, match=message):
            validate_payload(model=Product, payload=payload, policy=POLICY, partial=False)

    def test_partial_skips_required(self):
        assert validate_payload(model=Product, payload={"stock": 3}, policy=POLICY, partial=True) == {"stock": 3}

    def test_non_dict_payload(self):
        with pytest.raises(ValidationError):
            validate_payload(model=CreditCustomer, payload=["name"], policy=POLICY, partial=True)

    def test_choices(self):
        policy = ModelValidationPolicy(writable_fields={"category"}, choices={"category": {"Cerveza"}})
        with pytest.raises(ValidationError, match="must be one of"):
            validate_payload(model=Product, payload={"category": "Vino"}, policy=policy, partial=True)


class TestAmounts:
    @pytest.mark.parametrize("raw,expected", [(100, 100), ("250", 250), (300.0, 300)])
    def test_parse_amount(self, raw, expected):
        assert parse_amount_cents(raw, "amount_cents") == expected

    @pytest.mark.parametrize("raw", [None, True, 0, -1, "abc", 1.25, MAX_AMOUNT_CENTS + 1, [1]])
    def test_parse_amount_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_amount_cents(raw, "amount_cents")

    def test_zero_allowed_when_asked(self):
        assert parse_amount_cents(0, "tip_cents", allow_zero=True) == 0

    def test_product_rules(self):
        with pytest.raises(ValidationError):
            enforce_rules_product({"cost_price_cents": -5})
        with pytest.raises(ValidationError):
            enforce_rules_product({"stock": -1})
        enforce_rules_product({"sale_price_cents": 0, "stock": None})
