"""Application tests for configuring promotions."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from shop import ADMIN, create_promotion, guest
from storefront.errors import Unauthorized, UnsupportedConfiguration
from storefront.promotion.management import (
    AddPromotionAction,
    AddPromotionRule,
    CreatePromotion,
    UpdatePromotion,
    find_active_by_code,
)
from storefront.promotion.promotion import Promotion


def _promotion(promotion_id) -> Promotion:
    return current_domain.repository_for(Promotion).get(promotion_id)


def _update(promotion_id, **fields):
    current_domain.process(UpdatePromotion(promotion_id=promotion_id, admin_id=ADMIN.id, **fields), asynchronous=False)


class TestCreatePromotion:
    def test_rules_and_actions_are_stored(self):
        promotion_id = create_promotion(
            code="BIG10",
            preferences={"percent": 10},
            rules=[("ItemTotal", {"amount": 5000})],
        )
        promotion = _promotion(promotion_id)
        assert promotion.code == "BIG10"
        assert [rule.rule_type for rule in promotion.rules] == ["ItemTotal"]
        assert promotion.rules[0].settings == {"amount": 5000}
        assert promotion.actions[0].calculator_type == "PercentOff"

    def test_code_must_be_unique(self):
        create_promotion(code="SAVE10")
        with pytest.raises(ValidationError) as exc:
            create_promotion(code="SAVE10")
        assert exc.value.messages["code"] == ["Promotion code already in use"]

    def test_expiry_before_start_rejected(self):
        now = datetime.now(UTC)
        with pytest.raises(ValidationError):
            create_promotion(code="BACKWARDS", starts_at=now, expires_at=now - timedelta(days=1))

    def test_requires_admin(self):
        with pytest.raises(Unauthorized):
            current_domain.process(
                CreatePromotion(name="Sneaky", code="FREE", **guest().as_command_fields()),
                asynchronous=False,
            )


class TestConfigurationIsValidated:
    def test_unknown_rule_type(self):
        promotion_id = create_promotion(code="X", calculator=None)
        with pytest.raises(UnsupportedConfiguration):
            current_domain.process(
                AddPromotionRule(promotion_id=promotion_id, rule_type="Weekday", admin_id=ADMIN.id),
                asynchronous=False,
            )
        assert _promotion(promotion_id).rules == []

    def test_unknown_calculator(self):
        promotion_id = create_promotion(code="X", calculator=None)
        with pytest.raises(UnsupportedConfiguration):
            current_domain.process(
                AddPromotionAction(
                    promotion_id=promotion_id,
                    action_type="CreateAdjustment",
                    calculator_type="BuyOneGetOne",
                    admin_id=ADMIN.id,
                ),
                asynchronous=False,
            )

    def test_unknown_action(self):
        promotion_id = create_promotion(code="X", calculator=None)
        with pytest.raises(UnsupportedConfiguration):
            current_domain.process(
                AddPromotionAction(
                    promotion_id=promotion_id,
                    action_type="FreeShipping",
                    calculator_type="FlatRate",
                    admin_id=ADMIN.id,
                ),
                asynchronous=False,
            )

    def test_preferences_must_be_a_json_object(self):
        promotion_id = create_promotion(code="X", calculator=None)
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                AddPromotionRule(
                    promotion_id=promotion_id,
                    rule_type="ItemTotal",
                    preferences=json.dumps([5000]),
                    admin_id=ADMIN.id,
                ),
                asynchronous=False,
            )
        assert exc.value.messages["preferences"] == ["Preferences must be a JSON object"]


class TestUpdatePromotion:
    def test_deactivated_promotion_is_not_found_by_code(self):
        promotion_id = create_promotion(code="SAVE10")
        _update(promotion_id, active=False)
        assert find_active_by_code("SAVE10") is None

    def test_rename_code(self):
        promotion_id = create_promotion(code="SAVE10")
        _update(promotion_id, code="SAVE15")
        assert str(find_active_by_code("SAVE15").id) == promotion_id

    def test_rename_to_taken_code(self):
        create_promotion(code="SAVE10")
        other = create_promotion(code="SAVE20")
        with pytest.raises(ValidationError):
            _update(other, code="SAVE10")
