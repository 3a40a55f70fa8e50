"""Promotion aggregate: a coupon code with eligibility rules and reward actions."""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Integer, String, Text

from storefront.domain import storefront


@storefront.entity(part_of="Promotion")
class PromotionRule:
    rule_type = String(required=True, max_length=50)  # ItemTotal, FirstOrder
    preferences = Text()  # JSON object

    @property
    def settings(self) -> dict:
        return json.loads(self.preferences) if self.preferences else {}


@storefront.entity(part_of="Promotion")
class PromotionAction:
    action_type = String(required=True, max_length=50)  # CreateAdjustment
    calculator_type = String(required=True, max_length=50)  # FlatRate, PercentOff
    preferences = Text()  # JSON object

    @property
    def settings(self) -> dict:
        return json.loads(self.preferences) if self.preferences else {}


@storefront.aggregate
class Promotion:
    name = String(required=True, max_length=255)
    description = Text()
    code = String(max_length=100)
    starts_at = DateTime()
    expires_at = DateTime()
    usage_limit = Integer(min_value=0)
    active = Boolean(default=True)
    rules = HasMany(PromotionRule)
    actions = HasMany(PromotionAction)

    @invariant.post
    def expiry_must_follow_start(self):
        if self.starts_at and self.expires_at and self.expires_at < self.starts_at:
            raise ValidationError({"expires_at": ["Promotion cannot expire before it starts"]})

    def add_rule(self, rule_type: str, preferences: dict | None = None) -> PromotionRule:
        rule = PromotionRule(rule_type=rule_type, preferences=json.dumps(preferences or {}))
        self.add_rules(rule)
        return rule

    def add_action(self, action_type: str, calculator_type: str, preferences: dict | None = None) -> PromotionAction:
        action = PromotionAction(
            action_type=action_type,
            calculator_type=calculator_type,
            preferences=json.dumps(preferences or {}),
        )
        self.add_actions(action)
        return action

    def has_started(self, now: datetime | None = None) -> bool:
        return self.starts_at is None or _aware(self.starts_at) <= (now or datetime.now(UTC))

    def has_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and _aware(self.expires_at) < (now or datetime.now(UTC))


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)
