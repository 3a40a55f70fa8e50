"""Promotion rule engine.

Pure evaluation of a promotion against an order snapshot. Rules decide
eligibility (all must pass), actions turn an eligible promotion into signed
adjustments. Rule, action and calculator kinds are looked up in registries;
an unknown kind is a configuration error and is never skipped, because a
silently ignored rule would hand out a discount nobody intended.
"""

from collections.abc import Callable
from dataclasses import dataclass

from storefront.errors import UnsupportedConfiguration
from storefront.promotion.promotion import Promotion, PromotionAction


@dataclass(frozen=True)
class OrderSnapshot:
    """What rules and calculators may look at."""

    order_id: str
    item_total: int
    user_id: str | None = None
    completed_order_count: int = 0

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class PromotionAdjustment:
    promotion_id: str
    amount: int
    label: str


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
def _item_total_rule(preferences: dict, snapshot: OrderSnapshot) -> bool:
    return snapshot.item_total >= int(preferences.get("amount") or 0)


def _first_order_rule(preferences: dict, snapshot: OrderSnapshot) -> bool:  # noqa: ARG001
    # Guests have no order history to check, so they never qualify.
    if snapshot.is_guest:
        return False
    return snapshot.completed_order_count == 0


RULES: dict[str, Callable[[dict, OrderSnapshot], bool]] = {
    "ItemTotal": _item_total_rule,
    "FirstOrder": _first_order_rule,
}


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------
def _flat_rate(preferences: dict, snapshot: OrderSnapshot) -> int:  # noqa: ARG001
    return -int(preferences.get("amount") or 0)


def _percent_off(preferences: dict, snapshot: OrderSnapshot) -> int:
    percent = preferences.get("percent") or 0
    return -int(snapshot.item_total * percent / 100)


CALCULATORS: dict[str, Callable[[dict, OrderSnapshot], int]] = {
    "FlatRate": _flat_rate,
    "PercentOff": _percent_off,
}


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------
def _create_adjustment(promotion: Promotion, action: PromotionAction, snapshot: OrderSnapshot):
    calculator = CALCULATORS.get(action.calculator_type)
    if calculator is None:
        raise UnsupportedConfiguration(
            f"Unknown promotion calculator type: '{action.calculator_type}'",
            kind=action.calculator_type,
        )
    amount = calculator(action.settings, snapshot)
    if amount == 0:
        return []
    return [PromotionAdjustment(promotion_id=str(promotion.id), amount=amount, label=promotion.name)]


ACTIONS = {
    "CreateAdjustment": _create_adjustment,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------
def is_eligible(promotion: Promotion, snapshot: OrderSnapshot) -> bool:
    """True when every rule on the promotion passes."""
    for rule in promotion.rules:
        check = RULES.get(rule.rule_type)
        if check is None:
            raise UnsupportedConfiguration(f"Unknown promotion rule type: '{rule.rule_type}'", kind=rule.rule_type)
        if not check(rule.settings, snapshot):
            return False
    return True


def reward_adjustments(promotion: Promotion, snapshot: OrderSnapshot) -> list[PromotionAdjustment]:
    """Materialize every action as signed adjustments. Zero amounts are dropped."""
    adjustments = []
    for action in promotion.actions:
        apply = ACTIONS.get(action.action_type)
        if apply is None:
            raise UnsupportedConfiguration(
                f"Unknown promotion action type: '{action.action_type}'",
                kind=action.action_type,
            )
        adjustments.extend(apply(promotion, action, snapshot))
    return adjustments


def validate_configuration(rule_types: list[str], action_kinds: list[tuple[str, str]]) -> None:
    """Reject unknown kinds when a promotion is being configured."""
    for rule_type in rule_types:
        if rule_type not in RULES:
            raise UnsupportedConfiguration(f"Unknown promotion rule type: '{rule_type}'", kind=rule_type)
    for action_type, calculator_type in action_kinds:
        if action_type not in ACTIONS:
            raise UnsupportedConfiguration(f"Unknown promotion action type: '{action_type}'", kind=action_type)
        if calculator_type not in CALCULATORS:
            raise UnsupportedConfiguration(
                f"Unknown promotion calculator type: '{calculator_type}'",
                kind=calculator_type,
            )
