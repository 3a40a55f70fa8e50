"""Admin commands for configuring promotions."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.identity import require_permission
from storefront.promotion.engine import validate_configuration
from storefront.promotion.promotion import Promotion


@storefront.command(part_of="Promotion")
class CreatePromotion:
    name = String(required=True, max_length=255)
    description = Text()
    code = String(max_length=100)
    starts_at = DateTime()
    expires_at = DateTime()
    usage_limit = Integer(min_value=0)
    active = Boolean(default=True)
    admin_id = Identifier()


@storefront.command(part_of="Promotion")
class UpdatePromotion:
    promotion_id = Identifier(required=True)
    name = String(max_length=255)
    description = Text()
    code = String(max_length=100)
    starts_at = DateTime()
    expires_at = DateTime()
    usage_limit = Integer(min_value=0)
    active = Boolean()
    admin_id = Identifier()


@storefront.command(part_of="Promotion")
class AddPromotionRule:
    promotion_id = Identifier(required=True)
    rule_type = String(required=True, max_length=50)
    preferences = Text()  # JSON object
    admin_id = Identifier()


@storefront.command(part_of="Promotion")
class AddPromotionAction:
    promotion_id = Identifier(required=True)
    action_type = String(required=True, max_length=50)
    calculator_type = String(required=True, max_length=50)
    preferences = Text()  # JSON object
    admin_id = Identifier()


@storefront.command_handler(part_of=Promotion)
class PromotionManagementHandler:
    @handle(CreatePromotion)
    def create_promotion(self, command):
        require_permission(command, "manage_promotions")
        if command.code:
            _ensure_code_is_free(command.code)

        promotion = Promotion(
            name=command.name,
            description=command.description,
            code=command.code,
            starts_at=command.starts_at,
            expires_at=command.expires_at,
            usage_limit=command.usage_limit,
            active=command.active if command.active is not None else True,
        )
        current_domain.repository_for(Promotion).add(promotion)

        logger.info("Promotion created", promotion_id=str(promotion.id), code=command.code)
        return str(promotion.id)

    @handle(UpdatePromotion)
    def update_promotion(self, command):
        require_permission(command, "manage_promotions")
        repo = current_domain.repository_for(Promotion)
        promotion = repo.get(command.promotion_id)

        if command.code is not None and command.code != promotion.code:
            _ensure_code_is_free(command.code)

        for field in ("name", "description", "code", "starts_at", "expires_at", "usage_limit", "active"):
            value = getattr(command, field)
            if value is not None:
                setattr(promotion, field, value)
        repo.add(promotion)

    @handle(AddPromotionRule)
    def add_promotion_rule(self, command):
        require_permission(command, "manage_promotions")
        validate_configuration([command.rule_type], [])
        repo = current_domain.repository_for(Promotion)
        promotion = repo.get(command.promotion_id)
        rule = promotion.add_rule(command.rule_type, _parse_preferences(command.preferences))
        repo.add(promotion)
        return str(rule.id)

    @handle(AddPromotionAction)
    def add_promotion_action(self, command):
        require_permission(command, "manage_promotions")
        validate_configuration([], [(command.action_type, command.calculator_type)])
        repo = current_domain.repository_for(Promotion)
        promotion = repo.get(command.promotion_id)
        action = promotion.add_action(
            command.action_type,
            command.calculator_type,
            _parse_preferences(command.preferences),
        )
        repo.add(promotion)
        return str(action.id)


def find_active_by_code(code: str) -> Promotion | None:
    return current_domain.repository_for(Promotion)._dao.query.filter(code=code, active=True).all().first


def _ensure_code_is_free(code: str) -> None:
    if current_domain.repository_for(Promotion)._dao.query.filter(code=code).all().first is not None:
        raise ValidationError({"code": ["Promotion code already in use"]})


def _parse_preferences(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        preferences = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError({"preferences": [f"Invalid JSON: {exc.msg}"]}) from exc
    if not isinstance(preferences, dict):
        raise ValidationError({"preferences": ["Preferences must be a JSON object"]})
    return preferences
