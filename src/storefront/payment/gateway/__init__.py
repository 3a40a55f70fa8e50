"""Payment processor factory.

Provides get_processor() / set_processor() to swap implementations:
- FakeProcessor for development and testing (``STOREFRONT_GATEWAY=fake``, the default)
- StripeProcessor for production (``STOREFRONT_GATEWAY=stripe``)
"""

import os

from storefront.errors import UnsupportedConfiguration
from storefront.payment.gateway.fake_adapter import FakeProcessor
from storefront.payment.gateway.port import PaymentProcessor
from storefront.payment.gateway.stripe_adapter import DEFAULT_API_BASE, StripeProcessor

_current_processor: PaymentProcessor | None = None


def _from_environment() -> PaymentProcessor:
    kind = os.getenv("STOREFRONT_GATEWAY", "fake").lower()
    if kind == "fake":
        return FakeProcessor()
    if kind == "stripe":
        api_key = os.getenv("STRIPE_API_KEY")
        if not api_key:
            raise UnsupportedConfiguration("STRIPE_API_KEY is required for the stripe gateway", kind="gateway")
        return StripeProcessor(api_key=api_key, api_base=os.getenv("STRIPE_API_BASE", DEFAULT_API_BASE))
    raise UnsupportedConfiguration(f"Unknown payment gateway: {kind!r}", kind="gateway")


def get_processor() -> PaymentProcessor:
    """Return the current payment processor, built from the environment on first use."""
    global _current_processor
    if _current_processor is None:
        _current_processor = _from_environment()
    return _current_processor


def set_processor(processor: PaymentProcessor) -> None:
    """Override the active payment processor (useful for tests)."""
    global _current_processor
    _current_processor = processor


def reset_processor() -> None:
    """Reset to the environment's default processor."""
    global _current_processor
    _current_processor = None


def webhook_secret() -> str | None:
    return os.getenv("STRIPE_WEBHOOK_SECRET")


def currency() -> str:
    return os.getenv("STOREFRONT_CURRENCY", "usd").lower()
