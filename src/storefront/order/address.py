"""Addresses captured on an order at checkout time."""

from protean.exceptions import ValidationError
from protean.fields import String

from storefront.domain import storefront

MAX_EMAIL_LENGTH = 254

# field -> (max length, human name)
_ADDRESS_LIMITS = {
    "firstname": (100, "first name"),
    "lastname": (100, "last name"),
    "address1": (255, "address1"),
    "address2": (255, "address2"),
    "city": (100, "city"),
    "state_name": (100, "state"),
    "zipcode": (20, "zipcode"),
    "phone": (30, "phone"),
}


@storefront.value_object(part_of="Order")
class Address:
    """Immutable once recorded: it is where this order ships, whatever the customer edits later."""

    firstname = String(required=True, max_length=100)
    lastname = String(required=True, max_length=100)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state_name = String(max_length=100)
    zipcode = String(required=True, max_length=20)
    country_code = String(max_length=3, default="US")
    phone = String(max_length=30)

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    def formatted(self) -> str:
        """Multi-line postal rendering used in confirmation messages."""
        lines = [self.address1]
        if self.address2:
            lines.append(self.address2)
        lines.append(f"{self.city}, {self.state_name or ''} {self.zipcode}".replace("  ", " "))
        lines.append(self.country_code or "US")
        return "\n".join(lines)


def validate_address(data: dict, label: str) -> None:
    """Check field lengths with messages that name the address being validated."""
    for field, (limit, name) in _ADDRESS_LIMITS.items():
        value = data.get(field)
        if value is not None and len(value) > limit:
            raise ValidationError({field: [f"{label} {name} too long (max {limit} chars)"]})


def validate_email(email: str | None) -> None:
    if not email:
        raise ValidationError({"email": ["Email is required"]})
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError({"email": [f"Email address too long (max {MAX_EMAIL_LENGTH} chars)"]})


def build_address(data: dict) -> Address:
    fields = {key: value for key, value in data.items() if key in _ADDRESS_LIMITS or key == "country_code"}
    fields["country_code"] = fields.get("country_code") or "US"
    return Address(**fields)
