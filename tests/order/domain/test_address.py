"""Domain tests for address value objects and validation."""

import pytest
from protean.exceptions import ValidationError
from storefront.order.address import build_address, validate_address, validate_email


class TestValidateAddress:
    def test_valid_address_passes(self):
        validate_address({"firstname": "Ada", "city": "Springfield"}, "Shipping")

    def test_long_first_name_names_the_address(self):
        with pytest.raises(ValidationError) as exc:
            validate_address({"firstname": "x" * 101}, "Shipping")
        assert exc.value.messages["firstname"] == ["Shipping first name too long (max 100 chars)"]

    def test_long_zipcode_on_billing(self):
        with pytest.raises(ValidationError) as exc:
            validate_address({"zipcode": "9" * 21}, "Billing")
        assert exc.value.messages["zipcode"] == ["Billing zipcode too long (max 20 chars)"]


class TestValidateEmail:
    def test_missing_email(self):
        with pytest.raises(ValidationError) as exc:
            validate_email("")
        assert exc.value.messages["email"] == ["Email is required"]

    def test_email_too_long(self):
        with pytest.raises(ValidationError) as exc:
            validate_email("a" * 250 + "@x.io")
        assert "too long" in exc.value.messages["email"][0]


class TestBuildAddress:
    def test_country_defaults_to_us(self):
        address = build_address(
            {"firstname": "Ada", "lastname": "L", "address1": "1 Row", "city": "C", "zipcode": "1", "extra": "ignored"}
        )
        assert address.country_code == "US"

    def test_formatted_includes_optional_second_line(self):
        address = build_address(
            {
                "firstname": "Ada",
                "lastname": "Lovelace",
                "address1": "12 Analytical Row",
                "address2": "Suite 5",
                "city": "Springfield",
                "state_name": "IL",
                "zipcode": "62701",
            }
        )
        assert address.formatted() == "12 Analytical Row\nSuite 5\nSpringfield, IL 62701\nUS"
        assert address.full_name == "Ada Lovelace"
