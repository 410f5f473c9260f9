"""Tests for the validation pipeline and reference validators."""

import pytest

from refuse_kernel.domain.schemas import (
    CUSTOMER_VALIDATOR,
    FACILITY_VALIDATOR,
    REFERENCE_VALIDATORS,
    SERVICE_VALIDATOR,
)
from refuse_kernel.domain.validation import (
    EntityValidator,
    is_missing,
    validate_address,
    validate_email,
    validate_enum_value,
    validate_phone,
    validate_required_fields,
    validate_string_length,
)


class TestIsMissing:
    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ()])
    def test_missing(self, value):
        assert is_missing(value)

    @pytest.mark.parametrize("value", ["x", 0, False, [0], {"a": 1}])
    def test_present(self, value):
        assert not is_missing(value)


class TestFieldValidators:
    def test_required_fields_in_given_order(self):
        errors = validate_required_fields({"b": "x"}, ["c", "b", "a"])
        assert [e.field for e in errors] == ["c", "a"]
        assert errors[0].code == "REQUIRED_FIELD_MISSING"
        assert errors[0].message == "c is required"

    def test_enum(self):
        assert validate_enum_value("a", ("a", "b"), "f") == []
        assert validate_enum_value(None, ("a",), "f") == []
        [error] = validate_enum_value("z", ("a", "b"), "f")
        assert error.code == "INVALID_ENUM_VALUE"
        assert error.details["allowed"] == ["a", "b"]

    def test_string_length(self):
        assert validate_string_length("x" * 5, 5, "name") == []
        [error] = validate_string_length("x" * 6, 5, "name")
        assert error.code == "STRING_TOO_LONG"

    @pytest.mark.parametrize("email", ["a@b.co", "first.last@sub.example.org"])
    def test_valid_email(self, email):
        assert validate_email(email) == []

    @pytest.mark.parametrize("email", ["nope", "a@b", "a b@c.de", "@c.de"])
    def test_invalid_email(self, email):
        [error] = validate_email(email)
        assert error.code == "INVALID_EMAIL"

    def test_absent_email_passes(self):
        assert validate_email(None) == []
        assert validate_email("") == []

    @pytest.mark.parametrize("phone", ["555-010-0100", "+1 (555) 010 0100", "5550100100"])
    def test_valid_phone(self, phone):
        assert validate_phone(phone) == []

    @pytest.mark.parametrize("phone", ["555-0100", "call me", "12345"])
    def test_invalid_phone(self, phone):
        [error] = validate_phone(phone)
        assert error.code == "INVALID_PHONE"


class TestAddress:
    def test_complete(self):
        address = {"street": "1 Main", "city": "X", "state": "CA", "zip_code": "90001"}
        assert validate_address(address) == []

    def test_missing_parts_reported_individually(self):
        errors = validate_address({"street": "1 Main", "state": " "}, "service_address")
        assert [e.field for e in errors] == [
            "service_address.city",
            "service_address.state",
            "service_address.zip_code",
        ]
        assert {e.code for e in errors} == {"ADDRESS_INCOMPLETE"}

    def test_absent(self):
        [error] = validate_address(None)
        assert error.code == "REQUIRED_FIELD_MISSING"

    def test_not_an_object(self):
        [error] = validate_address("123 Main St")
        assert error.code == "INVALID_ADDRESS"


class TestEntityValidator:
    def test_creation_reports_every_error(self, valid_customer_data):
        data = dict(valid_customer_data)
        data.update(type="galactic", email="bad", name="")
        result = CUSTOMER_VALIDATOR.validate_creation(data)

        assert not result.is_valid
        codes = {(e.code, e.field) for e in result.errors}
        assert ("REQUIRED_FIELD_MISSING", "name") in codes
        assert ("INVALID_ENUM_VALUE", "type") in codes
        assert ("INVALID_EMAIL", "email") in codes

    def test_valid_customer(self, valid_customer_data):
        result = CUSTOMER_VALIDATOR.validate_creation(valid_customer_data)
        assert result.is_valid
        assert bool(result)

    def test_missing_address_reported_once(self, valid_customer_data):
        data = dict(valid_customer_data)
        del data["service_address"]
        result = CUSTOMER_VALIDATOR.validate_creation(data)
        assert [e.field for e in result.errors] == ["service_address"]

    def test_contact_information_checked(self, valid_customer_data):
        data = dict(valid_customer_data, contact_information={"email": "x", "phone": "1"})
        fields = {e.field for e in CUSTOMER_VALIDATOR.validate_creation(data).errors}
        assert fields == {"contact_information.email", "contact_information.phone"}

    def test_partial_update_allowed(self):
        assert CUSTOMER_VALIDATOR.validate_update({"status": "inactive"}).is_valid

    def test_update_values_still_checked(self):
        result = CUSTOMER_VALIDATOR.validate_update({"status": "bogus", "email": "bad"})
        assert {e.code for e in result.errors} == {"INVALID_ENUM_VALUE", "INVALID_EMAIL"}

    def test_update_cannot_blank_required_field(self):
        result = CUSTOMER_VALIDATOR.validate_update({"name": "  "})
        assert [e.code for e in result.errors] == ["REQUIRED_FIELD_MISSING"]

    def test_update_checks_present_address_only(self):
        assert CUSTOMER_VALIDATOR.validate_update({"name": "New"}).is_valid
        result = CUSTOMER_VALIDATOR.validate_update({"service_address": {"street": "1"}})
        assert len(result.errors) == 3

    def test_custom_rule(self):
        def no_acme(data):
            from refuse_kernel.domain.dtos import ValidationError

            if data.get("name") == "Acme":
                return [ValidationError("BLOCKED", "Acme is blocked", "name")]
            return []

        validator = EntityValidator("thing", required_on_create=("name",), rules=(no_acme,))
        assert validator.validate_creation({"name": "Other"}).is_valid
        assert validator.validate_creation({"name": "Acme"}).messages == ["Acme is blocked"]


class TestReferenceValidators:
    def test_registry(self):
        assert set(REFERENCE_VALIDATORS) == {"customer", "service", "route", "facility"}

    def test_service(self):
        assert SERVICE_VALIDATOR.validate_creation(
            {"customer_id": "C1", "service_type": "recycling", "container_type": "cart"}
        ).is_valid
        result = SERVICE_VALIDATOR.validate_creation({"service_type": "lasers"})
        assert {e.field for e in result.errors} == {"customer_id", "service_type"}

    def test_facility(self):
        assert FACILITY_VALIDATOR.validate_creation(
            {"name": "North MRF", "type": "mrf", "status": "operational"}
        ).is_valid
