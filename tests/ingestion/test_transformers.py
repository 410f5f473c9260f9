"""Tests for the structural transformers."""

import pytest

from refuse_kernel.exceptions import UnrecognizedCodeError
from refuse_ingestion.transformers import (
    CODE_DEFAULTED,
    CustomerTransformer,
    FacilityTransformer,
    RouteTransformer,
    ServiceTransformer,
    StructuralTransformer,
    TransformContext,
    reference_transformers,
)
from refuse_ingestion.transformers.customer import convert_address
from refuse_ingestion.transformers.facility import standard_hours
from refuse_ingestion.transformers.route import parse_assigned_sites, parse_route_schedule
from refuse_ingestion.transformers.service import parse_schedule


@pytest.fixture
def context(deterministic_clock):
    return TransformContext("customer", deterministic_clock)


@pytest.fixture
def strict_context(deterministic_clock):
    return TransformContext("customer", deterministic_clock, strict_codes=True)


class TestLookupCode:
    def test_case_and_separator_insensitive(self, context):
        table = {"waste_collection": "waste"}
        assert context.lookup_code("Waste Collection", table, "x", "service_type") == "waste"
        assert context.lookup_code("WASTE-COLLECTION", table, "x", "service_type") == "waste"
        assert context.warnings == []

    def test_lenient_default_warns(self, context):
        result = context.lookup_code("XYZ", {"a": "a"}, "commercial", "type")
        assert result == "commercial"
        [warning] = context.warnings
        assert warning.code == CODE_DEFAULTED
        assert warning.message == "Unrecognized type code 'XYZ'; defaulted to 'commercial'"
        assert warning.field == "type"

    def test_strict_raises(self, strict_context):
        with pytest.raises(UnrecognizedCodeError) as exc_info:
            strict_context.lookup_code("XYZ", {"a": "alpha", "b": "beta"}, "alpha", "type")
        assert exc_info.value.allowed == ("alpha", "beta")
        assert str(exc_info.value) == "Unrecognized type code: 'XYZ'"


class TestRegistry:
    def test_reference_transformers(self):
        transformers = reference_transformers()
        assert set(transformers) == {"customer", "service", "route", "facility"}
        for name, transformer in transformers.items():
            assert isinstance(transformer, StructuralTransformer)
            assert transformer.entity_type == name


class TestCustomerTransformer:
    def test_codes_contact_and_address(self, context):
        mapped = {
            "name": "Acme",
            "type": "COMM",
            "status": "SUSP",
            "phone": " 555-010-0100 ",
            "email": " Billing@Acme.COM ",
            "street": "123 Business St",
            "city": "Business City",
            "state": "BC",
            "zip_code": "12345",
        }
        out = CustomerTransformer().transform({}, mapped, context)

        assert out["type"] == "commercial"
        assert out["status"] == "suspended"
        assert out["contact_information"] == {
            "phone": "555-010-0100",
            "email": "billing@acme.com",
        }
        assert out["service_address"] == {
            "street": "123 Business St",
            "city": "Business City",
            "state": "BC",
            "zip_code": "12345",
            "country": "US",
        }
        for flat in ("phone", "email", "street", "city", "state", "zip_code"):
            assert flat not in out

    def test_unknown_type_defaults(self, context):
        out = CustomerTransformer().transform({}, {"type": "XYZ", "status": "???"}, context)
        assert out["type"] == "commercial"
        assert out["status"] == "active"
        assert [w.field for w in context.warnings] == ["type", "status"]

    def test_primary_address_from_legacy_list(self, context):
        legacy = {
            "addresses": [
                {"address1": "1 Side St", "city": "A", "state": "CA", "zip": "1"},
                {"address1": "2 Main St", "city": "B", "state": "CA", "zip": "2",
                 "primary": True},
            ]
        }
        out = CustomerTransformer().transform(legacy, {"name": "Acme"}, context)
        assert out["service_address"]["street"] == "2 Main St"
        assert "addresses" in context.consumed

    def test_no_address_fields(self, context):
        out = CustomerTransformer().transform({}, {"name": "Acme"}, context)
        assert "service_address" not in out
        assert "contact_information" not in out

    def test_convert_address_aliases(self):
        assert convert_address(
            {"address1": "1 Main", "address2": "Unit 4", "province": "ON",
             "postal_code": "K1A", "city": "Ottawa", "country": "CA"}
        ) == {
            "street": "1 Main",
            "street2": "Unit 4",
            "city": "Ottawa",
            "state": "ON",
            "zip_code": "K1A",
            "country": "CA",
        }


class TestServiceTransformer:
    def test_codes_and_schedule(self, deterministic_clock):
        context = TransformContext("service", deterministic_clock)
        mapped = {
            "customer_id": "CUST001",
            "service_type": "WASTE_COLLECTION",
            "schedule": "weekly-monday",
        }
        legacy = {"CONTAINER_TYPES": ["DUMPSTER", "CART"]}
        out = ServiceTransformer().transform(legacy, mapped, context)

        assert out["service_type"] == "waste"
        assert out["container_type"] == "dumpster"
        assert out["schedule"] == {
            "frequency": "weekly",
            "day_of_week": "monday",
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
        }
        assert "CONTAINER_TYPES" in context.consumed

    def test_schedule_object(self, deterministic_clock):
        context = TransformContext("service", deterministic_clock)
        parsed = parse_schedule(
            {"frequency": "BIWEEKLY", "day": "Friday", "end_date": "2024-06-30"}, context
        )
        assert parsed == {
            "frequency": "biweekly",
            "day_of_week": "friday",
            "start_date": "2024-01-01",
            "end_date": "2024-06-30",
        }

    def test_unparseable_schedule_dropped(self, deterministic_clock):
        context = TransformContext("service", deterministic_clock)
        out = ServiceTransformer().transform({}, {"schedule": "whenever"}, context)
        assert "schedule" not in out
        assert context.warnings[0].code == "UNPARSEABLE_SCHEDULE"


class TestRouteTransformer:
    def test_schedule_and_sites(self, deterministic_clock):
        context = TransformContext("route", deterministic_clock)
        legacy = {
            "ROUTE_NAME": "Monday Downtown",
            "STOPS": [{"CUSTOMER_ID": "CUST001"}, {"CUSTOMER_ID": "CUST002"}],
        }
        mapped = {"name": "Monday Downtown", "status": "in progress",
                  "schedule": "weekly-monday-06:00-17:00"}
        out = RouteTransformer().transform(legacy, mapped, context)

        assert out["status"] == "active"
        assert out["schedule"] == {
            "frequency": "weekly",
            "day_of_week": "monday",
            "start_time": "0600",
            "end_time": "1700",
        }
        assert out["assigned_sites"] == ["CUST001", "CUST002"]
        assert "STOPS" in context.consumed

    def test_schedule_without_end_time(self, deterministic_clock):
        context = TransformContext("route", deterministic_clock)
        assert parse_route_schedule("daily-all-05:30", context)["end_time"] == "1700"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("C1, C2,,C3", ["C1", "C2", "C3"]),
            ([{"id": "C1"}, {"customer_id": "C2"}, "C3", None, {}], ["C1", "C2", "C3"]),
            (42, []),
        ],
    )
    def test_assigned_sites(self, value, expected):
        assert parse_assigned_sites(value) == expected


class TestFacilityTransformer:
    def test_per_day_hours(self, deterministic_clock):
        context = TransformContext("facility", deterministic_clock)
        mapped = {
            "name": "North MRF",
            "type": "Material Recovery Facility",
            "status": "ACTIVE",
            "operating_hours": {"Monday": "06:00-17:00", "Sunday": None},
        }
        out = FacilityTransformer().transform({}, mapped, context)

        assert out["type"] == "mrf"
        assert out["status"] == "operational"
        assert out["operating_hours"] == {
            "monday": {"open": "06:00", "close": "17:00"},
            "sunday": {"closed": True},
        }
        assert context.warnings == []

    def test_free_text_hours_defaulted(self, deterministic_clock):
        context = TransformContext("facility", deterministic_clock)
        out = FacilityTransformer().transform(
            {}, {"operating_hours": "Mon-Fri 6am to 5pm"}, context
        )
        assert out["operating_hours"] == standard_hours()
        assert context.warnings[0].code == "OPERATING_HOURS_DEFAULTED"

    def test_standard_hours(self):
        hours = standard_hours()
        assert hours["monday"] == {"open": "06:00", "close": "17:00"}
        assert hours["saturday"] == {"open": "07:00", "close": "12:00"}
        assert hours["sunday"] == {"closed": True}
