"""
Reference field mappings for the four canonical entity types.

These reproduce the conventions of the WasteWorks/TrashFlow style exports
(upper-case column names).  Targets are canonical snake_case names; the
special target ``external_id`` is moved into ``external_ids`` when the
record is stamped, and a target of ``id`` keeps the legacy key as the
entity id instead of generating one.
"""

from __future__ import annotations

from refuse_ingestion.domain.types import FieldMapping
from refuse_ingestion.mapping.engine import TRANSFORMS


def _fm(
    source: str,
    target: str,
    *,
    required: bool = False,
    transform: str | None = None,
    default_value=None,
) -> FieldMapping:
    return FieldMapping(
        source=source,
        target=target,
        required=required,
        transform=TRANSFORMS[transform] if transform else None,
        default_value=default_value,
        transform_name=transform,
    )


CUSTOMER_MAPPINGS: tuple[FieldMapping, ...] = (
    _fm("CUSTOMER_ID", "external_id", transform="strip"),
    _fm("CUSTOMER_NAME", "name", required=True, transform="strip"),
    _fm("CUSTOMER_TYPE", "type"),
    _fm("STATUS", "status"),
    _fm("PHONE", "phone", transform="strip"),
    _fm("EMAIL", "email", transform="lower"),
    _fm("ADDRESS_STREET", "street", transform="strip"),
    _fm("ADDRESS_STREET2", "street2", transform="strip"),
    _fm("ADDRESS_CITY", "city", transform="strip"),
    _fm("ADDRESS_STATE", "state", transform="upper"),
    _fm("ADDRESS_ZIP", "zip_code", transform="strip"),
    _fm("SERVICE_AREA", "service_area"),
    _fm("CREATED_DATE", "created_at"),
    _fm("UPDATED_DATE", "updated_at"),
)

SERVICE_MAPPINGS: tuple[FieldMapping, ...] = (
    _fm("SERVICE_ID", "external_id", transform="strip"),
    _fm("CUSTOMER_ID", "customer_id", transform="strip"),
    _fm("SERVICE_NAME", "name", transform="strip"),
    _fm("SERVICE_TYPE", "service_type"),
    _fm("CONTAINER_TYPE", "container_type"),
    _fm("FREQUENCY", "frequency", transform="lower"),
    _fm("SCHEDULE", "schedule"),
    _fm("BASE_RATE", "base_rate", transform="to_decimal"),
    _fm("RATE_UNIT", "rate_unit", transform="lower"),
    _fm("ADDITIONAL_CHARGES", "additional_charges", transform="to_decimal"),
    _fm("CREATED_DATE", "created_at"),
    _fm("UPDATED_DATE", "updated_at"),
)

ROUTE_MAPPINGS: tuple[FieldMapping, ...] = (
    _fm("ROUTE_ID", "external_id", transform="strip"),
    _fm("ROUTE_NAME", "name", required=True, transform="strip"),
    _fm("DRIVER_NAME", "driver_name", transform="strip"),
    _fm("VEHICLE_ID", "vehicle_id", transform="strip"),
    _fm("STATUS", "status"),
    _fm("SCHEDULE", "schedule"),
    _fm("ASSIGNED_SITES", "assigned_sites"),
    _fm("CREATED_DATE", "created_at"),
    _fm("UPDATED_DATE", "updated_at"),
)

FACILITY_MAPPINGS: tuple[FieldMapping, ...] = (
    _fm("FACILITY_ID", "external_id", transform="strip"),
    _fm("FACILITY_NAME", "name", required=True, transform="strip"),
    _fm("FACILITY_TYPE", "type"),
    _fm("STATUS", "status"),
    _fm("OPERATING_HOURS", "operating_hours"),
    _fm("CAPACITY", "capacity", transform="to_decimal"),
    _fm("CREATED_DATE", "created_at"),
    _fm("UPDATED_DATE", "updated_at"),
)

REFERENCE_MAPPINGS: dict[str, tuple[FieldMapping, ...]] = {
    "customer": CUSTOMER_MAPPINGS,
    "service": SERVICE_MAPPINGS,
    "route": ROUTE_MAPPINGS,
    "facility": FACILITY_MAPPINGS,
}
