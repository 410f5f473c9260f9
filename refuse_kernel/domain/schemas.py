"""
Reference entity schemas and validators.

Responsibility:
    Canonical vocabularies (customer types, service types, facility statuses,
    ...) and the per-entity-type required attributes used by integrity
    checks and by the reference ``EntityValidator`` instances.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from refuse_kernel.domain.dtos import ValidationError
from refuse_kernel.domain.validation import (
    EntityValidator,
    validate_email,
    validate_phone,
)

MAX_NAME_LENGTH = 200

CUSTOMER_TYPES: tuple[str, ...] = ("residential", "commercial", "industrial", "municipal")
CUSTOMER_STATUSES: tuple[str, ...] = ("active", "inactive", "suspended", "pending")
SERVICE_TYPES: tuple[str, ...] = ("waste", "recycling", "organics", "hazardous", "bulk")
CONTAINER_TYPES: tuple[str, ...] = ("cart", "bin", "dumpster", "rolloff", "compactor")
ROUTE_STATUSES: tuple[str, ...] = ("planned", "active", "completed", "cancelled")
FACILITY_TYPES: tuple[str, ...] = (
    "landfill",
    "mrf",
    "transfer",
    "composter",
    "export",
    "cad",
    "incinerator",
    "recycling_center",
)
FACILITY_STATUSES: tuple[str, ...] = ("operational", "maintenance", "closed", "planned", "limited")


@dataclass(frozen=True)
class EntitySchema:
    """Attributes an entity of ``entity_type`` must carry to be intact."""

    entity_type: str
    required_fields: tuple[str, ...]


ENTITY_SCHEMAS: dict[str, EntitySchema] = {
    "customer": EntitySchema("customer", ("name", "type", "status", "service_address")),
    "service": EntitySchema("service", ("customer_id", "service_type")),
    "route": EntitySchema("route", ("name",)),
    "facility": EntitySchema("facility", ("name", "type", "status")),
}


def get_schema(entity_type: str) -> EntitySchema | None:
    return ENTITY_SCHEMAS.get(entity_type)


def _contact_information_rule(data: Mapping[str, Any]) -> list[ValidationError]:
    contact = data.get("contact_information")
    if not isinstance(contact, Mapping):
        return []
    return validate_email(
        contact.get("email"), "contact_information.email"
    ) + validate_phone(contact.get("phone"), "contact_information.phone")


CUSTOMER_VALIDATOR = EntityValidator(
    entity_type="customer",
    required_on_create=ENTITY_SCHEMAS["customer"].required_fields,
    enums={"type": CUSTOMER_TYPES, "status": CUSTOMER_STATUSES},
    max_lengths={"name": MAX_NAME_LENGTH},
    email_fields=("email",),
    phone_fields=("phone",),
    address_fields=("service_address",),
    rules=(_contact_information_rule,),
)

SERVICE_VALIDATOR = EntityValidator(
    entity_type="service",
    required_on_create=ENTITY_SCHEMAS["service"].required_fields,
    enums={"service_type": SERVICE_TYPES, "container_type": CONTAINER_TYPES},
)

ROUTE_VALIDATOR = EntityValidator(
    entity_type="route",
    required_on_create=ENTITY_SCHEMAS["route"].required_fields,
    enums={"status": ROUTE_STATUSES},
    max_lengths={"name": MAX_NAME_LENGTH},
)

FACILITY_VALIDATOR = EntityValidator(
    entity_type="facility",
    required_on_create=ENTITY_SCHEMAS["facility"].required_fields,
    enums={"type": FACILITY_TYPES, "status": FACILITY_STATUSES},
    max_lengths={"name": MAX_NAME_LENGTH},
)

REFERENCE_VALIDATORS: dict[str, EntityValidator] = {
    "customer": CUSTOMER_VALIDATOR,
    "service": SERVICE_VALIDATOR,
    "route": ROUTE_VALIDATOR,
    "facility": FACILITY_VALIDATOR,
}
