"""Customer reshaping: type/status codes, contact details, service address."""

from __future__ import annotations

from typing import Any, Mapping

from refuse_ingestion.mapping.engine import is_present
from refuse_ingestion.transformers.base import TransformContext, pick

CUSTOMER_TYPE_CODES: dict[str, str] = {
    "residential": "residential",
    "commercial": "commercial",
    "industrial": "industrial",
    "municipal": "municipal",
    "res": "residential",
    "comm": "commercial",
    "ind": "industrial",
    "muni": "municipal",
}
DEFAULT_CUSTOMER_TYPE = "commercial"

CUSTOMER_STATUS_CODES: dict[str, str] = {
    "active": "active",
    "inactive": "inactive",
    "suspended": "suspended",
    "pending": "pending",
    "approved": "active",
    "act": "active",
    "inact": "inactive",
    "susp": "suspended",
}
DEFAULT_CUSTOMER_STATUS = "active"

# Flat mapped keys folded into service_address
_ADDRESS_KEYS = ("street", "street2", "city", "state", "zip_code", "country")


def convert_address(legacy_address: Mapping[str, Any]) -> dict[str, Any]:
    """One legacy address object -> canonical address."""

    def first(*names: str) -> Any:
        for name in names:
            value = legacy_address.get(name)
            if is_present(value):
                return value
        return None

    address = {
        "street": first("street", "address1", "street1", "address"),
        "street2": first("street2", "address2"),
        "city": first("city"),
        "state": first("state", "province"),
        "zip_code": first("zip_code", "zip", "zipcode", "postal_code"),
        "country": first("country") or "US",
    }
    return {k: v for k, v in address.items() if v is not None}


def _select_primary(addresses: list[Any]) -> Mapping[str, Any] | None:
    candidates = [a for a in addresses if isinstance(a, Mapping)]
    for address in candidates:
        if address.get("primary"):
            return address
    return candidates[0] if candidates else None


class CustomerTransformer:
    entity_type = "customer"

    def transform(
        self,
        legacy: Mapping[str, Any],
        mapped: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any]:
        out = dict(mapped)

        legacy_type = pick(mapped, legacy, context, "type", "customer_type")
        if legacy_type is not None:
            out["type"] = context.lookup_code(
                legacy_type, CUSTOMER_TYPE_CODES, DEFAULT_CUSTOMER_TYPE, "type"
            )

        legacy_status = pick(mapped, legacy, context, "status", "status")
        if legacy_status is not None:
            out["status"] = context.lookup_code(
                legacy_status, CUSTOMER_STATUS_CODES, DEFAULT_CUSTOMER_STATUS, "status"
            )

        contact = dict(out.get("contact_information") or {})
        phone = pick(mapped, legacy, context, "phone", "phone", "phone_number")
        email = pick(mapped, legacy, context, "email", "email", "email_address")
        if phone is not None:
            contact["phone"] = str(phone).strip()
        if email is not None:
            contact["email"] = str(email).strip().lower()
        out.pop("phone", None)
        out.pop("email", None)
        if contact:
            out["contact_information"] = contact

        address = self._service_address(legacy, out, context)
        for key in _ADDRESS_KEYS:
            out.pop(key, None)
        if address:
            out["service_address"] = address
        return out

    def _service_address(
        self,
        legacy: Mapping[str, Any],
        out: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any] | None:
        addresses = context.legacy_value(legacy, "addresses")
        if isinstance(addresses, list):
            primary = _select_primary(addresses)
            if primary is not None:
                return convert_address(primary)

        flat = {k: out[k] for k in _ADDRESS_KEYS if is_present(out.get(k))}
        if isinstance(out.get("service_address"), Mapping):
            return convert_address({**out["service_address"], **flat})
        if flat:
            return convert_address(flat)
        return None
