"""Facility reshaping: type/status codes and operating hours."""

from __future__ import annotations

from typing import Any, Mapping

from refuse_ingestion.transformers.base import TransformContext, pick

FACILITY_TYPE_CODES: dict[str, str] = {
    "landfill": "landfill",
    "mrf": "mrf",
    "material_recovery_facility": "mrf",
    "transfer": "transfer",
    "transfer_station": "transfer",
    "composter": "composter",
    "compost": "composter",
    "export": "export",
    "cad": "cad",
    "incinerator": "incinerator",
    "recycling_center": "recycling_center",
}
DEFAULT_FACILITY_TYPE = "landfill"

FACILITY_STATUS_CODES: dict[str, str] = {
    "operational": "operational",
    "active": "operational",
    "op": "operational",
    "maintenance": "maintenance",
    "maint": "maintenance",
    "closed": "closed",
    "cls": "closed",
    "planned": "planned",
    "limited": "limited",
}
DEFAULT_FACILITY_STATUS = "operational"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def standard_hours() -> dict[str, dict[str, Any]]:
    """Mon-Fri 06:00-17:00, Sat 07:00-12:00, Sun closed."""
    hours: dict[str, dict[str, Any]] = {
        day: {"open": "06:00", "close": "17:00"} for day in WEEKDAYS[:5]
    }
    hours["saturday"] = {"open": "07:00", "close": "12:00"}
    hours["sunday"] = {"closed": True}
    return hours


def _day_hours(value: Any) -> dict[str, Any]:
    if isinstance(value, str):
        parts = value.split("-")
        if len(parts) == 2:
            return {"open": parts[0].strip(), "close": parts[1].strip()}
    elif isinstance(value, Mapping):
        return {
            "open": value.get("open") or value.get("start"),
            "close": value.get("close") or value.get("end"),
        }
    return {"closed": True}


def parse_operating_hours(value: Any, context: TransformContext) -> dict[str, Any]:
    """Per-day object is converted; free-text hours fall back to standard hours."""
    if isinstance(value, Mapping):
        return {str(day).lower(): _day_hours(hours) for day, hours in value.items()}
    context.warn(
        "OPERATING_HOURS_DEFAULTED",
        f"Free-text operating hours {value!r} replaced with standard hours",
        "operating_hours",
    )
    return standard_hours()


class FacilityTransformer:
    entity_type = "facility"

    def transform(
        self,
        legacy: Mapping[str, Any],
        mapped: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any]:
        out = dict(mapped)

        facility_type = pick(mapped, legacy, context, "type", "facility_type")
        if facility_type is not None:
            out["type"] = context.lookup_code(
                facility_type, FACILITY_TYPE_CODES, DEFAULT_FACILITY_TYPE, "type"
            )

        status = pick(mapped, legacy, context, "status", "status")
        if status is not None:
            out["status"] = context.lookup_code(
                status, FACILITY_STATUS_CODES, DEFAULT_FACILITY_STATUS, "status"
            )

        hours = pick(mapped, legacy, context, "operating_hours", "operating_hours", "hours")
        if hours is not None:
            out["operating_hours"] = parse_operating_hours(hours, context)
        return out
