"""Service reshaping: service/container codes and pickup schedules."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping

from refuse_ingestion.transformers.base import TransformContext, pick

SERVICE_TYPE_CODES: dict[str, str] = {
    "waste": "waste",
    "garbage": "waste",
    "trash": "waste",
    "waste_collection": "waste",
    "recycling": "recycling",
    "recycle": "recycling",
    "organics": "organics",
    "compost": "organics",
    "yard_waste": "organics",
    "hazardous": "hazardous",
    "hazmat": "hazardous",
    "bulk": "bulk",
    "large_item": "bulk",
}
DEFAULT_SERVICE_TYPE = "waste"

CONTAINER_TYPE_CODES: dict[str, str] = {
    "cart": "cart",
    "bin": "bin",
    "dumpster": "dumpster",
    "container": "dumpster",
    "rolloff": "rolloff",
    "roll_off": "rolloff",
    "compactor": "compactor",
}
DEFAULT_CONTAINER_TYPE = "dumpster"

DEFAULT_SCHEDULE_DAYS = 365


def parse_schedule(value: Any, context: TransformContext) -> dict[str, Any]:
    """
    ``"weekly-monday"`` or ``{frequency, day|day_of_week, start_date, end_date}``.

    Missing dates default to today and one year from today.
    """
    today = context.clock.now().date()
    start_default = today.isoformat()
    end_default = (today + timedelta(days=DEFAULT_SCHEDULE_DAYS)).isoformat()

    if isinstance(value, str):
        parts = [p.strip() for p in value.lower().split("-")]
        if len(parts) >= 2 and all(parts[:2]):
            return {
                "frequency": parts[0],
                "day_of_week": parts[1],
                "start_date": start_default,
                "end_date": end_default,
            }
        context.warn("UNPARSEABLE_SCHEDULE", f"Cannot parse schedule {value!r}", "schedule")
        return {}
    if isinstance(value, Mapping):
        day = value.get("day") or value.get("day_of_week")
        return {
            "frequency": str(value.get("frequency") or "weekly").lower(),
            "day_of_week": str(day).lower() if day else None,
            "start_date": value.get("start_date") or start_default,
            "end_date": value.get("end_date") or end_default,
        }
    context.warn("UNPARSEABLE_SCHEDULE", f"Unsupported schedule value {value!r}", "schedule")
    return {}


class ServiceTransformer:
    entity_type = "service"

    def transform(
        self,
        legacy: Mapping[str, Any],
        mapped: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any]:
        out = dict(mapped)

        service_type = pick(mapped, legacy, context, "service_type", "service_type")
        if service_type is not None:
            out["service_type"] = context.lookup_code(
                service_type, SERVICE_TYPE_CODES, DEFAULT_SERVICE_TYPE, "service_type"
            )

        container = pick(mapped, legacy, context, "container_type", "container_type")
        if container is None:
            containers = context.legacy_value(legacy, "container_types")
            if isinstance(containers, list) and containers:
                container = containers[0]
        if container is not None:
            out["container_type"] = context.lookup_code(
                container, CONTAINER_TYPE_CODES, DEFAULT_CONTAINER_TYPE, "container_type"
            )

        schedule = pick(mapped, legacy, context, "schedule", "schedule", "pickup_schedule")
        if schedule is not None:
            parsed = parse_schedule(schedule, context)
            if parsed:
                out["schedule"] = parsed
            else:
                out.pop("schedule", None)
        return out
