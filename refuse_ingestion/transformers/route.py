"""Route reshaping: status codes, compact schedules, assigned sites."""

from __future__ import annotations

from typing import Any, Mapping

from refuse_ingestion.transformers.base import TransformContext, pick

ROUTE_STATUS_CODES: dict[str, str] = {
    "planned": "planned",
    "active": "active",
    "act": "active",
    "in_progress": "active",
    "completed": "completed",
    "complete": "completed",
    "done": "completed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
}
DEFAULT_ROUTE_STATUS = "active"

DEFAULT_START_TIME = "0600"
DEFAULT_END_TIME = "1700"


def parse_route_schedule(value: Any, context: TransformContext) -> dict[str, Any]:
    """``"weekly-monday-06:00[-17:00]"`` or an object with start/end times."""
    if isinstance(value, str):
        parts = [p.strip() for p in value.lower().split("-")]
        if len(parts) >= 3:
            return {
                "frequency": parts[0],
                "day_of_week": parts[1],
                "start_time": parts[2].replace(":", ""),
                "end_time": parts[3].replace(":", "") if len(parts) > 3 and parts[3] else DEFAULT_END_TIME,
            }
        context.warn("UNPARSEABLE_SCHEDULE", f"Cannot parse route schedule {value!r}", "schedule")
        return {}
    if isinstance(value, Mapping):
        day = value.get("day_of_week") or value.get("day")
        return {
            "frequency": str(value.get("frequency") or "weekly").lower(),
            "day_of_week": str(day).lower() if day else None,
            "start_time": str(value.get("start_time") or DEFAULT_START_TIME).replace(":", ""),
            "end_time": str(value.get("end_time") or DEFAULT_END_TIME).replace(":", ""),
        }
    context.warn("UNPARSEABLE_SCHEDULE", f"Unsupported route schedule {value!r}", "schedule")
    return {}


def parse_assigned_sites(value: Any) -> list[str]:
    """List of ids/objects-with-id, or a comma-separated string."""
    if isinstance(value, (list, tuple)):
        sites: list[str] = []
        for site in value:
            if isinstance(site, Mapping):
                site_id = site.get("id") or site.get("customer_id") or site.get("CUSTOMER_ID")
                if site_id:
                    sites.append(str(site_id))
            elif site is not None:
                sites.append(str(site))
        return sites
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return []


class RouteTransformer:
    entity_type = "route"

    def transform(
        self,
        legacy: Mapping[str, Any],
        mapped: dict[str, Any],
        context: TransformContext,
    ) -> dict[str, Any]:
        out = dict(mapped)

        status = pick(mapped, legacy, context, "status", "status")
        if status is not None:
            out["status"] = context.lookup_code(
                status, ROUTE_STATUS_CODES, DEFAULT_ROUTE_STATUS, "status"
            )

        schedule = pick(mapped, legacy, context, "schedule", "route_schedule", "schedule")
        if schedule is not None:
            parsed = parse_route_schedule(schedule, context)
            if parsed:
                out["schedule"] = parsed
            else:
                out.pop("schedule", None)

        sites = pick(mapped, legacy, context, "assigned_sites", "assigned_sites", "sites", "stops")
        if sites is not None:
            out["assigned_sites"] = parse_assigned_sites(sites)
        return out
