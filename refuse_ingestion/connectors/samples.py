"""Bundled sample legacy systems (WasteWorks billing, TrashFlow routing)."""

from __future__ import annotations

from typing import Any

from refuse_ingestion.connectors.base import StaticLegacyConnector

WASTEWORKS_PAYLOAD: dict[str, list[dict[str, Any]]] = {
    "customers": [
        {
            "CUSTOMER_ID": "CUST001",
            "CUSTOMER_NAME": "Acme Corporation",
            "CUSTOMER_TYPE": "COMMERCIAL",
            "STATUS": "ACTIVE",
            "PHONE": "555-0100",
            "EMAIL": "contact@acme.com",
            "ADDRESS_STREET": "123 Business St",
            "ADDRESS_CITY": "Business City",
            "ADDRESS_STATE": "BC",
            "ADDRESS_ZIP": "12345",
            "SERVICE_AREA": "Area 1",
            "CREATED_DATE": "2023-01-15T10:00:00Z",
            "UPDATED_DATE": "2024-01-15T10:00:00Z",
        }
    ],
    "services": [
        {
            "SERVICE_ID": "SERV001",
            "CUSTOMER_ID": "CUST001",
            "SERVICE_NAME": "Weekly Waste Collection",
            "SERVICE_TYPE": "WASTE_COLLECTION",
            "FREQUENCY": "WEEKLY",
            "BASE_RATE": 150.00,
            "RATE_UNIT": "MONTHLY",
            "ADDITIONAL_CHARGES": 25.00,
            "CONTAINER_TYPES": ["DUMPSTER"],
            "SPECIAL_HANDLING": None,
        }
    ],
}

TRASHFLOW_PAYLOAD: dict[str, list[dict[str, Any]]] = {
    "routes": [
        {
            "ROUTE_ID": "ROUTE001",
            "ROUTE_NAME": "Monday Downtown",
            "DRIVER_NAME": "John Driver",
            "VEHICLE_ID": "TRUCK001",
            "STATUS": "ACTIVE",
            "STOPS": [
                {
                    "CUSTOMER_ID": "CUST001",
                    "ADDRESS": "123 Business St, Business City, BC 12345",
                    "SCHEDULED_TIME": "08:00",
                    "SERVICE_TYPE": "WASTE_COLLECTION",
                },
                {
                    "CUSTOMER_ID": "CUST002",
                    "ADDRESS": "456 Commerce Ave, Business City, BC 12346",
                    "SCHEDULED_TIME": "09:30",
                    "SERVICE_TYPE": "RECYCLING",
                },
            ],
            "CREATED_DATE": "2023-01-15T10:00:00Z",
            "UPDATED_DATE": "2024-01-15T10:00:00Z",
        }
    ],
}


def wasteworks_connector() -> StaticLegacyConnector:
    return StaticLegacyConnector(
        "wasteworks",
        "waste_management",
        WASTEWORKS_PAYLOAD,
        ("customers", "services", "invoices"),
    )


def trashflow_connector() -> StaticLegacyConnector:
    return StaticLegacyConnector(
        "trashflow",
        "routing_optimization",
        TRASHFLOW_PAYLOAD,
        ("routes", "schedules", "optimization"),
    )


def sample_connectors() -> list[StaticLegacyConnector]:
    return [wasteworks_connector(), trashflow_connector()]
