"""Kernel services: entity construction and managed lifecycle."""

from refuse_kernel.services.entity_factory import BulkCreateResult, EntityFactory
from refuse_kernel.services.entity_manager import EntityManager

__all__ = [
    "BulkCreateResult",
    "EntityFactory",
    "EntityManager",
]
