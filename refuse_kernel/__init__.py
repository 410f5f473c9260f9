"""
Refuse Kernel - versioned entity core

A small entity framework for waste-management records with:
- Optimistic-concurrency versioning (compare-and-swap on version)
- Audit events for every lifecycle transition
- Integrity validation and checksum hashing
- Pluggable in-memory and SQLAlchemy-backed entity stores
"""

__version__ = "0.1.0"
