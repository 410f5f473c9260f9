"""Utility modules for the refuse kernel."""

from refuse_kernel.utils.hashing import canonicalize_json, hash_payload, short_hash

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "short_hash",
]
