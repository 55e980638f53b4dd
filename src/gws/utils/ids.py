"""
Entity ID generation utilities.
"""

import secrets
from typing import Container


def generate_id(length: int = 6) -> str:
    """
    Generate a cryptographically random hex entity ID.

    Args:
        length: Length of the ID in hex characters (default 6)

    Returns:
        Lowercase hex string, e.g. "a7f3c2"
    """
    return secrets.token_hex((length + 1) // 2)[:length]


def generate_unique_id(existing: Container[str], length: int = 6) -> str:
    """Generate an ID that does not collide with any ID in ``existing``."""
    new_id = generate_id(length)
    while new_id in existing:
        new_id = generate_id(length)
    return new_id
