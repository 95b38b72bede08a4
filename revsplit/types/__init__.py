"""
revsplit.types — small value types shared across the package.

- address: address coercion (hex ↔ bytes), deterministic label addresses
- events:  Event records and their canonical (JSON-safe) form
"""

from .address import (ADDRESS_LEN, ZERO_ADDRESS, Address, label_address,
                      require_address, to_address, to_hex)
from .events import CanonicalEvent, Event

__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "Address",
    "label_address",
    "require_address",
    "to_address",
    "to_hex",
    "Event",
    "CanonicalEvent",
]
