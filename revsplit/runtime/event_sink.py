"""
revsplit.runtime.event_sink — append events, roll them back with the journal.

The host takes a `mark()` when a call starts and `truncate(mark)` when the
call reverts, so events of a failed call vanish together with its state
writes. Args are validated the same way for every contract:

- keys are identifier-like strings (bytes keys are ASCII-decoded)
- values are bytes, bool, int (≤ 256 bits) or str
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..types.events import CanonicalEvent, Event

MAX_EVENT_NAME_BYTES = 64
MAX_INT_BITS = 256

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_key(raw: Any) -> str:
    key = raw.decode("ascii") if isinstance(raw, (bytes, bytearray)) else raw
    if not isinstance(key, str) or not _KEY_RE.match(key):
        raise ValueError(f"invalid event key: {raw!r}")
    return key


def _check_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value.bit_length() > MAX_INT_BITS:
            raise ValueError("event int arg out of range")
        return int(value)
    if isinstance(value, str):
        return value
    raise TypeError(f"unsupported event arg type: {type(value).__name__}")


class EventSink:
    """
    Collects Event entries during execution.

    Typical use:
        sink = EventSink()
        m = sink.mark()
        sink.emit(addr, b"Claimed", {"membership_id": 0, "amount": 25})
        sink.truncate(m)   # on revert
    """

    __slots__ = ["_events"]

    def __init__(self) -> None:
        self._events: List[Event] = []

    # ------------------------ mutation ------------------------

    def emit(self, address: bytes, name: bytes, args: Mapping[Any, Any]) -> int:
        """Append a new event. Returns its index."""
        if not isinstance(name, (bytes, bytearray)) or not name:
            raise ValueError("event name must be non-empty bytes")
        if len(name) > MAX_EVENT_NAME_BYTES:
            raise ValueError("event name too long")
        checked: Dict[str, Any] = {_check_key(k): _check_value(v) for k, v in args.items()}
        self._events.append(Event(address=bytes(address), name=bytes(name), args=checked))
        return len(self._events) - 1

    def mark(self) -> int:
        return len(self._events)

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    def clear(self) -> None:
        self._events.clear()

    # ------------------------ accessors ------------------------

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def since(self, mark: int) -> List[Event]:
        return self._events[mark:]

    def named(self, name: bytes, *, address: Optional[bytes] = None) -> List[Event]:
        return [
            e for e in self._events
            if e.name == name and (address is None or e.address == address)
        ]

    def canonical(self, events: Optional[Iterable[Event]] = None) -> List[CanonicalEvent]:
        return [e.canonical() for e in (self._events if events is None else events)]

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._events)


__all__ = ["EventSink", "MAX_EVENT_NAME_BYTES", "MAX_INT_BITS"]
