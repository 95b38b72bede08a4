"""
revsplit.state.snapshot — dump and restore a Host.

The document is a plain mapping:

    {
      "version": 1,
      "nonce": <host address nonce>,
      "balances": {"<addr hex>": <int>, ...},
      "storage": {"<addr hex>": {"<key hex>": "<value hex>"}, ...}
    }

Encoded as canonical CBOR (cbor2) or as sorted JSON. Contracts are not
serialized as objects: each contract's kind lives under a reserved storage key
and `Host.contract_at` re-attaches the right class after a restore.

Snapshots capture committed state only; taking one while a call is open is a
StateError.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import cbor2

from ..errors import StateError

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def snapshot(host: Any) -> Dict[str, Any]:
    with host.view():
        if host.journal.depth():
            raise StateError("cannot snapshot while a call is open")
        return {
            "version": SNAPSHOT_VERSION,
            "nonce": host.nonce,
            "balances": {a.hex(): int(v) for a, v in sorted(host.base_balances.items())},
            "storage": host.base_storage.export_hex(),
        }


def dumps(host: Any, *, fmt: str = "cbor") -> bytes:
    doc = snapshot(host)
    if fmt == "cbor":
        return cbor2.dumps(doc, canonical=True)
    if fmt == "json":
        return json.dumps(doc, sort_keys=True, separators=(",", ":")).encode("utf-8")
    raise ValueError(f"unknown snapshot format: {fmt!r}")


def _decode(data: bytes, fmt: Optional[str]) -> Dict[str, Any]:
    if fmt is None:
        fmt = "json" if data[:1] == b"{" else "cbor"
    doc = json.loads(data.decode("utf-8")) if fmt == "json" else cbor2.loads(data)
    if not isinstance(doc, dict):
        raise StateError("snapshot document must be a mapping")
    if doc.get("version") != SNAPSHOT_VERSION:
        raise StateError("unsupported snapshot version", details={"version": doc.get("version")})
    return doc


def loads(data: bytes, *, host: Any = None, fmt: Optional[str] = None) -> Any:
    """Restore into `host` (a fresh Host when omitted) and return it."""
    from ..runtime.host import Host

    doc = _decode(data, fmt)
    target = host if host is not None else Host()
    target.restore(
        balances={bytes.fromhex(a): int(v) for a, v in doc.get("balances", {}).items()},
        storage=doc.get("storage", {}),
        nonce=int(doc.get("nonce", 0)),
    )
    log.debug("restored snapshot accounts=%d", len(doc.get("storage", {})))
    return target


def _fmt_for(path: Path) -> str:
    return "json" if path.suffix.lower() == ".json" else "cbor"


def save(host: Any, path: Union[str, Path]) -> Path:
    p = Path(path).expanduser()
    p.write_bytes(dumps(host, fmt=_fmt_for(p)))
    log.info("snapshot written path=%s", p)
    return p


def load(path: Union[str, Path], *, host: Any = None) -> Any:
    p = Path(path).expanduser()
    return loads(p.read_bytes(), host=host, fmt=_fmt_for(p))


__all__ = ["SNAPSHOT_VERSION", "snapshot", "dumps", "loads", "save", "load"]
