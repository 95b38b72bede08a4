"""
revsplit.metadata — membership metadata rendering.

Produces the JSON document wallets and explorers show for a membership, and a
self-contained `data:application/json;base64,...` URI carrying it.

    {
      "name": "<splitter name> #<id>",
      "description": "...",
      "attributes": [
        {"trait_type": "Weight", "value": 2},
        {"trait_type": "Share (bps)", "value": 5000},
        {"trait_type": "Owner", "value": "0x..."}
      ]
    }

Share is expressed in basis points of the total weight, floored.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Dict

from .math import share
from .types.address import to_hex

BPS = 10_000


def membership_metadata(splitter: Any, membership_id: int) -> Dict[str, Any]:
    weight = splitter.weight_of(membership_id)
    total = splitter.total_weight()
    owner = splitter.owner_of(membership_id)
    return {
        "name": f"{splitter.name()} #{membership_id}",
        "description": (
            f"Membership {membership_id} of the {splitter.symbol()} splitter. "
            f"Entitles its holder to {weight}/{total} of every distribution."
        ),
        "attributes": [
            {"trait_type": "Weight", "value": weight},
            {"trait_type": "Share (bps)", "value": share(weight, total, BPS)},
            {"trait_type": "Owner", "value": to_hex(owner)},
        ],
    }


def token_uri(splitter: Any, membership_id: int) -> str:
    doc = json.dumps(membership_metadata(splitter, membership_id), sort_keys=True, separators=(",", ":"))
    return "data:application/json;base64," + base64.b64encode(doc.encode("utf-8")).decode("ascii")


def decode_token_uri(uri: str) -> Dict[str, Any]:
    prefix = "data:application/json;base64,"
    if not uri.startswith(prefix):
        raise ValueError("not a base64 JSON data URI")
    return json.loads(base64.b64decode(uri[len(prefix):]).decode("utf-8"))


__all__ = ["membership_metadata", "token_uri", "decode_token_uri", "BPS"]
