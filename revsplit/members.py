"""
revsplit.members — the immutable weight table of a splitter.

Lives in the splitter's own storage under the `wt:` prefix:

    b"wt:n"             -> u256 membership count
    b"wt:tw"            -> u256 total weight (accumulated once, never recomputed)
    b"wt:w:" + u32(id)  -> u256 weight

Written exactly once by `write()` during initialization.
"""

from __future__ import annotations

from typing import Final, Iterator, List, Sequence

from .errors import SetupError, UnknownMembershipError
from .runtime.contract import Contract, key_index

K_COUNT: Final[bytes] = b"wt:n"
K_TOTAL: Final[bytes] = b"wt:tw"
P_WEIGHT: Final[bytes] = b"wt:w:"


def validate_weights(weights: Sequence[int], *, max_weight: int, max_members: int) -> int:
    """Check a weight list and return its total."""
    if not weights:
        raise SetupError("membership list is empty")
    if len(weights) > max_members:
        raise SetupError("too many memberships", details={"count": len(weights), "max": max_members})
    total = 0
    for i, w in enumerate(weights):
        if not isinstance(w, int) or isinstance(w, bool):
            raise SetupError("weight must be an integer", details={"index": i})
        if w < 0 or w > max_weight:
            raise SetupError("weight out of range", details={"index": i, "weight": w, "max": max_weight})
        total += w
    if total == 0:
        raise SetupError("total weight is zero")
    return total


class WeightTable:
    def __init__(self, contract: Contract) -> None:
        self._c = contract

    def write(self, weights: Sequence[int]) -> int:
        if self.count():
            raise SetupError("weight table already written")
        total = 0
        for i, w in enumerate(weights):
            self._c._set_u256(key_index(P_WEIGHT, i), w)
            total += w
        self._c._set_u256(K_COUNT, len(weights))
        self._c._set_u256(K_TOTAL, total)
        return total

    def count(self) -> int:
        return self._c._get_u256(K_COUNT)

    def total_weight(self) -> int:
        return self._c._get_u256(K_TOTAL)

    def weight_of(self, membership_id: int) -> int:
        n = self.count()
        if not 0 <= membership_id < n:
            raise UnknownMembershipError(membership_id, count=n)
        return self._c._get_u256(key_index(P_WEIGHT, membership_id))

    def ids(self) -> Iterator[int]:
        return iter(range(self.count()))

    def weights(self) -> List[int]:
        return [self.weight_of(i) for i in self.ids()]


__all__ = ["WeightTable", "validate_weights"]
