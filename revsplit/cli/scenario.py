"""
revsplit.cli.scenario — run a YAML/JSON scenario against a fresh Host.

A scenario describes one splitter, an optional token, and a list of steps:

    token:                       # omit (or asset: native) for native currency
      name: Dollar
      symbol: USD
      supply: 1000
      holder: treasury
    splitter:
      name: Band
      symbol: BAND
      kind: pull                 # pull | push
      asset: token               # token | native
      transferable: false
      members:
        - {owner: alice, weight: 1}
        - {owner: bob, weight: 1}
        - {owner: carol, weight: 2}
    steps:
      - {op: approve, from: treasury, amount: 100}
      - {op: deposit, caller: alice, source: treasury}
      - {op: claim, caller: carol, id: 2}
      - {op: register, caller: alice, expect_error: SPLIT_EMPTY}

Addresses are labels (see revsplit.types.address.label_address) or 0x-hex;
the labels "splitter" and "token" name the deployed contracts.

A step that raises a SplitError fails the run unless it names the error code
in `expect_error`; a step that expects an error and succeeds fails too.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml

from ..assets.token import FungibleToken
from ..errors import SplitError
from ..runtime.host import Host
from ..splitter import Splitter
from ..types.address import to_address

log = logging.getLogger(__name__)


class ScenarioError(ValueError):
    """A scenario document is malformed or a step did not behave as expected."""


@dataclass
class StepResult:
    index: int
    op: str
    ok: bool
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "op": self.op, "ok": self.ok, "result": self.result, "error": self.error}


@dataclass
class ScenarioRun:
    host: Host
    splitter: Splitter
    token: Optional[FungibleToken]
    steps: List[StepResult] = field(default_factory=list)


def load_scenario(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path).expanduser()
    text = p.read_text(encoding="utf-8")
    doc = json.loads(text) if p.suffix.lower() == ".json" else yaml.safe_load(text)
    if not isinstance(doc, dict):
        raise ScenarioError(f"scenario {p} must contain a mapping")
    return doc


def parse_members(raw: Any) -> List[tuple]:
    """Accept a list of {owner, weight} mappings or an {owner: weight} mapping."""
    if isinstance(raw, Mapping):
        return [(str(k), int(v)) for k, v in raw.items()]
    if isinstance(raw, list):
        out = []
        for i, m in enumerate(raw):
            if not isinstance(m, Mapping) or "owner" not in m or "weight" not in m:
                raise ScenarioError(f"member #{i} needs 'owner' and 'weight'")
            out.append((str(m["owner"]), int(m["weight"])))
        return out
    raise ScenarioError("members must be a list or a mapping")


class _Runner:
    def __init__(self, doc: Mapping[str, Any]) -> None:
        self.doc = doc
        self.host = Host(balances={k: int(v) for k, v in (doc.get("native") or {}).items()})
        self.deployer = to_address(str(doc.get("deployer", "deployer")))
        self.token: Optional[FungibleToken] = None
        spec = doc.get("splitter")
        if not isinstance(spec, Mapping):
            raise ScenarioError("scenario needs a 'splitter' section")
        tok = doc.get("token")
        use_native = spec.get("asset", "token" if tok else "native") == "native"
        if not use_native:
            if not isinstance(tok, Mapping):
                raise ScenarioError("asset 'token' needs a 'token' section")
            self.token = FungibleToken.deploy(
                self.host,
                self.deployer,
                name=str(tok.get("name", "Token")),
                symbol=str(tok.get("symbol", "TOK")),
                decimals=int(tok.get("decimals", 18)),
                supply=int(tok.get("supply", 0)),
                owner=str(tok.get("holder", "deployer")),
            )
        self.splitter = Splitter.deploy(
            self.host,
            self.deployer,
            name=str(spec.get("name", "Splitter")),
            symbol=str(spec.get("symbol", "SPLIT")),
            members=parse_members(spec.get("members")),
            asset=self.token,
            kind=str(spec.get("kind", "pull")),
            transferable=bool(spec.get("transferable", False)),
        )
        self.ops: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
            "deposit": lambda s: self.splitter.deposit(self.addr(s["caller"]), self.addr(s["source"])),
            "register": lambda s: self.splitter.register(self.addr(s["caller"])),
            "claim": lambda s: self.splitter.claim(self.addr(s["caller"]), int(s["id"])),
            "claim_many": lambda s: self.splitter.claim_many(self.addr(s["caller"]), [int(i) for i in s["ids"]]),
            "distribute": self._distribute,
            "distribute_native": lambda s: _payouts(self.splitter.distribute_native(self.addr(s["caller"]))),
            "transfer": lambda s: self._token().transfer(self.addr(s["from"]), self.addr(s["to"]), int(s["amount"])),
            "approve": lambda s: self._token().approve(
                self.addr(s["from"]), self.addr(s.get("spender", "splitter")), int(s["amount"])),
            "freeze": lambda s: self._token().freeze(
                self._token().owner(), self.addr(s["address"]), bool(s.get("frozen", True))),
            "mint_native": lambda s: self.host.mint_native(self.addr(s["to"]), int(s["amount"])),
            "send_native": lambda s: self.host.send_native(self.addr(s["from"]), self.addr(s["to"]), int(s["amount"])),
            "refuse_payments": lambda s: self.host.refuse_payments(self.addr(s["address"]), bool(s.get("refuse", True))),
            "transfer_membership": lambda s: self.splitter.registry().transfer(
                self.addr(s["caller"]), int(s["id"]), self.addr(s["to"])),
        }

    def addr(self, label: Any) -> bytes:
        if label == "splitter":
            return self.splitter.address
        if label == "token":
            return self._token().address
        return to_address(str(label))

    def _token(self) -> FungibleToken:
        if self.token is None:
            raise ScenarioError("scenario has no token")
        return self.token

    def _distribute(self, s: Mapping[str, Any]) -> Any:
        source = self.addr(s["source"]) if s.get("source") is not None else None
        amount = int(s["amount"]) if s.get("amount") is not None else None
        return _payouts(self.splitter.distribute(self.addr(s["caller"]), source=source, amount=amount))

    def run(self) -> ScenarioRun:
        out = ScenarioRun(host=self.host, splitter=self.splitter, token=self.token)
        for i, step in enumerate(self.doc.get("steps") or []):
            op = str(step.get("op", ""))
            fn = self.ops.get(op)
            if fn is None:
                raise ScenarioError(f"step {i}: unknown op {op!r}")
            expected = step.get("expect_error")
            try:
                result = fn(step)
            except SplitError as e:
                if expected != e.code:
                    raise ScenarioError(f"step {i} ({op}) failed: {e}") from e
                out.steps.append(StepResult(i, op, False, error=e.to_dict()))
                log.debug("step %d (%s) failed as expected: %s", i, op, e.code)
                continue
            except KeyError as e:
                raise ScenarioError(f"step {i} ({op}) is missing field {e}") from e
            if expected:
                raise ScenarioError(f"step {i} ({op}) succeeded but {expected} was expected")
            out.steps.append(StepResult(i, op, True, result=result))
        return out


def _payouts(payouts: List[Any]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in payouts]


def run_scenario(doc: Mapping[str, Any]) -> ScenarioRun:
    return _Runner(doc).run()


__all__ = ["ScenarioError", "StepResult", "ScenarioRun", "load_scenario", "parse_members", "run_scenario"]
