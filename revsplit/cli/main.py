#!/usr/bin/env python3
"""
revsplit.cli.main
=================

Command line entry point (`revsplit`, or `python -m revsplit`).

Commands
--------
  simulate  members file + amount  -> per-member payout table
  run       scenario file          -> event log, final totals, optional snapshot
  inspect   snapshot file          -> splitter summaries
  config                           -> resolved configuration

Examples:
  revsplit simulate members.yaml 1000
  revsplit run examples/band.yaml --snapshot band.cbor
  revsplit inspect band.cbor --json
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_config
from ..errors import SplitError
from ..runtime.host import Host
from ..splitter import Splitter
from ..state import snapshot
from ..types.address import to_address, to_hex
from ..version import __version__, git_describe
from .scenario import ScenarioError, load_scenario, parse_members, run_scenario

app = typer.Typer(
    name="revsplit",
    help="Weighted revenue splitter: simulate payouts, run scenarios, inspect snapshots.",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


def _die(msg: str, code: int = 1) -> None:
    sys.stderr.write(msg.rstrip() + "\n")
    raise typer.Exit(code)


def _to_jsonable(x: Any) -> Any:
    if isinstance(x, (bytes, bytearray)):
        return to_hex(x)
    if isinstance(x, dict):
        return {k: _to_jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_to_jsonable(v) for v in x]
    return x


def _summary_table(summary: Dict[str, Any]) -> None:
    meta = Table.grid(padding=(0, 2))
    for key in ("address", "name", "symbol", "kind", "asset", "registry", "total_weight",
                "total_supply", "total_deposited", "total_claimed", "unregistered"):
        if key in summary:
            meta.add_row(key, str(summary[key]))
    console.print(Panel(meta, title="Splitter", expand=False))

    t = Table(title="Members", box=box.SIMPLE)
    t.add_column("id", justify="right")
    t.add_column("owner")
    t.add_column("weight", justify="right")
    pull = summary["kind"] == "pull"
    if pull:
        t.add_column("claimed", justify="right")
        t.add_column("claimable", justify="right")
    for m in summary["members"]:
        row = [str(m["id"]), m["owner"], str(m["weight"])]
        if pull:
            row += [str(m["claimed"]), str(m["claimable"])]
        t.add_row(*row)
    console.print(t)


def _print_version(value: bool) -> None:
    # Runs while options are parsed, before a subcommand is required.
    if value:
        typer.echo(f"revsplit {__version__} ({git_describe()})")
        raise typer.Exit(0)


@app.callback()
def _meta(
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit",
        is_eager=True, callback=_print_version,
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override REVSPLIT_LOG_LEVEL"),
) -> None:
    logging.basicConfig(
        level=(log_level or get_config().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("simulate")
def simulate_cmd(
    members: Path = typer.Argument(..., help="YAML/JSON members file (list of {owner, weight} or owner: weight)"),
    amount: int = typer.Argument(..., help="Amount to split"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """
    Preview how `amount` of native currency would be split right now.
    Amounts above the configured cap are clamped; the excess is reported.
    """
    try:
        doc = load_scenario(members)
        raw = doc.get("members", doc)
        host = Host()
        sp = Splitter.deploy(host, "deployer", name="simulation", symbol="SIM",
                             members=parse_members(raw), kind="push")
        host.mint_native(sp.address, amount)
        payouts = sp.simulate_native()
    except (ScenarioError, SplitError, ValueError) as e:
        _die(f"[simulate] {members}: {e}")
        return

    paid = sum(p.amount for p in payouts)
    cap = sp.limits().max_amount
    out = {
        "amount": amount,
        "distributed": min(amount, cap),
        "remainder": max(0, amount - cap),
        "dust": min(amount, cap) - paid,
        "payouts": [p.to_dict() for p in payouts],
    }
    if json_out:
        print(json.dumps(out, indent=2, sort_keys=True))
        return
    t = Table(title=f"Split of {amount}", box=box.SIMPLE)
    t.add_column("id", justify="right")
    t.add_column("owner")
    t.add_column("weight", justify="right")
    t.add_column("amount", justify="right")
    for p in payouts:
        t.add_row(str(p.membership_id), to_hex(p.owner), str(p.weight), str(p.amount))
    console.print(t)
    console.print(f"dust={out['dust']} remainder={out['remainder']}")


@app.command("run")
def run_cmd(
    scenario: Path = typer.Argument(..., help="YAML/JSON scenario file"),
    snapshot_out: Optional[Path] = typer.Option(None, "--snapshot", help="Write the final host state (.cbor or .json)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """
    Run a scenario step by step and print the event log and final totals.
    """
    try:
        result = run_scenario(load_scenario(scenario))
    except (ScenarioError, SplitError, ValueError) as e:
        if json_out:
            print(json.dumps({"ok": False, "error": str(e), "file": str(scenario)}))
            raise typer.Exit(1)
        _die(f"[run] {scenario}: {e}")
        return

    if snapshot_out is not None:
        snapshot.save(result.host, snapshot_out)

    events = [e.to_dict() for e in result.host.events.canonical()]
    summary = result.splitter.summary()
    if json_out:
        print(json.dumps({
            "ok": True,
            "steps": _to_jsonable([s.to_dict() for s in result.steps]),
            "events": events,
            "splitter": summary,
        }, indent=2, sort_keys=True))
        return

    t = Table(title="Events", box=box.SIMPLE)
    t.add_column("#", justify="right")
    t.add_column("contract")
    t.add_column("event")
    t.add_column("args")
    for i, e in enumerate(events):
        args = " ".join(f"{a['k']}={a['v']}" for a in e["args"])
        t.add_row(str(i), e["address"][:10], e["name"], args)
    console.print(t)
    _summary_table(summary)


@app.command("inspect")
def inspect_cmd(
    path: Path = typer.Argument(..., help="Snapshot file (.cbor or .json)"),
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Only this splitter (0x-hex)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """
    Restore a snapshot and summarize the splitters it contains.
    """
    try:
        host = snapshot.load(path)
        if address:
            target = to_address(address)
            kind = host.kind_of(target)
            if kind != "splitter":
                _die(f"[inspect] {path}: {to_hex(target)} is not a splitter (found {kind or 'nothing'})")
                return
            targets = [target]
        else:
            targets = [a for a, k in host.contracts().items() if k == "splitter"]
        summaries: List[Dict[str, Any]] = [host.contract_at(a).summary() for a in targets]
    except (SplitError, ValueError, OSError) as e:
        _die(f"[inspect] {path}: {e}")
        return

    if json_out:
        print(json.dumps(summaries, indent=2, sort_keys=True))
        return
    if not summaries:
        console.print("no splitters in snapshot")
    for s in summaries:
        _summary_table(s)


@app.command("config")
def config_cmd(json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON")) -> None:
    """Show the resolved configuration (defaults < config file < environment)."""
    cfg = get_config().as_dict()
    if json_out:
        print(json.dumps(cfg, indent=2, sort_keys=True))
        return
    t = Table(title="revsplit config", box=box.SIMPLE)
    t.add_column("key")
    t.add_column("value", justify="right")
    for k, v in cfg["limits"].items():
        t.add_row(f"limits.{k}", str(v))
    t.add_row("log_level", cfg["log_level"])
    t.add_row("metrics_enabled", str(cfg["metrics_enabled"]))
    console.print(t)


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
