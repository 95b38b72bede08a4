import json

from typer.testing import CliRunner

from revsplit.cli.main import app

runner = CliRunner()

SCENARIO = """
token:
  name: Dollar
  symbol: USD
  supply: 1000
  holder: treasury
splitter:
  name: Band
  symbol: BAND
  kind: pull
  members:
    - {owner: alice, weight: 1}
    - {owner: bob, weight: 1}
    - {owner: carol, weight: 2}
steps:
  - {op: transfer, from: treasury, to: patron, amount: 100}
  - {op: approve, from: patron, amount: 100}
  - {op: deposit, caller: alice, source: patron}
  - {op: register, caller: alice, expect_error: SPLIT_EMPTY}
  - {op: claim, caller: carol, id: 2}
  - {op: claim, caller: bob, id: 2, expect_error: SPLIT_UNAUTHORIZED}
"""


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version(monkeypatch):
    monkeypatch.setenv("REVSPLIT_GIT_DESCRIBE", "v-test")
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("revsplit ")
    assert result.stdout.strip().endswith("(v-test)")

    short = runner.invoke(app, ["-V"])
    assert short.exit_code == 0
    assert short.stdout.startswith("revsplit ")


def test_simulate(tmp_path):
    members = tmp_path / "members.yaml"
    members.write_text("alice: 1\nbob: 1\ncarol: 2\n")
    out = _json(runner.invoke(app, ["--log-level", "WARNING", "simulate", str(members), "101", "--json"]))
    assert [p["amount"] for p in out["payouts"]] == [25, 25, 50]
    assert out["dust"] == 1
    assert out["remainder"] == 0

    table = runner.invoke(app, ["simulate", str(members), "8"])
    assert table.exit_code == 0
    assert "dust=0" in table.stdout


def test_simulate_rejects_bad_members(tmp_path):
    members = tmp_path / "members.yaml"
    members.write_text("members: []\n")
    result = runner.invoke(app, ["simulate", str(members), "10"])
    assert result.exit_code == 1


def test_run_then_inspect(tmp_path):
    scenario = tmp_path / "band.yaml"
    scenario.write_text(SCENARIO)
    snap = tmp_path / "band.cbor"

    out = _json(runner.invoke(app, ["run", str(scenario), "--snapshot", str(snap), "--json"]))
    assert out["ok"] is True
    assert [s["ok"] for s in out["steps"]] == [True, True, True, False, True, False]
    assert out["splitter"]["total_deposited"] == 100
    assert out["splitter"]["total_claimed"] == 50
    assert "Claimed" in [e["name"] for e in out["events"]]

    inspected = _json(runner.invoke(app, ["inspect", str(snap), "--json"]))
    assert len(inspected) == 1
    assert [m["claimable"] for m in inspected[0]["members"]] == [25, 25, 0]

    human = runner.invoke(app, ["run", str(scenario)])
    assert human.exit_code == 0
    assert "Members" in human.stdout


def test_run_reports_unexpected_failure(tmp_path):
    scenario = tmp_path / "bad.yaml"
    scenario.write_text(SCENARIO.replace(", expect_error: SPLIT_EMPTY", ""))
    result = runner.invoke(app, ["run", str(scenario), "--json"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["ok"] is False


def test_config():
    out = _json(runner.invoke(app, ["config", "--json"]))
    assert out["limits"]["amount_bits"] == 224
    assert out["limits"]["max_members"] == 255


def test_inspect_address_must_be_a_splitter(tmp_path):
    scenario = tmp_path / "band.yaml"
    scenario.write_text(SCENARIO)
    snap = tmp_path / "band.json"
    out = _json(runner.invoke(app, ["run", str(scenario), "--snapshot", str(snap), "--json"]))

    one = _json(runner.invoke(app, ["inspect", str(snap), "--address", out["splitter"]["address"], "--json"]))
    assert [s["name"] for s in one] == ["Band"]

    result = runner.invoke(app, ["inspect", str(snap), "--address", out["splitter"]["registry"]])
    assert result.exit_code == 1
    assert "is not a splitter (found registry)" in result.output

    result = runner.invoke(app, ["inspect", str(snap), "--address", "0x" + "11" * 20])
    assert result.exit_code == 1
    assert "found nothing" in result.output
