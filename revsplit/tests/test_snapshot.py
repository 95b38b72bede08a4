import pytest

from revsplit.errors import StateError
from revsplit.state import snapshot

from .conftest import ALICE, CAROL, TREASURY


@pytest.fixture
def busy(host, token, pull):
    token.transfer(TREASURY, pull.address, 100)
    pull.register(ALICE)
    pull.claim(CAROL, 2)
    host.mint_native(ALICE, 5)
    return pull


@pytest.mark.parametrize("fmt", ["cbor", "json"])
def test_restore_reproduces_totals(host, busy, fmt):
    blob = snapshot.dumps(host, fmt=fmt)
    restored = snapshot.loads(blob)

    sp = restored.contract_at(busy.address)
    assert sp is not busy
    assert sp.summary() == busy.summary()
    assert [sp.claimable_tokens(i) for i in range(3)] == [25, 25, 0]
    assert restored.balance_of(ALICE) == 5
    assert restored.contracts() == host.contracts()


def test_restored_host_keeps_working(host, busy, tmp_path):
    path = snapshot.save(host, tmp_path / "state.cbor")
    restored = snapshot.load(path)
    sp = restored.contract_at(busy.address)
    assert sp.claim(ALICE, 0) == 25
    token = sp.asset()
    assert token.balance_of(ALICE) == 25
    # the original host is untouched
    assert busy.claimable_tokens(0) == 25


def test_snapshot_inside_a_call_is_refused(host, busy):
    with pytest.raises(StateError):
        with host.call(ALICE, busy.address, op="test.snapshot"):
            snapshot.snapshot(host)


def test_bad_document(host):
    with pytest.raises(StateError):
        snapshot.loads(b'{"version": 99}')
