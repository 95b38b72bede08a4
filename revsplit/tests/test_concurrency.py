import threading

import pytest

from revsplit.errors import TransferError
from revsplit.ledger import K_CLAIMED

from .conftest import ALICE, CAROL, OUTSIDER, TREASURY

WAIT = 5.0


def _fund(token, splitter, amount):
    token.transfer(TREASURY, splitter.address, amount)
    splitter.register(ALICE)


def _stalled_transfer(monkeypatch, token):
    """Make the next token transfer block until released, then refuse."""
    entered = threading.Event()
    release = threading.Event()

    def transfer(caller, to, amount):
        entered.set()
        release.wait(WAIT)
        return False

    monkeypatch.setattr(token, "transfer", transfer)
    return entered, release


def _claim_in_background(pull, errors):
    def run():
        try:
            pull.claim(CAROL, 2)
        except TransferError as e:
            errors.append(e)

    t = threading.Thread(target=run)
    t.start()
    return t


def test_reader_waits_for_in_flight_call(monkeypatch, token, pull):
    _fund(token, pull, 100)
    entered, release = _stalled_transfer(monkeypatch, token)

    errors = []
    claimer = _claim_in_background(pull, errors)
    assert entered.wait(WAIT)

    seen = {}
    reader = threading.Thread(target=lambda: seen.update(
        claimed=pull.total_claimed(),
        claimable=pull.claimable_tokens(2),
        summary=pull.summary(),
    ))
    reader.start()
    reader.join(0.2)
    assert reader.is_alive()

    release.set()
    claimer.join(WAIT)
    reader.join(WAIT)

    assert len(errors) == 1
    assert seen["claimed"] == 0
    assert seen["claimable"] == 50
    assert seen["summary"]["total_claimed"] == 0
    assert pull.total_claimed() == 0


def test_out_of_call_write_survives_a_reverted_call(monkeypatch, host, token, pull):
    _fund(token, pull, 100)
    entered, release = _stalled_transfer(monkeypatch, token)

    errors = []
    claimer = _claim_in_background(pull, errors)
    assert entered.wait(WAIT)

    minter = threading.Thread(target=host.mint_native, args=(OUTSIDER, 7))
    minter.start()
    release.set()
    claimer.join(WAIT)
    minter.join(WAIT)

    assert len(errors) == 1
    assert host.balance_of(OUTSIDER) == 7


def test_reader_on_calling_thread_sees_pending_writes(host, token, pull):
    _fund(token, pull, 100)
    with pytest.raises(RuntimeError):
        with host.call(ALICE, pull.address, op="test.inline"):
            pull._set_u256(K_CLAIMED, 40)
            with host.view():
                assert pull.total_claimed() == 40
            raise RuntimeError("abort")
    assert pull.total_claimed() == 0


def test_new_address_is_unique_across_threads(host):
    out = []
    lock = threading.Lock()

    def worker(n):
        mine = [host.new_address(ALICE, b"x") for _ in range(50)]
        with lock:
            out.extend(mine)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(WAIT)

    assert len(set(out)) == 400
    assert host.nonce == 400
