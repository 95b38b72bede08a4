import pytest

from revsplit.assets.token import FungibleToken
from revsplit.config import Limits
from revsplit.errors import (AmountOverflowError, AuthorizationError,
                             EmptyOperationError, TransferError,
                             UnsupportedOperationError)
from revsplit.splitter import Splitter

from .conftest import ALICE, BOB, CAROL, DEPLOYER, MEMBERS, OUTSIDER, TREASURY, deploy_native


def _amounts(payouts):
    return [p.amount for p in payouts]


def test_self_funded_distribution(host, token, push):
    token.transfer(TREASURY, push.address, 101)
    payouts = push.distribute(ALICE)
    assert _amounts(payouts) == [25, 25, 50]
    assert [p.owner for p in payouts] == [ALICE, BOB, CAROL]
    assert [token.balance_of(a) for a in (ALICE, BOB, CAROL)] == [25, 25, 50]
    assert token.balance_of(push.address) == 1

    ev = host.events.named(b"Distributed", address=push.address)[-1]
    assert ev.get("amount") == 101
    assert ev.get("paid") == 100
    assert ev.get("remainder") == 0
    assert ev.get("asset") == token.address


def test_external_source_needs_allowance(token, push):
    with pytest.raises(TransferError):
        push.distribute(BOB, source=TREASURY, amount=100)
    token.approve(TREASURY, push.address, 100)
    assert _amounts(push.distribute(BOB, source=TREASURY, amount=100)) == [25, 25, 50]
    assert token.balance_of(TREASURY) == 1_000_000 - 100
    assert token.allowance(TREASURY, push.address) == 0


def test_nothing_to_distribute(push):
    with pytest.raises(EmptyOperationError):
        push.distribute(ALICE)
    with pytest.raises(EmptyOperationError):
        push.distribute(ALICE, amount=0)


def test_non_member_cannot_distribute(token, push):
    token.transfer(TREASURY, push.address, 10)
    with pytest.raises(AuthorizationError):
        push.distribute(OUTSIDER)


def test_amount_above_cap_is_clamped(host, token):
    small = Limits(amount_bits=8, weight_bits=8, id_bits=8, accumulator_bits=256)
    sp = Splitter.deploy(host, DEPLOYER, name="Tiny", symbol="T", members=MEMBERS,
                         asset=token, kind="push", limits=small)
    token.transfer(TREASURY, sp.address, 300)

    assert _amounts(sp.distribute(ALICE)) == [63, 63, 127]
    ev = host.events.named(b"Distributed", address=sp.address)[-1]
    assert (ev.get("amount"), ev.get("paid"), ev.get("remainder")) == (255, 253, 45)
    assert token.balance_of(sp.address) == 47

    assert _amounts(sp.distribute(ALICE)) == [11, 11, 23]
    assert token.balance_of(sp.address) == 2

    with pytest.raises(AmountOverflowError):
        sp.distribute(ALICE, amount=256)


def test_failed_payout_rolls_back_earlier_payouts(host, token, push):
    token.transfer(TREASURY, push.address, 100)
    token.freeze(TREASURY, BOB)
    mark = host.events.mark()
    with pytest.raises(TransferError) as ei:
        push.distribute(CAROL)
    assert ei.value.details["to"] == "0x" + BOB.hex()
    assert token.balance_of(ALICE) == 0
    assert token.balance_of(push.address) == 100
    assert host.events.since(mark) == []


def test_batch_distribution_is_atomic(host, token, push):
    other = FungibleToken.deploy(host, DEPLOYER, name="Euro", symbol="EUR", supply=1000, owner=TREASURY)
    token.transfer(TREASURY, push.address, 40)
    other.transfer(TREASURY, push.address, 8)

    with pytest.raises(EmptyOperationError):
        push.distribute_batch(ALICE, [])

    other.freeze(TREASURY, CAROL)
    with pytest.raises(TransferError):
        push.distribute_batch(ALICE, [token, other])
    assert token.balance_of(ALICE) == 0

    other.freeze(TREASURY, CAROL, False)
    batches = push.distribute_batch(ALICE, [token, other.address])
    assert [_amounts(b) for b in batches] == [[10, 10, 20], [2, 2, 4]]
    assert other.balance_of(CAROL) == 4


def test_native_distribution(host):
    sp = deploy_native(host, kind="push")
    host.mint_native(sp.address, 40)

    host.refuse_payments(CAROL)
    with pytest.raises(TransferError):
        sp.distribute_native(BOB)
    assert host.balance_of(sp.address) == 40
    assert host.balance_of(ALICE) == 0

    host.refuse_payments(CAROL, False)
    assert _amounts(sp.simulate_native()) == [10, 10, 20]
    assert _amounts(sp.distribute_native(BOB)) == [10, 10, 20]
    assert host.balance_of(CAROL) == 20
    assert host.balance_of(sp.address) == 0


def test_simulate_matches_distribute_without_moving_funds(token, push):
    token.transfer(TREASURY, push.address, 99)
    preview = push.simulate()
    assert _amounts(preview) == [24, 24, 49]
    assert token.balance_of(push.address) == 99
    assert _amounts(push.simulate(amount=8)) == [2, 2, 4]
    assert push.preview() == preview
    assert push.distribute(ALICE) == preview


def test_pull_splitter_cannot_push(pull):
    with pytest.raises(UnsupportedOperationError):
        pull.distribute(ALICE)
    with pytest.raises(UnsupportedOperationError):
        pull.simulate()
