import pytest

from revsplit.config import Limits
from revsplit.errors import (AmountOverflowError, AuthorizationError,
                             EmptyOperationError, TransferError,
                             UnknownMembershipError,
                             UnsupportedOperationError)
from revsplit.splitter import Splitter

from .conftest import ALICE, BOB, CAROL, DEPLOYER, MEMBERS, OUTSIDER, TREASURY, deploy_native


def _fund_by_deposit(token, splitter, amount, caller=ALICE):
    token.transfer(TREASURY, OUTSIDER, amount)
    token.approve(OUTSIDER, splitter.address, amount)
    return splitter.deposit(caller, OUTSIDER)


def test_deposit_then_everyone_claims(host, token, pull):
    assert _fund_by_deposit(token, pull, 100) == 100
    assert pull.total_deposited() == 100
    assert [pull.claimable_tokens(i) for i in range(3)] == [25, 25, 50]

    ev = host.events.named(b"Deposited", address=pull.address)[-1]
    assert (ev.get("amount"), ev.get("total")) == (100, 100)

    assert pull.claim(ALICE, 0) == 25
    assert pull.claim(BOB, 1) == 25
    assert pull.claim(CAROL, 2) == 50

    assert pull.total_claimed() == 100
    assert token.balance_of(pull.address) == 0
    assert token.balance_of(CAROL) == 50
    assert [pull.claimed_of(i) for i in range(3)] == [25, 25, 50]


def test_register_right_after_deposit_is_empty(token, pull):
    _fund_by_deposit(token, pull, 100)
    with pytest.raises(EmptyOperationError):
        pull.register(ALICE)


def test_deposit_from_empty_source(pull):
    with pytest.raises(EmptyOperationError):
        pull.deposit(ALICE, OUTSIDER)


def test_deposit_without_allowance_is_a_transfer_error(token, pull):
    with pytest.raises(TransferError):
        pull.deposit(ALICE, TREASURY)
    assert pull.total_deposited() == 0
    assert token.balance_of(TREASURY) == 1_000_000


def test_direct_transfer_then_register_keeps_dust(token, pull):
    token.transfer(TREASURY, pull.address, 7)
    assert pull.unregistered_tokens() == 7
    assert pull.register(BOB) == 7
    assert pull.unregistered_tokens() == 0
    assert [pull.claimable_tokens(i) for i in range(3)] == [1, 1, 3]
    pull.claim_many(ALICE, [0])
    pull.claim(BOB, 1)
    pull.claim(CAROL, 2)
    assert token.balance_of(pull.address) == 2

    # the dust is picked up once more funds arrive
    token.transfer(TREASURY, pull.address, 1)
    assert pull.register(ALICE) == 1
    assert pull.total_deposited() == 8
    assert [pull.claimable_tokens(i) for i in range(3)] == [1, 1, 1]


def test_second_claim_is_a_silent_noop(host, token, pull):
    _fund_by_deposit(token, pull, 100)
    pull.claim(ALICE, 0)
    before = len(host.events.named(b"Claimed"))
    assert pull.claim(ALICE, 0) == 0
    assert len(host.events.named(b"Claimed")) == before
    assert token.balance_of(ALICE) == 25


def test_authorization(token, pull):
    _fund_by_deposit(token, pull, 100)
    with pytest.raises(AuthorizationError):
        pull.register(OUTSIDER)
    with pytest.raises(AuthorizationError):
        pull.deposit(OUTSIDER, TREASURY)
    with pytest.raises(AuthorizationError):
        pull.claim(OUTSIDER, 0)
    with pytest.raises(AuthorizationError) as ei:
        pull.claim(BOB, 2)
    assert ei.value.details["membership_id"] == 2
    with pytest.raises(UnknownMembershipError):
        pull.claim(ALICE, 9)


def test_claim_follows_current_owner(token, pull):
    _fund_by_deposit(token, pull, 100)
    pull.registry().transfer(DEPLOYER, 0, OUTSIDER)
    with pytest.raises(AuthorizationError):
        pull.claim(ALICE, 0)
    assert pull.claim(OUTSIDER, 0) == 25
    assert token.balance_of(OUTSIDER) == 25


def test_claim_many_is_atomic(token, pull):
    _fund_by_deposit(token, pull, 100)
    with pytest.raises(EmptyOperationError):
        pull.claim_many(ALICE, [])
    with pytest.raises(AuthorizationError):
        pull.claim_many(ALICE, [0, 2])
    assert pull.claimed_of(0) == 0

    pull.registry().transfer(DEPLOYER, 1, ALICE)
    assert pull.claim_many(ALICE, [1, 0, 1]) == 50
    assert pull.total_claimed() == 50


def test_refused_claim_changes_nothing(host, token, pull):
    _fund_by_deposit(token, pull, 100)
    token.freeze(TREASURY, ALICE)
    mark = host.events.mark()
    with pytest.raises(TransferError):
        pull.claim(ALICE, 0)
    assert pull.claimed_of(0) == 0
    assert pull.total_claimed() == 0
    assert host.events.since(mark) == []


def test_deposit_over_cap_fails(host, token):
    small = Limits(amount_bits=8, weight_bits=8, id_bits=8, accumulator_bits=256)
    sp = Splitter.deploy(host, DEPLOYER, name="Tiny", symbol="T", members=MEMBERS, asset=token, limits=small)
    token.approve(TREASURY, sp.address, 1_000_000)
    with pytest.raises(AmountOverflowError):
        sp.deposit(ALICE, TREASURY)

    token.transfer(TREASURY, sp.address, 200)
    assert sp.register(ALICE) == 200
    token.transfer(TREASURY, sp.address, 100)
    with pytest.raises(AmountOverflowError):
        sp.register(ALICE)
    assert sp.total_deposited() == 200


def test_push_splitter_has_no_ledger(push):
    with pytest.raises(UnsupportedOperationError):
        push.register(ALICE)
    with pytest.raises(UnsupportedOperationError):
        push.claim(ALICE, 0)
    with pytest.raises(UnsupportedOperationError):
        push.claimable_tokens(0)


def test_native_pull_ledger(host):
    sp = deploy_native(host)
    with pytest.raises(UnsupportedOperationError):
        sp.deposit(ALICE, TREASURY)
    host.mint_native(TREASURY, 40)
    host.send_native(TREASURY, sp.address, 40)
    assert sp.register(CAROL) == 40
    assert sp.claim(CAROL, 2) == 20
    assert host.balance_of(CAROL) == 20

    host.refuse_payments(ALICE)
    with pytest.raises(TransferError):
        sp.claim(ALICE, 0)
    assert sp.claimable_tokens(0) == 10


def test_preview_lists_claimables(token, pull):
    _fund_by_deposit(token, pull, 100)
    pull.claim(ALICE, 0)
    assert [(p.membership_id, p.owner, p.amount) for p in pull.preview()] == [
        (0, ALICE, 0),
        (1, BOB, 25),
        (2, CAROL, 50),
    ]
