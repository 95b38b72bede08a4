import pytest

from revsplit.errors import SetupError
from revsplit.factory import SplitterFactory

from .conftest import ALICE, BOB, DEPLOYER, MEMBERS, OUTSIDER, TREASURY


@pytest.fixture
def factory(host):
    return SplitterFactory.deploy(host, DEPLOYER)


def test_create_records_instances(host, factory, token):
    a = factory.create(ALICE, "pull", "A", "A", MEMBERS, token)
    b = factory.create(BOB, "push", "B", "B", MEMBERS, token)
    assert a.address != b.address
    assert factory.instances() == [a.address, b.address]
    assert a.registry().admin() == ALICE
    assert b.kind() == "push"

    created = host.events.named(b"SplitterCreated", address=factory.address)
    assert [e.get("index") for e in created] == [0, 1]
    assert created[1].get("creator") == BOB
    assert created[1].get("initialized") is True


def test_clone_then_initialize(host, factory, token):
    clone = factory.clone(OUTSIDER, "push")
    assert not clone.is_initialized()
    assert host.events.named(b"SplitterCreated")[-1].get("initialized") is False

    clone.initialize(OUTSIDER, name="C", symbol="C", members=MEMBERS, asset=token, kind="push")
    token.transfer(TREASURY, clone.address, 4)
    assert [p.amount for p in clone.distribute(ALICE)] == [1, 1, 2]


def test_failed_create_leaves_no_instance(factory):
    with pytest.raises(SetupError):
        factory.create(ALICE, "pull", "A", "A", [], None)
    with pytest.raises(SetupError):
        factory.clone(ALICE, "stream")
    assert factory.instances() == []
