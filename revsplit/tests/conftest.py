import os

import pytest

from revsplit.assets.token import FungibleToken
from revsplit.config import get_config
from revsplit.runtime.host import Host
from revsplit.splitter import Splitter
from revsplit.types.address import label_address

ALICE = label_address("alice")
BOB = label_address("bob")
CAROL = label_address("carol")
TREASURY = label_address("treasury")
DEPLOYER = label_address("deployer")
OUTSIDER = label_address("outsider")

MEMBERS = [(ALICE, 1), (BOB, 1), (CAROL, 2)]


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    """Every test sees default configuration, whatever the caller's shell exports."""
    for key in list(os.environ):
        if key.startswith("REVSPLIT_"):
            monkeypatch.delenv(key, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def host():
    return Host()


@pytest.fixture
def token(host):
    return FungibleToken.deploy(
        host, DEPLOYER, name="Dollar", symbol="USD", decimals=6, supply=1_000_000, owner=TREASURY
    )


@pytest.fixture
def pull(host, token):
    return Splitter.deploy(host, DEPLOYER, name="Band", symbol="BAND", members=MEMBERS, asset=token, kind="pull")


@pytest.fixture
def push(host, token):
    return Splitter.deploy(host, DEPLOYER, name="Crew", symbol="CREW", members=MEMBERS, asset=token, kind="push")


def deploy_native(host, kind="pull", **kw):
    return Splitter.deploy(host, DEPLOYER, name="Native", symbol="NAT", members=MEMBERS, kind=kind, **kw)
