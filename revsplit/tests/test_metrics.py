import pytest

from revsplit import metrics
from revsplit.errors import AuthorizationError

from .conftest import ALICE, CAROL, OUTSIDER, TREASURY


def _value(name, labels=None):
    return metrics.get_registry().get_sample_value(name, labels or {}) or 0.0


def test_ops_are_counted_by_outcome(token, pull):
    ok = {"op": "splitter.claim", "result": "ok"}
    denied = {"op": "splitter.claim", "result": "SPLIT_UNAUTHORIZED"}
    before_ok = _value("revsplit_ops_total", ok)
    before_denied = _value("revsplit_ops_total", denied)
    before_claimed = _value("revsplit_claimed_amount_total")

    token.transfer(TREASURY, pull.address, 100)
    pull.register(ALICE)
    pull.claim(CAROL, 2)
    with pytest.raises(AuthorizationError):
        pull.claim(OUTSIDER, 0)

    assert _value("revsplit_ops_total", ok) == before_ok + 1
    assert _value("revsplit_ops_total", denied) == before_denied + 1
    assert _value("revsplit_claimed_amount_total") == before_claimed + 50


def test_metrics_can_be_disabled(monkeypatch, token, pull):
    from revsplit.config import get_config

    labels = {"op": "splitter.register", "result": "ok"}
    before = _value("revsplit_ops_total", labels)
    monkeypatch.setenv("REVSPLIT_METRICS", "0")
    get_config.cache_clear()
    token.transfer(TREASURY, pull.address, 10)
    pull.register(ALICE)
    assert _value("revsplit_ops_total", labels) == before


def test_exposition_text():
    metrics.observe_op("test.op")
    assert b"revsplit_ops_total" in metrics.generate_latest_text()
