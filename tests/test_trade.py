"""Tests for the per-trade lifecycle tracker."""

from __future__ import annotations

import pytest

from threshold_lhe.core.protocol import ThresholdPKE
from threshold_lhe.core.trade import Trade, TradeStatus
from threshold_lhe.errors import (
    DecryptionFailure,
    DuplicateIndex,
    InsufficientShares,
    InvalidTransition,
    ParameterMismatch,
    UnknownIndex,
)

MESSAGE = b"signal: home team -3.5"


@pytest.fixture
def ctx():
    return ThresholdPKE.gen_context(3, 2, [1, 2, 3])


@pytest.fixture
def committee(node_keys):
    return node_keys[:3]


@pytest.fixture
def sealed_trade(ctx, committee, buyer) -> Trade:
    trade = Trade(ctx=ctx)
    trade.register_keys(committee, buyer)
    trade.seal(MESSAGE, b"trade-1")
    return trade


def _contribute(trade: Trade, committee, buyer, index: int) -> int:
    node_ct = trade.node_ciphertext(index)
    re_enc = ThresholdPKE.re_encrypt(trade.ctx, node_ct, committee[index - 1], buyer)
    return trade.submit_re_encryption(re_enc)


class TestTradeLifecycle:
    def test_happy_path(self, sealed_trade, committee, buyer) -> None:
        trade = sealed_trade
        assert trade.status == TradeStatus.ENCRYPTED
        assert _contribute(trade, committee, buyer, 3) == 1
        assert not trade.ready
        assert _contribute(trade, committee, buyer, 1) == 2
        assert trade.ready
        assert trade.status == TradeStatus.PARTIALLY_RE_ENCRYPTED

        trade.combine()
        assert trade.status == TradeStatus.COMBINED
        assert trade.open(buyer, b"trade-1") == MESSAGE
        assert trade.status == TradeStatus.DECRYPTED
        assert trade.completed_at is not None
        assert trade.completed_at >= trade.created_at

    def test_chosen_subset(self, sealed_trade, committee, buyer) -> None:
        for i in (1, 2, 3):
            _contribute(sealed_trade, committee, buyer, i)
        sealed_trade.combine([2, 3])
        assert sealed_trade.open(buyer, b"trade-1") == MESSAGE

    def test_buyer_set_after_sealing(self, ctx, committee, buyer) -> None:
        trade = Trade(ctx=ctx)
        trade.register_keys(committee)
        trade.seal(MESSAGE)
        trade.set_buyer(buyer)
        _contribute(trade, committee, buyer, 1)
        _contribute(trade, committee, buyer, 2)
        trade.combine()
        assert trade.open(buyer) == MESSAGE


class TestTradeErrors:
    def test_seal_before_keys(self, ctx) -> None:
        with pytest.raises(InvalidTransition):
            Trade(ctx=ctx).seal(MESSAGE)

    def test_wrong_key_count(self, ctx, committee) -> None:
        with pytest.raises(ParameterMismatch):
            Trade(ctx=ctx).register_keys(committee[:2])

    def test_re_encryption_without_buyer(self, ctx, committee, buyer) -> None:
        trade = Trade(ctx=ctx)
        trade.register_keys(committee)
        trade.seal(MESSAGE)
        re_enc = ThresholdPKE.re_encrypt(ctx, trade.node_ciphertext(1), committee[0], buyer)
        with pytest.raises(InvalidTransition, match="buyer"):
            trade.submit_re_encryption(re_enc)

    def test_duplicate_submission(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 1)
        with pytest.raises(DuplicateIndex):
            _contribute(sealed_trade, committee, buyer, 1)

    def test_wrong_target(self, sealed_trade, committee, other_buyer) -> None:
        re_enc = ThresholdPKE.re_encrypt(sealed_trade.ctx, sealed_trade.node_ciphertext(1), committee[0], other_buyer)
        with pytest.raises(ParameterMismatch):
            sealed_trade.submit_re_encryption(re_enc)

    def test_unknown_node(self, sealed_trade) -> None:
        with pytest.raises(UnknownIndex):
            sealed_trade.node_ciphertext(8)

    def test_combine_before_threshold(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 2)
        with pytest.raises(InsufficientShares):
            sealed_trade.combine()

    def test_combine_with_uncollected_index(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 1)
        _contribute(sealed_trade, committee, buyer, 2)
        with pytest.raises(InsufficientShares) as exc_info:
            sealed_trade.combine([1, 3])
        assert exc_info.value.required == 2
        assert exc_info.value.received == 1
        assert sealed_trade.status == TradeStatus.PARTIALLY_RE_ENCRYPTED

    def test_combine_with_index_outside_context(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 1)
        _contribute(sealed_trade, committee, buyer, 2)
        with pytest.raises(UnknownIndex) as exc_info:
            sealed_trade.combine([1, 9])
        assert exc_info.value.index == 9

    def test_no_submissions_after_combine(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 1)
        _contribute(sealed_trade, committee, buyer, 2)
        sealed_trade.combine()
        with pytest.raises(InvalidTransition):
            _contribute(sealed_trade, committee, buyer, 3)

    def test_failed_open_marks_trade_failed(self, sealed_trade, committee, buyer) -> None:
        _contribute(sealed_trade, committee, buyer, 1)
        _contribute(sealed_trade, committee, buyer, 2)
        sealed_trade.combine()
        with pytest.raises(DecryptionFailure):
            sealed_trade.open(buyer, b"trade-2")
        assert sealed_trade.status == TradeStatus.FAILED
        with pytest.raises(InvalidTransition):
            sealed_trade.open(buyer, b"trade-1")
