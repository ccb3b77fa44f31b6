"""
Tests for MuxedAddressAnalyzer: tallies, ranking, top-N truncation and
undecodable addresses.
"""

from __future__ import annotations

import pytest

from backend_insights.analytics import MuxedAddressAnalyzer, MuxedAnalytics
from backend_insights.core.exceptions import ValidationFailure


@pytest.fixture
def analyzer():
    return MuxedAddressAnalyzer()


def test_source_and_destination_counts_rank_first(analyzer, muxed, account):
    busy = muxed(5, 1)
    quiet = muxed(6, 2)
    g1, g2 = account(1), account(2)
    pairs = [
        (busy, g1),
        (busy, g2),
        (busy, g1),
        (g1, busy),
        (g2, busy),
        (quiet, g1),
        (g1, g2),
    ]
    result = analyzer.analyze(pairs, top_n=1)
    assert len(result.top_muxed_by_activity) == 1
    top = result.top_muxed_by_activity[0]
    assert top.account_address == busy
    assert top.count_as_source == 3
    assert top.count_as_destination == 2
    assert top.total_payments == 5
    assert top.base_account == account(5)
    assert top.muxed_id == 1
    assert result.total_muxed_payments == 6
    assert result.unique_muxed_addresses == 2
    assert result.base_accounts_with_muxed == sorted([account(5), account(6)])


def test_payment_between_two_muxed_counts_once(analyzer, muxed):
    a, b = muxed(5, 1), muxed(5, 2)
    result = analyzer.analyze([(a, b)], top_n=10)
    assert result.total_muxed_payments == 1
    assert result.unique_muxed_addresses == 2
    assert result.base_accounts_with_muxed == [result.top_muxed_by_activity[0].base_account]


def test_ties_broken_by_address(analyzer, muxed, account):
    addresses = sorted([muxed(7, 1), muxed(8, 1), muxed(9, 1)])
    pairs = [(address, account(1)) for address in reversed(addresses)]
    result = analyzer.analyze(pairs, top_n=3)
    assert [u.account_address for u in result.top_muxed_by_activity] == addresses


def test_undecodable_muxed_shape_still_counted(analyzer, account):
    bogus = "M" + "A" * 68
    result = analyzer.analyze([(bogus, account(1))], top_n=5)
    usage = result.top_muxed_by_activity[0]
    assert usage.account_address == bogus
    assert usage.base_account is None
    assert usage.muxed_id is None
    assert result.base_accounts_with_muxed == []


def test_no_muxed_activity(analyzer, account):
    result = analyzer.analyze([(account(1), account(2))], top_n=5)
    assert result == MuxedAnalytics(0, 0, [], [])


def test_custom_decoder_is_used(muxed, account):
    calls = []

    def decoder(address):
        calls.append(address)
        return None

    result = MuxedAddressAnalyzer(decoder).analyze([(muxed(5, 1), account(1))], top_n=1)
    assert calls == [muxed(5, 1)]
    assert result.top_muxed_by_activity[0].base_account is None


@pytest.mark.parametrize("top_n", [0, 1001, "5", 2.0])
def test_invalid_top_n(analyzer, top_n):
    with pytest.raises(ValidationFailure):
        analyzer.analyze([], top_n=top_n)


def test_to_dict_from_dict(analyzer, muxed, account):
    result = analyzer.analyze([(muxed(5, 3), account(1))], top_n=5)
    data = result.to_dict()
    assert data["top_muxed_by_activity"][0]["total_payments"] == 1
    assert MuxedAnalytics.from_dict(data) == result
