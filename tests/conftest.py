"""
Pytest fixtures for backend_insights tests: temporary SQLite database,
in-memory cache, fake remote payment source and address/payment factories.
"""

from __future__ import annotations

import pytest
from stellar_sdk import MuxedAccount, StrKey

from backend_insights.cache import CacheAside, MemoryCacheBackend
from backend_insights.database import PaymentRecord, get_database

# 2024-01-01T00:00:00Z, hour aligned
BASE_TS = 1_704_067_200
USDC_ISSUER_KEY = bytes(range(32))


class FakePaymentSource:
    """
    Remote source over an in-memory list; positions are list offsets as strings.

    fetch_since("0") returns the first page_size records and position str(n).
    """

    def __init__(self, records: list[PaymentRecord] | None = None, page_size: int = 100) -> None:
        self.records = list(records or [])
        self.page_size = page_size
        self.calls: list[str] = []
        self.error: Exception | None = None

    def fetch_since(self, position: str) -> tuple[list[PaymentRecord], str]:
        self.calls.append(position)
        if self.error is not None:
            raise self.error
        offset = int(position)
        page = self.records[offset : offset + self.page_size]
        return page, str(offset + len(page))


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database with schema in a temp directory."""
    return get_database(tmp_path / "insights.db")


@pytest.fixture
def memory_backend():
    return MemoryCacheBackend()


@pytest.fixture
def cache(memory_backend):
    return CacheAside(memory_backend, default_ttl=60)


@pytest.fixture
def fake_source():
    return FakePaymentSource()


@pytest.fixture
def account():
    """account(n) -> deterministic G-address for seed byte n."""

    def _account(n: int) -> str:
        return StrKey.encode_ed25519_public_key(bytes([n]) * 32)

    return _account


@pytest.fixture
def muxed(account):
    """muxed(n, muxed_id) -> M-address over account(n)."""

    def _muxed(n: int, muxed_id: int) -> str:
        return MuxedAccount(account(n), muxed_id).account_muxed

    return _muxed


@pytest.fixture
def usdc_issuer():
    return StrKey.encode_ed25519_public_key(USDC_ISSUER_KEY)


@pytest.fixture
def make_payment(account):
    """make_payment(id, created_at=..., **overrides) -> PaymentRecord (native XLM by default)."""

    def _make(payment_id: str, created_at: int = BASE_TS, **overrides) -> PaymentRecord:
        fields = dict(
            id=payment_id,
            tx_hash=f"tx-{payment_id}",
            source_account=account(1),
            destination_account=account(2),
            asset_type="native",
            asset_code=None,
            asset_issuer=None,
            amount=10.0,
            created_at=created_at,
        )
        fields.update(overrides)
        return PaymentRecord(**fields)

    return _make
