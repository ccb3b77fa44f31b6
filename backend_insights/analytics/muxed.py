"""
Multiplexed account usage analytics.

Counts how often each M-address appears as payment source and destination,
ranks addresses by total activity and decodes each into its base account.
Results are rebuilt per query and never persisted.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from backend_insights.analytics.strkey import (
    MuxedAccountInfo,
    decode_muxed_address,
    is_muxed_address,
)
from backend_insights.core.validation import validate_top_n

AddressDecoder = Callable[[str], Optional[MuxedAccountInfo]]


@dataclass(frozen=True)
class MuxedAddressUsage:
    account_address: str
    base_account: str | None
    muxed_id: int | None
    count_as_source: int
    count_as_destination: int

    @property
    def total_payments(self) -> int:
        return self.count_as_source + self.count_as_destination

    def to_dict(self) -> dict:
        return {
            "account_address": self.account_address,
            "base_account": self.base_account,
            "muxed_id": self.muxed_id,
            "count_as_source": self.count_as_source,
            "count_as_destination": self.count_as_destination,
            "total_payments": self.total_payments,
        }


@dataclass(frozen=True)
class MuxedAnalytics:
    total_muxed_payments: int
    unique_muxed_addresses: int
    top_muxed_by_activity: list[MuxedAddressUsage] = field(default_factory=list)
    base_accounts_with_muxed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_muxed_payments": self.total_muxed_payments,
            "unique_muxed_addresses": self.unique_muxed_addresses,
            "top_muxed_by_activity": [u.to_dict() for u in self.top_muxed_by_activity],
            "base_accounts_with_muxed": list(self.base_accounts_with_muxed),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MuxedAnalytics:
        return cls(
            total_muxed_payments=data["total_muxed_payments"],
            unique_muxed_addresses=data["unique_muxed_addresses"],
            top_muxed_by_activity=[
                MuxedAddressUsage(
                    account_address=u["account_address"],
                    base_account=u["base_account"],
                    muxed_id=u["muxed_id"],
                    count_as_source=u["count_as_source"],
                    count_as_destination=u["count_as_destination"],
                )
                for u in data["top_muxed_by_activity"]
            ],
            base_accounts_with_muxed=list(data["base_accounts_with_muxed"]),
        )


class MuxedAddressAnalyzer:
    """Ranks multiplexed addresses by activity over (source, destination) pairs."""

    def __init__(self, decoder: AddressDecoder = decode_muxed_address) -> None:
        self._decode = decoder

    def analyze(self, pairs: Iterable[tuple[str, str]], top_n: int) -> MuxedAnalytics:
        """
        Tally, sort (total desc, address asc) and truncate to top_n.

        Addresses with the multiplexed shape that fail to decode still count,
        with base_account and muxed_id left as None.
        """
        top_n = validate_top_n(top_n)
        as_source: Counter[str] = Counter()
        as_destination: Counter[str] = Counter()
        touching = 0
        for source, destination in pairs:
            src_muxed = is_muxed_address(source)
            dst_muxed = is_muxed_address(destination)
            if src_muxed:
                as_source[source] += 1
            if dst_muxed:
                as_destination[destination] += 1
            if src_muxed or dst_muxed:
                touching += 1

        addresses = set(as_source) | set(as_destination)
        decoded = {address: self._decode(address) for address in addresses}
        usages = [
            MuxedAddressUsage(
                account_address=address,
                base_account=info.base_account if info is not None else None,
                muxed_id=info.muxed_id if info is not None else None,
                count_as_source=as_source[address],
                count_as_destination=as_destination[address],
            )
            for address, info in decoded.items()
        ]
        usages.sort(key=lambda u: (-u.total_payments, u.account_address))
        base_accounts = sorted({info.base_account for info in decoded.values() if info is not None})
        return MuxedAnalytics(
            total_muxed_payments=touching,
            unique_muxed_addresses=len(addresses),
            top_muxed_by_activity=usages[:top_n],
            base_accounts_with_muxed=base_accounts,
        )
