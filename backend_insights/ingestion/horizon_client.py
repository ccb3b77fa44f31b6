"""
Horizon payments client: GET /payments in ascending cursor order.

Maps payment and path payment operations into PaymentRecord. Other operation
types (create_account, account_merge) are skipped but still move the returned
position forward, so a page of skipped operations is never re-fetched.
Muxed sender/receiver addresses (from_muxed / to_muxed) are preferred over the
base G-address so multiplexed usage survives ingestion.
Operation records carry no settlement timing, so settlement_time_ms is left
None; avg_settlement is populated only by sources that report it.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import httpx

from backend_insights.core.exceptions import RemoteFetchFailure
from backend_insights.database import PaymentRecord
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

PAYMENT_OPERATION_TYPES = frozenset(
    {"payment", "path_payment_strict_send", "path_payment_strict_receive"}
)
PATH_PAYMENT_TYPES = frozenset({"path_payment_strict_send", "path_payment_strict_receive"})
MAX_PAGE_LIMIT = 200
DEFAULT_TIMEOUT_SEC = 15.0


def _parse_created_at(value: Any) -> int:
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid created_at: {value!r}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def parse_payment(op: dict[str, Any]) -> PaymentRecord | None:
    """
    Convert one Horizon operation into a PaymentRecord, or None for non-payment types.

    Raises KeyError/ValueError on a payment operation with missing or malformed fields.
    """
    op_type = op.get("type")
    if op_type not in PAYMENT_OPERATION_TYPES:
        return None
    source_asset: dict[str, Any] = {}
    if op_type in PATH_PAYMENT_TYPES:
        source_asset = {
            "source_asset_type": op.get("source_asset_type"),
            "source_asset_code": op.get("source_asset_code"),
            "source_asset_issuer": op.get("source_asset_issuer"),
        }
    return PaymentRecord(
        id=str(op["id"]),
        tx_hash=str(op["transaction_hash"]),
        source_account=op.get("from_muxed") or op["from"],
        destination_account=op.get("to_muxed") or op["to"],
        asset_type=op["asset_type"],
        asset_code=op.get("asset_code"),
        asset_issuer=op.get("asset_issuer"),
        amount=float(op["amount"]),
        created_at=_parse_created_at(op.get("created_at")),
        successful=bool(op.get("transaction_successful", True)),
        **source_asset,
    )


class HorizonPaymentsClient:
    """Synchronous httpx client; one request per fetch_since call."""

    def __init__(
        self,
        base_url: str,
        *,
        limit: int = MAX_PAGE_LIMIT,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._limit = max(1, min(MAX_PAGE_LIMIT, int(limit)))
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HorizonPaymentsClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def fetch_since(self, position: str) -> tuple[list[PaymentRecord], str]:
        """
        Fetch one page of operations after position.

        Returns (payments, next_position). next_position is the paging_token of the
        last operation in the page, or position itself when the page is empty.

        Raises:
            RemoteFetchFailure: transport error, non-2xx status or malformed body.
        """
        url = f"{self._base_url}/payments"
        params = {"cursor": position, "order": "asc", "limit": self._limit}
        try:
            resp = self._client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as error:
            raise RemoteFetchFailure(f"horizon request failed: {error}") from error
        except json.JSONDecodeError as error:
            raise RemoteFetchFailure(f"horizon returned invalid JSON: {error}") from error

        try:
            operations = data["_embedded"]["records"]
            if not isinstance(operations, list):
                raise TypeError("records is not a list")
            payments: list[PaymentRecord] = []
            next_position = position
            for op in operations:
                record = parse_payment(op)
                if record is not None:
                    payments.append(record)
                next_position = str(op["paging_token"])
        except (KeyError, TypeError, ValueError) as error:
            raise RemoteFetchFailure(f"malformed horizon page: {error}") from error

        logger.debug(
            "horizon_page_fetched",
            cursor=position,
            operations=len(operations),
            payments=len(payments),
            next_cursor=next_position,
        )
        return payments, next_position
