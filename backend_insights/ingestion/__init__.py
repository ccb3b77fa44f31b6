# Incremental ingestion: cursor store, Horizon payments client, ingestor.

from backend_insights.ingestion.cursor_store import CursorStore
from backend_insights.ingestion.horizon_client import HorizonPaymentsClient, parse_payment
from backend_insights.ingestion.ingestor import (
    START_OF_HISTORY,
    IngestionResult,
    PaymentIngestor,
    PaymentSource,
)

__all__ = [
    "CursorStore",
    "HorizonPaymentsClient",
    "parse_payment",
    "START_OF_HISTORY",
    "IngestionResult",
    "PaymentIngestor",
    "PaymentSource",
]
