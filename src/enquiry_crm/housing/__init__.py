"""Housing.com lead ingestion -- signed fetch, mapping, dedup and sync.

Provides:
- HousingAPIClient: HMAC-signed upstream client with response normalization
- LeadUpserter: Sequential existence-check-then-insert with per-record outcomes
- WatermarkStore: Persisted last-fetch timestamp with non-fatal fallbacks
- HousingService: Scheduled, manual and diagnostic sync modes
- run_scheduled_sync / run_manual_fetch / run_connection_test: Trigger surface

Architecture: the scheduled path is at-least-once. The watermark advances only
after a successful cycle, and re-fetched leads are absorbed by the dedup check.
"""

from src.enquiry_crm.housing.client import HousingAPIClient, extract_leads
from src.enquiry_crm.housing.exceptions import (
    ConfigurationError,
    HousingError,
    UpstreamProtocolError,
    UpstreamRequestFailed,
)
from src.enquiry_crm.housing.schemas import (
    BatchSyncResult,
    CanonicalLead,
    ConnectionTestResult,
    InsertResult,
    LeadOutcome,
    LeadPreviewResult,
    LeadStatus,
    RawUpstreamLead,
    SyncResult,
    SyncStats,
)
from src.enquiry_crm.housing.service import (
    HousingService,
    build_housing_service,
    run_connection_test,
    run_manual_fetch,
    run_scheduled_sync,
)
from src.enquiry_crm.housing.signing import sign, sign_request_timestamp
from src.enquiry_crm.housing.store import LeadLookupError, LeadPersistenceError, LeadStore
from src.enquiry_crm.housing.upserter import LeadUpserter
from src.enquiry_crm.housing.watermark import WatermarkStore

__all__ = [
    "HousingAPIClient",
    "HousingService",
    "LeadUpserter",
    "WatermarkStore",
    "LeadStore",
    "LeadLookupError",
    "LeadPersistenceError",
    "HousingError",
    "ConfigurationError",
    "UpstreamProtocolError",
    "UpstreamRequestFailed",
    "RawUpstreamLead",
    "CanonicalLead",
    "LeadStatus",
    "LeadOutcome",
    "InsertResult",
    "BatchSyncResult",
    "SyncStats",
    "SyncResult",
    "ConnectionTestResult",
    "LeadPreviewResult",
    "build_housing_service",
    "run_scheduled_sync",
    "run_manual_fetch",
    "run_connection_test",
    "extract_leads",
    "sign",
    "sign_request_timestamp",
]
