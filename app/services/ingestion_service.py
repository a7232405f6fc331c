import json
import logging
from typing import Any, Union

from app.core.errors import BatchValidationError, PayloadParseError, StoreError
from app.models.outcome import IngestOutcome, RejectReason
from app.models.telemetry import IngestedRecord, Origin
from app.services.validation import validate_batch
from app.storage.audit_log import DataAuditLog
from app.storage.record_store import RecordStore

logger = logging.getLogger(__name__)

RawPayload = Union[bytes, bytearray, str, dict, list]


def decode_payload(raw: RawPayload) -> Any:
    if isinstance(raw, (dict, list)):
        return raw
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise PayloadParseError(str(e)) from e


def _printable(raw: RawPayload) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8", errors="replace")
    return raw


class IngestionPipeline:
    """Validate a raw telemetry payload and commit it to the store and audit trail.

    Each ``ingest`` call is independent: there is no queue and no shared
    mutable state besides the store and the audit log, both of which are
    safe for concurrent use. The store write is authoritative; the audit
    append happens only after a successful save and its result never
    changes the outcome.
    """

    def __init__(
        self,
        store: RecordStore,
        audit_log: DataAuditLog,
        audit_failed_writes: bool = False,
    ):
        self.store = store
        self.audit_log = audit_log
        self.audit_failed_writes = audit_failed_writes

    async def ingest(self, raw: RawPayload, origin: Origin) -> IngestOutcome:
        try:
            payload = decode_payload(raw)
        except PayloadParseError as e:
            logger.error(
                f"Payload parsing failed: {e}",
                extra={"data": {**origin.describe(), "payload": _printable(raw)}},
            )
            return IngestOutcome.rejected(
                RejectReason(e.reason), "Invalid JSON payload"
            )

        try:
            batch = validate_batch(payload)
        except BatchValidationError as e:
            return IngestOutcome.rejected(RejectReason(e.reason), str(e))

        record = IngestedRecord.from_batch(batch, origin)

        try:
            stored = await self.store.save(record)
        except StoreError as e:
            logger.error(
                f"Failed to store data from {batch.mac}: {e}",
                extra={"data": {**origin.describe(), "mac": batch.mac}},
            )
            if self.audit_failed_writes:
                await self.audit_log.append(
                    payload, origin.source.value, status="failed", error=str(e)
                )
            return IngestOutcome.failed(str(e))

        await self.audit_log.append(payload, origin.source.value)

        logger.info(
            f"Data stored successfully. ID: {stored.id}, MAC: {stored.mac}, "
            f"data points: {stored.sample_count}"
        )
        return IngestOutcome.committed_with(stored)
