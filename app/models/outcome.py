from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.telemetry import StoredRecord


class OutcomeStatus(str, Enum):
    COMMITTED = "committed"
    REJECTED = "rejected"
    FAILED = "failed"


class RejectReason(str, Enum):
    PARSE_ERROR = "parse_error"
    MISSING_MAC = "missing_mac"
    MISSING_SAMPLES = "missing_samples"
    INVALID_SAMPLE = "invalid_sample"


@dataclass(frozen=True)
class IngestOutcome:
    status: OutcomeStatus
    message: str
    reason: Optional[RejectReason] = None
    record: Optional[StoredRecord] = None

    @classmethod
    def committed_with(cls, record: StoredRecord) -> "IngestOutcome":
        return cls(
            OutcomeStatus.COMMITTED,
            "Data received and stored successfully",
            record=record,
        )

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "IngestOutcome":
        return cls(OutcomeStatus.REJECTED, message, reason=reason)

    @classmethod
    def failed(cls, message: str) -> "IngestOutcome":
        return cls(OutcomeStatus.FAILED, message)

    @property
    def committed(self) -> bool:
        return self.status == OutcomeStatus.COMMITTED

    @property
    def sample_count(self) -> int:
        return self.record.sample_count if self.record else 0
