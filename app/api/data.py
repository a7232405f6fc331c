import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_pipeline
from app.core.timeutil import iso_z
from app.models.outcome import IngestOutcome, OutcomeStatus
from app.models.telemetry import Origin
from app.services.ingestion_service import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def outcome_response(outcome: IngestOutcome) -> JSONResponse:
    if outcome.status == OutcomeStatus.COMMITTED:
        record = outcome.record
        received_at = iso_z(record.received_at)
        return JSONResponse(
            status_code=201,
            content={
                "status": "success",
                "message": outcome.message,
                "id": record.id,
                "mac": record.mac,
                "dataPoints": outcome.sample_count,
                "receivedAt": received_at,
                "timestamp": received_at,
            },
        )

    if outcome.status == OutcomeStatus.REJECTED:
        return JSONResponse(
            status_code=400,
            content={
                "status": "error",
                "message": outcome.message,
                "reason": outcome.reason.value,
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "Failed to process data",
            "error": outcome.message,
        },
    )


@router.post("/data/receive", status_code=201)
async def receive_data(
    request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)
):
    body = await request.body()
    logger.debug(f"HTTP data received: {len(body)} bytes")

    outcome = await pipeline.ingest(body, Origin.request())
    if not outcome.committed:
        logger.warning(f"HTTP data not stored ({outcome.status.value}): {outcome.message}")
    return outcome_response(outcome)
