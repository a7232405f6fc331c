import logging
from typing import Union

from app.models.outcome import IngestOutcome, OutcomeStatus
from app.models.telemetry import Origin
from app.services.ingestion_service import IngestionPipeline

logger = logging.getLogger(__name__)


class PubSubChannel:
    """Feed broker publish events into the ingestion pipeline.

    Publishers get no reply, so every outcome is only visible in the logs
    and in ``stats()``. Connection events are logged and tracked but never
    reach the pipeline.
    """

    def __init__(self, pipeline: IngestionPipeline):
        self.pipeline = pipeline
        self.connected = False
        self.clients: set[str] = set()
        self.counters = {
            "received": 0,
            OutcomeStatus.COMMITTED.value: 0,
            OutcomeStatus.REJECTED.value: 0,
            OutcomeStatus.FAILED.value: 0,
        }

    def handle_connect(self, client_id: str) -> None:
        self.connected = True
        self.clients.add(client_id)
        logger.info(f"Client connected: {client_id}")

    def handle_disconnect(self, client_id: str) -> None:
        self.clients.discard(client_id)
        self.connected = bool(self.clients)
        logger.info(f"Client disconnected: {client_id}")

    async def handle_publish(
        self, client_id: str, topic: str, payload: Union[bytes, str]
    ) -> IngestOutcome:
        self.counters["received"] += 1
        logger.info(f"Message from {client_id} on topic {topic}")

        try:
            outcome = await self.pipeline.ingest(
                payload, Origin.pubsub(client_id, topic)
            )
        except Exception as e:
            logger.exception(
                f"MQTT message processing failed: {e}",
                extra={"data": {"topic": topic, "clientId": client_id}},
            )
            outcome = IngestOutcome.failed(str(e))

        self.counters[outcome.status.value] += 1
        self._log_outcome(client_id, topic, outcome)
        return outcome

    def _log_outcome(self, client_id: str, topic: str, outcome: IngestOutcome) -> None:
        context = {"clientId": client_id, "topic": topic, "status": outcome.status.value}

        if outcome.status == OutcomeStatus.COMMITTED:
            logger.info(
                f"MQTT data stored. ID: {outcome.record.id}, "
                f"data points: {outcome.sample_count}",
                extra={"data": {**context, "id": outcome.record.id}},
            )
        elif outcome.status == OutcomeStatus.REJECTED:
            logger.warning(
                f"MQTT message rejected: {outcome.message}",
                extra={"data": {**context, "reason": outcome.reason.value}},
            )
        else:
            logger.error(
                f"MQTT message not stored: {outcome.message}",
                extra={"data": context},
            )

    def stats(self) -> dict:
        return {
            "connected": self.connected,
            "clients": sorted(self.clients),
            **self.counters,
        }
