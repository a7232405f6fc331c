from fastapi import Request

from app.services.health_service import HealthReporter
from app.services.ingestion_service import IngestionPipeline


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_health_reporter(request: Request) -> HealthReporter:
    return request.app.state.health_reporter
