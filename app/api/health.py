from fastapi import APIRouter, Depends

from app.api.deps import get_health_reporter
from app.services.health_service import HealthReporter

router = APIRouter()


@router.get("/health")
async def health_check(reporter: HealthReporter = Depends(get_health_reporter)):
    snapshot = await reporter.report()
    return snapshot.to_response()
