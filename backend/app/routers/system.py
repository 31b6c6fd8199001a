from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.routers.flight_search import get_search_service
from app.schemas.flight_offer_schema import ApiUsageResponse
from app.services.flight_search_service import FlightSearchService

router = APIRouter(prefix="/system-health", tags=["System"])

@router.get("/api-usage", response_model=List[ApiUsageResponse])
async def get_api_usage(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM, defaults to the current month"),
    service: FlightSearchService = Depends(get_search_service),
):
    return await service.provider_manager.usage_tracker.get_usage(month)

@router.get("/rotation")
def get_rotation(service: FlightSearchService = Depends(get_search_service)):
    return service.provider_manager.get_stats()
