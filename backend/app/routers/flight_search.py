from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
import logging

from app.airports import AIRPORTS
from app.config import settings
from app.database import SessionLocal
from app.schemas.flight_offer_schema import FlightSearchRequest, LowestPriceResponse, SearchResult
from app.services.flight_search_service import FlightSearchService, build_search_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/flights",
    tags=["flights"]
)

# Initialize service once, it owns the process-wide rotation cursor
search_svc = build_search_service(settings, SessionLocal)


def get_search_service() -> FlightSearchService:
    return search_svc


def parse_search_request(
    from_airport: str = Query(..., alias="from"),
    to_airport: str = Query(..., alias="to"),
    date: str = Query(..., description="YYYY-MM-DD format"),
) -> FlightSearchRequest:
    try:
        return FlightSearchRequest(from_airport=from_airport, to_airport=to_airport, date=date)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()])


@router.get("/search", response_model=SearchResult)
async def search_flights(
    request: FlightSearchRequest = Depends(parse_search_request),
    service: FlightSearchService = Depends(get_search_service),
):
    """
    Cheapest-first offers for a route and date, from the price cache when fresh,
    otherwise from the provider rotation. An empty list means no known price.
    """
    return await service.search_flights(request.from_airport, request.to_airport, request.departure_date)


@router.get("/lowest-price", response_model=LowestPriceResponse)
async def lowest_price(
    request: FlightSearchRequest = Depends(parse_search_request),
    service: FlightSearchService = Depends(get_search_service),
):
    price = await service.get_lowest_price(request.from_airport, request.to_airport, request.departure_date)
    return LowestPriceResponse(
        from_airport=request.from_airport,
        to_airport=request.to_airport,
        date=request.departure_date,
        price=price,
    )


@router.get("/airports")
def list_airports():
    return [
        {"code": code, "name": name, "city": city}
        for code, (name, city) in AIRPORTS.items()
    ]
