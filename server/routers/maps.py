"""Google Maps service routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from typing import List

from core.container import container
from services.maps import MapsService
from core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/maps", tags=["maps"])


class DistanceMatrixRequest(BaseModel):
    origins: List[str] = Field(min_length=1)
    destinations: List[str] = Field(min_length=1)
    mode: str = "driving"


@router.get("/stores")
async def nearby_stores(
    lat: float = Query(...),
    lng: float = Query(...),
    category: str = Query("electronics"),
    radius: int = Query(5000, ge=1, le=50000),
    maps_service: MapsService = Depends(lambda: container.maps_service())
):
    """Stores near a point, served from cache when fresh."""
    try:
        stores = await maps_service.get_nearby_stores(lat, lng, category, radius=radius)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "count": len(stores), "stores": stores}


@router.get("/stores/{place_id}")
async def store_details(
    place_id: str,
    maps_service: MapsService = Depends(lambda: container.maps_service())
):
    details = await maps_service.get_store_details(place_id)
    if details is None:
        raise HTTPException(status_code=404, detail="Store details unavailable")
    return {"success": True, "store": details}


@router.get("/geocode")
async def geocode(
    address: str = Query(..., min_length=1),
    maps_service: MapsService = Depends(lambda: container.maps_service())
):
    try:
        result = await maps_service.geocode_address(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Address not found")
    return {"success": True, "result": result}


@router.post("/distance")
async def distance_matrix(
    request: DistanceMatrixRequest,
    maps_service: MapsService = Depends(lambda: container.maps_service())
):
    elements = await maps_service.get_distance_matrix(
        request.origins, request.destinations, mode=request.mode
    )
    if elements is None:
        logger.warning("Distance matrix unavailable", mode=request.mode)
        return {"success": False, "error": "Distance matrix unavailable"}
    return {"success": True, "elements": elements}
