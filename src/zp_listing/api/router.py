"""Public listing proxy.

GET /api/random-listing — random listing with a displayed price, flat JSON
(no ApiResponse envelope; front ends consume this shape directly).
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.zp_common.errors import UpstreamUnavailableError
from src.zp_listing.application.service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["listing"])

_service = ListingService()


@router.get("/api/random-listing")
async def random_listing() -> JSONResponse:
    try:
        chosen = await _service.fetch_random_listing()
    except UpstreamUnavailableError as e:
        logger.error("Error fetching listing: %s", e.message)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch listing", "details": e.message},
        )
    return JSONResponse(content=chosen.to_payload())
