"""API v1 router aggregation."""

from fastapi import APIRouter

from jukenmap.api.v1.schools import router as schools_router
from jukenmap.api.v1.transit import router as transit_router
from jukenmap.api.v1.directions import router as directions_router

router = APIRouter(prefix="/api/v1")

router.include_router(schools_router)
router.include_router(transit_router)
router.include_router(directions_router)
