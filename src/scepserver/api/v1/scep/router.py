"""SCEP API Routes - Route registration only."""

from fastapi import APIRouter

from scepserver.api.v1.scep import api

router = APIRouter()
router.include_router(api.router, tags=["SCEP"])
