"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restopos.core.db import get_db
from restopos.services.table_service import TableService
from restopos.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/tables")
async def get_table_grid(db: Session = Depends(get_db)):
    """Floor grid: every table with its occupancy and the suggested poll interval"""
    grid = TableService.get_table_grid(db)

    return success_response(
        message="Tables retrieved successfully",
        data=grid
    )
