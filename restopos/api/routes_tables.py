"""
Order entry routes - any signed-in session
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restopos.core.db import get_db
from restopos.schemas.table import AddItemRequest
from restopos.services.auth_service import SessionContext
from restopos.services.catalog_service import CatalogService
from restopos.services.table_event_service import TableEventService
from restopos.services.table_service import TableService
from restopos.api.ws import websocket_manager
from restopos.utils.security import get_current_session
from restopos.utils.responses import success_response, not_found_error

router = APIRouter()

table_events = TableEventService(websocket_manager)

@router.get("/tables/{table_id}")
async def get_table_detail(
    table_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    """Table with its order lines and running total"""
    detail = TableService.get_table_detail(db, table_id)
    if detail is None:
        raise not_found_error("Table")

    return success_response(
        message="Table retrieved",
        data=detail
    )

@router.post("/tables/{table_id}/items")
async def add_item(
    table_id: int,
    item_request: AddItemRequest,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    """Add a product to the table and open it if free"""
    detail = TableService.add_item(
        db,
        table_id=table_id,
        product_id=item_request.product_id,
        actor=session.actor_name,
        quantity=item_request.quantity,
        custom_price=item_request.custom_price
    )

    await table_events.broadcast_table_update(
        table_id=table_id,
        update_type="table_update",
        actor=session.actor_name,
        is_occupied=True
    )

    return success_response(
        message="Item added",
        data=detail,
        status_code=201
    )

@router.delete("/tables/{table_id}/items/{item_id}")
async def remove_item(
    table_id: int,
    item_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    detail = TableService.remove_item(db, table_id, item_id)

    await table_events.broadcast_table_update(
        table_id=table_id,
        actor=session.actor_name,
        is_occupied=detail.table.is_occupied
    )

    return success_response(
        message="Item removed",
        data=detail
    )

@router.post("/tables/{table_id}/close")
async def close_table(
    table_id: int,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    """Close the table: record the sale, clear it, free it"""
    result = TableService.close_table(db, table_id, session.actor_name)

    await table_events.broadcast_table_update(
        table_id=table_id,
        update_type="table_closed",
        actor=session.actor_name,
        is_occupied=False
    )

    message = "Table closed" if result.transaction else "Table closed with no items"
    return success_response(
        message=message,
        data=result
    )

@router.get("/catalog/groups")
async def list_groups(
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    return success_response(
        message="Product groups retrieved",
        data=CatalogService.list_groups(db)
    )

@router.get("/catalog/groups/{group_id}/products")
async def list_group_products(
    group_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session)
):
    """Active products of one group, for the order entry screen"""
    return success_response(
        message="Products retrieved",
        data=CatalogService.list_products(db, group_id=group_id, active_only=True)
    )
