"""
Admin API routes - requires an admin session
"""

from datetime import date, datetime, time
from typing import Optional
from fastapi import APIRouter, Depends, UploadFile, File, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from restopos.core.db import get_db
from restopos.schemas.catalog import ProductCreate, ProductGroupCreate, ProductGroupUpdate, ProductUpdate
from restopos.schemas.table import TableCreate, TableUpdate
from restopos.schemas.transaction import TotalUpdate
from restopos.schemas.user import PasswordReset, UserCreate, UserUpdate
from restopos.services.auth_service import AuthService, SessionContext
from restopos.services.catalog_service import CatalogService, TableAdminService
from restopos.services.media_service import MediaService
from restopos.services.report_service import ReportService
from restopos.services.table_event_service import TableEventService
from restopos.services.transaction_service import TransactionService
from restopos.api.ws import websocket_manager
from restopos.utils.security import require_admin
from restopos.utils.responses import success_response, not_found_error

router = APIRouter()

table_events = TableEventService(websocket_manager)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def _date_range(start: Optional[date], end: Optional[date]):
    if start is None and end is None:
        return None, None
    start = start or end
    end = end or start
    return datetime.combine(start, time.min), datetime.combine(end, time.max)

# -------- product groups --------

@router.get("/groups")
async def list_groups(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    return success_response(
        message="Product groups retrieved",
        data=CatalogService.list_groups(db)
    )

@router.post("/groups")
async def create_group(
    group_data: ProductGroupCreate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    group = CatalogService.create_group(db, group_data)
    return success_response(
        message="Product group created successfully",
        data=group,
        status_code=201
    )

@router.patch("/groups/{group_id}")
async def update_group(
    group_id: str,
    group_update: ProductGroupUpdate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    group = CatalogService.update_group(db, group_id, group_update)
    return success_response(
        message="Product group updated successfully",
        data=group
    )

@router.delete("/groups/{group_id}")
async def delete_group(
    group_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Delete a group and every product in it"""
    CatalogService.delete_group(db, group_id)
    return success_response(message="Product group deleted")

# -------- products --------

@router.get("/products")
async def list_products(
    group_id: Optional[str] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    return success_response(
        message="Products retrieved",
        data=CatalogService.list_products(db, group_id=group_id, active_only=active_only)
    )

@router.post("/products")
async def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    product = CatalogService.create_product(db, product_data)
    return success_response(
        message="Product created successfully",
        data=product,
        status_code=201
    )

@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    product = CatalogService.update_product(db, product_id, product_update)
    return success_response(
        message="Product updated successfully",
        data=product
    )

@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    CatalogService.delete_product(db, product_id)
    return success_response(message="Product deleted")

# -------- tables --------

@router.post("/tables")
async def create_table(
    table_data: TableCreate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    table = TableAdminService.create_table(db, table_data)
    await table_events.broadcast_table_update(
        table_id=table.id,
        update_type="table_created",
        actor=admin.actor_name,
        is_occupied=False
    )
    return success_response(
        message="Table created successfully",
        data=table,
        status_code=201
    )

@router.patch("/tables/{table_id}")
async def rename_table(
    table_id: int,
    table_update: TableUpdate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    table = TableAdminService.rename_table(db, table_id, table_update.name, admin.actor_name)
    await table_events.broadcast_table_update(
        table_id=table_id,
        actor=admin.actor_name,
        is_occupied=table.is_occupied
    )
    return success_response(
        message="Table renamed",
        data=table
    )

@router.delete("/tables/{table_id}")
async def delete_table(
    table_id: int,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Delete a table; it must be closed first"""
    TableAdminService.delete_table(db, table_id)
    await table_events.broadcast_table_update(
        table_id=table_id,
        update_type="table_deleted",
        actor=admin.actor_name
    )
    return success_response(message="Table deleted")

# -------- users --------

@router.get("/users")
async def list_users(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    return success_response(
        message="Users retrieved",
        data=AuthService.list_users(db)
    )

@router.post("/users")
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    user = AuthService.create_user(db, user_data.username, user_data.password, admin.actor_name)
    return success_response(
        message="User created successfully",
        data=user,
        status_code=201
    )

@router.patch("/users/{user_id}")
async def update_user(
    user_id: str,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Rename a user or toggle their active flag"""
    user = AuthService.update_user(db, user_id, username=user_update.username, is_active=user_update.is_active)
    return success_response(
        message="User updated successfully",
        data=user
    )

@router.post("/users/{user_id}/password")
async def reset_user_password(
    user_id: str,
    reset: PasswordReset,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    AuthService.reset_password(db, user_id, reset.new_password)
    return success_response(message="Password reset")

@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    AuthService.delete_user(db, user_id)
    return success_response(message="User deleted")

@router.post("/password")
async def change_admin_password(
    reset: PasswordReset,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Change the shared admin password"""
    AuthService.change_admin_password(db, reset.new_password)
    return success_response(message="Admin password changed")

# -------- media library --------

@router.get("/media")
async def list_media(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    return success_response(
        message="Media retrieved",
        data=MediaService.list_media(db)
    )

@router.post("/media")
async def upload_media(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Upload an image to the media library"""
    content = await file.read()
    media = MediaService.upload(db, file.filename, content, file.content_type)
    return success_response(
        message="File uploaded successfully",
        data=media,
        status_code=201
    )

@router.delete("/media/{media_id}")
async def delete_media(
    media_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    MediaService.delete(db, media_id)
    return success_response(message="File deleted")

# -------- transactions --------

@router.get("/transactions")
async def list_transactions(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    include_void: bool = Query(False),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Closed transactions, newest first, optionally limited to a date range"""
    start_at, end_at = _date_range(start, end)
    transactions = TransactionService.list_transactions(db, start_at, end_at, include_void)
    return success_response(
        message="Transactions retrieved",
        data=transactions
    )

@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    transaction = TransactionService.get_transaction(db, transaction_id)
    if transaction is None:
        raise not_found_error("Transaction")
    return success_response(
        message="Transaction retrieved",
        data=transaction
    )

@router.delete("/transactions/{transaction_id}/items/{index}")
async def delete_transaction_item(
    transaction_id: str,
    index: int,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Remove one receipt line; the total is recomputed"""
    transaction = TransactionService.delete_transaction_item(db, transaction_id, index, admin.actor_name)
    return success_response(
        message="Item removed from transaction",
        data=transaction
    )

@router.patch("/transactions/{transaction_id}/total")
async def update_transaction_total(
    transaction_id: str,
    total_update: TotalUpdate,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    transaction = TransactionService.update_total(db, transaction_id, total_update.total_amount, admin.actor_name)
    return success_response(
        message="Transaction total updated",
        data=transaction
    )

@router.delete("/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    TransactionService.delete_transaction(db, transaction_id, admin.actor_name)
    return success_response(message="Transaction deleted")

@router.get("/audit-logs")
async def list_audit_logs(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    return success_response(
        message="Audit logs retrieved",
        data=TransactionService.list_audit_logs(db)
    )

# -------- reports --------

@router.get("/reports/daily")
async def daily_report(
    day: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Sales summary for one day (today when omitted)"""
    return success_response(
        message="Daily report generated",
        data=ReportService.daily_report(db, day)
    )

@router.get("/reports/export.xlsx")
async def export_report(
    start: date = Query(...),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(require_admin)
):
    """Export closed transactions in a date range to Excel"""
    start_at, end_at = _date_range(start, end)
    excel_content = ReportService.export_transactions(db, start_at, end_at)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=sales_{start.isoformat()}_{(end or start).isoformat()}.xlsx"}
    )
