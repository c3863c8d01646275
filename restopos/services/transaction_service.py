"""
Closed transaction listing and admin amendments with audit logging
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from restopos.schemas.transaction import AuditLogResponse, TransactionResponse
from restopos.services.exceptions import RecordNotFound, ValidationFailed
from restopos.services.firebase_client import get_firestore_client
from restopos.services.repositories import (
    AuditLogRepo,
    TransactionRepo,
    to_fs_money,
    use_firestore,
)
from restopos.services.table_service import compute_total, to_money

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for the sales ledger"""

    @staticmethod
    def list_transactions(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_void: bool = False,
    ) -> List[TransactionResponse]:
        """Transactions completed between start and end, newest first"""
        if not use_firestore():
            rows = TransactionRepo.list_sql(db, start, end, include_void)
        else:
            rows = TransactionRepo.list_fs(start, end, include_void)
        return [TransactionResponse.model_validate(r) for r in rows]

    @staticmethod
    def get_transaction(db: Session, transaction_id: str) -> Optional[TransactionResponse]:
        if not use_firestore():
            row = TransactionRepo.get_sql(db, transaction_id)
        else:
            row = TransactionRepo.get_fs(transaction_id)
        return TransactionResponse.model_validate(row) if row else None

    @staticmethod
    def delete_transaction_item(db: Session, transaction_id: str, index: int, actor: str) -> TransactionResponse:
        """Remove one receipt line and recompute the total.

        A transaction keeps at least one line; use a total override or delete
        the whole transaction instead.
        """
        if not use_firestore():
            row = TransactionRepo.get_sql(db, transaction_id)
            if not row:
                raise RecordNotFound("Transaction")
            items = [dict(item) for item in (row.items or [])]
            old_total = to_money(row.total_amount)
        else:
            doc = TransactionRepo.get_fs(transaction_id)
            if not doc:
                raise RecordNotFound("Transaction")
            items = [dict(item) for item in (doc.get("items") or [])]
            old_total = to_money(doc.get("total_amount"))

        if index < 0 or index >= len(items):
            raise ValidationFailed(f"Transaction has no item at position {index}", "invalid_item_index")
        if len(items) == 1:
            raise ValidationFailed("The last item of a transaction cannot be deleted", "last_item")

        removed = items.pop(index)
        new_total = compute_total(items)
        audit = {
            "edit_type": "delete_item",
            "edited_by": actor,
            "description": f"Item removed: {removed['name']}",
            "old_value": {"item": removed},
            "new_value": {"total_amount": float(new_total)},
            "transaction_id": transaction_id,
        }

        if not use_firestore():
            row.items = items
            row.total_amount = new_total
            AuditLogRepo.create_sql(db, **audit)
            db.commit()
            db.refresh(row)
            result = TransactionResponse.model_validate(row)
        else:
            batch = get_firestore_client().batch()
            batch.update(TransactionRepo.ref_fs(transaction_id), {
                "items": items,
                "total_amount": to_fs_money(new_total),
            })
            batch.set(AuditLogRepo.new_ref_fs(), AuditLogRepo.build_fs(**audit))
            batch.commit()
            result = TransactionService.get_transaction(db, transaction_id)

        logger.info(f"Transaction {transaction_id}: {actor} removed {removed['name']}, total {old_total} -> {new_total}")
        return result

    @staticmethod
    def update_total(db: Session, transaction_id: str, new_total: Decimal, actor: str) -> TransactionResponse:
        """Manual total override, e.g. a discount"""
        if new_total is None or not new_total.is_finite() or new_total < 0:
            raise ValidationFailed("Enter a valid, non-negative amount", "invalid_amount")

        current = TransactionService.get_transaction(db, transaction_id)
        if not current:
            raise RecordNotFound("Transaction")

        old_total = to_money(current.total_amount)
        new_total = to_money(new_total)
        audit = {
            "edit_type": "update_total",
            "edited_by": actor,
            "description": f"Total updated: {old_total} -> {new_total}",
            "old_value": {"total": float(old_total)},
            "new_value": {"total": float(new_total)},
            "transaction_id": transaction_id,
        }

        if not use_firestore():
            row = TransactionRepo.get_sql(db, transaction_id)
            row.total_amount = new_total
            AuditLogRepo.create_sql(db, **audit)
            db.commit()
            db.refresh(row)
            result = TransactionResponse.model_validate(row)
        else:
            batch = get_firestore_client().batch()
            batch.update(TransactionRepo.ref_fs(transaction_id), {"total_amount": to_fs_money(new_total)})
            batch.set(AuditLogRepo.new_ref_fs(), AuditLogRepo.build_fs(**audit))
            batch.commit()
            result = TransactionService.get_transaction(db, transaction_id)

        logger.info(f"Transaction {transaction_id}: {actor} changed total {old_total} -> {new_total}")
        return result

    @staticmethod
    def delete_transaction(db: Session, transaction_id: str, actor: str) -> None:
        current = TransactionService.get_transaction(db, transaction_id)
        if not current:
            raise RecordNotFound("Transaction")

        audit = {
            "edit_type": "delete_transaction",
            "edited_by": actor,
            "description": f"Transaction deleted: {current.table_name} ({to_money(current.total_amount)})",
            "old_value": {
                "table_id": current.table_id,
                "table_name": current.table_name,
                "total_amount": float(current.total_amount),
                "items": [
                    {"name": item.name, "price": to_fs_money(item.price), "quantity": item.quantity}
                    for item in current.items
                ],
                "completed_at": current.completed_at.isoformat() if current.completed_at else None,
            },
            "new_value": None,
            "transaction_id": transaction_id,
        }

        if not use_firestore():
            TransactionRepo.delete_sql(db, TransactionRepo.get_sql(db, transaction_id))
            AuditLogRepo.create_sql(db, **audit)
            db.commit()
        else:
            batch = get_firestore_client().batch()
            batch.delete(TransactionRepo.ref_fs(transaction_id))
            batch.set(AuditLogRepo.new_ref_fs(), AuditLogRepo.build_fs(**audit))
            batch.commit()

        logger.info(f"Transaction {transaction_id} deleted by {actor}")

    @staticmethod
    def list_audit_logs(db: Session) -> List[AuditLogResponse]:
        if not use_firestore():
            rows = AuditLogRepo.list_sql(db)
        else:
            rows = AuditLogRepo.list_fs()
        return [AuditLogResponse.model_validate(r) for r in rows]
