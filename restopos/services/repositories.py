"""
Repository layer for the live-service stores (SQLAlchemy vs Firebase Firestore).

Tables, order lines, transactions and the audit trail. SQL methods that are
steps of a larger workflow only add/flush; the calling service owns the
commit. Firestore methods either write directly or return document
references so the caller can group writes into one batch.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.models import Table, TableItem, Transaction, AuditLog
from restopos.services.firebase_client import get_firestore_client


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def now_utc() -> datetime:
    return datetime.utcnow()


def to_fs_money(value: Optional[Decimal]) -> Optional[float]:
    """Firestore has no decimal type; amounts are stored as floats."""
    return float(value) if value is not None else None


def doc_to_dict(doc) -> Optional[Dict[str, Any]]:
    if not doc.exists:
        return None
    data = doc.to_dict()
    data.setdefault("id", doc.id)
    return data


def docs_to_list(docs) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for d in docs:
        item = d.to_dict()
        item.setdefault("id", d.id)
        results.append(item)
    return results


# -------- Table repository --------

class TableRepo:
    @staticmethod
    def list_sql(db: Session) -> List[Table]:
        return db.query(Table).order_by(Table.id).all()

    @staticmethod
    def get_sql(db: Session, table_id: int) -> Optional[Table]:
        return db.query(Table).filter(Table.id == table_id).first()

    @staticmethod
    def next_id_sql(db: Session) -> int:
        return (db.query(func.max(Table.id)).scalar() or 0) + 1

    @staticmethod
    def create_sql(db: Session, table_id: int, name: str) -> Table:
        table = Table(id=table_id, name=name, is_occupied=False, opened_at=None)
        db.add(table)
        db.commit()
        db.refresh(table)
        return table

    @staticmethod
    def rename_sql(db: Session, table: Table, name: str, actor: str) -> Table:
        table.name = name
        table.last_modified_by = actor
        table.updated_at = now_utc()
        db.commit()
        db.refresh(table)
        return table

    @staticmethod
    def delete_sql(db: Session, table: Table) -> None:
        db.delete(table)
        db.commit()

    @staticmethod
    def occupy_sql(db: Session, table: Table, actor: str, opened_at: datetime) -> None:
        if not table.is_occupied:
            table.opened_by = actor
        table.is_occupied = True
        table.opened_at = opened_at
        table.last_modified_by = actor
        table.updated_at = opened_at
        db.flush()

    @staticmethod
    def release_sql(db: Session, table: Table, actor: str) -> None:
        table.is_occupied = False
        table.opened_at = None
        table.last_modified_by = actor
        table.updated_at = now_utc()
        db.flush()

    # Firestore shape: collection "tables/{id}" with the integer id repeated as a field
    @staticmethod
    def ref_fs(table_id: int):
        fs = get_firestore_client()
        return fs.collection("tables").document(str(table_id))

    @staticmethod
    def list_fs() -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        tables = docs_to_list(fs.collection("tables").get())
        return sorted(tables, key=lambda t: t.get("id") or 0)

    @staticmethod
    def get_fs(table_id: int) -> Optional[Dict[str, Any]]:
        return doc_to_dict(TableRepo.ref_fs(table_id).get())

    @staticmethod
    def next_id_fs() -> int:
        return max((t.get("id") or 0 for t in TableRepo.list_fs()), default=0) + 1

    @staticmethod
    def create_fs(table_id: int, name: str) -> Dict[str, Any]:
        now = now_utc().isoformat()
        data = {
            "id": table_id,
            "name": name,
            "is_occupied": False,
            "opened_at": None,
            "opened_by": None,
            "last_modified_by": None,
            "created_at": now,
            "updated_at": now,
        }
        TableRepo.ref_fs(table_id).set(data)
        return data

    @staticmethod
    def rename_fs(table_id: int, name: str, actor: str) -> Dict[str, Any]:
        ref = TableRepo.ref_fs(table_id)
        ref.update({"name": name, "last_modified_by": actor, "updated_at": now_utc().isoformat()})
        return doc_to_dict(ref.get())

    @staticmethod
    def delete_fs(table_id: int) -> None:
        TableRepo.ref_fs(table_id).delete()

    @staticmethod
    def occupy_fields_fs(table_doc: Dict[str, Any], actor: str, opened_at: datetime) -> Dict[str, Any]:
        fields = {
            "is_occupied": True,
            "opened_at": opened_at.isoformat(),
            "last_modified_by": actor,
            "updated_at": opened_at.isoformat(),
        }
        if not table_doc.get("is_occupied"):
            fields["opened_by"] = actor
        return fields

    @staticmethod
    def release_fields_fs(actor: str) -> Dict[str, Any]:
        return {
            "is_occupied": False,
            "opened_at": None,
            "last_modified_by": actor,
            "updated_at": now_utc().isoformat(),
        }


# -------- Order line repository --------

class TableItemRepo:
    @staticmethod
    def list_sql(db: Session, table_id: int) -> List[TableItem]:
        return db.query(TableItem).filter(TableItem.table_id == table_id).order_by(TableItem.created_at).all()

    @staticmethod
    def get_sql(db: Session, item_id: str) -> Optional[TableItem]:
        return db.query(TableItem).filter(TableItem.id == item_id).first()

    @staticmethod
    def add_sql(
        db: Session,
        table_id: int,
        product_id: str,
        product_name: str,
        product_price: Optional[Decimal],
        quantity: int,
        added_by: Optional[str],
    ) -> TableItem:
        item = TableItem(
            table_id=table_id,
            product_id=product_id,
            product_name=product_name,
            product_price=product_price,
            quantity=quantity,
            added_by=added_by,
            created_at=now_utc(),
        )
        db.add(item)
        db.flush()
        return item

    @staticmethod
    def delete_sql(db: Session, item: TableItem) -> None:
        db.delete(item)
        db.commit()

    @staticmethod
    def clear_sql(db: Session, table_id: int) -> int:
        """Delete every line of a table; returns the number removed."""
        removed = db.query(TableItem).filter(TableItem.table_id == table_id).delete(synchronize_session=False)
        db.flush()
        db.expire_all()
        return removed

    # Firestore shape: flat collection "table_items" keyed by generated id
    @staticmethod
    def new_ref_fs():
        fs = get_firestore_client()
        return fs.collection("table_items").document()

    @staticmethod
    def list_fs(table_id: int) -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        docs = fs.collection("table_items").where("table_id", "==", table_id).get()
        return sorted(docs_to_list(docs), key=lambda i: i.get("created_at") or "")

    @staticmethod
    def list_refs_fs(table_id: int) -> list:
        fs = get_firestore_client()
        return [d.reference for d in fs.collection("table_items").where("table_id", "==", table_id).get()]

    @staticmethod
    def get_fs(item_id: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        return doc_to_dict(fs.collection("table_items").document(item_id).get())

    @staticmethod
    def delete_fs(item_id: str) -> None:
        fs = get_firestore_client()
        fs.collection("table_items").document(item_id).delete()


# -------- Transaction repository --------

class TransactionRepo:
    @staticmethod
    def create_sql(db: Session, **fields) -> Transaction:
        transaction = Transaction(**fields)
        db.add(transaction)
        db.flush()
        return transaction

    @staticmethod
    def get_sql(db: Session, transaction_id: str) -> Optional[Transaction]:
        return db.query(Transaction).filter(Transaction.id == transaction_id).first()

    @staticmethod
    def list_sql(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_void: bool = False,
    ) -> List[Transaction]:
        query = db.query(Transaction)
        if start and end:
            query = query.filter(Transaction.completed_at >= start, Transaction.completed_at <= end)
        if not include_void:
            query = query.filter(Transaction.status == "completed")
        return query.order_by(Transaction.completed_at.desc()).all()

    @staticmethod
    def delete_sql(db: Session, transaction: Transaction) -> None:
        db.delete(transaction)
        db.flush()

    # Firestore shape: collection "transactions" keyed by generated id
    @staticmethod
    def ref_fs(transaction_id: Optional[str] = None):
        fs = get_firestore_client()
        if transaction_id is None:
            return fs.collection("transactions").document()
        return fs.collection("transactions").document(transaction_id)

    @staticmethod
    def create_fs(data: Dict[str, Any]) -> Dict[str, Any]:
        ref = TransactionRepo.ref_fs()
        ref.set(data)
        return {**data, "id": ref.id}

    @staticmethod
    def get_fs(transaction_id: str) -> Optional[Dict[str, Any]]:
        return doc_to_dict(TransactionRepo.ref_fs(transaction_id).get())

    @staticmethod
    def update_fs(transaction_id: str, fields: Dict[str, Any]) -> None:
        TransactionRepo.ref_fs(transaction_id).update(fields)

    @staticmethod
    def list_fs(
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_void: bool = False,
    ) -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        query = fs.collection("transactions")
        if start and end:
            query = query.where("completed_at", ">=", start.isoformat()).where("completed_at", "<=", end.isoformat())
        results = docs_to_list(query.get())
        if not include_void:
            results = [t for t in results if t.get("status", "completed") == "completed"]
        return sorted(results, key=lambda t: t.get("completed_at") or "", reverse=True)


# -------- Audit log repository --------

class AuditLogRepo:
    @staticmethod
    def create_sql(
        db: Session,
        edit_type: str,
        edited_by: str,
        description: str,
        old_value: Any = None,
        new_value: Any = None,
        transaction_id: Optional[str] = None,
    ) -> AuditLog:
        log = AuditLog(
            transaction_id=transaction_id,
            edit_type=edit_type,
            edited_by=edited_by,
            description=description,
            old_value=old_value,
            new_value=new_value,
            created_at=now_utc(),
        )
        db.add(log)
        db.flush()
        return log

    @staticmethod
    def list_sql(db: Session) -> List[AuditLog]:
        return db.query(AuditLog).order_by(AuditLog.created_at.desc()).all()

    @staticmethod
    def new_ref_fs():
        fs = get_firestore_client()
        return fs.collection("audit_logs").document()

    @staticmethod
    def build_fs(
        edit_type: str,
        edited_by: str,
        description: str,
        old_value: Any = None,
        new_value: Any = None,
        transaction_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "transaction_id": transaction_id,
            "edit_type": edit_type,
            "edited_by": edited_by,
            "description": description,
            "old_value": old_value,
            "new_value": new_value,
            "created_at": now_utc().isoformat(),
        }

    @staticmethod
    def list_fs() -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        logs = docs_to_list(fs.collection("audit_logs").get())
        return sorted(logs, key=lambda l: l.get("created_at") or "", reverse=True)
