"""
Tests for the Firestore code paths of order entry, close-out and amendments
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from restopos.services.auth_service import AuthService
from restopos.services.exceptions import TableCloseError, ValidationFailed
from restopos.services.repositories import TableRepo
from restopos.services.table_service import TableService
from restopos.services.transaction_service import TransactionService

@pytest.fixture
def menu(fake_firestore):
    """Seed one table and a few products straight into the store"""
    fake_firestore.collections["tables"] = {
        "1": {"id": 1, "name": "Window", "is_occupied": False, "opened_at": None, "opened_by": None},
    }
    fake_firestore.collections["products"] = {
        "wine": {"name": "House Wine", "price": 10.5, "group_id": "g1", "is_active": True},
        "soup": {"name": "Soup", "price": 5.0, "group_id": "g1", "is_active": True},
        "special": {"name": "Daily Special", "price": None, "group_id": "g1", "is_active": True},
    }
    return fake_firestore

class TestFirestoreOrderEntry:
    """Test add item against Firestore"""

    def test_add_item_writes_line_and_occupies(self, menu):
        detail = TableService.add_item(None, 1, "wine", actor="anna", quantity=2)
        TableService.add_item(None, 1, "soup", actor="ben")

        table = menu.collections["tables"]["1"]
        assert table["is_occupied"] is True
        assert table["opened_by"] == "anna"
        assert table["last_modified_by"] == "ben"
        assert len(menu.collections["table_items"]) == 2
        assert detail.items[0].product_price == Decimal("10.5")
        assert TableService.get_table_detail(None, 1).total == Decimal("26.00")

    def test_null_price_rejected_before_write(self, menu):
        with pytest.raises(ValidationFailed):
            TableService.add_item(None, 1, "special", actor="anna", custom_price=Decimal("0"))

        assert menu.collections.get("table_items", {}) == {}
        assert menu.collections["tables"]["1"]["is_occupied"] is False

    def test_failed_batch_writes_nothing(self, menu):
        menu.fail_next_batch = True

        with pytest.raises(RuntimeError):
            TableService.add_item(None, 1, "wine", actor="anna")

        assert menu.collections.get("table_items", {}) == {}
        assert menu.collections["tables"]["1"]["is_occupied"] is False

class TestFirestoreCloseTable:
    """Test close-out against Firestore"""

    def test_close_table(self, menu):
        TableService.add_item(None, 1, "wine", actor="anna", quantity=2)
        TableService.add_item(None, 1, "soup", actor="ben")

        result = TableService.close_table(None, 1, actor="carla")

        assert result.transaction.total_amount == Decimal("26.0")
        assert len(result.transaction.items) == 2
        assert result.table.is_occupied is False
        assert menu.collections["table_items"] == {}
        stored = list(menu.collections["transactions"].values())
        assert len(stored) == 1
        assert stored[0]["total_amount"] == 26.0
        assert stored[0]["status"] == "completed"

    def test_close_empty_table(self, menu):
        menu.collections["tables"]["1"]["is_occupied"] = True

        result = TableService.close_table(None, 1, actor="carla")

        assert result.transaction is None
        assert result.table.is_occupied is False
        assert menu.collections.get("transactions", {}) == {}

    def test_failed_clear_voids_transaction(self, menu):
        TableService.add_item(None, 1, "soup", actor="anna")
        menu.fail_next_batch = True

        with pytest.raises(TableCloseError) as exc:
            TableService.close_table(None, 1, actor="carla")

        assert exc.value.step == "clear_items"
        stored = list(menu.collections["transactions"].values())
        assert len(stored) == 1
        assert stored[0]["status"] == "void"
        assert len(menu.collections["table_items"]) == 1
        assert TableRepo.get_fs(1)["is_occupied"] is True
        assert TransactionService.list_transactions(None) == []
        assert len(TransactionService.list_transactions(None, include_void=True)) == 1

class TestFirestoreAmendments:
    """Test transaction edits against Firestore"""

    def test_delete_item_and_audit(self, menu):
        menu.collections["transactions"] = {
            "t1": {
                "table_id": 3,
                "table_name": "Table 3",
                "total_amount": 25.0,
                "items": [
                    {"name": "Tea", "price": 5.0, "quantity": 2},
                    {"name": "Cake", "price": 15.0, "quantity": 1},
                ],
                "completed_at": "2024-05-04T19:30:00",
                "status": "completed",
            }
        }

        result = TransactionService.delete_transaction_item(None, "t1", 0, actor="admin")

        assert [item.name for item in result.items] == ["Cake"]
        assert result.total_amount == Decimal("15.0")
        assert menu.collections["transactions"]["t1"]["total_amount"] == 15.0
        logs = list(menu.collections["audit_logs"].values())
        assert len(logs) == 1
        assert logs[0]["edit_type"] == "delete_item"
        assert logs[0]["transaction_id"] == "t1"

class TestFirestoreSessions:
    """Test session cleanup against Firestore"""

    def test_expired_sessions_purged(self, fake_firestore):
        now = datetime.utcnow()
        fake_firestore.collections["user_sessions"] = {
            "old": {"token": "old", "actor_name": "anna", "is_admin": False,
                    "expires_at": (now - timedelta(hours=1)).isoformat()},
            "live": {"token": "live", "actor_name": "admin", "is_admin": True,
                     "expires_at": (now + timedelta(hours=1)).isoformat()},
        }

        assert AuthService.purge_expired_sessions(None) == 1
        assert list(fake_firestore.collections["user_sessions"]) == ["live"]
