"""
Admin management of product groups, products and tables
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from restopos.schemas.catalog import (
    ProductCreate,
    ProductGroupCreate,
    ProductGroupResponse,
    ProductGroupUpdate,
    ProductResponse,
    ProductUpdate,
)
from restopos.schemas.table import TableCreate, TableResponse
from restopos.services.catalog_repositories import ProductGroupRepo, ProductRepo
from restopos.services.exceptions import RecordNotFound, ValidationFailed
from restopos.services.repositories import TableRepo, to_fs_money, use_firestore
from restopos.services.table_service import to_money

logger = logging.getLogger(__name__)


def _check_price(price: Optional[Decimal]) -> Optional[Decimal]:
    if price is None:
        return None
    if not price.is_finite() or price < 0:
        raise ValidationFailed("Price must be zero or more", "invalid_price")
    return to_money(price)


def _required_name(name: Optional[str], what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed(f"{what} name is required", "name_required")
    return name


def _reject_nulls(fields: Dict, error_codes: Dict[str, str]) -> None:
    """Fields that may be omitted from an update but never set to null"""
    for key, error_code in error_codes.items():
        if key in fields and fields[key] is None:
            raise ValidationFailed(f"{key} cannot be null", error_code)


class CatalogService:
    """Service for the product catalog"""

    # -------- groups --------

    @staticmethod
    def list_groups(db: Session) -> List[ProductGroupResponse]:
        if not use_firestore():
            return [ProductGroupResponse.model_validate(g) for g in ProductGroupRepo.list_sql(db)]
        return [ProductGroupResponse.model_validate(g) for g in ProductGroupRepo.list_fs()]

    @staticmethod
    def create_group(db: Session, data: ProductGroupCreate) -> ProductGroupResponse:
        """New groups go to the end of the list unless an order index is given"""
        name = _required_name(data.name, "Group")
        if not use_firestore():
            order_index = data.order_index if data.order_index is not None else ProductGroupRepo.count_sql(db)
            group = ProductGroupRepo.create_sql(db, name, data.image_url, order_index)
        else:
            order_index = data.order_index if data.order_index is not None else ProductGroupRepo.count_fs()
            group = ProductGroupRepo.create_fs(name, data.image_url, order_index)
        logger.info(f"Product group '{name}' created")
        return ProductGroupResponse.model_validate(group)

    @staticmethod
    def update_group(db: Session, group_id: str, data: ProductGroupUpdate) -> ProductGroupResponse:
        fields = data.model_dump(exclude_unset=True)
        _reject_nulls(fields, {"order_index": "invalid_order_index"})
        if "name" in fields:
            fields["name"] = _required_name(fields["name"], "Group")

        if not use_firestore():
            group = ProductGroupRepo.get_sql(db, group_id)
            if not group:
                raise RecordNotFound("Product group")
            group = ProductGroupRepo.update_sql(db, group, fields)
        else:
            if not ProductGroupRepo.get_fs(group_id):
                raise RecordNotFound("Product group")
            group = ProductGroupRepo.update_fs(group_id, fields)
        return ProductGroupResponse.model_validate(group)

    @staticmethod
    def delete_group(db: Session, group_id: str) -> None:
        """Delete a group together with its products"""
        if not use_firestore():
            group = ProductGroupRepo.get_sql(db, group_id)
            if not group:
                raise RecordNotFound("Product group")
            ProductGroupRepo.delete_sql(db, group)
        else:
            if not ProductGroupRepo.get_fs(group_id):
                raise RecordNotFound("Product group")
            ProductGroupRepo.delete_fs(group_id)
        logger.info(f"Product group {group_id} deleted")

    # -------- products --------

    @staticmethod
    def _group_names(db: Session) -> Dict[str, str]:
        return {g.id: g.name for g in CatalogService.list_groups(db)}

    @staticmethod
    def list_products(db: Session, group_id: Optional[str] = None, active_only: bool = True) -> List[ProductResponse]:
        if not use_firestore():
            rows = ProductRepo.list_sql(db, active_only=active_only, group_id=group_id)
        else:
            rows = ProductRepo.list_fs(active_only=active_only, group_id=group_id)

        names = CatalogService._group_names(db)
        products = []
        for row in rows:
            product = ProductResponse.model_validate(row)
            product.group_name = names.get(product.group_id)
            products.append(product)
        return products

    @staticmethod
    def _ensure_group(db: Session, group_id: str) -> None:
        if not use_firestore():
            exists = ProductGroupRepo.get_sql(db, group_id) is not None
        else:
            exists = ProductGroupRepo.get_fs(group_id) is not None
        if not exists:
            raise ValidationFailed("Product group does not exist", "invalid_group")

    @staticmethod
    def create_product(db: Session, data: ProductCreate) -> ProductResponse:
        """Create a product; a null price means it is priced when ordered"""
        fields = {
            "name": _required_name(data.name, "Product"),
            "group_id": data.group_id,
            "price": _check_price(data.price),
            "is_active": data.is_active,
        }
        CatalogService._ensure_group(db, data.group_id)

        if not use_firestore():
            product = ProductRepo.create_sql(db, fields)
        else:
            product = ProductRepo.create_fs({**fields, "price": to_fs_money(fields["price"])})
        logger.info(f"Product '{fields['name']}' created")
        return ProductResponse.model_validate(product)

    @staticmethod
    def update_product(db: Session, product_id: str, data: ProductUpdate) -> ProductResponse:
        fields = data.model_dump(exclude_unset=True, exclude={"clear_price"})
        _reject_nulls(fields, {"group_id": "invalid_group", "is_active": "invalid_is_active"})
        if "name" in fields:
            fields["name"] = _required_name(fields["name"], "Product")
        if "price" in fields:
            fields["price"] = _check_price(fields["price"])
        if data.clear_price:
            fields["price"] = None
        if "group_id" in fields:
            CatalogService._ensure_group(db, fields["group_id"])

        if not use_firestore():
            product = ProductRepo.get_sql(db, product_id)
            if not product:
                raise RecordNotFound("Product")
            product = ProductRepo.update_sql(db, product, fields)
        else:
            if not ProductRepo.get_fs(product_id):
                raise RecordNotFound("Product")
            if "price" in fields:
                fields["price"] = to_fs_money(fields["price"])
            product = ProductRepo.update_fs(product_id, fields)
        return ProductResponse.model_validate(product)

    @staticmethod
    def delete_product(db: Session, product_id: str) -> None:
        if not use_firestore():
            product = ProductRepo.get_sql(db, product_id)
            if not product:
                raise RecordNotFound("Product")
            ProductRepo.delete_sql(db, product)
        else:
            if not ProductRepo.get_fs(product_id):
                raise RecordNotFound("Product")
            ProductRepo.delete_fs(product_id)
        logger.info(f"Product {product_id} deleted")


class TableAdminService:
    """Service for adding, renaming and removing tables"""

    @staticmethod
    def create_table(db: Session, data: TableCreate) -> TableResponse:
        """Create a table; the id defaults to the next free number, the name to 'Table <id>'"""
        if not use_firestore():
            table_id = data.id or TableRepo.next_id_sql(db)
            exists = TableRepo.get_sql(db, table_id) is not None
        else:
            table_id = data.id or TableRepo.next_id_fs()
            exists = TableRepo.get_fs(table_id) is not None
        if exists:
            raise ValidationFailed(f"Table {table_id} already exists", "duplicate_table")

        name = (data.name or "").strip() or f"Table {table_id}"
        if not use_firestore():
            table = TableRepo.create_sql(db, table_id, name)
        else:
            table = TableRepo.create_fs(table_id, name)
        logger.info(f"Table {table_id} '{name}' created")
        return TableResponse.model_validate(table)

    @staticmethod
    def rename_table(db: Session, table_id: int, name: str, actor: str) -> TableResponse:
        name = _required_name(name, "Table")
        if not use_firestore():
            table = TableRepo.get_sql(db, table_id)
            if not table:
                raise RecordNotFound("Table")
            table = TableRepo.rename_sql(db, table, name, actor)
        else:
            if not TableRepo.get_fs(table_id):
                raise RecordNotFound("Table")
            table = TableRepo.rename_fs(table_id, name, actor)
        return TableResponse.model_validate(table)

    @staticmethod
    def delete_table(db: Session, table_id: int) -> None:
        """Delete a free table; occupied tables must be closed first"""
        if not use_firestore():
            table = TableRepo.get_sql(db, table_id)
            if not table:
                raise RecordNotFound("Table")
            if table.is_occupied:
                raise ValidationFailed("Close the table before deleting it", "table_occupied")
            TableRepo.delete_sql(db, table)
        else:
            table = TableRepo.get_fs(table_id)
            if not table:
                raise RecordNotFound("Table")
            if table.get("is_occupied"):
                raise ValidationFailed("Close the table before deleting it", "table_occupied")
            TableRepo.delete_fs(table_id)
        logger.info(f"Table {table_id} deleted")
