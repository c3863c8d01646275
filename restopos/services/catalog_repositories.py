"""
Repository layer for the catalog and the media library (SQLAlchemy vs Firestore).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from restopos.models import ProductGroup, Product, MediaFile
from restopos.services.firebase_client import get_firestore_client
from restopos.services.repositories import doc_to_dict, docs_to_list, now_utc


# -------- Product group repository --------

class ProductGroupRepo:
    @staticmethod
    def list_sql(db: Session) -> List[ProductGroup]:
        return db.query(ProductGroup).order_by(ProductGroup.order_index, ProductGroup.name).all()

    @staticmethod
    def get_sql(db: Session, group_id: str) -> Optional[ProductGroup]:
        return db.query(ProductGroup).filter(ProductGroup.id == group_id).first()

    @staticmethod
    def count_sql(db: Session) -> int:
        return db.query(ProductGroup).count()

    @staticmethod
    def create_sql(db: Session, name: str, image_url: Optional[str], order_index: int) -> ProductGroup:
        group = ProductGroup(name=name, image_url=image_url, order_index=order_index)
        db.add(group)
        db.commit()
        db.refresh(group)
        return group

    @staticmethod
    def update_sql(db: Session, group: ProductGroup, fields: Dict[str, Any]) -> ProductGroup:
        for key, value in fields.items():
            setattr(group, key, value)
        group.updated_at = now_utc()
        db.commit()
        db.refresh(group)
        return group

    @staticmethod
    def delete_sql(db: Session, group: ProductGroup) -> None:
        # products go with it through the relationship cascade
        db.delete(group)
        db.commit()

    # Firestore shape: collection "product_groups" keyed by generated id
    @staticmethod
    def list_fs() -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        groups = docs_to_list(fs.collection("product_groups").get())
        return sorted(groups, key=lambda g: (g.get("order_index") or 0, g.get("name") or ""))

    @staticmethod
    def get_fs(group_id: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        return doc_to_dict(fs.collection("product_groups").document(group_id).get())

    @staticmethod
    def count_fs() -> int:
        return len(ProductGroupRepo.list_fs())

    @staticmethod
    def create_fs(name: str, image_url: Optional[str], order_index: int) -> Dict[str, Any]:
        fs = get_firestore_client()
        now = now_utc().isoformat()
        data = {
            "name": name,
            "image_url": image_url,
            "order_index": order_index,
            "created_at": now,
            "updated_at": now,
        }
        ref = fs.collection("product_groups").document()
        ref.set(data)
        return {**data, "id": ref.id}

    @staticmethod
    def update_fs(group_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        ref = fs.collection("product_groups").document(group_id)
        ref.update({**fields, "updated_at": now_utc().isoformat()})
        return doc_to_dict(ref.get())

    @staticmethod
    def delete_fs(group_id: str) -> None:
        fs = get_firestore_client()
        batch = fs.batch()
        for doc in fs.collection("products").where("group_id", "==", group_id).get():
            batch.delete(doc.reference)
        batch.delete(fs.collection("product_groups").document(group_id))
        batch.commit()


# -------- Product repository --------

class ProductRepo:
    @staticmethod
    def list_sql(db: Session, active_only: bool = True, group_id: Optional[str] = None) -> List[Product]:
        query = db.query(Product)
        if active_only:
            query = query.filter(Product.is_active == True)
        if group_id:
            query = query.filter(Product.group_id == group_id)
        return query.order_by(Product.name).all()

    @staticmethod
    def get_sql(db: Session, product_id: str) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def create_sql(db: Session, fields: Dict[str, Any]) -> Product:
        product = Product(**fields)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def update_sql(db: Session, product: Product, fields: Dict[str, Any]) -> Product:
        for key, value in fields.items():
            setattr(product, key, value)
        product.updated_at = now_utc()
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def delete_sql(db: Session, product: Product) -> None:
        db.delete(product)
        db.commit()

    # Firestore shape: collection "products" keyed by generated id
    @staticmethod
    def list_fs(active_only: bool = True, group_id: Optional[str] = None) -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        query = fs.collection("products")
        if group_id:
            query = query.where("group_id", "==", group_id)
        products = docs_to_list(query.get())
        if active_only:
            products = [p for p in products if p.get("is_active", True)]
        return sorted(products, key=lambda p: p.get("name") or "")

    @staticmethod
    def get_fs(product_id: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        return doc_to_dict(fs.collection("products").document(product_id).get())

    @staticmethod
    def create_fs(fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        now = now_utc().isoformat()
        data = {**fields, "created_at": now, "updated_at": now}
        ref = fs.collection("products").document()
        ref.set(data)
        return {**data, "id": ref.id}

    @staticmethod
    def update_fs(product_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        ref = fs.collection("products").document(product_id)
        ref.update({**fields, "updated_at": now_utc().isoformat()})
        return doc_to_dict(ref.get())

    @staticmethod
    def delete_fs(product_id: str) -> None:
        fs = get_firestore_client()
        fs.collection("products").document(product_id).delete()


# -------- Media library repository --------

class MediaRepo:
    @staticmethod
    def list_sql(db: Session) -> List[MediaFile]:
        return db.query(MediaFile).order_by(MediaFile.created_at.desc()).all()

    @staticmethod
    def get_sql(db: Session, media_id: str) -> Optional[MediaFile]:
        return db.query(MediaFile).filter(MediaFile.id == media_id).first()

    @staticmethod
    def create_sql(db: Session, fields: Dict[str, Any]) -> MediaFile:
        media = MediaFile(**fields, created_at=now_utc())
        db.add(media)
        db.commit()
        db.refresh(media)
        return media

    @staticmethod
    def delete_sql(db: Session, media: MediaFile) -> None:
        db.delete(media)
        db.commit()

    # Firestore shape: collection "media_library" keyed by generated id
    @staticmethod
    def list_fs() -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        files = docs_to_list(fs.collection("media_library").get())
        return sorted(files, key=lambda m: m.get("created_at") or "", reverse=True)

    @staticmethod
    def get_fs(media_id: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        return doc_to_dict(fs.collection("media_library").document(media_id).get())

    @staticmethod
    def create_fs(fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        data = {**fields, "created_at": now_utc().isoformat()}
        ref = fs.collection("media_library").document()
        ref.set(data)
        return {**data, "id": ref.id}

    @staticmethod
    def delete_fs(media_id: str) -> None:
        fs = get_firestore_client()
        fs.collection("media_library").document(media_id).delete()
