import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Text, Integer, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.types import JSON
from .db import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Catalog(Base):
    __tablename__ = "catalogs"

    id = Column(String(32), primary_key=True, default=_new_id)
    product_name = Column(String, nullable=False, index=True)
    product_price = Column(Float, nullable=False)
    product_description = Column(Text, nullable=False)
    category = Column(String, nullable=True, index=True)

    # Images: [{"url": ..., "storageId": ..., "isPrimary": ...}, ...] in upload/keep order
    images = Column(JSON, nullable=False, default=list)

    colors = Column(JSON, nullable=False)
    sizes = Column(JSON, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("product_price >= 0", name="ck_catalogs_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_catalogs_stock_non_negative"),
        CheckConstraint("length(trim(product_name)) > 0", name="ck_catalogs_name_required"),
        CheckConstraint("length(trim(product_description)) > 0", name="ck_catalogs_description_required"),
    )

    # Every UPDATE is issued as "... WHERE id = ? AND version = ?"
    __mapper_args__ = {"version_id_col": version}

    @validates("product_name", "product_description")
    def _validate_required_text(self, key, value):
        if value is None or not str(value).strip():
            raise ValueError(f"{key} must not be empty")
        return str(value).strip()

    @validates("product_price", "stock")
    def _validate_non_negative(self, key, value):
        if value is None or value < 0:
            raise ValueError(f"{key} must not be negative")
        return value
