# WORKFLOW: Database models for stored parcels, products and parcel items.
# Used by: Parcel storage service, upload API, tests
# Models represent:
# 1. products - Catalog references, deduplicated by product code
# 2. parcels - One row per canonical parcel record
# 3. parcel_items - Product lines of a parcel, referencing products
#
# Data flow: Upload -> Ingestion engine -> Canonical records -> Storage service -> These tables

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_new_id)
    product_code = Column(String(50), nullable=False, unique=True, index=True)
    product_description = Column(String(255), nullable=True)
    source_system = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    parcel_items = relationship("ParcelItem", back_populates="product")


class Parcel(Base):
    __tablename__ = "parcels"

    id = Column(String(36), primary_key=True, default=_new_id)
    purchase_order_number = Column(String(100), nullable=True)
    parcel_from = Column(String(100), nullable=True)
    parcel_to = Column(String(100), nullable=True)
    packing_list_number = Column(String(50), nullable=True)
    total_number_of_parcels = Column(Integer, nullable=False, default=1)
    item_type = Column(String(20), nullable=False, default="Regular")
    total_weight = Column(Numeric(9, 3), nullable=True)
    total_volume = Column(Numeric(9, 3), nullable=True)
    source_system = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    items = relationship("ParcelItem", back_populates="parcel", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_parcels_purchase_order', 'purchase_order_number'),
    )


class ParcelItem(Base):
    __tablename__ = "parcel_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    parcel_id = Column(String(36), ForeignKey("parcels.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    product_code = Column(String(50), nullable=False)
    parcel_no = Column(String(50), nullable=True)
    product_quantity = Column(Numeric(12, 3), nullable=True)
    unit_of_measure = Column(String(50), nullable=True)
    batch_number = Column(String(50), nullable=True)
    expiry_date = Column(Date, nullable=True)
    weight = Column(Numeric(9, 3), nullable=True)
    volume = Column(Numeric(9, 3), nullable=True)
    source_system = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    parcel = relationship("Parcel", back_populates="items")
    product = relationship("Product", back_populates="parcel_items")

    __table_args__ = (
        Index('idx_parcel_items_parcel', 'parcel_id'),
    )
