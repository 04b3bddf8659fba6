"""
Catalog tables: categories, brands, products and their variants
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey, Table, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


# Which variant values make up a variant ("Black" + "M")
variant_value_links = Table(
    "variant_value_links",
    Base.metadata,
    Column("variant_id", Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), primary_key=True),
    Column("variant_value_id", Integer, ForeignKey("variant_values.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text)
    image_url = Column(String(1000))
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="category")


class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text)
    logo_url = Column(String(1000))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="brand")


class Product(Base):
    """
    Sellable product; price and stock live on variants when it has any
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text)
    base_price = Column(DECIMAL(12, 2), nullable=False, default=0, server_default="0")

    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), index=True)

    published = Column(Boolean, default=True, server_default="true", index=True)
    image_urls = Column(ARRAY(Text), default=list, server_default="{}")

    seo_title = Column(String(255))
    seo_description = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    brand = relationship("Brand", back_populates="products")
    variant_groups = relationship("VariantGroup", back_populates="product", cascade="all, delete-orphan")
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")


class VariantGroup(Base):
    """Option axis of a product, e.g. Color or Size"""
    __tablename__ = "variant_groups"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    position = Column(Integer, default=0, server_default="0")

    product = relationship("Product", back_populates="variant_groups")
    values = relationship("VariantValue", back_populates="group", cascade="all, delete-orphan")


class VariantValue(Base):
    __tablename__ = "variant_values"

    id = Column(Integer, primary_key=True, index=True)
    variant_group_id = Column(Integer, ForeignKey("variant_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String(100), nullable=False)

    group = relationship("VariantGroup", back_populates="values")


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (UniqueConstraint("sku", name="uq_product_variants_sku"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(100))
    price = Column(DECIMAL(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="variants")
    values = relationship("VariantValue", secondary=variant_value_links)
