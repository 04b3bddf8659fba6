"""
Catalog Domain Models

Represents products, their variants, categories and brands.
These are the single source of truth for catalog data structure.

Author: TM3
Date: 2025-11-20
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.domain.base import DomainModel


class CategoryRef(DomainModel):
    """Lightweight category embedded in product responses"""
    id: int
    name: str
    slug: str


class BrandRef(DomainModel):
    id: int
    name: str
    slug: str


class Category(DomainModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    product_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Brand(DomainModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    product_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VariantGroup(DomainModel):
    """
    Option axis of a product

    Fields:
        id: Variant group ID
        name: Axis name (Color, Size)
        values: Allowed values in display order
    """
    id: int
    name: str
    values: List[str] = Field(default_factory=list)


class ProductVariant(DomainModel):
    """
    Purchasable combination of variant values

    Fields:
        id: Variant ID
        product_id: Parent product
        sku: Optional stock keeping unit
        price: Unit price
        stock: Units on hand
        options: Value per variant group, e.g. {"Color": "Black", "Size": "M"}
    """
    id: int = Field(..., description="Variant ID")
    product_id: int = Field(..., description="Parent product ID")
    sku: Optional[str] = Field(None, description="Stock keeping unit")
    price: Decimal = Field(..., description="Unit price", ge=0)
    stock: int = Field(0, description="Units on hand")
    options: dict = Field(default_factory=dict, description="Group name -> value")

    @property
    def label(self) -> str:
        """Human readable option list: 'Black / M'"""
        return " / ".join(str(v) for v in self.options.values())


class Product(DomainModel):
    """
    Product domain model - represents a product in the catalog

    Fields:
        id: Internal product ID (primary key)
        name: Product name
        slug: URL identifier (unique)
        description: Long description
        base_price: Price when the product has no variants
        category / brand: Embedded references (optional)
        published: Visible on the storefront
        image_urls: Image URLs in display order
        seo_title / seo_description: Search engine metadata
        variant_groups: Option axes
        variants: Purchasable combinations
    """

    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    slug: str = Field(..., description="URL slug")
    description: Optional[str] = Field(None, description="Product description")
    base_price: Decimal = Field(Decimal("0"), description="Base price", ge=0)

    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    category: Optional[CategoryRef] = None
    brand: Optional[BrandRef] = None

    published: bool = Field(True, description="Visible on storefront")
    image_urls: List[str] = Field(default_factory=list)

    seo_title: Optional[str] = None
    seo_description: Optional[str] = None

    variant_groups: List[VariantGroup] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)

    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @property
    def price(self) -> Decimal:
        """Lowest variant price, or base_price when there are no variants"""
        if self.variants:
            return min(v.price for v in self.variants)
        return self.base_price

    @property
    def stock(self) -> int:
        return sum(v.stock for v in self.variants)

    def find_variant(self, variant_id: int) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary with computed price and stock"""
        data = super().to_dict()
        data['price'] = float(self.price)
        data['stock'] = self.stock
        return data


# ============================================================================
# Write schemas
# ============================================================================

class VariantGroupInput(BaseModel):
    name: str = Field(..., min_length=1)
    values: List[str] = Field(..., min_length=1)

    @field_validator("values")
    @classmethod
    def strip_values(cls, values: List[str]) -> List[str]:
        cleaned = [v.strip() for v in values if v and v.strip()]
        if not cleaned:
            raise ValueError("variant group needs at least one value")
        return cleaned


class VariantInput(BaseModel):
    """
    One variant to create; options maps group name to value
    """
    options: dict = Field(default_factory=dict)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    sku: Optional[str] = None


class ProductCreate(BaseModel):
    """Schema for creating a new product"""
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    published: bool = True
    image_urls: List[str] = Field(default_factory=list)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    variant_groups: List[VariantGroupInput] = Field(default_factory=list)
    variants: List[VariantInput] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Schema for updating an existing product (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    published: Optional[bool] = None
    image_urls: Optional[List[str]] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    # When given, replace the existing groups / variants
    variant_groups: Optional[List[VariantGroupInput]] = None
    variants: Optional[List[VariantInput]] = None


class VariantUpdate(BaseModel):
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None


class BulkIds(BaseModel):
    ids: List[int] = Field(default_factory=list)


class BulkToggle(BaseModel):
    ids: List[int] = Field(default_factory=list)
    published: bool


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None


class BrandCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None


class BrandUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
