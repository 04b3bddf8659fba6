"""
Catalog Service
Business rules for products, variants, categories and brands

Purpose:
- Resolve category filters given as id or slug
- Generate unique slugs and reject duplicates
- Create / replace variant groups and variants in one transaction
- Bulk delete and publish toggles

Author: TM3
Date: 2025-11-20
"""
import logging
from typing import List, Optional, Tuple, Union

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.product import (
    Product, ProductCreate, ProductUpdate, VariantUpdate,
    CategoryCreate, CategoryUpdate, BrandCreate, BrandUpdate,
)
from app.repositories.catalog_repository import CategoryRepository, BrandRepository
from app.repositories.product_repository import ProductRepository
from app.services.product_import_service import generate_combinations
from app.utils.slugify import slugify

logger = logging.getLogger(__name__)

MIN_COMPARE = 2
MAX_COMPARE = 4


def _variant_rows(groups, variants, fallback_price) -> Tuple[list, list]:
    """
    Normalise write-schema variant input into repository arguments

    When groups are given without explicit variants, every combination of
    group values becomes a variant at fallback_price with zero stock.
    """
    group_tuples = [(g.name, list(g.values)) for g in groups]
    if variants:
        rows = [
            {"options": dict(v.options), "price": v.price, "stock": v.stock, "sku": v.sku}
            for v in variants
        ]
    elif group_tuples:
        names = [name for name, _ in group_tuples]
        rows = [
            {"options": dict(zip(names, combo)), "price": fallback_price or 0, "stock": 0, "sku": None}
            for combo in generate_combinations([values for _, values in group_tuples])
        ]
    else:
        rows = []
    return group_tuples, rows


class CatalogService:
    """Product catalog operations used by the products and catalog routers"""

    def __init__(self):
        self.products = ProductRepository()
        self.categories = CategoryRepository()
        self.brands = BrandRepository()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def resolve_category_id(self, category: Optional[str]) -> Optional[int]:
        """
        Category filter accepts a numeric id or a slug

        Unknown slugs are ignored (no filter) rather than returning nothing.
        """
        if category is None or str(category).strip() == "":
            return None
        value = str(category).strip()
        if value.isdigit():
            return int(value)
        found = self.categories.find_by_slug(value)
        if not found:
            logger.debug(f"Ignoring unknown category slug filter: {value}")
            return None
        return found.id

    def list_products(
        self,
        brand_id: Optional[int] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        published: Optional[bool] = None,
        sort_field: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Product], int]:
        return self.products.find_all(
            brand_id=brand_id,
            category_id=self.resolve_category_id(category),
            search=search,
            published=published,
            sort_field=sort_field,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    def get_product(self, identifier: Union[int, str]) -> Product:
        """Fetch by numeric id or by slug"""
        value = str(identifier)
        product = self.products.find_by_id(int(value)) if value.isdigit() else None
        if product is None:
            product = self.products.find_by_slug(value)
        if product is None:
            raise NotFoundError("Product", identifier)
        return product

    def create_product(self, data: ProductCreate) -> Product:
        slug = slugify(data.slug or data.name)
        if not slug:
            raise ValidationError("Product name must contain letters or digits")

        groups, variants = _variant_rows(data.variant_groups, data.variants, data.base_price)
        base_price = data.base_price
        if base_price is None:
            base_price = min((v["price"] for v in variants), default=0)

        with db_cursor() as cursor:
            if self.products.slug_exists(slug, cursor=cursor):
                raise ConflictError(f"Product slug '{slug}' already exists")

            fields = data.model_dump(exclude={"slug", "base_price", "variant_groups", "variants"})
            fields.update(slug=slug, base_price=base_price)
            product_id = self.products.create(fields, cursor=cursor)

            if groups or variants:
                self.products.replace_variants(product_id, groups, variants, cursor=cursor)

            logger.info(f"Created product {product_id} ({slug}) with {len(variants)} variants")
            return self.products.find_by_id(product_id, cursor=cursor)

    def update_product(self, product_id: int, data: ProductUpdate) -> Product:
        with db_cursor() as cursor:
            existing = self.products.find_by_id(product_id, cursor=cursor)
            if not existing:
                raise NotFoundError("Product", product_id)

            fields = data.model_dump(exclude_unset=True, exclude={"variant_groups", "variants"})
            if "slug" in fields:
                # An empty slug is regenerated from the (new) name
                fields["slug"] = slugify(fields["slug"] or fields.get("name") or existing.name)
                if self.products.slug_exists(fields["slug"], exclude_id=product_id, cursor=cursor):
                    raise ConflictError(f"Product slug '{fields['slug']}' already exists")

            if data.variant_groups is not None or data.variants is not None:
                groups, variants = _variant_rows(
                    data.variant_groups or [],
                    data.variants or [],
                    fields.get("base_price", existing.base_price),
                )
                self.products.replace_variants(product_id, groups, variants, cursor=cursor)
                if "base_price" not in fields and variants:
                    fields["base_price"] = min(v["price"] for v in variants)

            self.products.update(product_id, fields, cursor=cursor)
            return self.products.find_by_id(product_id, cursor=cursor)

    def delete_product(self, product_id: int) -> Product:
        with db_cursor() as cursor:
            product = self.products.find_by_id(product_id, cursor=cursor)
            if not product:
                raise NotFoundError("Product", product_id)
            self.products.delete(product_id, cursor=cursor)
            return product

    def bulk_delete(self, ids: List[int]) -> int:
        if not ids:
            raise ValidationError("No product ids given")
        deleted = 0
        with db_cursor() as cursor:
            for product_id in dict.fromkeys(ids):
                if self.products.delete(product_id, cursor=cursor):
                    deleted += 1
        logger.info(f"Bulk deleted {deleted} of {len(ids)} products")
        return deleted

    def bulk_set_published(self, ids: List[int], published: bool) -> int:
        if not ids:
            raise ValidationError("No product ids given")
        return self.products.set_published(ids, published)

    def related(self, product_id: int, limit: int = 4) -> List[Product]:
        product = self.products.find_by_id(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        if not product.category_id:
            return []
        return self.products.find_related(product_id, product.category_id, limit=limit)

    def compare(self, ids: List[int]) -> List[Product]:
        unique_ids = list(dict.fromkeys(ids))
        if len(unique_ids) < MIN_COMPARE:
            raise ValidationError(f"At least {MIN_COMPARE} products are required for comparison")
        if len(unique_ids) > MAX_COMPARE:
            raise ValidationError(f"At most {MAX_COMPARE} products can be compared")
        return self.products.find_by_ids(unique_ids)

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def get_variant(self, variant_id: int) -> dict:
        variant = self.products.find_variant(variant_id)
        if not variant:
            raise NotFoundError("Variant", variant_id)
        product = self.products.find_by_id(variant.product_id)
        return {"variant": variant, "product": product}

    def update_variant(self, variant_id: int, data: VariantUpdate):
        fields = data.model_dump(exclude_unset=True)
        variant = self.products.update_variant(variant_id, fields)
        if not variant:
            raise NotFoundError("Variant", variant_id)
        return variant

    # ------------------------------------------------------------------
    # Categories / brands
    # ------------------------------------------------------------------

    def _repo(self, kind: str):
        return self.categories if kind == "category" else self.brands

    def list_taxonomy(self, kind: str, search: Optional[str] = None) -> list:
        """Categories or brands with product counts"""
        return self._repo(kind).find_all(search=search)

    def get_taxonomy(self, kind: str, identifier: Union[int, str]):
        repo = self._repo(kind)
        value = str(identifier)
        item = repo.find_by_id(int(value)) if value.isdigit() else None
        if item is None:
            item = repo.find_by_slug(value)
        if item is None:
            raise NotFoundError(kind.capitalize(), identifier)
        return item

    def create_taxonomy(self, kind: str, data: Union[CategoryCreate, BrandCreate]):
        repo = self._repo(kind)
        fields = data.model_dump()
        fields["slug"] = slugify(fields.get("slug") or fields["name"])
        if not fields["slug"]:
            raise ValidationError("Name must contain letters or digits")

        with db_cursor() as cursor:
            if repo.slug_exists(fields["slug"], cursor=cursor):
                raise ConflictError(f"{kind.capitalize()} slug '{fields['slug']}' already exists")
            return repo.create(fields, cursor=cursor)

    def update_taxonomy(self, kind: str, item_id: int, data: Union[CategoryUpdate, BrandUpdate]):
        repo = self._repo(kind)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("slug") or fields.get("name"):
            fields["slug"] = slugify(fields.get("slug") or fields["name"])

        with db_cursor() as cursor:
            if repo.find_by_id(item_id, cursor=cursor) is None:
                raise NotFoundError(kind.capitalize(), item_id)
            if fields.get("slug") and repo.slug_exists(fields["slug"], exclude_id=item_id, cursor=cursor):
                raise ConflictError(f"{kind.capitalize()} slug '{fields['slug']}' already exists")
            if kind == "category" and fields.get("parent_id") == item_id:
                raise ValidationError("A category cannot be its own parent")
            return repo.update(item_id, fields, cursor=cursor)

    def delete_taxonomy(self, kind: str, item_id: int):
        repo = self._repo(kind)
        with db_cursor() as cursor:
            item = repo.find_by_id(item_id, cursor=cursor)
            if item is None:
                raise NotFoundError(kind.capitalize(), item_id)
            product_count = repo.count_products(item_id, cursor=cursor)
            if product_count:
                raise ConflictError(
                    f"{kind.capitalize()} has {product_count} products and cannot be deleted"
                )
            repo.delete(item_id, cursor=cursor)
            return item

    def taxonomy_stats(self, kind: str, identifier: Union[int, str]) -> dict:
        item = self.get_taxonomy(kind, identifier)
        stats = self._repo(kind).get_stats(item.id)
        return {kind: item, "stats": stats}
