"""
Product Import Service
Bulk create / update products from a CSV upload

CSV columns:
    name, slug, description, price, stock, categorySlug, brandSlug,
    imageUrls (comma separated), variantGroups ("Color:Black,White;Size:S,M"),
    published ("false" hides the product), seoTitle, seoDescription

Each row is upserted by slug inside its own transaction so one bad row
never aborts the whole import.

Author: TM3
Date: 2025-11-21
"""
import io
import itertools
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from app.core.database import db_cursor
from app.core.exceptions import ValidationError
from app.repositories.catalog_repository import CategoryRepository, BrandRepository
from app.repositories.product_repository import ProductRepository
from app.utils.slugify import slugify

logger = logging.getLogger(__name__)

# Data rows start at 2, the header is row 1
FIRST_DATA_ROW = 2


def generate_combinations(groups: Sequence[Sequence[str]]) -> List[List[str]]:
    """
    Cartesian product of variant group values

    The first group varies slowest:
        generate_combinations([["Black", "White"], ["S", "M"]])
        -> [["Black", "S"], ["Black", "M"], ["White", "S"], ["White", "M"]]

    No groups yields a single empty combination: [[]].
    """
    return [list(combo) for combo in itertools.product(*groups)]


def parse_variant_groups(value: Optional[str]) -> List[Tuple[str, List[str]]]:
    """
    Parse "Color:Black,White;Size:S,M,L" into [(name, [values])]

    Segments without a name or without values are skipped.
    """
    groups = []
    if not value:
        return groups

    for segment in value.split(";"):
        if ":" not in segment:
            continue
        name, _, raw_values = segment.partition(":")
        name = name.strip()
        values = [v.strip() for v in raw_values.split(",") if v.strip()]
        if name and values:
            groups.append((name, values))
    return groups


def _parse_price(raw: Optional[str]) -> Decimal:
    text = (raw or "").strip()
    if text == "":
        return Decimal("0")
    try:
        price = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Invalid price: {raw}")
    if not price.is_finite() or price < 0:
        raise ValidationError(f"Invalid price: {raw}")
    return price


def _parse_stock(raw: Optional[str]) -> int:
    text = (raw or "").strip()
    if text == "":
        return 0
    try:
        stock = int(text)
    except ValueError:
        raise ValidationError(f"Invalid stock: {raw}")
    if stock < 0:
        raise ValidationError(f"Invalid stock: {raw}")
    return stock


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class ProductImportService:

    def __init__(self):
        self.products = ProductRepository()
        self.categories = CategoryRepository()
        self.brands = BrandRepository()

    def read_rows(self, content: bytes) -> List[Dict[str, str]]:
        """Decode (BOM tolerated) and parse the CSV into dict rows"""
        try:
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
        except pd.errors.EmptyDataError:
            raise ValidationError("CSV file is empty or has no header row")
        except pd.errors.ParserError as e:
            raise ValidationError(f"CSV file could not be parsed: {e}")

        df.columns = [str(col).strip() for col in df.columns]
        rows = []
        for _, row in df.iterrows():
            values = row.to_dict()
            # Skip rows with every cell blank
            if any(str(v).strip() for v in values.values()):
                rows.append(values)
        return rows

    def import_csv(self, content: bytes) -> dict:
        """
        Import every row of a CSV file

        Returns:
            {"total", "success", "failed", "errors": ["Row n: message", ...]}
        """
        rows = self.read_rows(content)
        result = {"total": len(rows), "success": 0, "failed": 0, "errors": []}

        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            warnings: List[str] = []
            try:
                self.import_row(row, warnings)
                result["success"] += 1
            except ValidationError as e:
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: {e.message}")
            except Exception as e:
                logger.error(f"CSV import row {row_number} failed: {e}")
                result["failed"] += 1
                result["errors"].append(f"Row {row_number}: Processing error: {e}")
            result["errors"].extend(f"Row {row_number}: {w}" for w in warnings)

        logger.info(
            f"CSV import finished: {result['success']} succeeded, "
            f"{result['failed']} failed of {result['total']}"
        )
        return result

    def import_row(self, row: Dict[str, str], warnings: List[str]) -> int:
        """
        Upsert one product row; returns the product id

        Non-fatal problems (unknown brand) are appended to warnings.
        """
        name = _clean(row.get("name"))
        if not name:
            raise ValidationError("Product name is required")

        category_slug = _clean(row.get("categorySlug"))
        if not category_slug:
            raise ValidationError("Category is required")

        price = _parse_price(row.get("price"))
        stock = _parse_stock(row.get("stock"))
        slug = slugify(_clean(row.get("slug")) or name)
        groups = parse_variant_groups(row.get("variantGroups"))
        image_urls = [u.strip() for u in (row.get("imageUrls") or "").split(",") if u.strip()]

        with db_cursor() as cursor:
            category = self.categories.find_by_slug(category_slug, cursor=cursor)
            if not category:
                raise ValidationError(f"Category not found: {category_slug}")

            brand_id = None
            brand_slug = _clean(row.get("brandSlug"))
            if brand_slug:
                brand = self.brands.find_by_slug(brand_slug, cursor=cursor)
                if brand:
                    brand_id = brand.id
                else:
                    warnings.append(f"Brand not found: {brand_slug}")

            fields = {
                "name": name,
                "slug": slug,
                "description": _clean(row.get("description")),
                "base_price": price if not groups else Decimal("0"),
                "category_id": category.id,
                "brand_id": brand_id,
                "published": (row.get("published") or "").strip() != "false",
                "image_urls": image_urls,
                "seo_title": _clean(row.get("seoTitle")),
                "seo_description": _clean(row.get("seoDescription")),
            }

            existing = self.products.find_by_slug(slug, cursor=cursor)
            if existing:
                product_id = existing.id
                self.products.update(product_id, fields, cursor=cursor)
            else:
                product_id = self.products.create(fields, cursor=cursor)

            if groups:
                names = [group_name for group_name, _ in groups]
                variants = [
                    {"options": dict(zip(names, combo)), "price": price, "stock": stock}
                    for combo in generate_combinations([values for _, values in groups])
                ]
                self.products.replace_variants(product_id, groups, variants, cursor=cursor)

            return product_id
