"""
Product Repository - Data Access Layer for Products

Handles all database queries for products, variant groups and variants
and returns Product domain models.

Author: TM3
Date: 2025-10-17
Updated: 2025-11-20 (storefront catalog with variants)
"""
from typing import Dict, List, Optional, Sequence, Tuple

from app.core.database import db_cursor
from app.domain.product import Product, ProductVariant, VariantGroup, CategoryRef, BrandRef
from app.repositories.sql import build_set_clause, build_order_by, where_clause

PRODUCT_SELECT = """
    SELECT
        p.id, p.name, p.slug, p.description, p.base_price,
        p.category_id, p.brand_id, p.published, p.image_urls,
        p.seo_title, p.seo_description, p.created_at, p.updated_at,
        c.name AS category_name, c.slug AS category_slug,
        b.name AS brand_name, b.slug AS brand_slug
    FROM products p
    LEFT JOIN categories c ON p.category_id = c.id
    LEFT JOIN brands b ON p.brand_id = b.id
"""

VARIANT_SELECT = """
    SELECT
        pv.id, pv.product_id, pv.sku, pv.price, pv.stock,
        COALESCE(
            json_object_agg(vg.name, vv.value ORDER BY vg.position, vg.id)
                FILTER (WHERE vg.id IS NOT NULL),
            '{}'::json
        ) AS options
    FROM product_variants pv
    LEFT JOIN variant_value_links l ON l.variant_id = pv.id
    LEFT JOIN variant_values vv ON vv.id = l.variant_value_id
    LEFT JOIN variant_groups vg ON vg.id = vv.variant_group_id
"""

PRODUCT_FIELDS = [
    "name", "slug", "description", "base_price", "category_id", "brand_id",
    "published", "image_urls", "seo_title", "seo_description",
]

SORT_FIELDS = {
    "created_at": "p.created_at",
    "name": "p.name",
    "id": "p.id",
    "published": "p.published",
    "base_price": "p.base_price",
}


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(
        row: dict,
        variants: Optional[List[ProductVariant]] = None,
        groups: Optional[List[VariantGroup]] = None
    ) -> Product:
        """Map a PRODUCT_SELECT row (plus loaded children) to a Product"""
        category = None
        if row.get('category_id') and row.get('category_name'):
            category = CategoryRef(id=row['category_id'], name=row['category_name'], slug=row['category_slug'])

        brand = None
        if row.get('brand_id') and row.get('brand_name'):
            brand = BrandRef(id=row['brand_id'], name=row['brand_name'], slug=row['brand_slug'])

        return Product(
            id=row['id'],
            name=row['name'],
            slug=row['slug'],
            description=row.get('description'),
            base_price=row.get('base_price') or 0,
            category_id=row.get('category_id'),
            brand_id=row.get('brand_id'),
            category=category,
            brand=brand,
            published=row.get('published', True),
            image_urls=row.get('image_urls') or [],
            seo_title=row.get('seo_title'),
            seo_description=row.get('seo_description'),
            variant_groups=groups or [],
            variants=variants or [],
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    @staticmethod
    def _map_row_to_variant(row: dict) -> ProductVariant:
        return ProductVariant(
            id=row['id'],
            product_id=row['product_id'],
            sku=row.get('sku'),
            price=row['price'],
            stock=row['stock'],
            options=row.get('options') or {}
        )

    def _load_variants(self, cur, product_ids: Sequence[int]) -> Dict[int, List[ProductVariant]]:
        """Load variants for many products in one query (avoids N+1)"""
        result: Dict[int, List[ProductVariant]] = {pid: [] for pid in product_ids}
        if not product_ids:
            return result

        cur.execute(f"""
            {VARIANT_SELECT}
            WHERE pv.product_id = ANY(%s)
            GROUP BY pv.id
            ORDER BY pv.id
        """, (list(product_ids),))

        for row in cur.fetchall():
            result.setdefault(row['product_id'], []).append(self._map_row_to_variant(row))
        return result

    def _load_groups(self, cur, product_id: int) -> List[VariantGroup]:
        cur.execute("""
            SELECT
                vg.id, vg.name,
                COALESCE(
                    array_agg(vv.value ORDER BY vv.id) FILTER (WHERE vv.id IS NOT NULL),
                    '{}'
                ) AS group_values
            FROM variant_groups vg
            LEFT JOIN variant_values vv ON vv.variant_group_id = vg.id
            WHERE vg.product_id = %s
            GROUP BY vg.id
            ORDER BY vg.position, vg.id
        """, (product_id,))
        return [
            VariantGroup(id=row['id'], name=row['name'], values=list(row['group_values'] or []))
            for row in cur.fetchall()
        ]

    def _find_one(self, column: str, value, cursor=None) -> Optional[Product]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{PRODUCT_SELECT} WHERE p.{column} = %s", (value,))
            row = cur.fetchone()
            if not row:
                return None

            variants = self._load_variants(cur, [row['id']])[row['id']]
            groups = self._load_groups(cur, row['id'])
            return self._map_row_to_product(row, variants, groups)

    def find_by_id(self, product_id: int, cursor=None) -> Optional[Product]:
        """
        Find product by ID with category, brand, variant groups and variants

        Args:
            product_id: Internal product ID

        Returns:
            Product domain model or None if not found
        """
        return self._find_one("id", product_id, cursor=cursor)

    def find_by_slug(self, slug: str, cursor=None) -> Optional[Product]:
        return self._find_one("slug", slug, cursor=cursor)

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute("SELECT 1 FROM products WHERE slug = %s", (slug,))
            else:
                cur.execute("SELECT 1 FROM products WHERE slug = %s AND id <> %s", (slug, exclude_id))
            return cur.fetchone() is not None

    def find_all(
        self,
        brand_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        published: Optional[bool] = None,
        sort_field: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters

        Args:
            brand_id: Filter by brand
            category_id: Filter by category
            search: Case-insensitive match on name or description
            published: Filter by published flag
            sort_field: created_at | name | id | published | base_price
            sort_order: asc | desc
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products with variants, total count)
        """
        conditions = []
        params = []

        if brand_id is not None:
            conditions.append("p.brand_id = %s")
            params.append(brand_id)

        if category_id is not None:
            conditions.append("p.category_id = %s")
            params.append(category_id)

        if search:
            conditions.append("(p.name ILIKE %s OR p.description ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if published is not None:
            conditions.append("p.published = %s")
            params.append(published)

        where = where_clause(conditions)
        order_by = build_order_by(sort_field, sort_order, SORT_FIELDS, "created_at")

        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM products p WHERE {where}", params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                {PRODUCT_SELECT}
                WHERE {where}
                ORDER BY {order_by}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cur.fetchall()

            variants = self._load_variants(cur, [row['id'] for row in rows])
            products = [self._map_row_to_product(row, variants.get(row['id'], [])) for row in rows]

            return products, total

    def find_by_ids(self, product_ids: List[int], cursor=None) -> List[Product]:
        if not product_ids:
            return []
        with db_cursor(cursor) as cur:
            cur.execute(f"{PRODUCT_SELECT} WHERE p.id = ANY(%s) ORDER BY p.id", (list(product_ids),))
            rows = cur.fetchall()
            variants = self._load_variants(cur, [row['id'] for row in rows])
            return [self._map_row_to_product(row, variants.get(row['id'], [])) for row in rows]

    def find_related(self, product_id: int, category_id: int, limit: int = 4, cursor=None) -> List[Product]:
        """Published products from the same category, newest first"""
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.category_id = %s AND p.id <> %s AND p.published = TRUE
                ORDER BY p.created_at DESC
                LIMIT %s
            """, (category_id, product_id, limit))
            rows = cur.fetchall()
            variants = self._load_variants(cur, [row['id'] for row in rows])
            return [self._map_row_to_product(row, variants.get(row['id'], [])) for row in rows]

    def create(self, data: dict, cursor=None) -> int:
        """Insert a product row and return its id"""
        columns = [f for f in PRODUCT_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO products ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING id
            """, [data[c] for c in columns])
            return cur.fetchone()['id']

    def update(self, product_id: int, data: dict, cursor=None) -> bool:
        clause, params = build_set_clause(data, PRODUCT_FIELDS)
        with db_cursor(cursor) as cur:
            if not clause:
                cur.execute("SELECT 1 FROM products WHERE id = %s", (product_id,))
                return cur.fetchone() is not None
            cur.execute(
                f"UPDATE products SET {clause}, updated_at = NOW() WHERE id = %s",
                params + [product_id]
            )
            return cur.rowcount > 0

    def replace_variants(
        self,
        product_id: int,
        groups: List[Tuple[str, List[str]]],
        variants: List[dict],
        cursor=None
    ):
        """
        Replace variant groups, values and variants of a product

        Args:
            groups: [(group_name, [value, ...]), ...] in display order
            variants: [{"options": {group: value}, "price", "stock", "sku"}, ...]
        """
        with db_cursor(cursor) as cur:
            self._delete_variants(cur, product_id)

            value_ids: Dict[Tuple[str, str], int] = {}
            for position, (group_name, values) in enumerate(groups):
                cur.execute("""
                    INSERT INTO variant_groups (product_id, name, position)
                    VALUES (%s, %s, %s)
                    RETURNING id
                """, (product_id, group_name, position))
                group_id = cur.fetchone()['id']

                for value in values:
                    cur.execute("""
                        INSERT INTO variant_values (variant_group_id, value)
                        VALUES (%s, %s)
                        RETURNING id
                    """, (group_id, value))
                    value_ids[(group_name, value)] = cur.fetchone()['id']

            for variant in variants:
                cur.execute("""
                    INSERT INTO product_variants (product_id, sku, price, stock)
                    VALUES (%s, %s, %s, %s)
                    RETURNING id
                """, (product_id, variant.get('sku'), variant['price'], variant.get('stock', 0)))
                variant_id = cur.fetchone()['id']

                for group_name, value in (variant.get('options') or {}).items():
                    value_id = value_ids.get((group_name, value))
                    if value_id is None:
                        continue
                    cur.execute("""
                        INSERT INTO variant_value_links (variant_id, variant_value_id)
                        VALUES (%s, %s)
                    """, (variant_id, value_id))

    @staticmethod
    def _delete_variants(cur, product_id: int):
        cur.execute("""
            DELETE FROM variant_value_links
            WHERE variant_id IN (SELECT id FROM product_variants WHERE product_id = %s)
        """, (product_id,))
        cur.execute("DELETE FROM cart_items WHERE variant_id IN (SELECT id FROM product_variants WHERE product_id = %s)", (product_id,))
        cur.execute("UPDATE order_items SET variant_id = NULL WHERE variant_id IN (SELECT id FROM product_variants WHERE product_id = %s)", (product_id,))
        cur.execute("DELETE FROM stock_reservations WHERE product_id = %s", (product_id,))
        cur.execute("DELETE FROM product_variants WHERE product_id = %s", (product_id,))
        cur.execute("""
            DELETE FROM variant_values
            WHERE variant_group_id IN (SELECT id FROM variant_groups WHERE product_id = %s)
        """, (product_id,))
        cur.execute("DELETE FROM variant_groups WHERE product_id = %s", (product_id,))

    def delete(self, product_id: int, cursor=None) -> bool:
        """
        Delete a product and everything hanging off it

        Order lines keep their frozen name/price; only the reference is cleared.
        """
        with db_cursor(cursor) as cur:
            self._delete_variants(cur, product_id)
            cur.execute("DELETE FROM cart_items WHERE product_id = %s", (product_id,))
            cur.execute("UPDATE order_items SET product_id = NULL WHERE product_id = %s", (product_id,))
            cur.execute("UPDATE campaigns SET product_id = NULL WHERE product_id = %s", (product_id,))
            cur.execute("DELETE FROM products WHERE id = %s", (product_id,))
            return cur.rowcount > 0

    def set_published(self, product_ids: List[int], published: bool, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute("""
                UPDATE products SET published = %s, updated_at = NOW()
                WHERE id = ANY(%s)
            """, (published, list(product_ids)))
            return cur.rowcount

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def find_variant(self, variant_id: int, cursor=None) -> Optional[ProductVariant]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{VARIANT_SELECT} WHERE pv.id = %s GROUP BY pv.id", (variant_id,))
            row = cur.fetchone()
            return self._map_row_to_variant(row) if row else None

    def update_variant(self, variant_id: int, data: dict, cursor=None) -> Optional[ProductVariant]:
        clause, params = build_set_clause(data, ["price", "stock", "sku"])
        with db_cursor(cursor) as cur:
            if clause:
                cur.execute(
                    f"UPDATE product_variants SET {clause}, updated_at = NOW() WHERE id = %s",
                    params + [variant_id]
                )
                if cur.rowcount == 0:
                    return None
            return self.find_variant(variant_id, cursor=cur)
