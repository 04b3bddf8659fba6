"""
Catalog Repository - categories and brands

Both tables share the same shape (name, slug, a few descriptive columns)
and are referenced from products, so one base class serves both.

Author: TM3
Date: 2025-11-20
"""
from typing import List, Optional

from app.core.database import db_cursor
from app.domain.product import Category, Brand
from app.repositories.sql import build_set_clause


class _TaxonomyRepository:
    table: str = ""
    product_fk: str = ""
    fields: List[str] = []
    model = None

    @property
    def _columns(self) -> str:
        return ", ".join(["t.id"] + [f"t.{f}" for f in self.fields] + ["t.created_at", "t.updated_at"])

    def _map(self, row: dict):
        return self.model(**row)

    def find_all(self, search: Optional[str] = None, cursor=None) -> list:
        params = []
        where = "1=1"
        if search:
            where = "t.name ILIKE %s"
            params.append(f"%{search}%")

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {self._columns}, COUNT(p.id) AS product_count
                FROM {self.table} t
                LEFT JOIN products p ON p.{self.product_fk} = t.id
                WHERE {where}
                GROUP BY t.id
                ORDER BY t.name
            """, params)
            return [self._map(row) for row in cur.fetchall()]

    def find_by_id(self, item_id: int, cursor=None):
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {self._columns} FROM {self.table} t WHERE t.id = %s", (item_id,))
            row = cur.fetchone()
            return self._map(row) if row else None

    def find_by_slug(self, slug: str, cursor=None):
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {self._columns} FROM {self.table} t WHERE t.slug = %s", (slug,))
            row = cur.fetchone()
            return self._map(row) if row else None

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute(f"SELECT 1 FROM {self.table} WHERE slug = %s", (slug,))
            else:
                cur.execute(f"SELECT 1 FROM {self.table} WHERE slug = %s AND id <> %s", (slug, exclude_id))
            return cur.fetchone() is not None

    def create(self, data: dict, cursor=None):
        columns = [f for f in self.fields if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO {self.table} ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING id
            """, [data[c] for c in columns])
            new_id = cur.fetchone()['id']
            return self.find_by_id(new_id, cursor=cur)

    def update(self, item_id: int, data: dict, cursor=None):
        clause, params = build_set_clause(data, self.fields)
        with db_cursor(cursor) as cur:
            if clause:
                cur.execute(
                    f"UPDATE {self.table} SET {clause}, updated_at = NOW() WHERE id = %s",
                    params + [item_id]
                )
                if cur.rowcount == 0:
                    return None
            return self.find_by_id(item_id, cursor=cur)

    def delete(self, item_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute(f"DELETE FROM {self.table} WHERE id = %s", (item_id,))
            return cur.rowcount > 0

    def count_products(self, item_id: int, cursor=None) -> int:
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM products WHERE {self.product_fk} = %s", (item_id,))
            return cur.fetchone()['total']

    def get_stats(self, item_id: int, cursor=None) -> dict:
        """
        Product statistics for one category / brand

        Returns:
            {product_count, published_count, total_stock, min_price, max_price}
        """
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT
                    COUNT(DISTINCT p.id) AS product_count,
                    COUNT(DISTINCT p.id) FILTER (WHERE p.published) AS published_count,
                    COALESCE(SUM(pv.stock), 0) AS total_stock,
                    MIN(COALESCE(pv.price, p.base_price)) AS min_price,
                    MAX(COALESCE(pv.price, p.base_price)) AS max_price
                FROM products p
                LEFT JOIN product_variants pv ON pv.product_id = p.id
                WHERE p.{self.product_fk} = %s
            """, (item_id,))
            row = cur.fetchone()
            return {
                "product_count": row['product_count'],
                "published_count": row['published_count'],
                "total_stock": int(row['total_stock'] or 0),
                "min_price": float(row['min_price']) if row['min_price'] is not None else None,
                "max_price": float(row['max_price']) if row['max_price'] is not None else None,
            }


class CategoryRepository(_TaxonomyRepository):
    table = "categories"
    product_fk = "category_id"
    fields = ["name", "slug", "description", "image_url", "parent_id"]
    model = Category

    def delete(self, item_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("UPDATE categories SET parent_id = NULL WHERE parent_id = %s", (item_id,))
            cur.execute("UPDATE campaigns SET category_id = NULL WHERE category_id = %s", (item_id,))
            return super().delete(item_id, cursor=cur)


class BrandRepository(_TaxonomyRepository):
    table = "brands"
    product_fk = "brand_id"
    fields = ["name", "slug", "description", "logo_url"]
    model = Brand
