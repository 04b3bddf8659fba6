"""
Blog Repository - posts, categories and tags

Author: TM3
Date: 2025-11-22
"""
from typing import Dict, List, Optional, Tuple

from app.core.database import db_cursor
from app.domain.blog import BlogCategory, BlogPost, BlogTag
from app.repositories.sql import build_set_clause, where_clause

POST_SELECT = """
    SELECT
        p.id, p.title, p.slug, p.excerpt, p.content, p.featured_image,
        p.status, p.published, p.published_at, p.view_count,
        p.author_id, p.category_id, p.seo_title, p.seo_description,
        p.created_at, p.updated_at,
        TRIM(CONCAT(u.first_name, ' ', u.last_name)) AS author_name,
        c.name AS category_name, c.slug AS category_slug
    FROM blog_posts p
    LEFT JOIN users u ON u.id = p.author_id
    LEFT JOIN blog_categories c ON c.id = p.category_id
"""

POST_FIELDS = [
    "title", "slug", "excerpt", "content", "featured_image", "status", "published",
    "published_at", "author_id", "category_id", "seo_title", "seo_description",
]

SORT_FIELDS = {
    "title": "p.title",
    "created_at": "p.created_at",
    "updated_at": "p.updated_at",
    "published_at": "p.published_at",
    "view_count": "p.view_count",
}


class BlogRepository:
    """Repository for blog_posts and their tag links"""

    @staticmethod
    def _map_row_to_post(row: dict, tags: Optional[List[BlogTag]] = None) -> BlogPost:
        data = dict(row)
        category_name = data.pop('category_name', None)
        category_slug = data.pop('category_slug', None)
        category = None
        if data.get('category_id') and category_name:
            category = BlogCategory(id=data['category_id'], name=category_name, slug=category_slug)
        return BlogPost(**data, category=category, tags=tags or [])

    def _load_tags(self, cur, post_ids: List[int]) -> Dict[int, List[BlogTag]]:
        if not post_ids:
            return {}
        cur.execute("""
            SELECT pt.post_id, t.id, t.name, t.slug
            FROM blog_post_tags pt
            JOIN blog_tags t ON t.id = pt.tag_id
            WHERE pt.post_id = ANY(%s)
            ORDER BY t.name
        """, (list(post_ids),))
        result: Dict[int, List[BlogTag]] = {}
        for row in cur.fetchall():
            result.setdefault(row['post_id'], []).append(
                BlogTag(id=row['id'], name=row['name'], slug=row['slug'])
            )
        return result

    def _find_one(self, condition: str, value, cursor=None) -> Optional[BlogPost]:
        with db_cursor(cursor) as cur:
            cur.execute(f"{POST_SELECT} WHERE {condition}", (value,))
            row = cur.fetchone()
            if not row:
                return None
            tags = self._load_tags(cur, [row['id']])
            return self._map_row_to_post(row, tags.get(row['id']))

    def find_by_id(self, post_id: int, cursor=None) -> Optional[BlogPost]:
        return self._find_one("p.id = %s", post_id, cursor=cursor)

    def find_by_slug(self, slug: str, published_only: bool = False, cursor=None) -> Optional[BlogPost]:
        condition = "p.slug = %s AND p.published = TRUE" if published_only else "p.slug = %s"
        return self._find_one(condition, slug, cursor=cursor)

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute("SELECT 1 FROM blog_posts WHERE slug = %s", (slug,))
            else:
                cur.execute("SELECT 1 FROM blog_posts WHERE slug = %s AND id <> %s", (slug, exclude_id))
            return cur.fetchone() is not None

    def find_all(
        self,
        status: Optional[str] = None,
        published_only: bool = False,
        category_id: Optional[int] = None,
        category_slug: Optional[str] = None,
        tag_slug: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
        cursor=None
    ) -> Tuple[List[BlogPost], int]:
        conditions = []
        params = []

        if status:
            conditions.append("p.status = %s")
            params.append(status.upper())
        if published_only:
            conditions.append("p.published = TRUE")
        if category_id is not None:
            conditions.append("p.category_id = %s")
            params.append(category_id)
        if category_slug:
            conditions.append("c.slug = %s")
            params.append(category_slug)
        if tag_slug:
            conditions.append("""EXISTS (
                SELECT 1 FROM blog_post_tags pt
                JOIN blog_tags t ON t.id = pt.tag_id
                WHERE pt.post_id = p.id AND t.slug = %s
            )""")
            params.append(tag_slug)
        if search:
            conditions.append("(p.title ILIKE %s OR p.excerpt ILIKE %s OR p.content ILIKE %s)")
            params.extend([f"%{search}%"] * 3)

        where = where_clause(conditions)
        order_column = SORT_FIELDS.get(sort_by, "p.created_at")
        direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"

        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT COUNT(*) AS total
                FROM blog_posts p
                LEFT JOIN blog_categories c ON c.id = p.category_id
                WHERE {where}
            """, params)
            total = cur.fetchone()['total']

            cur.execute(f"""
                {POST_SELECT}
                WHERE {where}
                ORDER BY {order_column} {direction} NULLS LAST, p.id DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cur.fetchall()

            tags = self._load_tags(cur, [r['id'] for r in rows])
            return [self._map_row_to_post(r, tags.get(r['id'])) for r in rows], total

    def create(self, data: dict, cursor=None) -> int:
        columns = [f for f in POST_FIELDS if f in data]
        placeholders = ", ".join(["%s"] * len(columns))
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO blog_posts ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING id
            """, [data[c] for c in columns])
            return cur.fetchone()['id']

    def update(self, post_id: int, data: dict, cursor=None) -> bool:
        clause, params = build_set_clause(data, POST_FIELDS)
        if not clause:
            return True
        with db_cursor(cursor) as cur:
            cur.execute(
                f"UPDATE blog_posts SET {clause}, updated_at = NOW() WHERE id = %s",
                params + [post_id]
            )
            return cur.rowcount > 0

    def set_tags(self, post_id: int, tag_ids: List[int], cursor=None):
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM blog_post_tags WHERE post_id = %s", (post_id,))
            for tag_id in dict.fromkeys(tag_ids):
                cur.execute(
                    "INSERT INTO blog_post_tags (post_id, tag_id) VALUES (%s, %s)",
                    (post_id, tag_id)
                )

    def increment_views(self, post_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("UPDATE blog_posts SET view_count = view_count + 1 WHERE id = %s", (post_id,))
            return cur.rowcount > 0

    def delete(self, post_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM blog_post_tags WHERE post_id = %s", (post_id,))
            cur.execute("DELETE FROM blog_posts WHERE id = %s", (post_id,))
            return cur.rowcount > 0


class BlogTaxonomyRepository:
    """
    Shared CRUD for blog_categories and blog_tags

    Post counts only include published posts when published_only is set.
    """

    def __init__(self, table: str, model, link_sql: str, columns: str):
        self.table = table
        self.model = model
        self.link_sql = link_sql
        self.columns = columns

    def find_all(self, published_only: bool = False, cursor=None) -> list:
        published = "AND p.published = TRUE" if published_only else ""
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                SELECT {self.columns},
                       (SELECT COUNT(*) FROM {self.link_sql} {published}) AS post_count
                FROM {self.table} x
                ORDER BY x.name
            """)
            return [self.model(**row) for row in cur.fetchall()]

    def find_by_id(self, item_id: int, cursor=None):
        with db_cursor(cursor) as cur:
            cur.execute(f"SELECT {self.columns} FROM {self.table} x WHERE x.id = %s", (item_id,))
            row = cur.fetchone()
            return self.model(**row) if row else None

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            if exclude_id is None:
                cur.execute(f"SELECT 1 FROM {self.table} WHERE slug = %s", (slug,))
            else:
                cur.execute(f"SELECT 1 FROM {self.table} WHERE slug = %s AND id <> %s", (slug, exclude_id))
            return cur.fetchone() is not None

    def create(self, data: dict, cursor=None):
        columns = [c for c in ("name", "slug", "description") if c in data and c in self.columns]
        with db_cursor(cursor) as cur:
            cur.execute(f"""
                INSERT INTO {self.table} ({", ".join(columns)})
                VALUES ({", ".join(["%s"] * len(columns))})
                RETURNING id
            """, [data[c] for c in columns])
            return self.find_by_id(cur.fetchone()['id'], cursor=cur)

    def update(self, item_id: int, data: dict, cursor=None):
        allowed = [c for c in ("name", "slug", "description") if c in self.columns]
        clause, params = build_set_clause(data, allowed)
        with db_cursor(cursor) as cur:
            if clause:
                cur.execute(f"UPDATE {self.table} SET {clause} WHERE id = %s", params + [item_id])
                if cur.rowcount == 0:
                    return None
            return self.find_by_id(item_id, cursor=cur)


class BlogCategoryRepository(BlogTaxonomyRepository):

    def __init__(self):
        super().__init__(
            table="blog_categories",
            model=BlogCategory,
            link_sql="blog_posts p WHERE p.category_id = x.id",
            columns="x.id, x.name, x.slug, x.description",
        )

    def delete(self, item_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("UPDATE blog_posts SET category_id = NULL WHERE category_id = %s", (item_id,))
            cur.execute("DELETE FROM blog_categories WHERE id = %s", (item_id,))
            return cur.rowcount > 0


class BlogTagRepository(BlogTaxonomyRepository):

    def __init__(self):
        super().__init__(
            table="blog_tags",
            model=BlogTag,
            link_sql="blog_post_tags pt JOIN blog_posts p ON p.id = pt.post_id WHERE pt.tag_id = x.id",
            columns="x.id, x.name, x.slug",
        )

    def delete(self, item_id: int, cursor=None) -> bool:
        with db_cursor(cursor) as cur:
            cur.execute("DELETE FROM blog_post_tags WHERE tag_id = %s", (item_id,))
            cur.execute("DELETE FROM blog_tags WHERE id = %s", (item_id,))
            return cur.rowcount > 0
