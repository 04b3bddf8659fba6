"""
Blog Service
Posts, categories and tags for the storefront blog

Author: TM3
Date: 2025-11-22
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.blog import (
    BlogPost, BlogPostCreate, BlogPostUpdate, PostStatus, TaxonomyCreate, TaxonomyUpdate,
)
from app.repositories.blog_repository import BlogCategoryRepository, BlogRepository, BlogTagRepository
from app.utils.slugify import slugify, unique_slug

logger = logging.getLogger(__name__)


class BlogService:

    def __init__(self):
        self.repo = BlogRepository()
        self.taxonomies = {
            "category": BlogCategoryRepository(),
            "tag": BlogTagRepository(),
        }

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def list_posts(self, **filters) -> Tuple[List[BlogPost], int]:
        return self.repo.find_all(**filters)

    def list_published(
        self,
        category_slug: Optional[str] = None,
        tag_slug: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[BlogPost], int]:
        return self.repo.find_all(
            published_only=True,
            category_slug=category_slug,
            tag_slug=tag_slug,
            search=search,
            sort_by="published_at",
            sort_order="desc",
            limit=limit,
            offset=offset,
        )

    def get_post(self, post_id: int) -> BlogPost:
        post = self.repo.find_by_id(post_id)
        if not post:
            raise NotFoundError("Blog post", post_id)
        return post

    def read_published(self, slug: str) -> BlogPost:
        """Public read by slug; counts the view"""
        post = self.repo.find_by_slug(slug, published_only=True)
        if not post:
            raise NotFoundError("Blog post", slug)
        self.repo.increment_views(post.id)
        return post.model_copy(update={"view_count": post.view_count + 1})

    def _publication_fields(self, status: PostStatus, existing: Optional[BlogPost] = None) -> dict:
        """published flag follows status; published_at is only set the first time"""
        fields = {"status": status.value, "published": status == PostStatus.PUBLISHED}
        if status == PostStatus.PUBLISHED and not (existing and existing.published_at):
            fields["published_at"] = datetime.now(timezone.utc)
        return fields

    def _check_category(self, category_id: Optional[int], cursor):
        if category_id is not None and not self.taxonomies["category"].find_by_id(category_id, cursor=cursor):
            raise ValidationError(f"Blog category {category_id} does not exist")

    def create_post(self, data: BlogPostCreate, author_id: Optional[int] = None) -> BlogPost:
        with db_cursor() as cursor:
            self._check_category(data.category_id, cursor)

            base = slugify(data.slug or data.title)
            if not base:
                raise ValidationError("Could not build a slug from the title")

            fields = data.model_dump(exclude={"tag_ids", "status", "slug"})
            fields["slug"] = unique_slug(base, lambda s: self.repo.slug_exists(s, cursor=cursor))
            fields["author_id"] = author_id
            fields.update(self._publication_fields(data.status))

            post_id = self.repo.create(fields, cursor=cursor)
            if data.tag_ids:
                self.repo.set_tags(post_id, data.tag_ids, cursor=cursor)
            post = self.repo.find_by_id(post_id, cursor=cursor)

        logger.info(f"Blog post {post.slug} created ({post.status.value})")
        return post

    def update_post(self, post_id: int, data: BlogPostUpdate) -> BlogPost:
        fields = data.model_dump(exclude_unset=True)
        tag_ids = fields.pop("tag_ids", None)

        with db_cursor() as cursor:
            existing = self.repo.find_by_id(post_id, cursor=cursor)
            if not existing:
                raise NotFoundError("Blog post", post_id)

            if "category_id" in fields:
                self._check_category(fields["category_id"], cursor)

            if fields.get("slug") or (fields.get("title") and fields["title"] != existing.title):
                base = slugify(fields.get("slug") or fields["title"])
                fields["slug"] = base if base == existing.slug else unique_slug(
                    base, lambda s: self.repo.slug_exists(s, exclude_id=post_id, cursor=cursor)
                )
            else:
                fields.pop("slug", None)

            status = fields.pop("status", None)
            if status is not None:
                fields.update(self._publication_fields(PostStatus(status), existing))

            self.repo.update(post_id, fields, cursor=cursor)
            if tag_ids is not None:
                self.repo.set_tags(post_id, tag_ids, cursor=cursor)
            return self.repo.find_by_id(post_id, cursor=cursor)

    def delete_post(self, post_id: int) -> BlogPost:
        post = self.get_post(post_id)
        self.repo.delete(post_id)
        logger.info(f"Blog post {post.slug} deleted")
        return post

    # ------------------------------------------------------------------
    # Categories and tags
    # ------------------------------------------------------------------

    def _taxonomy_repo(self, kind: str):
        if kind not in self.taxonomies:
            raise ValidationError(f"Unknown blog taxonomy: {kind}")
        return self.taxonomies[kind]

    def list_taxonomy(self, kind: str, published_only: bool = False) -> list:
        return self._taxonomy_repo(kind).find_all(published_only=published_only)

    def create_taxonomy(self, kind: str, data: TaxonomyCreate):
        repo = self._taxonomy_repo(kind)
        slug = slugify(data.slug or data.name)
        if not slug:
            raise ValidationError("Could not build a slug from the name")

        with db_cursor() as cursor:
            if repo.slug_exists(slug, cursor=cursor):
                raise ConflictError(f"Blog {kind} with slug {slug} already exists")
            return repo.create({**data.model_dump(exclude={"slug"}), "slug": slug}, cursor=cursor)

    def update_taxonomy(self, kind: str, item_id: int, data: TaxonomyUpdate):
        repo = self._taxonomy_repo(kind)
        fields = data.model_dump(exclude_unset=True)

        with db_cursor() as cursor:
            if not repo.find_by_id(item_id, cursor=cursor):
                raise NotFoundError(f"Blog {kind}", item_id)

            if fields.get("slug") or fields.get("name"):
                fields["slug"] = slugify(fields.get("slug") or fields["name"])
                if repo.slug_exists(fields["slug"], exclude_id=item_id, cursor=cursor):
                    raise ConflictError(f"Blog {kind} with slug {fields['slug']} already exists")
            return repo.update(item_id, fields, cursor=cursor)

    def delete_taxonomy(self, kind: str, item_id: int):
        repo = self._taxonomy_repo(kind)
        with db_cursor() as cursor:
            item = repo.find_by_id(item_id, cursor=cursor)
            if not item:
                raise NotFoundError(f"Blog {kind}", item_id)
            repo.delete(item_id, cursor=cursor)
        return item
