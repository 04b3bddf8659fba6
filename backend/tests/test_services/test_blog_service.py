"""
Unit tests for BlogService

Author: TM3
Date: 2025-11-22
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.blog import BlogPost, BlogPostCreate, BlogPostUpdate, PostStatus, TaxonomyCreate
from app.services.blog_service import BlogService


def make_post(**overrides):
    data = dict(id=4, title="Winter Care", slug="winter-care", content="Oil your boots")
    data.update(overrides)
    return BlogPost(**data)


@pytest.fixture
def service():
    with patch("app.services.blog_service.db_cursor") as mock_db_cursor:
        mock_db_cursor.return_value.__enter__.return_value = MagicMock()
        blog = BlogService()
        blog.repo = MagicMock()
        blog.taxonomies = {"category": MagicMock(), "tag": MagicMock()}
        yield blog


class TestPosts:

    def test_publishing_sets_flag_and_date(self, service):
        service.repo.slug_exists.return_value = False
        service.repo.create.return_value = 4
        service.repo.find_by_id.return_value = make_post(status=PostStatus.PUBLISHED)

        service.create_post(
            BlogPostCreate(title="Winter Care", content="Oil", status=PostStatus.PUBLISHED, tag_ids=[1, 2]),
            author_id=1,
        )

        fields = service.repo.create.call_args[0][0]
        assert fields["slug"] == "winter-care"
        assert fields["published"] is True
        assert fields["published_at"] is not None
        service.repo.set_tags.assert_called_once()

    def test_draft_has_no_publication_date(self, service):
        service.repo.slug_exists.return_value = False
        service.repo.create.return_value = 4
        service.repo.find_by_id.return_value = make_post()

        service.create_post(BlogPostCreate(title="Winter Care", content="Oil"))

        fields = service.repo.create.call_args[0][0]
        assert fields["published"] is False
        assert "published_at" not in fields

    def test_unknown_category(self, service):
        service.taxonomies["category"].find_by_id.return_value = None
        with pytest.raises(ValidationError):
            service.create_post(BlogPostCreate(title="T", content="C", category_id=99))

    def test_republishing_keeps_first_date(self, service):
        first = datetime(2025, 1, 1, tzinfo=timezone.utc)
        service.repo.find_by_id.return_value = make_post(published_at=first)

        service.update_post(4, BlogPostUpdate(status=PostStatus.PUBLISHED))

        fields = service.repo.update.call_args[0][1]
        assert fields["published"] is True
        assert "published_at" not in fields

    def test_read_counts_view(self, service):
        service.repo.find_by_slug.return_value = make_post(view_count=9)

        post = service.read_published("winter-care")

        service.repo.increment_views.assert_called_once_with(4)
        assert post.view_count == 10

    def test_draft_is_not_readable(self, service):
        service.repo.find_by_slug.return_value = None
        with pytest.raises(NotFoundError):
            service.read_published("draft-post")


class TestTaxonomies:

    def test_duplicate_slug_conflicts(self, service):
        service.taxonomies["tag"].slug_exists.return_value = True
        with pytest.raises(ConflictError):
            service.create_taxonomy("tag", TaxonomyCreate(name="Boots"))

    def test_unknown_kind(self, service):
        with pytest.raises(ValidationError):
            service.list_taxonomy("author")
