"""
Blog domain models
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.base import DomainModel


class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class BlogCategory(DomainModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    post_count: Optional[int] = None


class BlogTag(DomainModel):
    id: int
    name: str
    slug: str
    post_count: Optional[int] = None


class BlogPost(DomainModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    featured_image: Optional[str] = None
    status: PostStatus = PostStatus.DRAFT
    published: bool = False
    published_at: Optional[datetime] = None
    view_count: int = 0
    author_id: Optional[int] = None
    author_name: Optional[str] = None
    category_id: Optional[int] = None
    category: Optional[BlogCategory] = None
    tags: List[BlogTag] = Field(default_factory=list)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BlogPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: str = Field(..., min_length=1)
    featured_image: Optional[str] = None
    status: PostStatus = PostStatus.DRAFT
    category_id: Optional[int] = None
    tag_ids: List[int] = Field(default_factory=list)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    featured_image: Optional[str] = None
    status: Optional[PostStatus] = None
    category_id: Optional[int] = None
    tag_ids: Optional[List[int]] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None


class TaxonomyCreate(BaseModel):
    """Blog category or tag"""
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None


class TaxonomyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
