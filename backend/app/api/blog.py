"""
Blog API Endpoints
Public posts and the admin CMS

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import TokenUser, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.domain.blog import BlogPostCreate, BlogPostUpdate, TaxonomyCreate, TaxonomyUpdate
from app.services.blog_service import BlogService

logger = logging.getLogger(__name__)

router = APIRouter()

TAXONOMY_PATHS = {"categories": "category", "tags": "tag"}


def _taxonomy_kind(path: str) -> str:
    if path not in TAXONOMY_PATHS:
        raise HTTPException(status_code=404, detail=f"Unknown blog taxonomy: {path}")
    return TAXONOMY_PATHS[path]


# =============================================================================
# Public
# =============================================================================

@router.get("/posts")
async def get_published_posts(
    category: Optional[str] = Query(None, description="Category slug"),
    tag: Optional[str] = Query(None, description="Tag slug"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Published posts, newest first"""
    try:
        limit, offset = page_to_offset(page, limit)
        posts, total = BlogService().list_published(
            category_slug=category, tag_slug=tag, search=search, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "count": len(posts),
            "data": [p.to_dict() for p in posts],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog posts: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching posts: {str(e)}")


@router.get("/posts/{slug}")
async def get_published_post(slug: str):
    """Published post by slug; each read counts as a view"""
    try:
        return {"status": "success", "data": BlogService().read_published(slug).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog post {slug}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching post: {str(e)}")


@router.get("/{taxonomy}")
async def get_taxonomy(taxonomy: str):
    """Blog categories or tags with published post counts"""
    kind = _taxonomy_kind(taxonomy)
    try:
        items = BlogService().list_taxonomy(kind, published_only=True)
        return {"status": "success", "count": len(items), "data": [i.to_dict() for i in items]}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog {taxonomy}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching {taxonomy}: {str(e)}")


# =============================================================================
# Admin
# =============================================================================

@router.get("/admin/posts")
async def get_posts(
    status: Optional[str] = Query(None, description="DRAFT or PUBLISHED"),
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at", description="title | created_at | updated_at | published_at | view_count"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: TokenUser = Depends(require_admin),
):
    try:
        limit, offset = page_to_offset(page, limit)
        posts, total = BlogService().list_posts(
            status=status,
            category_id=category_id,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
        return {
            "status": "success",
            "total": total,
            "count": len(posts),
            "data": [p.to_dict() for p in posts],
            "pagination": build_pagination(total, page, limit),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog posts: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching posts: {str(e)}")


@router.get("/admin/posts/{post_id}")
async def get_post(post_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        return {"status": "success", "data": BlogService().get_post(post_id).to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching post: {str(e)}")


@router.post("/admin/posts", status_code=status.HTTP_201_CREATED)
async def create_post(data: BlogPostCreate, admin: TokenUser = Depends(require_admin)):
    try:
        post = BlogService().create_post(data, author_id=admin.id)
        return {"status": "success", "data": post.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating blog post: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating post: {str(e)}")


@router.put("/admin/posts/{post_id}")
async def update_post(post_id: int, data: BlogPostUpdate, admin: TokenUser = Depends(require_admin)):
    """Tags are replaced when tag_ids is given"""
    try:
        post = BlogService().update_post(post_id, data)
        return {"status": "success", "data": post.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating blog post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating post: {str(e)}")


@router.delete("/admin/posts/{post_id}")
async def delete_post(post_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        post = BlogService().delete_post(post_id)
        return {"status": "success", "message": f"Post {post.title} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting blog post {post_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting post: {str(e)}")


@router.get("/admin/{taxonomy}")
async def get_taxonomy_admin(taxonomy: str, admin: TokenUser = Depends(require_admin)):
    """All categories or tags, counting drafts too"""
    kind = _taxonomy_kind(taxonomy)
    try:
        items = BlogService().list_taxonomy(kind)
        return {"status": "success", "count": len(items), "data": [i.to_dict() for i in items]}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching blog {taxonomy}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching {taxonomy}: {str(e)}")


@router.post("/admin/{taxonomy}", status_code=status.HTTP_201_CREATED)
async def create_taxonomy(taxonomy: str, data: TaxonomyCreate, admin: TokenUser = Depends(require_admin)):
    kind = _taxonomy_kind(taxonomy)
    try:
        item = BlogService().create_taxonomy(kind, data)
        return {"status": "success", "data": item.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating blog {kind}: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating {kind}: {str(e)}")


@router.put("/admin/{taxonomy}/{item_id}")
async def update_taxonomy(
    taxonomy: str,
    item_id: int,
    data: TaxonomyUpdate,
    admin: TokenUser = Depends(require_admin),
):
    kind = _taxonomy_kind(taxonomy)
    try:
        item = BlogService().update_taxonomy(kind, item_id, data)
        return {"status": "success", "data": item.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating blog {kind} {item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating {kind}: {str(e)}")


@router.delete("/admin/{taxonomy}/{item_id}")
async def delete_taxonomy(taxonomy: str, item_id: int, admin: TokenUser = Depends(require_admin)):
    """Deleting a category detaches its posts"""
    kind = _taxonomy_kind(taxonomy)
    try:
        item = BlogService().delete_taxonomy(kind, item_id)
        return {"status": "success", "message": f"Blog {kind} {item.name} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting blog {kind} {item_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting {kind}: {str(e)}")
