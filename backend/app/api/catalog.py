"""
Catalog API Endpoints
Categories, brands and product variants

Categories and brands share one set of handlers, registered once per kind.

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.auth import TokenUser, require_admin
from app.core.exceptions import AppError
from app.domain.product import (
    BrandCreate, BrandUpdate, CategoryCreate, CategoryUpdate, VariantUpdate,
)
from app.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter()


def _register_taxonomy_routes(kind: str, path: str, create_model, update_model):
    """CRUD + stats endpoints for categories or brands"""

    @router.get(f"/{path}", name=f"list_{path}")
    async def list_items(search: Optional[str] = Query(None)):
        try:
            items = CatalogService().list_taxonomy(kind, search=search)
            return {"status": "success", "count": len(items), "data": [item.to_dict() for item in items]}
        except Exception as e:
            logger.error(f"Error fetching {path}: {e}")
            raise HTTPException(status_code=500, detail=f"Error fetching {path}: {str(e)}")

    @router.get(f"/{path}/{{identifier}}", name=f"get_{kind}")
    async def get_item(identifier: str):
        """Lookup by numeric id or slug"""
        try:
            item = CatalogService().get_taxonomy(kind, identifier)
            return {"status": "success", "data": item.to_dict()}
        except (HTTPException, AppError):
            raise
        except Exception as e:
            logger.error(f"Error fetching {kind} {identifier}: {e}")
            raise HTTPException(status_code=500, detail=f"Error fetching {kind}: {str(e)}")

    @router.get(f"/{path}/{{identifier}}/stats", name=f"{kind}_stats")
    async def get_item_stats(identifier: str):
        try:
            result = CatalogService().taxonomy_stats(kind, identifier)
            return {
                "status": "success",
                "data": {kind: result[kind].to_dict(), "stats": result["stats"]},
            }
        except (HTTPException, AppError):
            raise
        except Exception as e:
            logger.error(f"Error fetching {kind} stats: {e}")
            raise HTTPException(status_code=500, detail=f"Error fetching {kind} stats: {str(e)}")

    @router.post(f"/{path}", status_code=status.HTTP_201_CREATED, name=f"create_{kind}")
    async def create_item(data: create_model, admin: TokenUser = Depends(require_admin)):
        try:
            item = CatalogService().create_taxonomy(kind, data)
            return {"status": "success", "data": item.to_dict()}
        except (HTTPException, AppError):
            raise
        except Exception as e:
            logger.error(f"Error creating {kind}: {e}")
            raise HTTPException(status_code=500, detail=f"Error creating {kind}: {str(e)}")

    @router.put(f"/{path}/{{item_id}}", name=f"update_{kind}")
    async def update_item(item_id: int, data: update_model, admin: TokenUser = Depends(require_admin)):
        try:
            item = CatalogService().update_taxonomy(kind, item_id, data)
            return {"status": "success", "data": item.to_dict()}
        except (HTTPException, AppError):
            raise
        except Exception as e:
            logger.error(f"Error updating {kind} {item_id}: {e}")
            raise HTTPException(status_code=500, detail=f"Error updating {kind}: {str(e)}")

    @router.delete(f"/{path}/{{item_id}}", name=f"delete_{kind}")
    async def delete_item(item_id: int, admin: TokenUser = Depends(require_admin)):
        """Refused with 409 while products still reference it"""
        try:
            item = CatalogService().delete_taxonomy(kind, item_id)
            return {"status": "success", "message": f"{kind.capitalize()} {item.name} deleted"}
        except (HTTPException, AppError):
            raise
        except Exception as e:
            logger.error(f"Error deleting {kind} {item_id}: {e}")
            raise HTTPException(status_code=500, detail=f"Error deleting {kind}: {str(e)}")


_register_taxonomy_routes("category", "categories", CategoryCreate, CategoryUpdate)
_register_taxonomy_routes("brand", "brands", BrandCreate, BrandUpdate)


@router.get("/variants/{variant_id}")
async def get_variant(variant_id: int):
    """Variant with its product"""
    try:
        result = CatalogService().get_variant(variant_id)
        product = result["product"]
        return {
            "status": "success",
            "data": {
                "variant": result["variant"].to_dict(),
                "product": product.to_dict() if product else None,
            },
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching variant {variant_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching variant: {str(e)}")


@router.put("/variants/{variant_id}")
async def update_variant(variant_id: int, data: VariantUpdate, admin: TokenUser = Depends(require_admin)):
    """Update price, stock or sku"""
    try:
        variant = CatalogService().update_variant(variant_id, data)
        return {"status": "success", "data": variant.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating variant {variant_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating variant: {str(e)}")
