"""
Products API Endpoints
Handles product catalog management and queries

Author: TM3
Date: 2025-10-03
Updated: 2025-11-21 (storefront catalog: variants, bulk actions, CSV import)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status

from app.core.auth import TokenUser, get_current_user_optional, require_admin
from app.core.exceptions import AppError
from app.core.pagination import build_pagination, page_to_offset
from app.domain.product import BulkIds, BulkToggle, ProductCreate, ProductUpdate
from app.services.catalog_service import CatalogService
from app.services.product_import_service import ProductImportService
from app.services.system_log_service import SystemLogService, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_products(
    brand_id: Optional[int] = Query(None, description="Filter by brand id"),
    category: Optional[str] = Query(None, description="Category id or slug"),
    search: Optional[str] = Query(None, description="Search by name or description"),
    published: Optional[bool] = Query(None, description="Filter by published flag (admin)"),
    sort_field: str = Query("created_at", description="created_at | name | id | published | base_price"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    user: Optional[TokenUser] = Depends(get_current_user_optional),
):
    """
    Get products with optional filters

    Customers and guests only ever see published products.
    """
    try:
        if not (user and user.is_admin):
            published = True

        limit, offset = page_to_offset(page, limit)
        products, total = CatalogService().list_products(
            brand_id=brand_id,
            category=category,
            search=search,
            published=published,
            sort_field=sort_field,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

        return {
            "status": "success",
            "total": total,
            "count": len(products),
            "data": [product.to_dict() for product in products],
            "pagination": build_pagination(total, page, limit),
        }

    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching products: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, admin: TokenUser = Depends(require_admin)):
    """Create a product with optional variant groups and variants"""
    try:
        product = CatalogService().create_product(data)
        return {"status": "success", "data": product.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating product: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.post("/import")
async def import_products(
    request: Request,
    file: UploadFile = File(..., description="CSV file"),
    admin: TokenUser = Depends(require_admin),
):
    """
    Bulk import products from CSV

    Returns:
        {total, success, failed, errors: ["Row n: message"]}
    """
    try:
        content = await file.read()
        result = ProductImportService().import_csv(content)

        SystemLogService().log_info(
            "PRODUCTS_IMPORTED",
            f"CSV import {file.filename}: {result['success']} imported, {result['failed']} failed",
            user_id=admin.id,
            ip_address=get_client_ip(request),
            metadata={"total": result["total"], "success": result["success"], "failed": result["failed"]},
        )
        return {"status": "success", "data": result}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error importing products: {e}")
        raise HTTPException(status_code=500, detail=f"Error importing products: {str(e)}")


@router.post("/bulk-delete")
async def bulk_delete_products(data: BulkIds, admin: TokenUser = Depends(require_admin)):
    try:
        deleted = CatalogService().bulk_delete(data.ids)
        return {"status": "success", "data": {"deleted": deleted}}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting products: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting products: {str(e)}")


@router.post("/bulk-toggle")
async def bulk_toggle_products(data: BulkToggle, admin: TokenUser = Depends(require_admin)):
    """Set published on every listed product"""
    try:
        updated = CatalogService().bulk_set_published(data.ids, data.published)
        return {"status": "success", "data": {"updated": updated, "published": data.published}}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating products: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating products: {str(e)}")


@router.get("/compare")
async def compare_products(ids: List[int] = Query(..., description="2 to 4 product ids")):
    try:
        products = CatalogService().compare(ids)
        return {
            "status": "success",
            "count": len(products),
            "data": [product.to_dict() for product in products],
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error comparing products: {e}")
        raise HTTPException(status_code=500, detail=f"Error comparing products: {str(e)}")


@router.get("/{product_id}/related")
async def get_related_products(product_id: int, limit: int = Query(4, ge=1, le=20)):
    """Published products from the same category"""
    try:
        products = CatalogService().related(product_id, limit=limit)
        return {
            "status": "success",
            "count": len(products),
            "data": [product.to_dict() for product in products],
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching related products: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching related products: {str(e)}")


@router.get("/{identifier}")
async def get_product(identifier: str, user: Optional[TokenUser] = Depends(get_current_user_optional)):
    """
    Get a single product by id or slug

    Includes variant groups, variants, category and brand.
    """
    try:
        product = CatalogService().get_product(identifier)
        if not product.published and not (user and user.is_admin):
            raise HTTPException(status_code=404, detail=f"Product {identifier} not found")
        return {"status": "success", "data": product.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching product {identifier}: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.put("/{product_id}")
async def update_product(product_id: int, data: ProductUpdate, admin: TokenUser = Depends(require_admin)):
    try:
        product = CatalogService().update_product(product_id, data)
        return {"status": "success", "data": product.to_dict()}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error updating product: {str(e)}")


@router.delete("/{product_id}")
async def delete_product(product_id: int, admin: TokenUser = Depends(require_admin)):
    try:
        product = CatalogService().delete_product(product_id)
        return {"status": "success", "message": f"Product {product.name} deleted"}
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting product: {str(e)}")
