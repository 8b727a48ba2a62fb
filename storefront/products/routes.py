from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.dependencies import require_admin
from storefront.auth.models import CurrentUser
from storefront.common.utils import success_response
from storefront.db.dependencies import get_image_storage, get_session
from storefront.image_uploads.services import store_image_upload
from storefront.products.constants import DEFAULT_PAGE_SIZE, LOW_STOCK_THRESHOLD, MAX_PAGE_SIZE, logger
from storefront.products.models import ProductCreateIn, ProductUpdateIn, product_out
from storefront.products.repository import (
    create_product, delete_product_cascade, fetch_prods, find_product,
    low_stock_products, patch_product, total_pages,
)

prods_public_router = APIRouter()
prods_admin_router = APIRouter()


@prods_public_router.get("")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    category: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    max_price: Optional[int] = Query(None, ge=0),
    session: AsyncSession = Depends(get_session),
):
    products, total = await fetch_prods(session, page, limit, category=category, brand=brand, max_price=max_price)
    return success_response({
        "items": [product_out(p) for p in products],
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages(total, limit),
    })


@prods_public_router.get("/{product_id}")
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    product = await find_product(session, product_id)
    return success_response(product_out(product))


@prods_admin_router.get("/low-stock")
async def list_low_stock(threshold: int = Query(LOW_STOCK_THRESHOLD, ge=1),
                         admin: CurrentUser = Depends(require_admin), session: AsyncSession = Depends(get_session)):
    products = await low_stock_products(session, threshold)
    return success_response({"threshold": threshold, "items": [product_out(p) for p in products]})


@prods_admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_product(payload: ProductCreateIn, admin: CurrentUser = Depends(require_admin),
                               session: AsyncSession = Depends(get_session)):

    logger.info("product.create.attempt", extra={"admin_id": admin.id})
    product = await create_product(session, payload.model_dump())
    await session.commit()

    logger.info("product.create.success", extra={"product_id": product.id, "admin_id": admin.id})
    return success_response(product_out(product), status_code=status.HTTP_201_CREATED)


@prods_admin_router.put("/{product_id}")
async def admin_update_product(product_id: int, payload: ProductUpdateIn, admin: CurrentUser = Depends(require_admin),
                               session: AsyncSession = Depends(get_session)):

    updates = payload.model_dump(exclude_unset=True)
    product = await patch_product(session, product_id, updates)
    await session.commit()

    logger.info("product.update.success", extra={"product_id": product_id, "fields": sorted(updates)})
    return success_response(product_out(product))


@prods_admin_router.delete("/{product_id}")
async def admin_delete_product(product_id: int, admin: CurrentUser = Depends(require_admin),
                               session: AsyncSession = Depends(get_session)):

    summary = await delete_product_cascade(session, product_id)
    await session.commit()

    logger.info("product.delete.success", extra={"product_id": product_id, **summary})
    return success_response({"deleted_product_id": product_id, **summary})


@prods_admin_router.post("/{product_id}/image")
async def admin_upload_product_image(product_id: int, file: UploadFile = File(...),
                                     admin: CurrentUser = Depends(require_admin),
                                     session: AsyncSession = Depends(get_session), storage=Depends(get_image_storage)):

    await find_product(session, product_id)
    url = await store_image_upload(file, storage, folder=f"products/{product_id}")
    product = await patch_product(session, product_id, {"image_url": url})
    await session.commit()

    return success_response(product_out(product))
