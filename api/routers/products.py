"""
Products API Endpoints.

Read-only stock views: sellable products, low-stock products and the
movement history of a product.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException

from api.models import (
    MovementListResponse,
    MovementResponse,
    ProductListResponse,
    ProductResponse,
)
from domain.errors import PersistenceError
from repositories.movement_repository import list_movements_for_product
from repositories.product_repository import fetch_available_products, get_product_by_id
from services.inventory_report_service import low_stock_products

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/products/available",
    response_model=ProductListResponse,
    summary="List Sellable Products",
    description="Products with stock on hand (quantity > 0), ordered by name."
)
def get_available_products():
    """
    List products that can be added to a sale.

    Quantities are as of this request; a sale re-checks stock when it is committed.
    """
    try:
        products = fetch_available_products()
    except PersistenceError:
        logger.exception("Failed to fetch available products")
        raise HTTPException(status_code=500, detail="Failed to fetch products")

    return ProductListResponse(
        items=[ProductResponse.from_domain(p) for p in products],
        total_count=len(products),
    )


@router.get(
    "/products/low-stock",
    response_model=ProductListResponse,
    summary="List Low Stock Products",
    description="Products at or below their reorder level, lowest stock first."
)
def get_low_stock_products():
    try:
        products = low_stock_products()
    except PersistenceError:
        logger.exception("Failed to fetch low stock products")
        raise HTTPException(status_code=500, detail="Failed to fetch products")

    return ProductListResponse(
        items=[ProductResponse.from_domain(p) for p in products],
        total_count=len(products),
    )


@router.get(
    "/products/{product_id}/movements",
    response_model=MovementListResponse,
    summary="Product Movement History",
    description="Inventory movements for a product, newest first."
)
def get_product_movements(product_id: UUID):
    try:
        product = get_product_by_id(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
        movements = list_movements_for_product(product_id)
    except PersistenceError:
        logger.exception("Failed to fetch movements", extra={"product_id": str(product_id)})
        raise HTTPException(status_code=500, detail="Failed to fetch inventory movements")

    return MovementListResponse(
        items=[MovementResponse.from_domain(m) for m in movements],
        total_count=len(movements),
    )
