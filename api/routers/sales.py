"""
Sales API Endpoints.

Endpoints for listing, creating, editing and deleting sales. Every write
either fully applies (sale, items, stock, movements, ledger) or leaves the
store as it was.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from api.models import (
    MovementListResponse,
    MovementResponse,
    SaleListResponse,
    SaleOperationResponse,
    SaleRequest,
    SaleResponse,
    SalesSummaryResponse,
)
from domain.errors import PersistenceError, SaleNotFoundError, ValidationError
from domain.sale import PaymentMethod, SaleDetails
from repositories.movement_repository import list_movements_for_reference
from services.inventory_report_service import (
    DEFAULT_RECENT_SALES_LIMIT,
    MAX_RECENT_SALES_LIMIT,
    recent_sales,
    sales_summary,
)
from services.sale_transaction_service import (
    build_cart,
    create_sale,
    delete_sale,
    edit_sale,
    fetch_sales,
    get_sale,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _details_from_request(request: SaleRequest) -> SaleDetails:
    return SaleDetails(
        payment_method=PaymentMethod.parse(request.payment_method),
        customer_name=request.customer_name,
        customer_contact=request.customer_contact,
        notes=request.notes,
    )


def _requested_lines(request: SaleRequest) -> list[tuple[UUID, int]]:
    return [(line.product_id, line.quantity) for line in request.items]


@router.get(
    "/sales",
    response_model=SaleListResponse,
    summary="List Sales",
    description="All sales with their items, newest first."
)
def list_all_sales():
    try:
        sales = fetch_sales()
    except PersistenceError:
        logger.exception("Failed to fetch sales")
        raise HTTPException(status_code=500, detail="Failed to fetch sales")

    return SaleListResponse(
        items=[SaleResponse.from_domain(s) for s in sales],
        total_count=len(sales),
    )


@router.get(
    "/sales/summary",
    response_model=SalesSummaryResponse,
    summary="Sales Summary",
    description="Sale count, revenue and units sold (optionally within a window), today's sales, and stock figures."
)
def get_sales_summary(
    since: Optional[datetime] = Query(None, description="Window start (inclusive, UTC); requires until"),
    until: Optional[datetime] = Query(None, description="Window end (exclusive, UTC); requires since"),
):
    """
    Dashboard summary.

    Without a window the sales figures cover every sale. today_sales and
    today_revenue always cover the current UTC day.
    """
    try:
        summary = sales_summary(since, until)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to build sales summary")
        raise HTTPException(status_code=500, detail="Failed to build sales summary")

    return SalesSummaryResponse.from_domain(summary)


@router.get(
    "/sales/recent",
    response_model=SaleListResponse,
    summary="Recent Sales",
    description="The most recent sales with their items, newest first."
)
def get_recent_sales(
    limit: int = Query(DEFAULT_RECENT_SALES_LIMIT, description=f"1 to {MAX_RECENT_SALES_LIMIT}"),
):
    try:
        sales = recent_sales(limit)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to fetch recent sales")
        raise HTTPException(status_code=500, detail="Failed to fetch sales")

    return SaleListResponse(
        items=[SaleResponse.from_domain(s) for s in sales],
        total_count=len(sales),
    )


@router.get(
    "/sales/{sale_id}/movements",
    response_model=MovementListResponse,
    summary="Sale Movement History",
    description="Every inventory movement a sale caused (sale, edits and deletion), newest first."
)
def get_sale_movements(sale_id: UUID):
    """
    Movements stay after a sale is deleted, so this also answers for deleted
    sales; an id that never caused a movement returns an empty list.
    """
    try:
        movements = list_movements_for_reference(sale_id)
    except PersistenceError:
        logger.exception("Failed to fetch movements", extra={"sale_id": str(sale_id)})
        raise HTTPException(status_code=500, detail="Failed to fetch inventory movements")

    return MovementListResponse(
        items=[MovementResponse.from_domain(m) for m in movements],
        total_count=len(movements),
    )


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    summary="Get Sale",
)
def get_single_sale(sale_id: UUID):
    try:
        sale = get_sale(sale_id)
    except SaleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to fetch sale", extra={"sale_id": str(sale_id)})
        raise HTTPException(status_code=500, detail="Failed to fetch sale")

    return SaleResponse.from_domain(sale)


@router.post(
    "/sales",
    response_model=SaleOperationResponse,
    status_code=201,
    summary="Create Sale",
    description="Commit a cart as a new sale, deducting stock and recording the ledger entry."
)
def create_new_sale(request: SaleRequest):
    """
    Create a sale.

    **Process:**
    1. Validates the cart (non-empty, quantities > 0 and within stock)
    2. Stores the sale and its items
    3. Deducts stock and records one "out" movement per line
    4. Records the financial transaction for the total

    If any step fails, the steps already applied are undone.

    **Example request:**
    ```json
    {
      "customer_name": "Jane",
      "payment_method": "card",
      "items": [{"product_id": "123e4567-e89b-12d3-a456-426614174000", "quantity": 3}]
    }
    ```
    """
    try:
        details = _details_from_request(request)
        cart = build_cart(_requested_lines(request))
        sale = create_sale(cart, details)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to create sale")
        raise HTTPException(status_code=500, detail="Failed to create sale")

    return SaleOperationResponse(
        success=True,
        message=f"Sale {sale.sale_number} created successfully",
        sale=SaleResponse.from_domain(sale),
    )


@router.put(
    "/sales/{sale_id}",
    response_model=SaleOperationResponse,
    summary="Edit Sale",
    description="Replace a sale's items and customer/payment details, reconciling stock and the ledger."
)
def edit_existing_sale(sale_id: UUID, request: SaleRequest):
    """
    Edit a sale.

    Stock held by the current items is released, then the new items are
    applied as for a new sale. The sale number is kept.
    """
    try:
        details = _details_from_request(request)
        existing = get_sale(sale_id)
        cart = build_cart(_requested_lines(request), held_items=existing.items)
        sale = edit_sale(sale_id, cart, details)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SaleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to update sale", extra={"sale_id": str(sale_id)})
        raise HTTPException(status_code=500, detail="Failed to update sale")

    return SaleOperationResponse(
        success=True,
        message=f"Sale {sale.sale_number} updated successfully",
        sale=SaleResponse.from_domain(sale),
    )


@router.delete(
    "/sales/{sale_id}",
    response_model=SaleOperationResponse,
    summary="Delete Sale",
    description="Delete a sale, returning its items to stock."
)
def delete_existing_sale(sale_id: UUID):
    try:
        delete_sale(sale_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SaleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError:
        logger.exception("Failed to delete sale", extra={"sale_id": str(sale_id)})
        raise HTTPException(status_code=500, detail="Failed to delete sale")

    return SaleOperationResponse(success=True, message="Sale deleted successfully")
