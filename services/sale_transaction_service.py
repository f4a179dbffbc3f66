"""
Sale transaction service.

Creates, edits and deletes sales while keeping four things in agreement with
each sale's item list:
- product stock (changed only through atomic stock deltas)
- the inventory movement history (append-only)
- the financial ledger (one entry per active sale)
- the sale header and its items

Each operation is an ordered sequence of separate store calls. Every step
that succeeds records an undo action in a CompensationLog; if a later step
fails, the applied steps are undone in reverse order and the error is
re-raised, so callers see all-or-nothing behavior.

Concurrency: two sales against the same product serialize on the row update
inside the store's `apply_stock_delta` function. A delta that would drive
stock negative fails with InsufficientStockError (no retry).
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from functools import partial
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from domain.cart import Cart
from domain.errors import PersistenceError, SaleNotFoundError, ValidationError
from domain.ledger import FinancialTransaction
from domain.movement import MovementReference
from domain.product import Product
from domain.sale import PaymentStatus, Sale, SaleDetails, SaleItem
from domain.sale_number import format_sale_number, random_suffix, time_suffix
from domain.time import utc_now
from repositories.ledger_repository import (
    delete_sale_transactions,
    delete_transaction,
    list_sale_transactions,
    record_sale_transaction,
    restore_transaction,
)
from repositories.movement_repository import delete_movement, record_movement
from repositories.product_repository import apply_stock_delta, get_products_by_ids
from repositories.sale_item_repository import (
    delete_sale_items,
    insert_sale_items,
    list_items_for_sales,
    list_sale_items,
    restore_sale_items,
)
from repositories.sale_repository import (
    delete_sale as delete_sale_header,
    get_sale_by_id,
    insert_sale,
    list_sales,
    sale_number_exists,
    update_sale_header,
)
from repositories.session_repository import current_actor
from services.compensation import CompensationLog

logger = logging.getLogger(__name__)

DEFAULT_SALE_NUMBER_MAX_ATTEMPTS: int = 5


def _sale_number_max_attempts() -> int:
    return int(os.getenv("SALE_NUMBER_MAX_ATTEMPTS", str(DEFAULT_SALE_NUMBER_MAX_ATTEMPTS)))


def generate_sale_number() -> str:
    """
    Generate a sale number that no stored sale uses yet.

    The first candidate uses a time-derived suffix; collisions fall back to
    random suffixes.

    Raises:
        PersistenceError: no free number was found within the attempt limit.
    """

    now = utc_now()
    attempts = _sale_number_max_attempts()
    candidate = format_sale_number(now, time_suffix(now))
    for _ in range(attempts):
        if not sale_number_exists(candidate):
            return candidate
        logger.info(f"Sale number {candidate} already taken, retrying", extra={"sale_number": candidate})
        candidate = format_sale_number(now, random_suffix())
    raise PersistenceError(f"Failed to generate a unique sale number after {attempts} attempts")


def build_cart(
    requested: Sequence[Tuple[UUID, int]],
    held_items: Iterable[SaleItem] = (),
) -> Cart:
    """
    Build a cart from (product_id, quantity) pairs against current stock.

    `held_items` are the items of a sale being edited: their quantities are
    credited back to the known stock, since the edit releases them before
    applying the new cart.
    """

    products = get_products_by_ids(product_id for product_id, _ in requested)

    held: dict[UUID, int] = {}
    for item in held_items:
        held[item.product_id] = held.get(item.product_id, 0) + item.quantity

    available: dict[UUID, Product] = {
        product_id: replace(product, quantity=product.quantity + held.get(product_id, 0))
        for product_id, product in products.items()
    }
    return Cart.from_lines(requested, available)


def _apply_cart(log: CompensationLog, sale: Sale, cart: Cart, actor: Optional[UUID]) -> List[SaleItem]:
    """Write items, stock deltas, "out" movements and the ledger entry for a cart."""

    items = insert_sale_items(sale.sale_id, cart)
    log.record("delete sale items", partial(delete_sale_items, sale.sale_id))

    for line in cart:
        apply_stock_delta(line.product_id, -line.quantity)
        log.record(
            f"return {line.quantity} x {line.sku} to stock",
            partial(apply_stock_delta, line.product_id, line.quantity),
        )
        movement = record_movement(
            product_id=line.product_id,
            quantity=-line.quantity,
            reference_type=MovementReference.SALE,
            reference_id=sale.sale_id,
            notes=f"Sold in {sale.sale_number}",
            created_by=actor,
        )
        log.record(
            f"delete out movement for {line.sku}",
            partial(delete_movement, movement.movement_id),
        )

    tx = record_sale_transaction(
        sale_id=sale.sale_id,
        amount=sale.total_amount,
        payment_method=sale.payment_method,
        description=f"Sale {sale.sale_number}",
        created_by=actor,
    )
    log.record("delete ledger entry", partial(delete_transaction, tx.transaction_id))
    return items


def _release_items(
    log: CompensationLog,
    sale: Sale,
    items: Iterable[SaleItem],
    reference_type: MovementReference,
    actor: Optional[UUID],
) -> None:
    """Return each item's quantity to stock and append an "in" movement for it."""

    for item in items:
        apply_stock_delta(item.product_id, item.quantity)
        log.record(
            f"re-deduct {item.quantity} of product {item.product_id}",
            partial(apply_stock_delta, item.product_id, -item.quantity),
        )
        movement = record_movement(
            product_id=item.product_id,
            quantity=item.quantity,
            reference_type=reference_type,
            reference_id=sale.sale_id,
            notes=f"Returned from {sale.sale_number} ({reference_type.value})",
            created_by=actor,
        )
        log.record(
            f"delete in movement for product {item.product_id}",
            partial(delete_movement, movement.movement_id),
        )


def _restore_transactions(transactions: Iterable[FinancialTransaction]) -> None:
    for tx in transactions:
        restore_transaction(tx)


def create_sale(cart: Cart, details: SaleDetails) -> Sale:
    """
    Commit a staged cart as a new sale.

    Steps: insert header (payment status "completed"), insert one item per
    line, apply -qty to each product with an "out" movement, then append the
    ledger entry for the total.

    Raises:
        ValidationError: the cart is empty (nothing is written).
        InsufficientStockError: stock changed since the cart was built
            (everything written so far is undone).
        PersistenceError: any store failure (everything written so far is undone).
    """

    if cart.is_empty:
        raise ValidationError("Please add items to the cart")

    actor = current_actor()
    sale_number = generate_sale_number()
    now = utc_now()
    sale = Sale(
        sale_id=uuid4(),
        sale_number=sale_number,
        total_amount=cart.total(),
        payment_method=details.payment_method,
        payment_status=PaymentStatus.COMPLETED,
        sale_date=now,
        customer_name=details.customer_name or None,
        customer_contact=details.customer_contact or None,
        notes=details.notes or None,
        created_at=now,
        created_by=actor,
    )

    with CompensationLog("create_sale", sale_id=sale.sale_id, sale_number=sale_number) as log:
        insert_sale(sale)
        log.record("delete sale header", partial(delete_sale_header, sale.sale_id))
        items = _apply_cart(log, sale, cart, actor)

    logger.info(
        f"Sale {sale_number} created",
        extra={
            "sale_id": str(sale.sale_id),
            "sale_number": sale_number,
            "total_amount": str(sale.total_amount),
            "lines": len(items),
        },
    )
    return sale.with_items(items)


def edit_sale(sale_id: UUID, cart: Cart, details: SaleDetails) -> Sale:
    """
    Replace the contents of an existing sale.

    The header is updated in place (sale number, payment status and sale
    date are kept). The old items are released back to stock with
    "sale_edit" movements, the old items and ledger entry are deleted, and
    the new cart is applied exactly as in create_sale under the same id.

    Raises:
        ValidationError: the cart is empty (nothing is written).
        SaleNotFoundError: no sale with this id.
        InsufficientStockError / PersistenceError: as create_sale; the edit is undone.
    """

    if cart.is_empty:
        raise ValidationError("Please add items to the cart")

    existing = get_sale_by_id(sale_id)
    if existing is None:
        raise SaleNotFoundError(sale_id)

    old_items = list_sale_items(sale_id)
    old_transactions = list_sale_transactions(sale_id)
    old_details = SaleDetails(
        payment_method=existing.payment_method,
        customer_name=existing.customer_name,
        customer_contact=existing.customer_contact,
        notes=existing.notes,
    )
    actor = current_actor()

    updated = Sale(
        sale_id=existing.sale_id,
        sale_number=existing.sale_number,
        total_amount=cart.total(),
        payment_method=details.payment_method,
        payment_status=existing.payment_status,
        sale_date=existing.sale_date,
        customer_name=details.customer_name or None,
        customer_contact=details.customer_contact or None,
        notes=details.notes or None,
        created_at=existing.created_at,
        created_by=existing.created_by,
    )
    new_details = SaleDetails(
        payment_method=updated.payment_method,
        customer_name=updated.customer_name,
        customer_contact=updated.customer_contact,
        notes=updated.notes,
    )

    with CompensationLog("edit_sale", sale_id=sale_id, sale_number=existing.sale_number) as log:
        update_sale_header(sale_id, new_details, updated.total_amount)
        log.record(
            "restore sale header",
            partial(update_sale_header, sale_id, old_details, existing.total_amount),
        )

        _release_items(log, existing, old_items, MovementReference.SALE_EDIT, actor)

        delete_sale_items(sale_id)
        log.record("restore previous sale items", partial(restore_sale_items, old_items))

        delete_sale_transactions(sale_id)
        log.record("restore previous ledger entry", partial(_restore_transactions, old_transactions))

        items = _apply_cart(log, updated, cart, actor)

    logger.info(
        f"Sale {existing.sale_number} edited",
        extra={
            "sale_id": str(sale_id),
            "sale_number": existing.sale_number,
            "previous_total": str(existing.total_amount),
            "total_amount": str(updated.total_amount),
        },
    )
    return updated.with_items(items)


def delete_sale(sale_id: UUID) -> None:
    """
    Reverse and remove a sale.

    Stock for every item is restored with a "sale_deletion" movement, then
    the ledger entry, the items and the header are hard-deleted, in that
    order.

    Raises:
        SaleNotFoundError: no sale with this id.
        InsufficientStockError / PersistenceError: the deletion is undone.
    """

    sale = get_sale_by_id(sale_id)
    if sale is None:
        raise SaleNotFoundError(sale_id)

    items = list_sale_items(sale_id)
    transactions = list_sale_transactions(sale_id)
    actor = current_actor()

    with CompensationLog("delete_sale", sale_id=sale_id, sale_number=sale.sale_number) as log:
        _release_items(log, sale, items, MovementReference.SALE_DELETION, actor)

        delete_sale_transactions(sale_id)
        log.record("restore ledger entry", partial(_restore_transactions, transactions))

        delete_sale_items(sale_id)
        log.record("restore sale items", partial(restore_sale_items, items))

        delete_sale_header(sale_id)

    logger.info(
        f"Sale {sale.sale_number} deleted",
        extra={"sale_id": str(sale_id), "sale_number": sale.sale_number, "lines": len(items)},
    )


def fetch_sales() -> List[Sale]:
    """Every sale with its items (and product summaries), newest sale_date first."""

    sales = list_sales()
    items_by_sale = list_items_for_sales(s.sale_id for s in sales)
    return [s.with_items(items_by_sale.get(s.sale_id, [])) for s in sales]


def get_sale(sale_id: UUID) -> Sale:
    sale = get_sale_by_id(sale_id)
    if sale is None:
        raise SaleNotFoundError(sale_id)
    return sale.with_items(list_sale_items(sale_id))


__all__ = [
    "generate_sale_number",
    "build_cart",
    "create_sale",
    "edit_sale",
    "delete_sale",
    "fetch_sales",
    "get_sale",
]
