"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.movement import InventoryMovement
from domain.product import Product
from domain.sale import Sale, SaleItem
from services.inventory_report_service import SalesSummary


# ============================================================================
# Product Models
# ============================================================================

class ProductResponse(BaseModel):
    """Single product with its current stock."""
    product_id: UUID
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    reorder_level: int
    category_name: Optional[str] = None
    low_stock: bool

    @classmethod
    def from_domain(cls, product: Product) -> "ProductResponse":
        return cls(
            product_id=product.product_id,
            name=product.name,
            sku=product.sku,
            quantity=product.quantity,
            unit_price=product.unit_price,
            reorder_level=product.effective_reorder_level,
            category_name=product.category_name,
            low_stock=product.is_low_stock,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Rice 5kg",
                "sku": "RICE-5KG",
                "quantity": 24,
                "unit_price": "12.50",
                "reorder_level": 10,
                "category_name": "Groceries",
                "low_stock": False
            }
        }


class ProductListResponse(BaseModel):
    items: List[ProductResponse]
    total_count: int


class MovementResponse(BaseModel):
    """Single inventory movement."""
    movement_id: UUID
    product_id: UUID
    movement_type: str  # "in" or "out"
    quantity: int
    reference_type: str
    reference_id: UUID
    notes: Optional[str] = None
    movement_date: datetime
    created_by: Optional[UUID] = None

    @classmethod
    def from_domain(cls, movement: InventoryMovement) -> "MovementResponse":
        return cls(
            movement_id=movement.movement_id,
            product_id=movement.product_id,
            movement_type=movement.movement_type.value,
            quantity=movement.quantity,
            reference_type=movement.reference_type.value,
            reference_id=movement.reference_id,
            notes=movement.notes,
            movement_date=movement.movement_date,
            created_by=movement.created_by,
        )


class MovementListResponse(BaseModel):
    items: List[MovementResponse]
    total_count: int


# ============================================================================
# Sale Models
# ============================================================================

class CartLineRequest(BaseModel):
    """One product and quantity to put in the sale."""
    product_id: UUID
    quantity: int = Field(..., description="Units to sell; must be > 0 and within stock")


class SaleRequest(BaseModel):
    """Request to create or edit a sale."""
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    payment_method: str = Field(
        "cash",
        description="One of: cash, card, upi, bank_transfer, credit"
    )
    notes: Optional[str] = None
    items: List[CartLineRequest] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "customer_name": "Walk-in Customer",
                "customer_contact": None,
                "payment_method": "cash",
                "notes": None,
                "items": [
                    {"product_id": "123e4567-e89b-12d3-a456-426614174000", "quantity": 3}
                ]
            }
        }


class SaleItemResponse(BaseModel):
    item_id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_domain(cls, item: SaleItem) -> "SaleItemResponse":
        return cls(
            item_id=item.item_id,
            product_id=item.product_id,
            product_name=item.product.name if item.product else None,
            sku=item.product.sku if item.product else None,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )


class SaleResponse(BaseModel):
    """Sale header with its items."""
    sale_id: UUID
    sale_number: str
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    total_amount: Decimal
    payment_method: str
    payment_status: str
    notes: Optional[str] = None
    sale_date: datetime
    item_count: int = Field(..., description="Total units across all items")
    items: List[SaleItemResponse]

    @classmethod
    def from_domain(cls, sale: Sale) -> "SaleResponse":
        return cls(
            sale_id=sale.sale_id,
            sale_number=sale.sale_number,
            customer_name=sale.customer_name,
            customer_contact=sale.customer_contact,
            total_amount=sale.total_amount,
            payment_method=sale.payment_method.value,
            payment_status=sale.payment_status.value,
            notes=sale.notes,
            sale_date=sale.sale_date,
            item_count=sale.item_count,
            items=[SaleItemResponse.from_domain(item) for item in sale.items],
        )


class SaleListResponse(BaseModel):
    items: List[SaleResponse]
    total_count: int


class SaleOperationResponse(BaseModel):
    """Pass/fail result of a create, edit or delete."""
    success: bool
    message: str
    sale: Optional[SaleResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Sale SALE-20250101-0421 created successfully",
                "sale": None
            }
        }


class CategoryStockResponse(BaseModel):
    category_name: str
    units: int
    stock_value: Decimal


class SalesSummaryResponse(BaseModel):
    """Dashboard figures; the sales totals cover the requested window, if any."""
    total_sales: int
    total_revenue: Decimal
    items_sold: int
    today_sales: int
    today_revenue: Decimal
    inventory_value: Decimal
    total_products: int
    total_categories: int
    low_stock_count: int
    categories: List[CategoryStockResponse]

    @classmethod
    def from_domain(cls, summary: SalesSummary) -> "SalesSummaryResponse":
        return cls(
            total_sales=summary.total_sales,
            total_revenue=summary.total_revenue,
            items_sold=summary.items_sold,
            today_sales=summary.today_sales,
            today_revenue=summary.today_revenue,
            inventory_value=summary.inventory_value,
            total_products=summary.total_products,
            total_categories=summary.total_categories,
            low_stock_count=summary.low_stock_count,
            categories=[
                CategoryStockResponse(
                    category_name=c.category_name,
                    units=c.units,
                    stock_value=c.stock_value,
                )
                for c in summary.categories
            ],
        )
