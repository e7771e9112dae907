"""
==============================================================================
Order Endpoints
==============================================================================

Order creation, lookup and hand-off.

==============================================================================
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bistro_scan.db.database import get_db
from bistro_scan.orders.models import OrderStatus
from bistro_scan.services.order_service import OrderService
from bistro_scan.schemas.common import ListResponse, error_responses
from bistro_scan.schemas.order import OrderCreate, OrderEnvelope, OrderResponse


router = APIRouter(prefix="/orders", tags=["Orders"])


class OrderController:
    """Controller for order operations."""

    def __init__(self, db: Session):
        self._service = OrderService(db)

    def create(self, data: OrderCreate) -> OrderEnvelope:
        order = self._service.create_order(data)
        return OrderEnvelope(order=OrderResponse.model_validate(order))

    def list_all(self, status: Optional[OrderStatus]) -> ListResponse[OrderResponse]:
        orders = self._service.list_orders(status)
        return ListResponse[OrderResponse].create(
            [OrderResponse.model_validate(o) for o in orders]
        )

    def get(self, order_key: str) -> OrderEnvelope:
        order = self._service.get_order(order_key)
        return OrderEnvelope(order=OrderResponse.model_validate(order))

    def mark_scanned(self, order_key: str) -> OrderEnvelope:
        """Record the hand-off scan."""
        order = self._service.mark_scanned(order_key)
        return OrderEnvelope(
            message=f"Order {order.reference} scanned",
            order=OrderResponse.model_validate(order)
        )


# ==== CRUD ====

@router.post(
    "",
    status_code=201,
    response_model=OrderEnvelope,
    responses=error_responses(409)
)
async def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db)
):
    """Create a new order with line items."""
    return OrderController(db).create(data)


@router.get("", response_model=ListResponse[OrderResponse])
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    db: Session = Depends(get_db)
):
    """List orders, newest first."""
    return OrderController(db).list_all(status)


@router.get("/{order_key}", response_model=OrderEnvelope, responses=error_responses(404))
async def get_order(
    order_key: str,
    db: Session = Depends(get_db)
):
    return OrderController(db).get(order_key)


# ==== HAND-OFF ====

@router.post(
    "/{order_key}/scanned",
    response_model=OrderEnvelope,
    responses=error_responses(400, 404)
)
async def mark_order_scanned(
    order_key: str,
    db: Session = Depends(get_db)
):
    """
    Mark an order as scanned at hand-off.

    Already scanned orders are returned unchanged; cancelled orders are
    refused.
    """
    return OrderController(db).mark_scanned(order_key)
