# storefront/api/routers/admin_orders.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_gateway, get_notifier, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import (
    AdminOrderDetail,
    AdminOrderList,
    OrderUpdateIn,
    OrderUpdateOut,
    RefundIn,
    RefundOut,
    ShipIn,
    ShipOut,
)
from storefront.services.admin_order_service import AdminOrderService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway

router = APIRouter(
    prefix="/admin-orders",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def get_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    notifier: NotificationService = Depends(get_notifier),
):
    return AdminOrderService(db, gateway, notifier)


@router.get("", response_model=AdminOrderList)
def list_orders(
    page: int = Query(1),
    limit: int = Query(20),
    status: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    svc: AdminOrderService = Depends(get_service),
):
    try:
        return svc.list_orders(page, limit, status, search, sort_by, sort_order)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{order_id}", response_model=AdminOrderDetail)
def get_order(order_id: int, svc: AdminOrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{order_id}", response_model=OrderUpdateOut)
def update_order(order_id: int, payload: OrderUpdateIn, svc: AdminOrderService = Depends(get_service)):
    try:
        return {"success": True, "order": svc.update_order(order_id, payload)}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{order_id}/refund", response_model=RefundOut)
def refund_order(
    order_id: int,
    payload: RefundIn | None = None,
    svc: AdminOrderService = Depends(get_service),
):
    """
    Zwrot przez Stripe, potem status lokalny -> refunded.
    """
    try:
        return svc.refund(order_id, payload or RefundIn())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{order_id}/ship", response_model=ShipOut)
def ship_order(order_id: int, payload: ShipIn, svc: AdminOrderService = Depends(get_service)):
    try:
        return svc.ship(order_id, payload)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
