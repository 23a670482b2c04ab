# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import OrderLookupIn, OrderOut
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db)):
    return OrderService(db)


def _lookup(svc: OrderService, session_id: str | None):
    try:
        return svc.get_order_by_session(session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/by-session", response_model=OrderOut)
def get_order_by_session(
    session_id: str | None = Query(None),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera zamowienie po id sesji Stripe (strona success).
    """
    return _lookup(svc, session_id)


@router.post("/by-session", response_model=OrderOut)
def post_order_by_session(
    payload: OrderLookupIn | None = None,
    svc: OrderService = Depends(get_service),
):
    return _lookup(svc, payload.session_id if payload else None)
