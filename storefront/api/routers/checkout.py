# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_gateway
from storefront.domain.schemas import CheckoutSessionIn, CheckoutSessionOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(gateway: PaymentGateway = Depends(get_gateway)):
    return CheckoutService(gateway)


@router.post("/sessions", response_model=CheckoutSessionOut)
def create_checkout_session(payload: CheckoutSessionIn, svc: CheckoutService = Depends(get_service)):
    """
    Tworzy sesje Stripe Checkout i zwraca URL do przekierowania.
    """
    try:
        return svc.create_session(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
