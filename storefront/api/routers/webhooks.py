# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.api.deps import get_gateway, get_notifier
from storefront.data.database import get_db
from storefront.domain.errors import ConfigurationError, InvalidSignatureError
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderMaterializer
from storefront.services.payment_gateway import PaymentGateway
from storefront.services.webhook_service import WebhookService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    notifier: NotificationService = Depends(get_notifier),
):
    return WebhookService(gateway, OrderMaterializer(db, gateway, notifier))


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"received": False, "error": message})


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="stripe-signature"),
    svc: WebhookService = Depends(get_service),
):
    # signature is computed over the exact bytes stripe sent
    raw = await request.body()

    try:
        body = raw.decode("utf-8")
        return await run_in_threadpool(svc.handle, body, stripe_signature)
    except ConfigurationError as e:
        return _error(500, str(e))
    except InvalidSignatureError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        return _error(400, "Webhook signature verification failed")
    except ValueError as e:
        return _error(400, str(e))
    except (RuntimeError, SQLAlchemyError) as e:
        logger.error(f"Error processing webhook: {e}")
        return _error(500, str(e))
