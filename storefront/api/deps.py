# storefront/api/deps.py
from fastapi import Depends, Header, HTTPException, Request

from storefront.domain.errors import AuthenticationError, TooManyAttemptsError
from storefront.services.auth_service import AdminAuthService, LoginThrottle
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway


def get_gateway() -> PaymentGateway:
    return PaymentGateway()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_login_throttle() -> LoginThrottle:
    return LoginThrottle()


def get_admin_auth(throttle: LoginThrottle = Depends(get_login_throttle)) -> AdminAuthService:
    return AdminAuthService(throttle)


def require_admin(
    request: Request,
    authorization: str | None = Header(None),
    auth: AdminAuthService = Depends(get_admin_auth),
) -> None:
    client_id = request.client.host if request.client else "unknown"
    try:
        auth.authenticate(authorization, client_id)
    except TooManyAttemptsError as e:
        raise HTTPException(status_code=429, detail=str(e), headers={"Retry-After": str(e.retry_after)})
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})
