# storefront/services/email_client.py
from typing import Any, Dict, List

import requests

from storefront.domain.errors import ConfigurationError
from storefront.utils.retry import http_retry
from storefront.utils.settings import RESEND_API_KEY, RESEND_API_URL, EMAIL_FROM
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """Resend HTTP API."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        timeout: int = 10,
    ):
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.api_url = api_url or RESEND_API_URL
        self.sender = sender or EMAIL_FROM
        self.timeout = timeout

    @http_retry()
    def send(self, to: List[str], subject: str, html: str, reply_to: str | None = None) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY not configured")

        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        logger.info(f"EmailClient POST {self.api_url} subject={subject!r}")
        resp = requests.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()
