from typing import Any

import httpx
from loguru import logger

from assetgate.core.config import settings
from assetgate.core.logger import mask_email
from assetgate.services.task_queue import celery_app


def deliver_email(message: dict[str, Any], client: httpx.Client | None = None) -> bool:
    """
    Post one message to Resend.

    Args:
        message: ``{"from", "to", "subject", "html"}``
        client: HTTP client to use, a short-lived one is created when omitted

    Returns:
        bool: True when Resend accepted the message
    """
    owns_client = client is None
    client = client or httpx.Client(base_url=settings.resend_api_url, timeout=10.0)

    try:
        response = client.post(
            "/emails",
            json=message,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Email delivery to {mask_email(str(message.get('to')))} failed: {e}")
        return False
    finally:
        if owns_client:
            client.close()

    recipient = mask_email(str(message.get("to")))
    logger.info(f"Email '{message.get('subject')}' delivered to {recipient}")

    return True


@celery_app.task(name="send_email", bind=True)
def send_email_task(self, message: dict[str, Any]) -> bool:
    """
    Celery task delivering a rendered email; failures are logged, not retried.

    Args:
        self: The task instance (automatically passed by Celery).
        message: Rendered message, see :func:`deliver_email`.
    """
    logger.debug(f"Running email task {self.request.id}")

    return deliver_email(message)
