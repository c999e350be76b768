from datetime import datetime

from loguru import logger

from assetgate.core.config import settings
from assetgate.core.db import session_factory
from assetgate.core.signature import utc_now
from assetgate.core.types import ExpiryReportDict
from assetgate.repos.license import expire_overdue_stmt, expiring_subscriptions_stmt
from assetgate.services.email import EmailService
from assetgate.services.license_service import expiry_notice_window
from assetgate.services.task_queue import celery_app


def sweep_licenses(
    now: datetime | None = None, email_service: EmailService | None = None
) -> ExpiryReportDict:
    """
    Expire overdue licenses and queue notices for subscriptions ending soon.

    Args:
        now: Reference time, defaults to the current UTC time
        email_service: Email renderer and dispatcher

    Returns:
        ExpiryReportDict: Licenses expired and notices queued
    """
    now = now or utc_now()
    email_service = email_service or EmailService()
    start, end = expiry_notice_window(now, settings.license_expiry_notice_days)

    with session_factory() as session:
        expired_count = session.execute(expire_overdue_stmt(now)).rowcount or 0
        session.commit()
        expiring = session.execute(expiring_subscriptions_stmt(start, end)).all()

    notified_count = 0
    for license_row, email, name in expiring:
        if email_service.dispatch(
            email_service.expiration_notice(email, name, license_row.expires_at)
        ):
            notified_count += 1

    return ExpiryReportDict(expired_count=expired_count, notified_count=notified_count)


@celery_app.task(name="check_license_expiry", bind=True)
def check_license_expiry_task(self) -> ExpiryReportDict:
    """
    Celery beat task running the daily license expiry sweep.

    Args:
        self: The task instance (automatically passed by Celery).

    Returns:
        ExpiryReportDict: Licenses expired and notices queued
    """
    logger.info(f"Starting license expiry task {self.request.id}")

    report = sweep_licenses()
    logger.info(
        f"License expiry sweep: {report['expired_count']} expired, "
        f"{report['notified_count']} notified"
    )

    return report
