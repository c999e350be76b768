from typing import NotRequired, TypedDict

from celery.schedules import crontab, schedule

from assetgate.core.config import settings


class CeleryTaskSettings(TypedDict):
    task: str
    schedule: crontab | schedule
    args: NotRequired[tuple]


license_schedule: dict[str, CeleryTaskSettings] = {
    "check-license-expiry": {
        "task": "check_license_expiry",
        "schedule": crontab(minute=0, hour=0),  # Daily at midnight
    }
}

beat_schedule: dict[str, CeleryTaskSettings] = (
    license_schedule if settings.enable_license_expiry_schedule else {}
)
