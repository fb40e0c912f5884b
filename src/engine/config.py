"""Environment-driven settings for the scan service."""

import os
from dataclasses import dataclass
from typing import Optional

NOTIFIER_SIMULATED = "simulated"
NOTIFIER_WEBHOOK = "webhook"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _str_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass
class Settings:
    analyzer_url: str = "http://localhost:8081"
    notifier: str = NOTIFIER_SIMULATED
    webhook_url: Optional[str] = None
    notify_delay: float = 0.5
    page_size: int = 10
    activity_log_limit: int = 50
    asana_project_id: Optional[str] = None
    monday_project_id: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read AUDITYZER_* variables, evaluated at call time."""
        page_size = _int_env("AUDITYZER_PAGE_SIZE", cls.page_size)
        log_limit = _int_env("AUDITYZER_ACTIVITY_LOG_LIMIT", cls.activity_log_limit)
        return cls(
            analyzer_url=_str_env("AUDITYZER_ANALYZER_URL") or cls.analyzer_url,
            notifier=(_str_env("AUDITYZER_NOTIFIER") or cls.notifier).lower(),
            webhook_url=_str_env("AUDITYZER_WEBHOOK_URL"),
            notify_delay=max(0.0, _float_env("AUDITYZER_NOTIFY_DELAY", cls.notify_delay)),
            page_size=page_size if page_size > 0 else cls.page_size,
            activity_log_limit=log_limit if log_limit > 0 else cls.activity_log_limit,
            asana_project_id=_str_env("AUDITYZER_ASANA_PROJECT_ID"),
            monday_project_id=_str_env("AUDITYZER_MONDAY_PROJECT_ID"),
            log_level=(_str_env("AUDITYZER_LOG_LEVEL") or cls.log_level).upper(),
        )


def load_settings() -> Settings:
    return Settings.from_env()
