from __future__ import annotations

import logging
import os
from typing import Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.threading import ThreadingIntegration
from structlog.processors import JSONRenderer
from structlog.types import EventDict
from structlog_sentry import SentryProcessor

from kdbview import settings
from kdbview.utils.metrics.util import create_metrics


def add_severity_attribute(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Set the severity attribute for log ingestion
    """
    if method_name == "warn":
        method_name = "warning"

    event_dict["severity"] = method_name
    event_dict["level"] = method_name

    return event_dict


def drop_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    SentryProcessor needs the `level` field, once it ran only `severity`
    is kept
    """
    del event_dict["level"]

    return event_dict


def setup_logging(level: Optional[str] = None) -> None:
    if level is None:
        level = settings.LOG_LEVEL

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=settings.LOG_FORMAT,
        force=True,
    )

    structlog.configure(
        cache_logger_on_first_use=True,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        processors=[
            add_severity_attribute,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            SentryProcessor(),
            drop_level,
            JSONRenderer(),
        ],
    )


def setup_sentry() -> None:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FlaskIntegration(),
            LoggingIntegration(event_level=logging.WARNING),
            ThreadingIntegration(propagate_scope=True),
        ],
        release=os.getenv("KDBVIEW_RELEASE"),
        traces_sample_rate=settings.SENTRY_TRACE_SAMPLE_RATE,
    )


metrics = create_metrics(
    "kdbview",
    tags=None,
    sample_rates=settings.DOGSTATSD_SAMPLING_RATES,
)
