"""
Observability: optional Sentry error reporting and spans around core operations
"""
import logging
from contextlib import contextmanager

import sentry_sdk

from galleria.config import settings

logger = logging.getLogger(__name__)


def init_observability(app_name: str = "galleria"):
    if not settings.SENTRY_DSN:
        logger.info("Sentry disabled (no SENTRY_DSN)")
        return
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.1,
        environment=settings.APP_ENV,
        server_name=app_name,
    )
    logger.info("Sentry initialized")


@contextmanager
def trace_operation(name: str, **attrs):
    # start_span is a no-op when sentry_sdk.init was never called
    with sentry_sdk.start_span(op=name) as span:
        for k, v in attrs.items():
            span.set_data(k, str(v))
        yield span
