"""Core module for exceptions and telemetry."""

from wacrm.core.exceptions import NotFoundError, WhatsAppAPIError
from wacrm.core.telemetry import get_tracer, setup_telemetry, setup_worker_telemetry

__all__ = [
    "NotFoundError",
    "WhatsAppAPIError",
    "get_tracer",
    "setup_telemetry",
    "setup_worker_telemetry",
]
