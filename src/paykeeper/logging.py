"""
Loguru setup for the keeper.

Every funding check runs inside `check_context`, which tags all log lines of
that check with a trace id and the payroll contract being checked. JSON
lines carry both as top-level fields so one check can be followed across
the engine, the readers and the publisher.
"""

import json
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional

from loguru import logger

from src.paykeeper.config import MonitoringSettings, settings

# Extras promoted to top-level JSON fields
CHECK_FIELDS = ("trace_id", "contract_address")
_INTERNAL_FIELDS = ("component", "serialized")

logger.remove()


def serialize(record: Dict[str, Any]) -> str:
    """Render a record as one JSON line."""
    extra = record["extra"]
    entry = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "service": settings.service_name,
        "component": extra.get("component", record["name"]),
        "message": record["message"],
    }

    for field in CHECK_FIELDS:
        if field in extra:
            entry[field] = extra[field]

    context = {
        key: value
        for key, value in extra.items()
        if key not in CHECK_FIELDS and key not in _INTERNAL_FIELDS
    }
    if context:
        entry["context"] = context

    if record["exception"] is not None:
        entry["exception"] = {
            "type": record["exception"].type.__name__,
            "value": str(record["exception"].value),
            "location": f"{record['module']}:{record['function']}:{record['line']}",
        }

    # A callable format must return a template, so the line goes through extra
    extra["serialized"] = json.dumps(entry, default=str)
    return "{extra[serialized]}\n"


def format_text(record: Dict[str, Any]) -> str:
    """Coloured single-line format for local runs."""
    line = "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> <cyan>{name}</cyan>"

    if "trace_id" in record["extra"]:
        line += " <yellow>[{extra[trace_id]:.8}]</yellow>"
    if "contract_address" in record["extra"]:
        line += " <magenta>{extra[contract_address]}</magenta>"

    line += " {message}\n"
    if record["exception"] is not None:
        line += "{exception}\n"
    return line


def configure_logging(monitoring: Optional[MonitoringSettings] = None):
    """Install the stdout sink and, if configured, a rotating JSON file sink."""
    monitoring = monitoring or settings.monitoring
    logger.remove()

    if monitoring.log_format == "json":
        logger.add(sys.stdout, format=serialize, level=monitoring.log_level, diagnose=False)
    else:
        logger.add(
            sys.stdout,
            format=format_text,
            level=monitoring.log_level,
            colorize=True,
            diagnose=False,
        )

    if monitoring.log_file:
        logger.add(
            monitoring.log_file,
            format=serialize,
            level=monitoring.log_level,
            rotation="100 MB",
            retention="7 days",
            compression="gz",
            diagnose=False,
        )


@contextmanager
def check_context(contract_address: Optional[str] = None, trace_id: Optional[str] = None):
    """Tag every log line of one funding check. Yields the trace id."""
    trace_id = trace_id or str(uuid.uuid4())
    fields = {"trace_id": trace_id}
    if contract_address:
        fields["contract_address"] = contract_address

    with logger.contextualize(**fields):
        yield trace_id


def get_logger(name: str):
    return logger.bind(component=name)


configure_logging()

__all__ = ["logger", "get_logger", "check_context", "configure_logging"]
