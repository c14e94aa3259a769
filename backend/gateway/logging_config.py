"""Logging setup for structured gateway events.

Modules log a stable event name as the message and attach their fields
through ``extra``. The formatter installed here renders those fields as a
JSON context suffix so log lines stay greppable by event name.
"""

import json
import logging

# Attributes present on every LogRecord; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def record_context(record: logging.LogRecord) -> dict[str, object]:
    """Return the structured fields attached to a record via ``extra``."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        output = super().format(record)
        context = record_context(record)
        if context:
            output += " " + json.dumps(context, default=str, sort_keys=True)
        return output


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(DEFAULT_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
