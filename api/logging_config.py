"""
Console logging for the credential service.

LOG_FORMAT=json emits one JSON object per line; anything else uses a plain
text formatter.
"""

import json
import logging
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def configure_logging(app):
    """Attach a console handler to the root logger at the app's LOG_LEVEL."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    handler = logging.StreamHandler()
    if str(app.config.get("LOG_FORMAT", "text")).lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))

    root = logging.getLogger()
    root.setLevel(level)
    # replace our own handler on repeated create_app() calls, leave others alone
    root.handlers = [h for h in root.handlers if not getattr(h, "_credential_service", False)]
    handler._credential_service = True
    root.addHandler(handler)
    app.logger.setLevel(level)
    return root
