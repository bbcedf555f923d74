from __future__ import annotations

import logging


class StripRequestBodyFilter(logging.Filter):
    """
    Drop request body/content fields from log records to avoid leaking PII,
    and make sure every record carries a ``request_id`` for the JSON formatter.
    """

    redacted_attrs = ("request", "request_body", "data", "body")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in self.redacted_attrs:
            if hasattr(record, attr):
                setattr(record, attr, None)
        if not getattr(record, "request_id", None):
            record.request_id = "-"
        return True
