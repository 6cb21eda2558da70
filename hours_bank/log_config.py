"""
Logging setup.

Services log through module loggers and pass structured context
(company_id, year, month, operation) in ``extra`` so that log
records can be filtered per company and per calculation.
"""

import logging

from hours_bank.config import get_settings

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "[company=%(company_id)s period=%(period)s] %(message)s"
)


class LedgerContextFilter(logging.Filter):
    """Fill in the ledger context fields when a record has none."""

    def filter(self, record):
        if not hasattr(record, "company_id"):
            record.company_id = "-"
        year = getattr(record, "year", None)
        month = getattr(record, "month", None)
        record.period = f"{month:02d}/{year}" if year and month else "-"
        return True


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the package logger."""
    settings = get_settings()
    logger = logging.getLogger("hours_bank")
    logger.setLevel(level or settings.LOG_LEVEL)

    if any(getattr(h, "_hours_bank", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(LedgerContextFilter())
    handler._hours_bank = True
    logger.addHandler(handler)
