"""Entry point for the pos-billing Textual app."""

from __future__ import annotations

import logging
from pathlib import Path

from pos_billing.config import LOG_LEVEL, LOG_PATH


def configure_logging(path: str = LOG_PATH, level: str = LOG_LEVEL) -> None:
    """Send logs to a file; the terminal belongs to the UI."""
    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    from pos_billing.billing_app import BillingApp

    logging.getLogger(__name__).info("app_init")
    BillingApp().run()


if __name__ == "__main__":
    main()
