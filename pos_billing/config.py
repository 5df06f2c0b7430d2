"""Runtime configuration defaults for the API, persistence and printing."""

from __future__ import annotations

import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return int(raw, 0)


API_BASE_URL = os.getenv("POS_API_BASE_URL", "http://localhost:4000/api").rstrip("/")
API_TOKEN = os.getenv("POS_API_TOKEN") or None
API_TIMEOUT_SECONDS = float(os.getenv("POS_API_TIMEOUT_SECONDS", "10"))

# GST applied to every bill subtotal.
TAX_RATE = Decimal(os.getenv("POS_TAX_RATE", "0.18"))

SNAPSHOT_DB_PATH = os.getenv("POS_SNAPSHOT_DB_PATH", "data/pos_billing.db")
RECEIPTS_DIR = os.getenv("POS_RECEIPTS_DIR", "data/receipts")

LOG_PATH = os.getenv("POS_LOG_PATH", "/tmp/pos-billing.log")
LOG_LEVEL = os.getenv("POS_LOG_LEVEL", "INFO").upper()

# "remote" prints through the API print service, "usb" drives a local ESC/POS printer.
PRINTER_MODE = os.getenv("POS_PRINTER_MODE", "remote").lower()
PRINTER_NAME = os.getenv("POS_PRINTER_NAME", "")
PRINTER_USB_VENDOR_ID = _env_int("POS_PRINTER_USB_VENDOR_ID", 0x28E9)
PRINTER_USB_PRODUCT_ID = _env_int("POS_PRINTER_USB_PRODUCT_ID", 0x0289)
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 22
PRINTER_FONT_PATH = os.getenv("POS_PRINTER_FONT_PATH", "/System/Library/Fonts/Menlo.ttc")
PRINTER_LEFT_INDENT_PX = 4

RECEIPT_WIDTH_CHARS = 32
CURRENCY_PREFIX = "Rs."

BUSINESS_NAME = os.getenv("POS_BUSINESS_NAME", "RESTAURANT POS")
BUSINESS_ADDRESS = os.getenv("POS_BUSINESS_ADDRESS", "123 Main Street, City")
BUSINESS_PHONE = os.getenv("POS_BUSINESS_PHONE", "+91-9876543210")
BUSINESS_GSTIN = os.getenv("POS_BUSINESS_GSTIN", "123456789012345")
