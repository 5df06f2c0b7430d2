"""Receipt print dispatch: hardware printer first, printable document fallback."""

from __future__ import annotations

import logging
import os
import webbrowser
from pathlib import Path
from typing import Any, Callable, Protocol

from pos_billing.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_MODE,
    PRINTER_NAME,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
    RECEIPTS_DIR,
)
from pos_billing.errors import BillingError, PrintFailure
from pos_billing.models import (
    PRINT_CHANNEL_DOCUMENT,
    PRINT_CHANNEL_REMOTE,
    PRINT_CHANNEL_USB,
    Bill,
    PrinterInfo,
    PrinterStatus,
    PrintResult,
)
from pos_billing.receipt import Receipt, render_receipt

logger = logging.getLogger(__name__)

_FONT_OVERRIDE_ENV = "POS_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)
_LINE_EXTRA_PX = 6
_TAIL_SPACER_PX = 60


class PrintSink(Protocol):
    def dispatch(self, receipt: Receipt) -> PrintResult: ...


class PrintService(Protocol):
    def printer_status(self) -> dict[str, Any]: ...

    def print_bill(self, bill_id: str, printer_config: dict[str, Any] | None = None) -> dict[str, Any]: ...


def _font_candidates() -> list[str]:
    ordered = [os.environ.get(_FONT_OVERRIDE_ENV, "").strip(), PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS]
    return list(dict.fromkeys(path for path in ordered if path))


def resolve_printer_font_path() -> str:
    """First existing receipt font: env override, configured path, then system monospace fonts."""
    candidates = _font_candidates()
    for candidate in candidates:
        if Path(candidate).is_file():
            return candidate
    raise PrintFailure(f"Receipt font missing; point {_FONT_OVERRIDE_ENV} at a .ttf file (checked {len(candidates)} paths)")


def check_printer_dependencies() -> tuple[bool, str]:
    """Can the USB sink run here? Returns ``(ok, reason)``."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont
    except ImportError as exc:
        return (False, f"USB printing needs python-escpos and Pillow: {exc}")
    try:
        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except (PrintFailure, OSError) as exc:
        return (False, str(exc))
    return (True, "USB printer driver ready")


def usb_printer_status() -> PrinterStatus:
    ok, message = check_printer_dependencies()
    if not ok:
        logger.info("usb printer unavailable: %s", message)
        return PrinterStatus(status="offline")
    return PrinterStatus(status="online", printers=(PrinterInfo(name="usb", is_default=True),))


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    probe = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(probe).textbbox((0, 0), text or " ", font=font)
    text_height = bbox[3] - bbox[1]
    canvas_height = max(PRINTER_FONT_SIZE, text_height) + _LINE_EXTRA_PX

    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


class UsbPrintSink:
    """Local ESC/POS thermal printer; each receipt line is printed as a bitmap."""

    def __init__(self, vendor_id: int = PRINTER_USB_VENDOR_ID, product_id: int = PRINTER_USB_PRODUCT_ID) -> None:
        self.vendor_id = vendor_id
        self.product_id = product_id

    def dispatch(self, receipt: Receipt) -> PrintResult:
        try:
            from escpos.printer import Usb
            from PIL import ImageFont
        except Exception as exc:
            raise PrintFailure(f"Printer dependencies unavailable: {exc}") from exc

        try:
            font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
            printer = Usb(self.vendor_id, self.product_id)
            for line in receipt.lines:
                printer.image(_render_line(line, font))
            printer.image(_render_spacer(_TAIL_SPACER_PX))
            printer.cut()
        except Exception as exc:
            raise PrintFailure(f"USB printer error: {exc}") from exc
        return PrintResult(success=True, channel=PRINT_CHANNEL_USB, message="Printed on USB printer")


class RemotePrintSink:
    """Print through the backend print service (``POST /printer/print/:billId``)."""

    def __init__(self, service: PrintService, printer_config: dict[str, Any] | None = None) -> None:
        self.service = service
        self.printer_config = printer_config if printer_config is not None else _default_printer_config()

    def dispatch(self, receipt: Receipt) -> PrintResult:
        bill_id = receipt.bill.bill_id
        if not bill_id:
            raise PrintFailure(f"Bill {receipt.bill.bill_number} has no id to print")
        response = self.service.print_bill(bill_id, self.printer_config)
        message = str(response.get("message") or "")
        if not response.get("success"):
            raise PrintFailure(message or "Print service reported failure")
        return PrintResult(success=True, channel=PRINT_CHANNEL_REMOTE, message=message or "Bill sent to printer")


class DocumentPrintSink:
    """Write a printable HTML receipt and hand it to the host for a manual print."""

    def __init__(
        self,
        output_dir: str | Path = RECEIPTS_DIR,
        opener: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.opener = opener

    def document_path(self, receipt: Receipt) -> Path:
        name = receipt.bill.bill_number or receipt.bill.bill_id or "receipt"
        safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in name)
        return self.output_dir / f"receipt-{safe}.html"

    def dispatch(self, receipt: Receipt) -> PrintResult:
        path = self.document_path(receipt)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(receipt.to_html(), encoding="utf-8")
        except OSError as exc:
            logger.error("could not write receipt document %s: %s", path, exc)
            return PrintResult(success=False, channel=PRINT_CHANNEL_DOCUMENT, message=f"Could not write receipt: {exc}")

        opened = self.opener(path.resolve().as_uri())
        if not opened:
            return PrintResult(
                success=False,
                channel=PRINT_CHANNEL_DOCUMENT,
                message=f"Receipt saved to {path}; open it to print",
            )
        return PrintResult(success=True, channel=PRINT_CHANNEL_DOCUMENT, message=f"Receipt opened for printing: {path}")


def _default_printer_config() -> dict[str, Any]:
    return {"printerName": PRINTER_NAME} if PRINTER_NAME else {}


class PrintDispatcher:
    """
    One print attempt per request.

    The hardware sink is used only when the status check reports a printer;
    any hardware failure falls through to the document sink exactly once.
    """

    def __init__(
        self,
        hardware: PrintSink | None,
        fallback: PrintSink,
        status_check: Callable[[], PrinterStatus],
    ) -> None:
        self.hardware = hardware
        self.fallback = fallback
        self.status_check = status_check

    def check_status(self) -> PrinterStatus:
        try:
            return self.status_check()
        except BillingError as exc:
            logger.warning("printer status check failed, treating printer as offline: %s", exc.message)
            return PrinterStatus(status="offline")

    def print_bill(self, bill: Bill) -> PrintResult:
        return self.print_receipt(render_receipt(bill))

    def print_receipt(self, receipt: Receipt) -> PrintResult:
        status = self.check_status()
        if self.hardware is not None and status.is_available:
            try:
                result = self.hardware.dispatch(receipt)
            except Exception as exc:
                logger.warning("hardware print failed for %s, falling back: %s", receipt.bill.bill_number, exc)
            else:
                logger.info("bill %s printed via %s", receipt.bill.bill_number, result.channel)
                return result
        else:
            logger.info("no hardware printer available (status=%s), using document fallback", status.status)

        result = self.fallback.dispatch(receipt)
        logger.info("bill %s fallback print success=%s", receipt.bill.bill_number, result.success)
        return result


def build_print_dispatcher(service: PrintService, mode: str = PRINTER_MODE) -> PrintDispatcher:
    """Wire sinks for the configured printer mode."""
    fallback = DocumentPrintSink()
    if mode == "usb":
        return PrintDispatcher(UsbPrintSink(), fallback, usb_printer_status)
    return PrintDispatcher(
        RemotePrintSink(service),
        fallback,
        lambda: PrinterStatus.from_api(service.printer_status()),
    )
