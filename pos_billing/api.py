"""HTTP client for the POS backend (menu, bills and printer service)."""

from __future__ import annotations

import logging
from typing import Any

import requests

from pos_billing.config import API_BASE_URL, API_TIMEOUT_SECONDS, API_TOKEN
from pos_billing.errors import TransientFailure, ValidationRejected

logger = logging.getLogger(__name__)


def _unwrap(body: Any, *keys: str) -> Any:
    """Return the first present envelope key, or the body itself."""
    if isinstance(body, dict):
        for key in keys:
            if body.get(key) is not None:
                return body[key]
    return body


class PosApiClient:
    """
    Thin wrapper over ``requests.Session``.

    Transport errors, timeouts and 5xx responses raise ``TransientFailure``;
    4xx responses raise ``ValidationRejected`` with the server's message.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: str | None = API_TOKEN,
        timeout: float = API_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise TransientFailure(f"Request timed out: {method} {path}") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransientFailure(f"Could not reach server: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = _unwrap(body, "message") if isinstance(body, dict) else None
            if not isinstance(message, str) or not message:
                message = f"HTTP {resp.status_code}: {resp.reason}"
            logger.warning("%s %s -> %s %s", method, path, resp.status_code, message)
            if 400 <= resp.status_code < 500:
                raise ValidationRejected(message, status_code=resp.status_code)
            raise TransientFailure(message, status_code=resp.status_code)

        if body is None:
            raise TransientFailure(f"Invalid JSON response from {method} {path}", status_code=resp.status_code)
        return body

    def fetch_menu(self, available: bool = True) -> list[dict[str, Any]]:
        params = {"available": "true"} if available else None
        items = _unwrap(self._request("GET", "/menu", params=params), "data", "items")
        if not isinstance(items, list):
            raise TransientFailure("Menu response did not contain a list of items")
        return items

    def create_bill(self, payload: dict[str, Any], idempotency_key: str | None = None) -> dict[str, Any]:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        bill = _unwrap(self._request("POST", "/bills", json=payload, headers=headers), "data", "bill")
        if not isinstance(bill, dict):
            raise TransientFailure("Bill response did not contain a bill record")
        return bill

    def printer_status(self) -> dict[str, Any]:
        return self._request("GET", "/printer/status")

    def print_bill(self, bill_id: str, printer_config: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("POST", f"/printer/print/{bill_id}", json={"printerConfig": printer_config or {}})
