"""Last-known menu catalog, refreshed from the menu service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from pos_billing.errors import BillingError, CatalogRefreshFailed, ItemNotFound
from pos_billing.models import CatalogItem

logger = logging.getLogger(__name__)


class MenuSource(Protocol):
    def fetch_menu(self, available: bool = True) -> list[dict[str, Any]]: ...


class CatalogCache:
    """Read-only view of sellable items for the cart."""

    def __init__(self, source: MenuSource | None = None, items: list[CatalogItem] | None = None) -> None:
        self.source = source
        self._items: dict[str, CatalogItem] = {item.item_id: item for item in items or []}
        self.is_stale = source is not None
        self.last_refreshed: datetime | None = None

    def refresh(self) -> list[CatalogItem]:
        """Replace the whole item set. On failure the previous items are kept."""
        if self.source is None:
            return self.items()
        try:
            rows = self.source.fetch_menu(available=True)
            fresh = {}
            for row in rows:
                item = CatalogItem.from_api(row)
                fresh[item.item_id] = item
        except BillingError as exc:
            self.is_stale = True
            logger.warning("catalog refresh failed, keeping %d cached items: %s", len(self._items), exc.message)
            raise CatalogRefreshFailed(
                f"Failed to fetch menu items: {exc.message}", status_code=getattr(exc, "status_code", None)
            ) from exc
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            self.is_stale = True
            logger.warning("catalog refresh returned malformed items: %s", exc)
            raise CatalogRefreshFailed(f"Menu response was malformed: {exc}") from exc

        self._items = fresh
        self.is_stale = False
        self.last_refreshed = datetime.now(timezone.utc)
        logger.info("catalog refreshed items=%d", len(fresh))
        return self.items()

    def lookup(self, item_id: str) -> CatalogItem:
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def items(self) -> list[CatalogItem]:
        return list(self._items.values())

    def categories(self) -> list[str]:
        return sorted({item.category for item in self._items.values() if item.category})

    def search(self, query: str = "", category: str | None = None) -> list[CatalogItem]:
        """Available items whose name contains ``query`` (case-insensitive)."""
        q = query.strip().lower()
        results = []
        for item in self._items.values():
            if not item.is_available:
                continue
            if category and item.category != category:
                continue
            if q and q not in item.name.lower():
                continue
            results.append(item)
        return results
