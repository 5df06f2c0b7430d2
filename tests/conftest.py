from __future__ import annotations

import copy

import pytest

from pos_billing.cart import CartLedger
from pos_billing.catalog import CatalogCache
from pos_billing.persistence import MemorySnapshotStore, PersistenceBridge

MENU_ROWS = [
    {"_id": "bc1", "name": "Butter Chicken", "category": "main course", "price": 280, "stock": 10, "isAvailable": True},
    {"_id": "nan1", "name": "Garlic Naan", "category": "bread", "price": 40, "stock": 3, "isAvailable": True},
    {"_id": "las1", "name": "Mango Lassi", "category": "beverage", "price": 60, "stock": 0, "isAvailable": True},
    {"_id": "gj1", "name": "Gulab Jamun", "category": "dessert", "price": 90.5, "stock": 20, "isAvailable": False},
]

BILL_RESPONSE = {
    "_id": "64f0c0ffee",
    "billNumber": "B-1001",
    "customerName": "Asha",
    "customerPhone": "9876543210",
    "tableNumber": "T4",
    "items": [{"menuItem": "bc1", "name": "Butter Chicken", "price": 280, "quantity": 2, "total": 560}],
    "subtotal": 560,
    "gst": 100.8,
    "discount": 56,
    "total": 604.8,
    "paymentMethod": "upi",
    "status": "paid",
    "createdAt": "2024-05-01T12:30:00.000Z",
}


class FakeApi:
    """Records calls and replays canned responses for every endpoint."""

    def __init__(self, menu=None, bill=None):
        self.menu = copy.deepcopy(MENU_ROWS if menu is None else menu)
        self.bill = copy.deepcopy(BILL_RESPONSE if bill is None else bill)
        self.menu_error = None
        self.bill_error = None
        self.status = {"status": "online", "printers": [{"name": "TVS RP3160", "isDefault": True}]}
        self.status_error = None
        self.print_response = {"success": True, "message": "Bill printed"}
        self.print_error = None
        self.menu_calls = 0
        self.created = []
        self.printed = []

    def fetch_menu(self, available=True):
        self.menu_calls += 1
        if self.menu_error is not None:
            raise self.menu_error
        return copy.deepcopy(self.menu)

    def create_bill(self, payload, idempotency_key=None):
        self.created.append((payload, idempotency_key))
        if self.bill_error is not None:
            raise self.bill_error
        return copy.deepcopy(self.bill)

    def printer_status(self):
        if self.status_error is not None:
            raise self.status_error
        return self.status

    def print_bill(self, bill_id, printer_config=None):
        self.printed.append((bill_id, printer_config))
        if self.print_error is not None:
            raise self.print_error
        return self.print_response


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def catalog(api):
    cache = CatalogCache(api)
    cache.refresh()
    return cache


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def bridge(store):
    return PersistenceBridge(store)


@pytest.fixture
def ledger(catalog, bridge):
    return CartLedger(catalog, bridge)
