"""Shared fixtures: in-memory order store and mailer so tests run without credentials."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

# Set env BEFORE any app imports
os.environ["ADMIN_TOKEN"] = "test-admin"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("EMAIL_VERIFIED_ADDRESS", None)

import pytest

from shopbati.schemas.orders import Address, Order, OrderItem, OrderSubmission
from shopbati.services.email import EmailSent
from shopbati.services.invoice_pdf import InvoiceRenderer
from shopbati.services.orders import OrderPersistenceError
from shopbati.services.pipeline import NotificationPipeline

ADMIN_HEADERS = {"X-Admin-Token": "test-admin"}


# ---------- Fake order store ----------

class FakeOrderGateway:
    """Dict-backed stand-in for FirestoreOrderGateway."""

    def __init__(self):
        self.docs: Dict[str, Order] = {}
        self.updates: List[tuple] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_get = False

    async def create(self, order: Order) -> str:
        if self.fail_create:
            raise OrderPersistenceError("firestore unavailable")
        if order.orderId in self.docs:
            raise OrderPersistenceError(f"order {order.orderId} already exists")
        self.docs[order.orderId] = order
        return order.orderId

    async def update(self, order_ref: str, fields: Dict[str, Any]) -> None:
        if self.fail_update:
            raise OrderPersistenceError("update rejected")
        self.updates.append((order_ref, fields))
        self.docs[order_ref] = self.docs[order_ref].model_copy(update=fields)

    async def get(self, order_id: str) -> Optional[Order]:
        if self.fail_get:
            raise OrderPersistenceError("read timeout")
        return self.docs.get(order_id)

    async def list(self, limit: int = 100) -> List[Order]:
        return list(reversed(list(self.docs.values())))[:limit]


# ---------- Fake mailer ----------

class FakeMailer:
    """Records every send; answers from a queue of scripted results."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.sent: List[dict] = []

    async def send(self, to, subject, html, attachments=()):
        self.sent.append({"to": to, "subject": subject, "html": html, "attachments": list(attachments)})
        if self.results:
            return self.results.pop(0)
        return EmailSent(id=f"email-{len(self.sent)}")


class ExplodingRenderer(InvoiceRenderer):
    async def render(self, order, invoice_number=None):
        raise RuntimeError("font table corrupted")


# ---------- Sample data ----------

def make_submission(**overrides) -> OrderSubmission:
    data = {
        "orderId": "CMD-1",
        "items": [{"name": "Ciment 25kg", "price": 7.50, "quantity": 3}],
        "total": 22.50,
        "customerEmail": "client@example.fr",
        "customerName": "Jean Dupont",
        "timestamp": "2025-01-15T10:00:00Z",
        "shippingAddress": {"street": "12 rue des Lilas", "city": "Lyon", "postalCode": "69003"},
    }
    data.update(overrides)
    return OrderSubmission(**data)


def make_order(**overrides) -> Order:
    data = {
        "orderId": "CMD-1",
        "items": [OrderItem(name="Ciment 25kg", price="7.50", quantity=3)],
        "total": "22.50",
        "customerEmail": "client@example.fr",
        "customerName": "Jean Dupont",
        "timestamp": "2025-01-15T10:00:00Z",
        "shippingAddress": Address(street="12 rue des Lilas", city="Lyon", postalCode="69003"),
    }
    data.update(overrides)
    return Order(**data)


# ---------- Fixtures ----------

@pytest.fixture()
def gateway():
    return FakeOrderGateway()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def renderer():
    return InvoiceRenderer(None)


@pytest.fixture()
def pipeline(gateway, renderer, mailer):
    return NotificationPipeline(gateway, renderer, mailer, verified_address="owner@shopbati.fr")


@pytest.fixture()
def client(gateway, renderer, pipeline):
    """FastAPI TestClient (sync) wired to the in-memory fakes."""
    from fastapi.testclient import TestClient
    from shopbati import deps
    from shopbati.main import app

    app.dependency_overrides[deps.get_order_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_renderer] = lambda: renderer
    app.dependency_overrides[deps.get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()
