"""Firestore order gateway against a mocked async client."""
from __future__ import annotations

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_order
from shopbati.schemas.orders import CustomerInfo, OrderStatus, PaymentStatus
from shopbati.services.orders import (
    FirestoreOrderGateway, OrderPersistenceError, document_to_order, order_to_document,
)


def _db():
    db = MagicMock()
    ref = db.collection.return_value.document.return_value
    ref.id = "CMD-1"
    ref.create = AsyncMock()
    ref.update = AsyncMock()
    ref.get = AsyncMock()
    return db, ref


def _snap(data, exists=True, doc_id="CMD-1"):
    snap = MagicMock(exists=exists, id=doc_id)
    snap.to_dict.return_value = data
    return snap


def test_document_fields():
    doc = order_to_document(make_order(), "2025-01-15T10:00:01+00:00")
    assert doc["order_number"] == "CMD-1"
    assert doc["customer_email"] == "client@example.fr"
    assert doc["items"] == [{"name": "Ciment 25kg", "price": 7.5, "quantity": 3}]
    assert doc["total"] == doc["subtotal"] == 22.5
    assert doc["shipping"] == 0
    assert doc["status"] == "pending"
    assert doc["payment_status"] == "pending"
    assert doc["billing_address"] == doc["shipping_address"]
    assert doc["created_at"] == doc["updated_at"] == "2025-01-15T10:00:01+00:00"


def test_document_to_order_reads_stored_shape():
    order = document_to_order("CMD-9", {
        "order_number": "CMD-9",
        "items": [{"name": "Sable 35kg", "price": 4.9, "quantity": 2}],
        "total": 9.8,
        "customer_email": "a@b.fr",
        "status": "delivered",
        "payment_status": "paid",
        "shipping_address": {"street": "1 rue A", "city": "Metz", "postalCode": "57000", "country": "France"},
        "created_at": "2025-01-15T10:00:00+00:00",
    })
    assert order.items[0].price == Decimal("4.9")
    assert order.status == OrderStatus.delivered
    assert order.shippingAddress.city == "Metz"
    assert order.billingAddress is None
    assert order.timestamp == "2025-01-15T10:00:00+00:00"


def test_create_uses_order_id_as_document_id():
    db, ref = _db()
    gw = FirestoreOrderGateway(db, collection="orders_test")
    assert asyncio.run(gw.create(make_order())) == "CMD-1"
    db.collection.assert_called_with("orders_test")
    db.collection.return_value.document.assert_called_with("CMD-1")
    ref.create.assert_awaited_once()


def test_create_failure_is_wrapped():
    db, ref = _db()
    ref.create.side_effect = RuntimeError("409 ALREADY_EXISTS")
    with pytest.raises(OrderPersistenceError):
        asyncio.run(FirestoreOrderGateway(db).create(make_order()))


def test_update_maps_fields():
    db, ref = _db()
    gw = FirestoreOrderGateway(db)
    asyncio.run(gw.update("CMD-1", {
        "status": OrderStatus.delivered,
        "paymentStatus": PaymentStatus.paid,
        "invoiceSentAt": "2025-01-15T10:01:00+00:00",
    }))
    sent = ref.update.await_args.args[0]
    assert sent["status"] == "delivered"
    assert sent["payment_status"] == "paid"
    assert sent["invoice_sent_at"] == "2025-01-15T10:01:00+00:00"
    assert "updated_at" in sent


def test_update_rejects_immutable_fields():
    db, ref = _db()
    with pytest.raises(ValueError):
        asyncio.run(FirestoreOrderGateway(db).update("CMD-1", {"total": 0}))
    ref.update.assert_not_awaited()


def test_get_missing_and_present():
    db, ref = _db()
    gw = FirestoreOrderGateway(db)
    ref.get.return_value = _snap(None, exists=False)
    assert asyncio.run(gw.get("CMD-1")) is None

    ref.get.return_value = _snap(order_to_document(make_order(), "2025-01-15T10:00:01+00:00"))
    order = asyncio.run(gw.get("CMD-1"))
    assert order.orderId == "CMD-1"
    assert order.total == Decimal("22.5")


def test_list_streams_newest_first():
    db, _ = _db()
    docs = [order_to_document(make_order(orderId=f"CMD-{i}"), "2025-01-15T10:00:00+00:00") for i in (2, 1)]

    async def stream():
        for d in docs:
            yield _snap(d, doc_id=d["order_number"])

    query = db.collection.return_value.order_by.return_value.limit.return_value
    query.stream = stream
    orders = asyncio.run(FirestoreOrderGateway(db).list(limit=2))
    assert [o.orderId for o in orders] == ["CMD-2", "CMD-1"]
    db.collection.return_value.order_by.assert_called_with("created_at", direction="DESCENDING")


def test_customer_info_is_stored_and_read_back():
    info = CustomerInfo(accountType="professional", raisonSociale="Durand BTP",
                        siret="12345678900012", tvaNumber="FR12123456789", phone="0601020304")
    doc = order_to_document(make_order(customerInfo=info), "2025-01-15T10:00:01+00:00")
    assert doc["customer_info"] == {
        "accountType": "professional", "firstName": "", "lastName": "",
        "raisonSociale": "Durand BTP", "siret": "12345678900012",
        "tvaNumber": "FR12123456789", "phone": "0601020304",
    }
    order = document_to_order("CMD-1", doc)
    assert order.customerInfo == info
    assert order.customerInfo.is_professional


def test_private_order_stores_no_customer_info():
    doc = order_to_document(make_order(), "2025-01-15T10:00:01+00:00")
    assert doc["customer_info"] is None
    assert document_to_order("CMD-1", doc).customerInfo is None
