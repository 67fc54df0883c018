# shopbati/services/orders.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..logger import logger
from ..schemas.orders import Address, CustomerInfo, Order, OrderItem
from .firebase import ensure_firestore


class OrderPersistenceError(Exception):
    """The order store rejected or failed a read/write."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# Order attribute -> Firestore field, for the fields the pipeline may change
_MUTABLE_FIELDS = {
    "status": "status",
    "paymentStatus": "payment_status",
    "invoiceSentAt": "invoice_sent_at",
    "updatedAt": "updated_at",
}


def _address_doc(address: Optional[Address]) -> Optional[Dict[str, str]]:
    return address.model_dump() if address is not None else None


def order_to_document(order: Order, now: str) -> Dict[str, Any]:
    total = float(order.total)
    return {
        "order_number": order.orderId,
        "user_id": order.userId,
        "customer_email": order.customerEmail,
        "customer_name": order.customerName or "",
        "customer_phone": order.customerPhone,
        "items": [
            {"name": i.name, "price": float(i.price), "quantity": i.quantity}
            for i in order.items
        ],
        # tax is not tracked separately: subtotal mirrors the total
        "subtotal": total,
        "shipping": 0,
        "total": total,
        "currency": order.currency,
        "status": order.status.value,
        "payment_status": order.paymentStatus.value,
        "payment_method": order.paymentMethod,
        "shipping_address": _address_doc(order.shippingAddress),
        "billing_address": _address_doc(order.billingAddress or order.shippingAddress),
        "customer_info": order.customerInfo.model_dump(mode="json") if order.customerInfo else None,
        "notes": order.notes,
        "timestamp": order.timestamp,
        "invoice_sent_at": order.invoiceSentAt,
        "created_at": now,
        "updated_at": now,
    }


def _dec(v: Any) -> Decimal:
    return Decimal(str(v if v is not None else 0))


def document_to_order(doc_id: str, data: Dict[str, Any]) -> Order:
    items = [
        OrderItem(name=i.get("name") or "", price=_dec(i.get("price")), quantity=int(i.get("quantity") or 1))
        for i in (data.get("items") or [])
    ]
    shipping = data.get("shipping_address")
    billing = data.get("billing_address")
    info = data.get("customer_info")
    return Order(
        orderId=data.get("order_number") or doc_id,
        items=items,
        total=_dec(data.get("total")),
        customerEmail=data.get("customer_email") or "",
        customerName=data.get("customer_name") or None,
        customerPhone=data.get("customer_phone") or "",
        shippingAddress=Address(**shipping) if isinstance(shipping, dict) else None,
        billingAddress=Address(**billing) if isinstance(billing, dict) else None,
        customerInfo=CustomerInfo(**info) if isinstance(info, dict) else None,
        timestamp=data.get("timestamp") or data.get("created_at") or _now(),
        currency=data.get("currency") or "EUR",
        status=data.get("status") or "pending",
        paymentStatus=data.get("payment_status") or "pending",
        paymentMethod=data.get("payment_method") or "card",
        userId=data.get("user_id") or "guest",
        notes=data.get("notes") or "",
        invoiceSentAt=data.get("invoice_sent_at"),
        createdAt=data.get("created_at"),
        updatedAt=data.get("updated_at"),
    )


class FirestoreOrderGateway:
    """
    Orders collection in Firestore. The document id is the client-generated
    order id, so a retried submission cannot create a second copy.
    """

    def __init__(self, db=None, collection: str = "orders"):
        self._db = db
        self.collection = collection

    @property
    def db(self):
        if self._db is None:
            self._db = ensure_firestore()
        return self._db

    def _ref(self, order_id: str):
        return self.db.collection(self.collection).document(order_id)

    async def create(self, order: Order) -> str:
        try:
            ref = self._ref(order.orderId)
            # create() fails if the document exists: no silent overwrite
            await ref.create(order_to_document(order, _now()))
        except Exception as e:
            raise OrderPersistenceError(f"could not save order {order.orderId}: {e}") from e
        logger.info(f"Order {order.orderId} stored in {self.collection}")
        return ref.id

    async def update(self, order_ref: str, fields: Dict[str, Any]) -> None:
        doc: Dict[str, Any] = {}
        for key, value in {**fields, "updatedAt": fields.get("updatedAt") or _now()}.items():
            if key not in _MUTABLE_FIELDS:
                raise ValueError(f"field {key!r} cannot be updated on an order")
            doc[_MUTABLE_FIELDS[key]] = getattr(value, "value", value)
        try:
            await self._ref(order_ref).update(doc)
        except Exception as e:
            raise OrderPersistenceError(f"could not update order {order_ref}: {e}") from e

    async def get(self, order_id: str) -> Optional[Order]:
        if not order_id:
            return None
        try:
            snap = await self._ref(order_id).get()
        except Exception as e:
            raise OrderPersistenceError(f"could not read order {order_id}: {e}") from e
        if not snap.exists:
            return None
        return document_to_order(snap.id, snap.to_dict() or {})

    async def list(self, limit: int = 100) -> List[Order]:
        """Newest first, for the back-office."""
        q = (
            self.db.collection(self.collection)
            .order_by("created_at", direction="DESCENDING")
            .limit(limit)
        )
        out: List[Order] = []
        try:
            async for snap in q.stream():
                out.append(document_to_order(snap.id, snap.to_dict() or {}))
        except Exception as e:
            raise OrderPersistenceError(f"could not list orders: {e}") from e
        return out
