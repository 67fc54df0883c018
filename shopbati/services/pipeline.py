# shopbati/services/pipeline.py
"""
Order submission -> invoice -> email -> status update.

Only persistence can fail the request. Everything after it degrades: the
order is kept and the response says what did not happen, so support staff
can follow up by hand.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from ..logger import logger
from ..schemas.orders import Address, Order, OrderStatus, OrderSubmission, PaymentStatus
from .email import Attachment, EmailGateway, EmailSent, SandboxRejected
from .email_templates import (
    invoice_filename, invoice_subject, render_invoice_email,
    render_test_mode_notice, test_mode_subject,
)
from .invoice_pdf import InvoiceRenderer
from .orders import OrderPersistenceError


class OrderGateway(Protocol):
    async def create(self, order: Order) -> str: ...
    async def update(self, order_ref: str, fields: Dict[str, Any]) -> None: ...
    async def get(self, order_id: str) -> Optional[Order]: ...


class Stage(str, Enum):
    """
    Steps of one submission, in order. EmailSent and EmailFailed are the two
    branches after EmailAttempted; only EmailSent goes on to the status update.
    """
    received = "received"
    persisted = "persisted"
    invoice_generated = "invoice_generated"
    email_attempted = "email_attempted"
    email_failed = "email_failed"
    email_sent = "email_sent"
    status_update_attempted = "status_update_attempted"
    done = "done"


@dataclass
class DispatchOutcome:
    email_sent: bool = False
    test_mode: bool = False
    recipient: Optional[str] = None
    status_updated: bool = False
    error: Optional[str] = None
    trace: List[Stage] = field(default_factory=lambda: [Stage.persisted])

    @property
    def stage(self) -> Stage:
        return self.trace[-1]

    def reach(self, stage: Stage) -> "DispatchOutcome":
        self.trace.append(stage)
        return self


@dataclass
class PipelineResult:
    success: bool
    order_id: Optional[str]
    email_sent: bool = False
    test_mode: bool = False
    message: str = ""
    trace: List[Stage] = field(default_factory=lambda: [Stage.received])
    original_email: Optional[str] = None
    test_email: Optional[str] = None

    @property
    def stage(self) -> Stage:
        return self.trace[-1]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def with_fallback_address(order: Order, body: Optional[OrderSubmission] = None) -> Order:
    """Stored address, else the one on the request, else an empty French address."""
    if order.shippingAddress is not None:
        return order
    address = None
    if body is not None:
        address = body.shippingAddress or body.customerAddress
    address = address or Address(country="France")
    return order.model_copy(update={
        "shippingAddress": address,
        "billingAddress": order.billingAddress or address,
    })


class NotificationPipeline:
    def __init__(self, orders: OrderGateway, renderer: InvoiceRenderer, mailer: EmailGateway, *,
                 verified_address: Optional[str] = None,
                 locale: str = "fr_FR",
                 tz: str = "Europe/Paris",
                 currency: str = "EUR"):
        self.orders = orders
        self.renderer = renderer
        self.mailer = mailer
        self.verified_address = verified_address
        self.locale = locale
        self.tz = tz
        self.currency = currency

    async def submit(self, body: OrderSubmission) -> PipelineResult:
        order = Order.from_submission(body, currency=self.currency)
        logger.info(f"[{order.orderId}] order received ({len(order.items)} items, total {order.total})")

        try:
            order_ref = await self.orders.create(order)
        except OrderPersistenceError as e:
            logger.error(f"[{order.orderId}] persistence failed: {e}")
            return PipelineResult(
                success=False,
                order_id=order.orderId,
                message="Erreur lors de la sauvegarde de la commande",
            )

        stored = await self._stored_copy(order_ref, order)
        outcome = await self.dispatch_invoice(with_fallback_address(stored, body), order_ref)

        if outcome.email_sent:
            message = "Commande sauvegardée et facture envoyée"
            if outcome.test_mode:
                message = f"Commande sauvegardée, facture envoyée en mode test à {outcome.recipient}"
        else:
            message = "Commande sauvegardée (erreur envoi email)"
        return PipelineResult(
            success=True,
            order_id=order.orderId,
            email_sent=outcome.email_sent,
            test_mode=outcome.test_mode,
            message=message,
            trace=[Stage.received, *outcome.trace],
            original_email=order.customerEmail if outcome.test_mode else None,
            test_email=outcome.recipient if outcome.test_mode else None,
        )

    async def _stored_copy(self, order_ref: str, fallback: Order) -> Order:
        # read back what was stored; if the read fails the in-memory copy is identical
        try:
            stored = await self.orders.get(order_ref)
        except Exception as e:
            logger.warning(f"[{order_ref}] read-back failed, using submitted data: {e}")
            return fallback
        return stored or fallback

    async def dispatch_invoice(self, order: Order, order_ref: str) -> DispatchOutcome:
        """Render, email, then mark the order. Never raises."""
        outcome = DispatchOutcome()
        try:
            pdf = await self.renderer.render(order)
        except Exception as e:
            logger.exception(f"[{order.orderId}] invoice rendering failed: {e}")
            outcome.error = f"invoice rendering failed: {e}"
            return outcome
        outcome.reach(Stage.invoice_generated)
        logger.info(f"[{order.orderId}] invoice generated ({len(pdf)} bytes)")

        attachments = [Attachment(filename=invoice_filename(order), content=pdf)]
        html = render_invoice_email(order, self.locale, self.tz)
        outcome.reach(Stage.email_attempted)
        result = await self.mailer.send(order.customerEmail, invoice_subject(order), html, attachments)

        if isinstance(result, SandboxRejected):
            logger.warning(f"[{order.orderId}] email rejected by sandbox: {result.message}")
            return await self._send_test_mode(outcome, order, html, attachments)

        if not isinstance(result, EmailSent):
            logger.error(f"[{order.orderId}] invoice email failed: {result.message}")
            outcome.error = result.message
            return outcome.reach(Stage.email_failed)

        logger.info(f"[{order.orderId}] invoice email sent to {order.customerEmail} (id={result.id})")
        outcome.email_sent = True
        outcome.recipient = order.customerEmail
        outcome.reach(Stage.email_sent).reach(Stage.status_update_attempted)
        outcome.status_updated = await self._mark_invoice_sent(order_ref, order.orderId)
        return outcome.reach(Stage.done)

    async def _send_test_mode(self, outcome: DispatchOutcome, order: Order, html: str,
                              attachments) -> DispatchOutcome:
        target = self.verified_address
        if not target or target.strip().lower() == order.customerEmail.strip().lower():
            logger.error(f"[{order.orderId}] no verified address distinct from the customer for test mode")
            outcome.error = "sandbox rejection and no verified fallback address"
            return outcome.reach(Stage.email_failed)

        result = await self.mailer.send(
            target, test_mode_subject(order), html + render_test_mode_notice(order), attachments,
        )
        if not isinstance(result, EmailSent):
            logger.error(f"[{order.orderId}] test-mode resend to {target} failed: {result.message}")
            outcome.error = result.message
            return outcome.reach(Stage.email_failed)

        # the customer still has no invoice: leave the order unmarked for follow-up
        logger.info(f"[{order.orderId}] invoice rerouted to {target} in test mode (id={result.id})")
        outcome.email_sent = True
        outcome.test_mode = True
        outcome.recipient = target
        return outcome.reach(Stage.email_sent)

    async def _mark_invoice_sent(self, order_ref: str, order_id: str) -> bool:
        now = _now()
        try:
            await self.orders.update(order_ref, {
                "status": OrderStatus.delivered,
                "paymentStatus": PaymentStatus.paid,
                "invoiceSentAt": now,
                "updatedAt": now,
            })
        except Exception as e:
            logger.error(f"[{order_id}] status update after email failed: {e}")
            return False
        logger.info(f"[{order_id}] status updated to delivered/paid")
        return True
