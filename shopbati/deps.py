# shopbati/deps.py
"""FastAPI dependencies: one explicitly built collaborator per concern."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from .services.assets import build_logo_loader
from .services.email import ResendEmailGateway
from .services.invoice_pdf import InvoiceRenderer
from .services.orders import FirestoreOrderGateway
from .services.pipeline import NotificationPipeline
from .settings import settings


@lru_cache
def get_order_gateway() -> FirestoreOrderGateway:
    return FirestoreOrderGateway(collection=settings.orders_collection)


@lru_cache
def get_renderer() -> InvoiceRenderer:
    return InvoiceRenderer(
        build_logo_loader(settings.logo_path, settings.logo_url),
        invoice_prefix=settings.invoice_prefix,
        locale=settings.invoice_locale,
        tz=settings.invoice_timezone,
        tax_rate=settings.invoice_tax_rate,
        due_days=settings.invoice_due_days,
        font_path=settings.invoice_font_path,
        bold_font_path=settings.invoice_font_bold_path,
    )


@lru_cache
def get_mailer() -> ResendEmailGateway:
    return ResendEmailGateway(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout_seconds,
    )


def get_pipeline(
    orders: FirestoreOrderGateway = Depends(get_order_gateway),
    renderer: InvoiceRenderer = Depends(get_renderer),
    mailer: ResendEmailGateway = Depends(get_mailer),
) -> NotificationPipeline:
    return NotificationPipeline(
        orders,
        renderer,
        mailer,
        verified_address=settings.email_verified_address,
        locale=settings.invoice_locale,
        tz=settings.invoice_timezone,
        currency=settings.invoice_currency,
    )
