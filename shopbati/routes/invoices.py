# shopbati/routes/invoices.py
from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..deps import get_renderer
from ..logger import logger
from ..schemas.orders import Order, OrderSubmission
from ..services.invoice_pdf import InvoiceRenderer, RenderError
from ..services.pipeline import with_fallback_address
from ..settings import settings


router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/preview")
async def preview_invoice(body: OrderSubmission, renderer: InvoiceRenderer = Depends(get_renderer)):
    """Render the invoice PDF for a cart without storing or emailing anything."""
    order = with_fallback_address(Order.from_submission(body, currency=settings.invoice_currency), body)
    try:
        pdf = await renderer.render(order)
    except RenderError as e:
        logger.error(f"Invoice preview failed for {order.orderId}: {e}")
        raise HTTPException(status_code=500, detail="Erreur lors de la génération de la facture")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="facture-{order.orderId}.pdf"'},
    )
