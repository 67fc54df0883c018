# shopbati/routes/orders.py
from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..deps import get_order_gateway, get_pipeline
from ..logger import logger
from ..schemas.orders import InvoiceDispatchResult, Order, OrderListOut, OrderSubmission, OrderSubmissionResult
from ..services.orders import OrderPersistenceError
from ..services.pipeline import NotificationPipeline, with_fallback_address
from .auth import require_admin


router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderSubmissionResult)
async def submit_order(body: OrderSubmission, pipeline: NotificationPipeline = Depends(get_pipeline)):
    """
    Checkout submission. Succeeds as soon as the order is stored; invoice and
    email problems only show up as emailSent=false.
    """
    result = await pipeline.submit(body)
    out = OrderSubmissionResult(
        success=result.success,
        orderId=result.order_id,
        emailSent=result.email_sent,
        testMode=result.test_mode,
        message=result.message,
    )
    if not result.success:
        return JSONResponse(status_code=500, content=out.model_dump())
    return out


@router.get("", response_model=OrderListOut, dependencies=[Depends(require_admin)])
async def list_orders_endpoint(limit: int = Query(100, ge=1, le=500), orders=Depends(get_order_gateway)):
    """Recent orders for the back-office, newest first."""
    try:
        return OrderListOut(orders=await orders.list(limit=limit))
    except OrderPersistenceError as e:
        logger.error(f"Listing orders failed: {e}")
        raise HTTPException(status_code=500, detail="Erreur serveur")


async def _load(order_id: str, orders) -> Order:
    try:
        order = await orders.get(order_id)
    except OrderPersistenceError as e:
        logger.error(f"Reading order {order_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Erreur serveur")
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    return order


@router.get("/{order_id}", response_model=Order, dependencies=[Depends(require_admin)])
async def get_order_endpoint(order_id: str, orders=Depends(get_order_gateway)):
    return await _load(order_id, orders)


@router.post("/{order_id}/invoice", response_model=InvoiceDispatchResult,
             dependencies=[Depends(require_admin)])
async def resend_invoice(order_id: str,
                         pipeline: NotificationPipeline = Depends(get_pipeline)):
    """
    Re-render and re-send the invoice of a stored order, e.g. one that came
    back with emailSent=false. A new invoice number is issued each time.
    """
    order = await _load(order_id, pipeline.orders)
    outcome = await pipeline.dispatch_invoice(with_fallback_address(order), order_id)
    if outcome.test_mode:
        message = f"Facture envoyée en mode test à {outcome.recipient}"
    elif outcome.email_sent:
        message = f"Facture envoyée avec succès à {order.customerEmail}"
    else:
        message = f"Erreur lors de l'envoi de la facture: {outcome.error}"
    return InvoiceDispatchResult(
        success=outcome.email_sent,
        orderId=order.orderId,
        emailSent=outcome.email_sent,
        testMode=outcome.test_mode,
        originalEmail=order.customerEmail if outcome.test_mode else None,
        testEmail=outcome.recipient if outcome.test_mode else None,
        message=message,
    )
