# shopbati/services/email_templates.py
from __future__ import annotations

from html import escape
from textwrap import dedent

from ..schemas.orders import Order
from .formatting import format_currency, format_date

CONTACT_EMAIL = "shopbati@gmail.com"
CONTACT_PHONE = "+33 1 23 45 67 89"


def invoice_subject(order: Order) -> str:
    return f"Facture SHOPBATI - Commande {order.orderId}"


def test_mode_subject(order: Order) -> str:
    return f"[TEST] Facture pour {order.customerEmail} - {order.orderId}"


def invoice_filename(order: Order) -> str:
    return f"Facture-SHOPBATI-{order.orderId}.pdf"


def _items_rows(order: Order, locale: str) -> str:
    rows = []
    for item in order.items:
        rows.append(
            '<tr style="border-bottom: 1px solid #eee;">'
            '<td style="padding: 12px; text-align: left;">'
            f'<div style="font-weight: 600; color: #333;">{escape(item.name)}</div>'
            f'<div style="color: #666; font-size: 14px;">{format_currency(item.price, order.currency, locale)} / unité</div>'
            "</td>"
            f'<td style="padding: 12px; text-align: center; font-weight: 600;">{item.quantity}</td>'
            '<td style="padding: 12px; text-align: right; font-weight: 600;">'
            f"{format_currency(item.line_total, order.currency, locale)}</td>"
            "</tr>"
        )
    # continuation lines carry the template's indent so dedent() still applies
    return ("\n" + " " * 8).join(rows)


def render_invoice_email(order: Order, locale: str = "fr_FR", tz: str = "Europe/Paris") -> str:
    """HTML body sent with the invoice PDF attached."""
    name = escape(order.customerName or "cher client")
    order_id = escape(order.orderId)
    placed_at = format_date(order.timestamp, locale, tz, with_time=True)
    total = format_currency(order.total, order.currency, locale)

    return dedent(f"""\
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"><title>Facture SHOPBATI</title></head>
        <body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f5f5f5;">
          <div style="max-width: 600px; margin: 0 auto; background-color: white;">
            <div style="background: #FFD700; color: #212121; padding: 30px; text-align: center;">
              <h1 style="margin: 0; font-size: 32px; letter-spacing: 2px;">SHOPBATI</h1>
              <p style="margin: 8px 0 0 0; font-size: 14px; text-transform: uppercase;">Plateforme du bâtiment</p>
            </div>
            <div style="padding: 30px;">
              <h2 style="color: #212121; margin: 0 0 16px 0;">Merci {name} !</h2>
              <p style="color: #666; font-size: 16px; line-height: 1.5;">
                Votre commande <strong>{order_id}</strong> a été confirmée.
                Vous trouverez votre facture en pièce jointe.
              </p>
              <table style="width: 100%; border-collapse: collapse; border: 1px solid #FFD700;">
                <thead>
                  <tr style="background: #FFD700; color: #212121;">
                    <th style="padding: 12px; text-align: left;">Produit</th>
                    <th style="padding: 12px; text-align: center;">Quantité</th>
                    <th style="padding: 12px; text-align: right;">Total</th>
                  </tr>
                </thead>
                <tbody>
        {_items_rows(order, locale)}
                </tbody>
              </table>
              <p style="text-align: right; font-size: 24px; font-weight: 900; margin: 24px 0;">
                Total à payer : {total}
              </p>
              <div style="background: #fff9c4; border: 2px solid #FFD700; border-radius: 12px; padding: 20px;">
                <p style="margin: 4px 0;"><strong>Numéro :</strong> {order_id}</p>
                <p style="margin: 4px 0;"><strong>Date :</strong> {placed_at}</p>
                <p style="margin: 4px 0;"><strong>Email :</strong> {escape(order.customerEmail)}</p>
                <p style="margin: 4px 0;"><strong>Facture :</strong> voir pièce jointe PDF</p>
              </div>
              <ul style="color: #166534; font-size: 14px; line-height: 1.6;">
                <li><strong>Préparation :</strong> nous préparons votre commande avec soin</li>
                <li><strong>Livraison :</strong> notre équipe vous contactera pour planifier la livraison</li>
              </ul>
              <p style="text-align: center; color: #666; font-size: 14px;">
                Une question ? <a href="mailto:{CONTACT_EMAIL}">{CONTACT_EMAIL}</a> - {CONTACT_PHONE}
              </p>
            </div>
            <div style="background: #212121; color: white; padding: 25px; text-align: center; font-size: 12px;">
              SHOPBATI - 123 Rue du Bâtiment, 75001 Paris, France
            </div>
          </div>
        </body>
        </html>
        """)


def render_test_mode_notice(order: Order) -> str:
    """Block appended when the invoice is rerouted to the verified sandbox inbox."""
    email = escape(order.customerEmail)
    return dedent(f"""\
        <div style="margin-top: 30px; padding: 20px; background-color: #fef3c7; border: 2px solid #fbbf24; border-radius: 8px;">
          <h4 style="margin: 0 0 10px 0; color: #92400e;">MODE TEST</h4>
          <p style="margin: 0; color: #92400e; font-size: 14px;">
            <strong>Email client original :</strong> {email}<br>
            <strong>Client :</strong> {escape(order.customerName or "Non spécifié")}<br>
            <strong>Commande :</strong> {escape(order.orderId)}<br>
            <em>Cette facture devrait normalement être envoyée à {email}</em>
          </p>
        </div>
        """)
