# shopbati/services/invoice_layout.py
"""
Invoice derivation and page geometry.

Everything that decides *where* something goes on the A4 page lives here as
plain numbers so it can be checked without opening a PDF. The fpdf drawing
code in ``invoice_pdf`` only follows the plan produced by ``plan_layout``.
All sizes are millimetres, origin top-left.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from ..schemas.orders import Address, Order, OrderItem, items_total
from .formatting import LOCALES, format_currency, format_date, parse_timestamp

# --- Page geometry -------------------------------------------------------------
PAGE_W = 210.0
PAGE_H = 297.0
MARGIN = 15.0

BANNER_H = 12.0
HEADER_TOP = 18.0
LOGO_MAX_W = 45.0
LOGO_MAX_H = 22.0
TITLE_BLOCK_W = 70.0
TITLE_BLOCK_H = 11.0
TITLE_LINE_H = 5.0
HEADER_BOTTOM = 54.0          # logo band + title block + its three info lines

PARTY_TOP = 58.0
PARTY_H = 40.0
PARTY_GAP_FRACTION = 0.04
PARTY_LINE_H = 4.8
# lines under the bold name that fit inside the box
PARTY_MAX_LINES = 5
TERMS_TOP = PARTY_TOP + PARTY_H + 5.0
TERMS_LINE_H = 4.0
TERMS_LINES = 3

TABLE_TOP_FIRST = TERMS_TOP + TERMS_LINES * TERMS_LINE_H + 4.0
TABLE_TOP_NEXT = HEADER_BOTTOM + 6.0
TABLE_HEADER_H = 9.0
ROW_H = 8.0

TOTALS_GAP = 6.0
TOTALS_W = 78.0
TOTALS_LINE_H = 6.5
TOTALS_HIGHLIGHT_H = 10.0
TOTALS_H = 2 * TOTALS_LINE_H + TOTALS_HIGHLIGHT_H + 4.0

NOTES_GAP = 6.0
NOTES_H = 18.0

# The footer never moves; content has to stop above FOOTER_ZONE_TOP.
FOOTER_RULE_Y = PAGE_H - 25.0
FOOTER_LINE_YS = (PAGE_H - 19.0, PAGE_H - 13.0, PAGE_H - 7.0)
FOOTER_ZONE_TOP = FOOTER_RULE_Y - 4.0

# Column boundaries as fractions of the content width:
# article | quantity | unit price | line total
COLUMN_FRACTIONS = (0.0, 0.55, 0.67, 0.83, 1.0)
NAME_MAX_CHARS = 32
ELLIPSIS = "…"

PLACEHOLDER_ADDRESS = (
    "Adresse non spécifiée",
    "Merci de nous contacter",
    "pour la livraison",
)
DEFAULT_COUNTRY = "France"


# --- Invoice -------------------------------------------------------------------
@dataclass(frozen=True)
class Invoice:
    number: str
    order_id: str
    issue_date: datetime
    due_date: datetime
    customer_name: str
    customer_email: str
    billing_lines: Tuple[str, ...]
    shipping_lines: Tuple[str, ...]
    items: Tuple[OrderItem, ...]
    total: Decimal
    subtotal: Decimal
    tax: Decimal
    tax_rate: Decimal
    currency: str = "EUR"
    professional: bool = False
    company_name: str = ""
    siret: str = ""
    vat_number: str = ""


def split_tax(total: Decimal, rate: Decimal) -> Tuple[Decimal, Decimal]:
    """Back out (subtotal, tax) from a tax-inclusive total. No rounding here."""
    subtotal = total / (Decimal(1) + rate)
    return subtotal, total - subtotal


def due_date_for(issue: datetime, days: int = 30) -> datetime:
    return issue + timedelta(days=days)


def address_lines(address: Optional[Address]) -> Tuple[str, ...]:
    if address is None or address.is_blank():
        return PLACEHOLDER_ADDRESS
    city_line = f"{address.postalCode.strip()} {address.city.strip()}".strip()
    lines = [address.street.strip(), city_line, address.country.strip() or DEFAULT_COUNTRY]
    return tuple(line for line in lines if line)


def build_invoice(order: Order, number: str, tax_rate: Decimal = Decimal("0.20"),
                  due_days: int = 30, tz: str = "Europe/Paris") -> Invoice:
    issued = parse_timestamp(order.timestamp, tz)
    total = items_total(order.items)
    subtotal, tax = split_tax(total, tax_rate)
    shipping = order.shippingAddress
    billing = order.billingAddress or shipping
    info = order.customerInfo
    pro = info if info is not None and info.is_professional else None
    return Invoice(
        number=number,
        order_id=order.orderId,
        issue_date=issued,
        due_date=due_date_for(issued, due_days),
        customer_name=(order.customerName or "").strip() or "Client",
        customer_email=order.customerEmail,
        billing_lines=address_lines(billing),
        shipping_lines=address_lines(shipping),
        items=tuple(order.items),
        total=total,
        subtotal=subtotal,
        tax=tax,
        tax_rate=tax_rate,
        currency=order.currency,
        professional=pro is not None,
        company_name=pro.raisonSociale if pro else "",
        siret=pro.siret if pro else "",
        vat_number=pro.tvaNumber if pro else "",
    )


# --- Layout plan ---------------------------------------------------------------
@dataclass(frozen=True)
class TableRow:
    index: int
    y: float
    name: str
    quantity: str
    unit_price: str
    line_total: str
    shaded: bool


@dataclass(frozen=True)
class PageLayout:
    number: int
    rows: Tuple[TableRow, ...]
    table_top: Optional[float] = None
    table_bottom: Optional[float] = None
    totals_top: Optional[float] = None
    notes_top: Optional[float] = None

    @property
    def is_first(self) -> bool:
        return self.number == 1


@dataclass(frozen=True)
class PartyBlock:
    label: str
    name: str
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class LayoutPlan:
    pages: Tuple[PageLayout, ...]
    column_edges: Tuple[float, ...]
    title_lines: Tuple[str, ...]
    totals_lines: Tuple[Tuple[str, str], ...]
    total_line: Tuple[str, str]
    notes: Tuple[str, ...]
    parties: Tuple[PartyBlock, ...] = ()
    footer_rule_y: float = FOOTER_RULE_Y

    @property
    def page_count(self) -> int:
        return len(self.pages)


def truncate_name(name: str, limit: int = NAME_MAX_CHARS) -> str:
    name = " ".join(name.split())
    if len(name) <= limit:
        return name
    return name[: limit - len(ELLIPSIS)].rstrip() + ELLIPSIS


def column_edges(content_width: float = PAGE_W - 2 * MARGIN, left: float = MARGIN) -> Tuple[float, ...]:
    return tuple(left + f * content_width for f in COLUMN_FRACTIONS)


def rows_capacity(table_top: float) -> int:
    usable = FOOTER_ZONE_TOP - table_top - TABLE_HEADER_H
    return max(0, int(usable // ROW_H))


def paginate(item_count: int) -> List[Tuple[int, int]]:
    """
    Split item indexes into per-page [start, end) slices. A trailing empty
    slice is added when the totals block does not fit under the last row.
    """
    slices: List[Tuple[int, int]] = []
    start = 0
    capacity = rows_capacity(TABLE_TOP_FIRST)
    while True:
        end = min(item_count, start + capacity)
        slices.append((start, end))
        if end >= item_count:
            break
        start = end
        capacity = rows_capacity(TABLE_TOP_NEXT)

    first, last = slices[-1]
    top = TABLE_TOP_FIRST if len(slices) == 1 else TABLE_TOP_NEXT
    bottom = top + TABLE_HEADER_H + (last - first) * ROW_H
    if bottom + TOTALS_GAP + TOTALS_H > FOOTER_ZONE_TOP:
        slices.append((item_count, item_count))
    return slices


def _percent(rate: Decimal, locale: str) -> str:
    text = format((rate * 100).normalize(), "f").replace(".", LOCALES[locale].decimal_sep)
    return f"{text} %"


def legal_ids_line(invoice: Invoice) -> str:
    line = f"SIRET : {invoice.siret or 'non communiqué'}"
    if invoice.vat_number:
        line += f" - TVA : {invoice.vat_number}"
    return line


def party_blocks(invoice: Invoice) -> Tuple[PartyBlock, PartyBlock]:
    """Billed-to and shipped-to columns. Companies are billed under their legal name and ids."""
    billed_name = invoice.customer_name
    billed_lines = [invoice.customer_email, *invoice.billing_lines]
    if invoice.professional:
        billed_name = invoice.company_name or invoice.customer_name
        billed_lines = billed_lines[: PARTY_MAX_LINES - 1] + [legal_ids_line(invoice)]
    shipped_lines = [invoice.customer_email, *invoice.shipping_lines]
    return (
        PartyBlock("Facturé à", billed_name, tuple(billed_lines[:PARTY_MAX_LINES])),
        PartyBlock("Livré à", invoice.customer_name, tuple(shipped_lines[:PARTY_MAX_LINES])),
    )


def plan_layout(
invoice: Invoice, locale: str = "fr_FR", tz: str = "Europe/Paris") -> LayoutPlan:
    money = lambda v: format_currency(v, invoice.currency, locale)  # noqa: E731
    pages: List[PageLayout] = []
    slices = paginate(len(invoice.items))

    for page_no, (start, end) in enumerate(slices, start=1):
        top = TABLE_TOP_FIRST if page_no == 1 else TABLE_TOP_NEXT
        rows = []
        y = top + TABLE_HEADER_H
        for idx in range(start, end):
            item = invoice.items[idx]
            rows.append(TableRow(
                index=idx,
                y=y,
                name=truncate_name(item.name),
                quantity=str(item.quantity),
                unit_price=money(item.price),
                line_total=money(item.line_total),
                shaded=idx % 2 == 1,
            ))
            y += ROW_H

        has_table = bool(rows)
        table_top = top if has_table else None
        table_bottom = y if has_table else None

        totals_top = notes_top = None
        if page_no == len(slices):
            totals_top = (table_bottom if table_bottom is not None else top) + TOTALS_GAP
            after_totals = totals_top + TOTALS_H + NOTES_GAP
            if after_totals + NOTES_H <= FOOTER_ZONE_TOP:
                notes_top = after_totals

        pages.append(PageLayout(
            number=page_no,
            rows=tuple(rows),
            table_top=table_top,
            table_bottom=table_bottom,
            totals_top=totals_top,
            notes_top=notes_top,
        ))

    title_lines = (
        f"N° {invoice.number}",
        f"Date : {format_date(invoice.issue_date, locale, tz)}",
        f"Échéance : {format_date(invoice.due_date, locale, tz)}",
    )
    totals_lines = (
        ("Sous-total HT", money(invoice.subtotal)),
        (f"TVA {_percent(invoice.tax_rate, locale)}", money(invoice.tax)),
    )
    notes = (
        f"Merci pour votre commande {invoice.order_id} !",
        "Votre facture est payable à réception. Pour toute question,",
        "contactez-nous en rappelant ce numéro de commande.",
    )
    return LayoutPlan(
        pages=tuple(pages),
        column_edges=column_edges(),
        title_lines=title_lines,
        totals_lines=totals_lines,
        total_line=("Total TTC", money(invoice.total)),
        notes=notes,
        parties=party_blocks(invoice),
    )
