# shopbati/services/invoice_pdf.py
from __future__ import annotations

import io
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from fpdf import FPDF

from ..logger import logger
from ..schemas.orders import Order
from .assets import AssetLoader, AssetLoadError
from .fonts import FontFiles, locate_fonts
from .identifiers import generate_invoice_number
from .invoice_layout import (
    BANNER_H, FOOTER_LINE_YS, HEADER_TOP, LOGO_MAX_H, LOGO_MAX_W, MARGIN, NOTES_H,
    PAGE_W, PARTY_GAP_FRACTION, PARTY_H, PARTY_LINE_H, PARTY_TOP, ROW_H,
    TABLE_HEADER_H, TERMS_LINE_H, TERMS_TOP, TITLE_BLOCK_H, TITLE_BLOCK_W, TITLE_LINE_H,
    TOTALS_HIGHLIGHT_H, TOTALS_LINE_H, TOTALS_W, Invoice, LayoutPlan, PageLayout,
    build_invoice, plan_layout,
)

Color = Tuple[int, int, int]

YELLOW: Color = (255, 215, 0)       # #FFD700
DARK: Color = (33, 33, 33)          # #212121
GREY: Color = (100, 100, 100)
LIGHT: Color = (245, 245, 245)      # #F5F5F5
SHADE: Color = (255, 249, 214)      # pale yellow for alternating rows
RULE: Color = (150, 150, 150)

CORE_FONT = "helvetica"

COMPANY_NAME = "SHOPBATI"
COMPANY_TAGLINE = "Plateforme du bâtiment"
BANNER_TEXT = "BRICOLAGE • CONSTRUCTION • DÉCORATION • JARDINAGE"
TERMS = (
    "Conditions de règlement : prix comptant sans escompte",
    "Pénalité de retard : trois fois le taux de l'intérêt légal en vigueur",
    "Indemnité forfaitaire pour frais de recouvrement : 40 €",
)
FOOTER_LINES = (
    "SHOPBATI.FR - SAS au capital de 50 000 € - RCS Paris B 123 456 789",
    "contact@shopbati.fr • www.shopbati.fr • Tél : 01 23 45 67 89",
    "Spécialiste en matériaux de construction, bricolage, décoration et jardinage",
)
TABLE_HEADERS = ("Désignation article", "Quantité", "Prix unit. TTC", "Total TTC")


class RenderError(Exception):
    """The PDF backend failed; missing logo/address data never raises this."""


class InvoicePDF(FPDF):
    """
    FPDF with the invoice text face registered. With a TrueType file the full
    Unicode range prints as written; without one the core Helvetica font is
    used and anything outside windows-1252 becomes "?".
    """

    TEXT_FAMILY = "InvoiceSans"

    def __init__(self, fonts: FontFiles = FontFiles()):
        super().__init__(orientation="P", unit="mm", format="A4")
        self.core_fonts_encoding = "windows-1252"
        self.text_family = CORE_FONT
        self.has_bold = True
        self.unicode_text = False
        if fonts.regular:
            self._register(fonts)

    def _register(self, fonts: FontFiles) -> None:
        try:
            self.add_font(self.TEXT_FAMILY, "", fonts.regular)
        except Exception as e:
            logger.warning(f"Invoice font {fonts.regular} unusable, using {CORE_FONT}: {e}")
            return
        self.text_family = self.TEXT_FAMILY
        self.unicode_text = True
        self.has_bold = False
        if fonts.bold:
            try:
                self.add_font(self.TEXT_FAMILY, "B", fonts.bold)
                self.has_bold = True
            except Exception as e:
                logger.warning(f"Bold invoice font {fonts.bold} unusable: {e}")

        names = []
        for i, path in enumerate(fonts.fallbacks):
            name = f"InvoiceFallback{i}"
            try:
                self.add_font(name, "", path)
            except Exception as e:
                logger.warning(f"Fallback font {path} skipped: {e}")
                continue
            names.append(name)
        if names:
            # bold text may borrow a regular fallback glyph
            self.set_fallback_fonts(names, exact_match=False)

    def use_font(self, size: float, bold: bool = False) -> None:
        style = "B" if bold and self.has_bold else ""
        self.set_font(self.text_family, style, size)

    def clean(self, text: str) -> str:
        if self.unicode_text:
            return text
        # core PDF fonts only cover windows-1252
        return text.encode("cp1252", errors="replace").decode("cp1252")


class InvoiceRenderer:
    """
    Renders an Order to a single- or multi-page A4 PDF. The logo comes from an
    injected AssetLoader; without one (or when it fails) the company name is
    drawn as text instead.
    """

    def __init__(self, asset_loader: Optional[AssetLoader] = None, *,
                 invoice_prefix: str = "SB",
                 locale: str = "fr_FR",
                 tz: str = "Europe/Paris",
                 tax_rate: Decimal = Decimal("0.20"),
                 due_days: int = 30,
                 font_path: Optional[str] = None,
                 bold_font_path: Optional[str] = None,
                 search_system_fonts: bool = True):
        self.asset_loader = asset_loader
        self.invoice_prefix = invoice_prefix
        self.locale = locale
        self.tz = tz
        self.tax_rate = tax_rate
        self.due_days = due_days
        self.fonts = locate_fonts(font_path, bold_font_path, search_system=search_system_fonts)
        if not self.fonts.unicode:
            logger.warning("No TrueType font found, invoice text limited to windows-1252")

    async def load_logo(self) -> Optional[bytes]:
        if self.asset_loader is None:
            return None
        try:
            return await self.asset_loader.load()
        except AssetLoadError as e:
            logger.warning(f"Logo unavailable, using text header: {e}")
            return None

    def make_invoice(self, order: Order, invoice_number: Optional[str] = None,
                     now: Optional[datetime] = None) -> Invoice:
        number = invoice_number or generate_invoice_number(self.invoice_prefix, now=now)
        return build_invoice(order, number, self.tax_rate, self.due_days, self.tz)

    async def render(self, order: Order, invoice_number: Optional[str] = None) -> bytes:
        logo = await self.load_logo()
        try:
            invoice = self.make_invoice(order, invoice_number)
        except (TypeError, ValueError) as e:
            raise RenderError(f"cannot derive invoice for {order.orderId}: {e}") from e
        return self.render_invoice(invoice, logo)

    def render_invoice(self, invoice: Invoice, logo: Optional[bytes] = None) -> bytes:
        try:
            plan = plan_layout(invoice, self.locale, self.tz)
            pdf = InvoicePDF(self.fonts)
            pdf.set_auto_page_break(False)
            pdf.set_margins(MARGIN, MARGIN, MARGIN)
            pdf.set_title(f"Facture {invoice.number}")
            pdf.set_author(COMPANY_NAME)

            for page in plan.pages:
                pdf.add_page()
                self._draw_page(pdf, plan, page, logo)
            return bytes(pdf.output())
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"PDF rendering failed for {invoice.order_id}: {e}") from e

    # ---------- drawing helpers ----------

    def _text(self, pdf: InvoicePDF, x: float, y: float, text: str, size: float = 9,
              bold: bool = False, color: Color = DARK, align: str = "L") -> None:
        pdf.use_font(size, bold)
        pdf.set_text_color(*color)
        text = pdf.clean(text)
        if align == "R":
            x -= pdf.get_string_width(text)
        elif align == "C":
            x -= pdf.get_string_width(text) / 2.0
        pdf.text(x, y, text)

    def _draw_page(self, pdf: InvoicePDF, plan: LayoutPlan, page: PageLayout,
                   logo: Optional[bytes]) -> None:
        self._draw_banner(pdf)
        self._draw_logo(pdf, logo)
        self._draw_title_block(pdf, plan, page)
        if page.is_first:
            self._draw_parties(pdf, plan)
            self._draw_terms(pdf)
        if page.table_top is not None:
            self._draw_table(pdf, plan, page)
        if page.totals_top is not None:
            self._draw_totals(pdf, plan, page.totals_top)
        if page.notes_top is not None:
            self._draw_notes(pdf, plan, page.notes_top)
        self._draw_footer(pdf, plan)

    def _draw_banner(self, pdf: InvoicePDF) -> None:
        pdf.set_fill_color(*YELLOW)
        pdf.rect(0, 0, PAGE_W, BANNER_H, style="F")
        self._text(pdf, PAGE_W / 2, 7.5, BANNER_TEXT, size=9, bold=True, align="C")

    def _draw_logo(self, pdf: InvoicePDF, logo: Optional[bytes]) -> None:
        if logo:
            try:
                # fits inside the box without distorting the image
                pdf.image(io.BytesIO(logo), x=MARGIN, y=HEADER_TOP,
                          w=LOGO_MAX_W, h=LOGO_MAX_H, keep_aspect_ratio=True)
                return
            except Exception as e:
                logger.warning(f"Logo could not be decoded, using text header: {e}")

        self._text(pdf, MARGIN, HEADER_TOP + 9, COMPANY_NAME, size=22, bold=True)
        pdf.set_draw_color(*YELLOW)
        pdf.set_line_width(1.2)
        pdf.line(MARGIN, HEADER_TOP + 12, MARGIN + 40, HEADER_TOP + 12)
        pdf.set_line_width(0.2)
        self._text(pdf, MARGIN, HEADER_TOP + 17, COMPANY_TAGLINE.upper(), size=8, color=GREY)

    def _draw_title_block(self, pdf: InvoicePDF, plan: LayoutPlan, page: PageLayout) -> None:
        right = PAGE_W - MARGIN
        left = right - TITLE_BLOCK_W
        pdf.set_fill_color(*YELLOW)
        pdf.rect(left, HEADER_TOP, TITLE_BLOCK_W, TITLE_BLOCK_H, style="F")
        self._text(pdf, left + TITLE_BLOCK_W / 2, HEADER_TOP + 7.8, "FACTURE", size=16, bold=True, align="C")

        y = HEADER_TOP + TITLE_BLOCK_H + TITLE_LINE_H
        for i, line in enumerate(plan.title_lines):
            self._text(pdf, right, y, line, size=9, bold=(i == 0), align="R")
            y += TITLE_LINE_H
        if plan.page_count > 1:
            self._text(pdf, right, y, f"Page {page.number} / {plan.page_count}", size=8, color=GREY, align="R")

    def _draw_parties(self, pdf: InvoicePDF, plan: LayoutPlan) -> None:
        content_w = PAGE_W - 2 * MARGIN
        gap = content_w * PARTY_GAP_FRACTION
        col_w = (content_w - gap) / 2
        for party, x in zip(plan.parties, (MARGIN, MARGIN + col_w + gap)):
            pdf.set_fill_color(*LIGHT)
            pdf.set_draw_color(*GREY)
            pdf.rect(x, PARTY_TOP, col_w, PARTY_H, style="DF")
            y = PARTY_TOP + 6
            self._text(pdf, x + 3, y, party.label.upper(), size=8, bold=True, color=GREY)
            y += PARTY_LINE_H + 1
            self._text(pdf, x + 3, y, party.name, size=10, bold=True)
            for line in party.lines:
                y += PARTY_LINE_H
                self._text(pdf, x + 3, y, line, size=9)

    def _draw_terms(self, pdf: InvoicePDF) -> None:
        y = TERMS_TOP
        for line in TERMS:
            self._text(pdf, MARGIN, y, line, size=7.5, color=GREY)
            y += TERMS_LINE_H

    def _draw_table(self, pdf: InvoicePDF, plan: LayoutPlan, page: PageLayout) -> None:
        edges = plan.column_edges
        left, right = edges[0], edges[-1]
        top, bottom = page.table_top, page.table_bottom

        pdf.set_fill_color(*YELLOW)
        pdf.rect(left, top, right - left, TABLE_HEADER_H, style="F")
        header_y = top + TABLE_HEADER_H / 2 + 1.2
        self._text(pdf, edges[0] + 2, header_y, TABLE_HEADERS[0], size=8, bold=True)
        for i, label in enumerate(TABLE_HEADERS[1:], start=1):
            self._text(pdf, edges[i + 1] - 2, header_y, label, size=8, bold=True, align="R")

        for row in page.rows:
            if row.shaded:
                pdf.set_fill_color(*SHADE)
                pdf.rect(left, row.y, right - left, ROW_H, style="F")
            text_y = row.y + ROW_H / 2 + 1.2
            self._text(pdf, edges[0] + 2, text_y, row.name, size=8)
            self._text(pdf, edges[2] - 2, text_y, row.quantity, size=8, align="R")
            self._text(pdf, edges[3] - 2, text_y, row.unit_price, size=8, align="R")
            self._text(pdf, edges[4] - 2, text_y, row.line_total, size=8, bold=True, align="R")

        # vertical borders share the text column boundaries
        pdf.set_draw_color(*RULE)
        pdf.set_line_width(0.2)
        for x in edges[1:-1]:
            pdf.line(x, top, x, bottom)
        pdf.set_draw_color(*DARK)
        pdf.rect(left, top, right - left, bottom - top, style="D")

    def _draw_totals(self, pdf: InvoicePDF, plan: LayoutPlan, top: float) -> None:
        right = PAGE_W - MARGIN
        left = right - TOTALS_W
        y = top + TOTALS_LINE_H
        for label, value in plan.totals_lines:
            self._text(pdf, left + 3, y, label, size=9)
            self._text(pdf, right - 3, y, value, size=9, align="R")
            y += TOTALS_LINE_H

        box_top = y - TOTALS_LINE_H + 3
        pdf.set_fill_color(*YELLOW)
        pdf.set_draw_color(*DARK)
        pdf.rect(left, box_top, TOTALS_W, TOTALS_HIGHLIGHT_H, style="DF")
        label, value = plan.total_line
        text_y = box_top + TOTALS_HIGHLIGHT_H / 2 + 1.5
        self._text(pdf, left + 3, text_y, label, size=11, bold=True)
        self._text(pdf, right - 3, text_y, value, size=11, bold=True, align="R")

    def _draw_notes(self, pdf: InvoicePDF, plan: LayoutPlan, top: float) -> None:
        pdf.set_draw_color(*RULE)
        pdf.rect(MARGIN, top, PAGE_W - 2 * MARGIN, NOTES_H, style="D")
        y = top + 5
        for i, line in enumerate(plan.notes):
            self._text(pdf, MARGIN + 3, y, line, size=8, bold=(i == 0))
            y += 4.5

    def _draw_footer(self, pdf: InvoicePDF, plan: LayoutPlan) -> None:
        pdf.set_draw_color(*YELLOW)
        pdf.set_line_width(1)
        pdf.line(MARGIN, plan.footer_rule_y, PAGE_W - MARGIN, plan.footer_rule_y)
        pdf.set_line_width(0.2)
        colors = (DARK, DARK, GREY)
        for y, line, color in zip(FOOTER_LINE_YS, FOOTER_LINES, colors):
            self._text(pdf, PAGE_W / 2, y, line, size=8, color=color, align="C")
