"""Invoice derivation and page geometry, checked without drawing anything."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_order
from shopbati.schemas.orders import Address, CustomerInfo, OrderItem
from shopbati.services import invoice_layout as layout
from shopbati.services.invoice_layout import (
    FOOTER_ZONE_TOP, PARTY_MAX_LINES, PLACEHOLDER_ADDRESS, ROW_H, address_lines, build_invoice,
    column_edges, paginate, plan_layout, rows_capacity, split_tax, truncate_name,
)

CENT = Decimal("0.01")


def _order_with(n: int):
    items = [OrderItem(name=f"Article {i}", price="2.00", quantity=1) for i in range(n)]
    return make_order(items=items, total=Decimal(2 * n))


def test_single_item_scenario():
    inv = build_invoice(make_order(), "SB-20250115-001")
    assert inv.total == Decimal("22.50")
    assert inv.subtotal.quantize(CENT) == Decimal("18.75")
    assert inv.tax.quantize(CENT) == Decimal("3.75")
    assert inv.subtotal + inv.tax == inv.total
    assert inv.due_date.date() == date(2025, 2, 14)
    assert inv.issue_date.date() == date(2025, 1, 15)


def test_invoice_total_comes_from_items_not_stored_total():
    inv = build_invoice(make_order(total="99.99"), "SB-1")
    assert inv.total == Decimal("22.50")


def test_split_tax_other_rate():
    subtotal, tax = split_tax(Decimal("105.50"), Decimal("0.055"))
    assert subtotal.quantize(CENT) == Decimal("100.00")
    assert tax.quantize(CENT) == Decimal("5.50")


def test_missing_name_defaults_to_client():
    inv = build_invoice(make_order(customerName="  "), "SB-1")
    assert inv.customer_name == "Client"


def test_address_lines_fill_country():
    lines = address_lines(Address(street="12 rue des Lilas", city="Lyon", postalCode="69003"))
    assert lines == ("12 rue des Lilas", "69003 Lyon", "France")


@pytest.mark.parametrize("address", [None, Address(), Address(street="  ", city="Lyon")])
def test_missing_address_prints_placeholder(address):
    assert address_lines(address) == PLACEHOLDER_ADDRESS


def test_billing_defaults_to_shipping():
    inv = build_invoice(make_order(), "SB-1")
    assert inv.billing_lines == inv.shipping_lines


def test_truncate_long_names():
    name = "Plaque de plâtre BA13 hydrofuge 2500 x 1200 mm"
    short = truncate_name(name)
    assert len(short) <= 32
    assert short.endswith("…")
    assert truncate_name("Ciment 25kg") == "Ciment 25kg"


def test_column_edges_follow_fractions():
    edges = column_edges()
    assert edges[0] == pytest.approx(15.0)
    assert edges[1] == pytest.approx(15 + 0.55 * 180)
    assert edges[2] == pytest.approx(15 + 0.67 * 180)
    assert edges[3] == pytest.approx(15 + 0.83 * 180)
    assert edges[4] == pytest.approx(195.0)


def test_page_capacities():
    assert rows_capacity(layout.TABLE_TOP_FIRST) == 17
    assert rows_capacity(layout.TABLE_TOP_NEXT) == 24


@pytest.mark.parametrize("count, expected", [
    (0, [(0, 0)]),
    (1, [(0, 1)]),
    (13, [(0, 13)]),
    # rows fit but the totals block does not
    (14, [(0, 14), (14, 14)]),
    (18, [(0, 17), (17, 18)]),
    (41, [(0, 17), (17, 41), (41, 41)]),
])
def test_paginate(count, expected):
    assert paginate(count) == expected


def test_plan_text_lines():
    plan = plan_layout(build_invoice(make_order(), "SB-20250115-042"))
    assert plan.title_lines == (
        "N° SB-20250115-042",
        "Date : 15 janvier 2025",
        "Échéance : 14 février 2025",
    )
    assert plan.totals_lines == (("Sous-total HT", "18,75 €"), ("TVA 20 %", "3,75 €"))
    assert plan.total_line == ("Total TTC", "22,50 €")
    assert "CMD-1" in plan.notes[0]


def test_single_page_plan_has_everything():
    plan = plan_layout(build_invoice(make_order(), "SB-1"))
    assert plan.page_count == 1
    page = plan.pages[0]
    assert page.is_first
    assert [r.name for r in page.rows] == ["Ciment 25kg"]
    assert page.rows[0].unit_price == "7,50 €"
    assert page.rows[0].line_total == "22,50 €"
    assert page.totals_top is not None
    assert page.notes_top is not None


def test_multi_page_plan_keeps_rows_above_footer():
    plan = plan_layout(build_invoice(_order_with(30), "SB-1"))
    assert plan.page_count == 2
    indexes = [r.index for p in plan.pages for r in p.rows]
    assert indexes == list(range(30))
    for page in plan.pages:
        for row in page.rows:
            assert row.y + ROW_H <= FOOTER_ZONE_TOP
            assert row.shaded == (row.index % 2 == 1)
    # totals only on the last page
    assert [p.totals_top is not None for p in plan.pages] == [False, True]


def test_totals_only_page_has_no_table():
    plan = plan_layout(build_invoice(_order_with(14), "SB-1"))
    last = plan.pages[-1]
    assert last.rows == ()
    assert last.table_top is None
    assert last.totals_top is not None


@pytest.mark.parametrize("timestamp, issued, due", [
    ("2025-01-15T10:00:00Z", date(2025, 1, 15), date(2025, 2, 14)),
    # year boundary
    ("2024-12-15T10:00:00Z", date(2024, 12, 15), date(2025, 1, 14)),
    # 23:30 UTC is already the next day in Paris
    ("2024-12-31T23:30:00Z", date(2025, 1, 1), date(2025, 1, 31)),
    ("2025-10-10T22:30:00Z", date(2025, 10, 11), date(2025, 11, 10)),
    # spring and autumn clock changes
    ("2025-03-15T10:00:00Z", date(2025, 3, 15), date(2025, 4, 14)),
    ("2025-10-15T10:00:00Z", date(2025, 10, 15), date(2025, 11, 14)),
    ("2024-02-15T10:00:00Z", date(2024, 2, 15), date(2024, 3, 16)),
    ("2025-01-31T12:00:00Z", date(2025, 1, 31), date(2025, 3, 2)),
])
def test_due_date_is_thirty_calendar_days_after_local_issue_date(timestamp, issued, due):
    inv = build_invoice(make_order(timestamp=timestamp), "SB-1")
    assert inv.issue_date.date() == issued
    assert inv.due_date.date() == due


def test_due_date_keeps_local_time_across_dst():
    inv = build_invoice(make_order(timestamp="2025-03-15T10:00:00Z"), "SB-1")
    # 11:00 CET on issue, still 11:00 local once CEST applies
    assert inv.issue_date.hour == 11
    assert inv.due_date.hour == 11
    assert inv.due_date.utcoffset() != inv.issue_date.utcoffset()


@pytest.mark.parametrize("lines", [
    [("9.99", 1)],
    [("7.50", 3), ("12.35", 2), ("0.01", 7)],
    [("1.95", 10), ("249.00", 1), ("33.33", 3), ("0.10", 99)],
    [(f"{i}.{i:02d}", i) for i in range(1, 20)],
])
def test_multi_item_totals_add_up(lines):
    items = [OrderItem(name=f"Article {i}", price=price, quantity=qty) for i, (price, qty) in enumerate(lines)]
    expected = sum((Decimal(price) * qty for price, qty in lines), Decimal(0))
    inv = build_invoice(make_order(items=items, total=expected), "SB-1")
    assert inv.total == expected
    assert inv.subtotal + inv.tax == inv.total


def _pro_order(**info):
    data = {"accountType": "professional", "raisonSociale": "Maçonnerie Durand SARL",
            "siret": "123 456 789 00012", "tvaNumber": "FR12123456789"}
    data.update(info)
    return make_order(customerInfo=CustomerInfo(**data))


def test_private_customer_parties():
    billed, shipped = plan_layout(build_invoice(make_order(), "SB-1")).parties
    assert billed.label == "Facturé à"
    assert billed.name == "Jean Dupont"
    assert billed.lines == ("client@example.fr", "12 rue des Lilas", "69003 Lyon", "France")
    assert shipped.label == "Livré à"
    assert shipped.lines == billed.lines
    assert not any("SIRET" in line for line in billed.lines)


def test_professional_customer_is_billed_as_company():
    inv = build_invoice(_pro_order(), "SB-1")
    assert inv.professional
    billed, shipped = plan_layout(inv).parties
    assert billed.name == "Maçonnerie Durand SARL"
    assert billed.lines[-1] == "SIRET : 123 456 789 00012 - TVA : FR12123456789"
    assert len(billed.lines) <= PARTY_MAX_LINES
    # goods are still delivered to the person who ordered
    assert shipped.name == "Jean Dupont"


def test_professional_without_ids_still_gets_siret_line():
    billed, _ = plan_layout(build_invoice(_pro_order(raisonSociale="", siret="", tvaNumber=""), "SB-1")).parties
    assert billed.name == "Jean Dupont"
    assert billed.lines[-1] == "SIRET : non communiqué"


def test_individual_customer_info_adds_no_company_details():
    order = make_order(customerInfo=CustomerInfo(accountType="individual", siret="123"))
    inv = build_invoice(order, "SB-1")
    assert not inv.professional
    billed, _ = plan_layout(inv).parties
    assert billed.name == "Jean Dupont"
