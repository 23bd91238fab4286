from __future__ import annotations

from decimal import Decimal

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from backend.app.db.models.models_v1 import ResellerOrder, TransferOrder

COLUMNS = [("SKU", 30), ("Description", 75), ("Qty", 20), ("Unit price", 30), ("Amount", 35)]


def _latin1(text) -> str:
    # core fonts only cover latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _money(value) -> str:
    return f"PHP {Decimal(value or 0):,.2f}"


def _packing_list(title: str, party_lines: list[str], order) -> bytes:
    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, "KIKIKS - PACKING LIST", new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.set_font("Helvetica", size=11)
    pdf.cell(0, 8, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.ln(6)

    for line in party_lines:
        pdf.cell(0, 7, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    created = order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "-"
    pdf.cell(0, 7, f"Date : {created}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 7, f"Status : {order.status.value}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(5)

    pdf.set_font("Helvetica", "B", 10)
    for label, width in COLUMNS:
        pdf.cell(width, 8, label, border=1, align="C")
    pdf.ln()

    pdf.set_font("Helvetica", size=10)
    for l in order.lines:
        amount = Decimal(l.unit_price or 0) * l.quantity
        pdf.cell(COLUMNS[0][1], 7, _latin1(l.sku), border=1)
        pdf.cell(COLUMNS[1][1], 7, _latin1((l.description or "")[:45]), border=1)
        pdf.cell(COLUMNS[2][1], 7, str(l.quantity), border=1, align="R")
        pdf.cell(COLUMNS[3][1], 7, _money(l.unit_price), border=1, align="R")
        pdf.cell(COLUMNS[4][1], 7, _money(amount), border=1, align="R")
        pdf.ln()

    pdf.set_font("Helvetica", "B", 11)
    label_width = sum(w for _, w in COLUMNS[:-1])
    pdf.cell(label_width, 8, "TOTAL", border=1, align="R")
    pdf.cell(COLUMNS[-1][1], 8, _money(order.total_amount), border=1, align="R")
    pdf.ln(20)

    pdf.set_font("Helvetica", "I", 9)
    pdf.cell(0, 6, "Prepared by: ____________________    Received by: ____________________",
             new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    return bytes(pdf.output())


def reseller_packing_list(order: ResellerOrder) -> bytes:
    party = [f"Reseller : {order.reseller_name}"]
    if order.zone_name:
        party.append(f"Zone : {order.zone_name}")
    if order.address:
        party.append(f"Address : {order.address}")
    party.append(f"Ship from : {order.source_location.name}")
    return _packing_list(f"Reseller order #{order.id}", party, order)


def transfer_packing_list(order: TransferOrder) -> bytes:
    party = [
        f"From : {order.from_location.name}",
        f"To : {order.destination.name}",
    ]
    return _packing_list(f"Transfer order #{order.id}", party, order)
