"""Render a ledger projection as CSV or XLSX for download."""
from __future__ import annotations

import csv
import io

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from metal_ledger.schemas.responses import LedgerRow, LedgerView

HEADERS = [
    "Date", "Vch No", "Particulars", "Vch Type",
    "Metal Dr", "Metal Cr", "Metal Bal", "Dr/Cr",
    "Cash Dr", "Cash Cr", "Cash Bal", "Dr/Cr",
]


def _row_values(row: LedgerRow) -> list:
    return [
        row.voucher_date.isoformat(),
        row.voucher_no or "",
        row.particulars,
        row.voucher_type or "",
        f"{row.metal_dr:.3f}",
        f"{row.metal_cr:.3f}",
        f"{abs(row.metal_balance):.3f}",
        row.metal_side,
        f"{row.cash_dr:.2f}",
        f"{row.cash_cr:.2f}",
        f"{abs(row.cash_balance):.2f}",
        row.cash_side,
    ]


def export_filename(view: LedgerView, ext: str) -> str:
    safe = "".join(c if c.isalnum() else "_" for c in view.party.unique_name)
    return f"ledger_{safe}.{ext}"


def ledger_to_csv(view: LedgerView) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(HEADERS)
    for row in view.transactions:
        writer.writerow(_row_values(row))
    return output.getvalue()


def ledger_to_xlsx(view: LedgerView) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Ledger"

    header_fill = PatternFill(start_color="1F3864", end_color="1F3864", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=10)
    row_font = Font(size=10)
    center = Alignment(horizontal="center", vertical="center")

    ws.cell(row=1, column=1, value=f"Ledger: {view.party.name} ({view.party.unique_name})").font = Font(
        bold=True, size=12
    )
    for col_idx, h in enumerate(HEADERS, 1):
        cell = ws.cell(row=2, column=col_idx, value=h)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = center

    reversal_fill = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")
    for row_idx, row in enumerate(view.transactions, 3):
        values = _row_values(row)
        # numbers go in as numbers so the sheet can total them
        for i in (4, 5, 6, 8, 9, 10):
            values[i] = float(values[i])
        for col_idx, val in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=val)
            cell.font = row_font
            if row.is_reversal:
                cell.fill = reversal_fill

    for col_idx in range(1, len(HEADERS) + 1):
        col_letter = get_column_letter(col_idx)
        max_len = max(
            len(str(ws.cell(row=r, column=col_idx).value or ""))
            for r in range(2, len(view.transactions) + 3)
        )
        ws.column_dimensions[col_letter].width = min(max_len + 4, 45)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
