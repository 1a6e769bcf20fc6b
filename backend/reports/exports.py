# reports/exports.py
"""
File exports for reports: Excel (.xlsx) through openpyxl, and CSV.

A report export is a list of row dicts plus column definitions:

    {"key": "outstanding", "header": "Outstanding", "width": 15, "numeric": True}
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter


class ExportFormat:
    EXCEL = "xlsx"
    CSV = "csv"

    CHOICES = [EXCEL, CSV]
    CONTENT_TYPES = {
        EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        CSV: "text/csv",
    }


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _cell_value(value: Any):
    # Decimals go in as numbers.
    if isinstance(value, Decimal):
        return float(value)
    return format_value(value)


def export_to_excel(rows: list[dict], columns: list[dict], title: str, sheet_name: str = "Report") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal="center")

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(columns))
    stamp = ws.cell(row=2, column=1, value=f"Generated {datetime.now():%Y-%m-%d %H:%M}")
    stamp.font = Font(italic=True, size=10, color="666666")
    stamp.alignment = Alignment(horizontal="center")

    header_row = 4
    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col["header"])
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = border
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get("width", 15)

    for row_idx, row in enumerate(rows, header_row + 1):
        for col_idx, col in enumerate(columns, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(row.get(col["key"])))
            cell.border = border
            if col.get("numeric"):
                cell.alignment = Alignment(horizontal="right")
                cell.number_format = "#,##0.00"

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_to_csv(rows: list[dict], columns: list[dict]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow([col["header"] for col in columns])
    for row in rows:
        writer.writerow([format_value(row.get(col["key"])) for col in columns])
    return output.getvalue()


def create_export_response(rows, columns, export_format: str, filename: str, title: str) -> HttpResponse:
    """
    Raises:
        ValueError: unknown export format
    """
    if export_format not in ExportFormat.CHOICES:
        raise ValueError(f"Invalid export format: {export_format}. Must be one of {ExportFormat.CHOICES}")

    if export_format == ExportFormat.EXCEL:
        response = HttpResponse(
            export_to_excel(rows, columns, title=title),
            content_type=ExportFormat.CONTENT_TYPES[export_format],
        )
    else:
        response = HttpResponse(export_to_csv(rows, columns), content_type=ExportFormat.CONTENT_TYPES[export_format])
        response.charset = "utf-8-sig"

    response["Content-Disposition"] = f'attachment; filename="{filename}.{export_format}"'
    return response


# =============================================================================
# Column sets
# =============================================================================

def _money(key, header, width=15):
    return {"key": key, "header": header, "width": width, "numeric": True}


PARTY_AGING_COLUMNS = [
    {"key": "code", "header": "Code", "width": 12},
    {"key": "name", "header": "Name", "width": 30},
    {"key": "is_intercompany", "header": "Intercompany", "width": 12},
    _money("documented", "Documented"),
    _money("outstanding", "Outstanding"),
    _money("overdue", "Overdue"),
    {"key": "open_count", "header": "Open Documents", "width": 12, "numeric": True},
]

TRIAL_BALANCE_COLUMNS = [
    {"key": "code", "header": "Account Code", "width": 15},
    {"key": "name", "header": "Account Name", "width": 30},
    {"key": "account_type", "header": "Account Type", "width": 18},
    _money("debit", "Debit"),
    _money("credit", "Credit"),
]

SUBLEDGER_COLUMNS = [
    {"key": "role", "header": "Control", "width": 15},
    {"key": "account_code", "header": "Account", "width": 12},
    _money("ledger_balance", "Ledger Balance", 18),
    _money("subledger_balance", "Sub-ledger Balance", 18),
    _money("difference", "Difference"),
    {"key": "is_reconciled", "header": "Reconciled", "width": 12},
]

INTERCOMPANY_RECONCILIATION_COLUMNS = [
    {"key": "reference", "header": "Reference", "width": 22},
    {"key": "source_company", "header": "Source Company", "width": 25},
    {"key": "target_company", "header": "Target Company", "width": 25},
    {"key": "status", "header": "Status", "width": 12},
    _money("source_receivable", "Source Receivable", 18),
    _money("target_payable", "Target Payable", 18),
    _money("difference", "Difference"),
    {"key": "is_reconciled", "header": "Reconciled", "width": 12},
]

TENANT_SUMMARY_COLUMNS = [
    {"key": "company_name", "header": "Company", "width": 30},
    _money("accounts_receivable", "Receivable"),
    _money("accounts_payable", "Payable"),
    _money("cash", "Cash"),
    _money("revenue", "Revenue"),
    _money("expenses", "Expenses"),
    _money("net_income", "Net Income"),
    {"key": "invoices", "header": "Invoices", "width": 10, "numeric": True},
    {"key": "bills", "header": "Bills", "width": 10, "numeric": True},
]

RECEIPT_TRACKING_COLUMNS = [
    {"key": "number", "header": "Invoice", "width": 18},
    {"key": "customer_name", "header": "Customer", "width": 30},
    {"key": "order_number", "header": "Sales Order", "width": 18},
    _money("total", "Total"),
    _money("received", "Received"),
    _money("balance_due", "Balance Due"),
    {"key": "receipt_count", "header": "Receipts", "width": 10, "numeric": True},
    {"key": "payment_status", "header": "Payment Status", "width": 15},
]
