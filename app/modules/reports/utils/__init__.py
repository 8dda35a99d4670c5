"""
Utilities for Reports module

CSV export helpers.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import Response


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Optional[Dict[str, str]] = None
) -> Response:
    """
    Create a CSV response from a list of dictionaries.

    Args:
        data: List of dictionaries with report data
        filename: Name for the CSV file
        headers: Optional mapping of field names to CSV headers

    Returns:
        FastAPI Response with CSV content
    """
    output = io.StringIO()

    fieldnames = list(headers.keys()) if headers else (list(data[0].keys()) if data else [])
    csv_headers = list(headers.values()) if headers else fieldnames

    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore", lineterminator="\n")
    writer.writerow(dict(zip(fieldnames, csv_headers)))
    for row in data:
        writer.writerow({key: format_csv_value(value) for key, value in row.items()})

    csv_content = output.getvalue()
    output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    """Format a value for CSV export."""
    if value is None:
        return ""
    elif isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return str(value.value)
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    elif isinstance(value, bool):
        return "Sí" if value else "No"
    else:
        return str(value)


def prepare_accounts_receivable_csv(report) -> List[Dict[str, Any]]:
    """Prepare accounts receivable data for CSV export"""
    return [item.model_dump() for item in report.items]


def prepare_accounts_payable_csv(report) -> List[Dict[str, Any]]:
    """Prepare accounts payable data for CSV export"""
    return [item.model_dump() for item in report.items]


CSV_HEADERS = {
    "accounts_receivable": {
        "work_order_code": "Obra",
        "work_order_name": "Nombre de la obra",
        "client_name": "Cliente",
        "number": "Estimación",
        "period": "Periodo",
        "net_amount": "Importe neto",
        "paid": "Cobrado",
        "outstanding": "Saldo"
    },
    "accounts_payable": {
        "folio": "Folio",
        "supplier_name": "Proveedor",
        "status": "Estado",
        "issue_date": "Fecha",
        "total": "Total",
        "paid": "Pagado",
        "outstanding": "Saldo"
    }
}
