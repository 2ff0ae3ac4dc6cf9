# payroll_api/services/row_sources.py
"""Tabular inputs (CSV, XLSX, JSON) flattened into lists of header -> text dicts."""
import csv
import io
import os
from typing import Dict, List

import openpyxl

from payroll_api.common.errors import ValidationError

Row = Dict[str, str]


def _cell(v) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v).strip()


def rows_from_csv(file_storage) -> List[Row]:
    text = file_storage.read().decode("utf-8-sig", errors="ignore")
    reader = csv.DictReader(io.StringIO(text))
    return [{(k or "").strip(): _cell(v) for k, v in r.items()} for r in reader]


def rows_from_xlsx(file_storage) -> List[Row]:
    data = file_storage.read()
    wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True, read_only=True)
    ws = wb.active
    headers: List[str] = []
    rows: List[Row] = []
    for i, row in enumerate(ws.iter_rows(values_only=True), start=1):
        if i == 1:
            headers = [_cell(h) for h in row]
            continue
        if all(v in (None, "") for v in row):
            continue
        rec = {}
        for j, val in enumerate(row):
            key = headers[j] if j < len(headers) and headers[j] else f"col{j + 1}"
            rec[key] = _cell(val)
        rows.append(rec)
    wb.close()
    return rows


def rows_from_upload(file_storage) -> List[Row]:
    ext = os.path.splitext(file_storage.filename or "")[1].lower()
    if ext in (".xlsx", ".xlsm"):
        return rows_from_xlsx(file_storage)
    if ext in (".csv", ".txt", ""):
        return rows_from_csv(file_storage)
    raise ValidationError(f"Unsupported file type '{ext}'; upload CSV or XLSX")


def rows_from_json(payload) -> List[Row]:
    rows = (payload or {}).get("rows")
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValidationError("rows must be a list of objects")
    return [{str(k).strip(): _cell(v) for k, v in r.items()} for r in rows]
