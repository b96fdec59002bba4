import io
import logging
import os

import pandas as pd

from .aqi_utils import POLLUTANTS, fill_missing_aqi, normalize_pollutant
from .errors import InsufficientInputError, InvalidInputError

log = logging.getLogger(__name__)

RECORD_FIELDS = ["date", *POLLUTANTS, "aqi"]
NUMERIC_FIELDS = [*POLLUTANTS, "aqi"]

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}


def _read_frame(filename, content):
    ext = os.path.splitext(filename or "")[1].lower()
    try:
        if ext in CSV_EXTENSIONS:
            return pd.read_csv(io.BytesIO(content))
        if ext in EXCEL_EXTENSIONS:
            return pd.read_excel(io.BytesIO(content))
    except Exception as e:
        raise InvalidInputError(f"Cannot read {filename}: {e}") from e
    raise InvalidInputError(f"Unsupported file type: {filename!r} (expected .csv, .xlsx or .xls)")


def _date_text(value):
    if isinstance(value, pd.Timestamp):
        if value == value.normalize():
            return value.strftime("%Y-%m-%d")
        return value.isoformat()
    return str(value).strip()


def parse_upload(filename, content):
    """
    Decode an uploaded CSV/Excel file into dashboard records.

    Columns are matched case-insensitively; rows with no date or with no
    pollutant value at all are dropped, and rows without an ``aqi`` get one
    computed from their pollutants.
    """
    df = _read_frame(filename, content)
    df = df.rename(columns=lambda c: str(c).strip().lower())
    if "date" not in df.columns:
        raise InvalidInputError(f"Missing required column 'date' in {filename}")

    for col in RECORD_FIELDS:
        if col not in df.columns:
            df[col] = None
    df = df[RECORD_FIELDS].copy()
    for col in NUMERIC_FIELDS:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    df = df.dropna(subset=["date"])
    df = df[df[list(POLLUTANTS)].notna().any(axis=1)]
    if df.empty:
        raise InsufficientInputError(f"No usable rows in {filename}")

    records = []
    for row in df.to_dict(orient="records"):
        record = {"date": _date_text(row["date"])}
        for col in POLLUTANTS:
            value = row[col]
            record[col] = None if pd.isna(value) else normalize_pollutant(float(value))
        record["aqi"] = None if pd.isna(row["aqi"]) else float(row["aqi"])
        records.append(record)

    log.info(f"🔹 [Upload] Parsed {len(records)} rows from {filename}")
    return fill_missing_aqi(records)


def records_to_csv(records):
    """Render records as CSV with the dashboard's export header."""
    df = pd.DataFrame(list(records), columns=RECORD_FIELDS)
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    return buf.getvalue()
