"""
Spreadsheet ingestion for marketplace and accounting exports.

Every supported export (the Accurate accounting ledger and each marketplace
order report) is read the same way:

1. Read the first sheet of the workbook as raw, untyped cells.
2. Find the invoice, amount and (optional) date columns by comparing
   normalized headers against a per-source list of candidate names.
3. Normalize every data row into a record:
   - invoice_number: trimmed, uppercased identifier (never empty)
   - amount: parsed number, strictly positive
   - date: YYYY-MM-DD or None
   - raw_row: the original cells

Rows with an empty invoice or a non-positive amount are dropped and counted.
Amounts and dates never raise while parsing: unreadable amounts become 0 and
unreadable dates become None.
"""

import io
import os
import re
import csv
import logging
import numbers
import zipfile
from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Tuple

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from marketrecon.events import log_reporter

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = '$₱₹₩₪€¥'

# Day zero of spreadsheet date serials (1900 date system, including its
# phantom 1900-02-29).
SPREADSHEET_EPOCH = datetime(1899, 12, 30)

INVALID_ROW_SAMPLE_SIZE = 50

CSV_ENCODINGS = ['utf-8-sig', 'cp1252']

_CURRENCY_PATTERN = re.compile('[' + re.escape(CURRENCY_SYMBOLS) + ']')
_LEADING_NUMBER = re.compile(r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')
# A string must carry a calendar date, not just a time of day.
_DATE_PART = re.compile(
    r'\d+[/.-]\d+[/.-]\d+|\b\d{8}\b|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b',
    re.IGNORECASE,
)


class ReconciliationInputError(ValueError):
    """An input file cannot be used for reconciliation."""

    def __init__(self, message, source_label=None):
        super().__init__(message)
        self.source_label = source_label


class UnreadableFileError(ReconciliationInputError):
    """The file is not a readable workbook or CSV file."""


class FileStructureError(ReconciliationInputError):
    """The first sheet has no data rows below the header."""


class SchemaResolutionError(ReconciliationInputError):
    """The invoice or amount column could not be found in the header row."""

    def __init__(self, message, source_label=None, missing=None):
        super().__init__(message, source_label)
        self.missing = missing or []


class SourceSchema(NamedTuple):
    """Column vocabulary of one upstream export."""
    source_label: str
    invoice_candidates: Tuple[str, ...]
    amount_candidates: Tuple[str, ...]
    date_candidates: Tuple[str, ...]
    invoice_field: str = 'Invoice'
    amount_field: str = 'Amount'


ACCURATE_SCHEMA = SourceSchema(
    source_label='Accurate',
    invoice_candidates=('faktur', 'invoice', 'invoiceno', 'no', 'number'),
    amount_candidates=('total', 'amount', 'jumlah', 'grandtotal', 'price'),
    date_candidates=('tanggal', 'date', 'tgl', 'createddate', 'created'),
    invoice_field='Invoice',
    amount_field='Amount',
)

SHOPEE_SCHEMA = SourceSchema(
    source_label='Shopee',
    invoice_candidates=('orderid', 'ordernumber', 'order', 'transactionid', 'id'),
    amount_candidates=('totalamount', 'amount', 'total', 'price', 'orderamount'),
    date_candidates=('completedtime', 'date', 'orderdate', 'createdate', 'tgl'),
    invoice_field='Order ID',
    amount_field='Total Amount',
)

TIKTOK_SCHEMA = SourceSchema(
    source_label='TikTok',
    invoice_candidates=('ordernumber', 'orderid', 'order', 'transactionid', 'id', 'orderno'),
    amount_candidates=('buyerpaidamount', 'amount', 'totalamount', 'total', 'price', 'paymentamount'),
    date_candidates=('orderdate', 'paiddate', 'date', 'createddate', 'tgl', 'time'),
    invoice_field='Order Number',
    amount_field='Amount',
)

LAZADA_SCHEMA = SourceSchema(
    source_label='Lazada',
    invoice_candidates=('transactionnumber', 'transaction', 'id', 'orderid', 'ordernumber', 'transactionid'),
    amount_candidates=('amount', 'total', 'totalamount', 'price', 'orderamount', 'totalvalue'),
    date_candidates=('createdtime', 'created', 'date', 'orderdate', 'tgl'),
    invoice_field='Transaction Number',
    amount_field='Amount',
)

MARKETPLACE_SCHEMAS = {
    'shopee': SHOPEE_SCHEMA,
    'tiktok': TIKTOK_SCHEMA,
    'lazada': LAZADA_SCHEMA,
}


def get_schema(name):
    """Look up a schema by platform key or label, case-insensitively.

    Raises:
        ValueError: If no schema has that name
    """
    key = str(name).strip().lower()
    if key == ACCURATE_SCHEMA.source_label.lower():
        return ACCURATE_SCHEMA
    if key in MARKETPLACE_SCHEMAS:
        return MARKETPLACE_SCHEMAS[key]
    expected = ['accurate'] + list(MARKETPLACE_SCHEMAS)
    raise ValueError(f"Unknown source: {name}. Expected one of: {expected}")


def _is_missing(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value):
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def normalize_header(header):
    """Reduce a header cell to lowercase letters and digits for comparison.

    'Order ID' -> 'orderid', 'Total (Rp)' -> 'totalrp', 'created_time' -> 'createdtime'
    """
    if _is_missing(header):
        return ''
    text = str(header).lower().strip()
    text = re.sub(r'[\s\-_()]', '', text)
    return re.sub(r'[^a-z0-9]', '', text)


def normalize_invoice(value):
    """Trim and uppercase an invoice/order identifier; missing -> ''."""
    if _is_missing(value):
        return ''
    if _is_number(value):
        if value == 0:
            return ''
        if isinstance(value, float) and value.is_integer():
            value = int(value)
    return str(value).strip().upper()


def parse_numeric_value(value):
    """Parse an amount cell that may use either US or EU separators.

    The last '.' or ',' in the text is the decimal point; any separator
    before it is a thousands grouping. Numbers pass through unchanged and
    anything unreadable is 0.

    >>> parse_numeric_value('1.234,56')
    1234.56
    >>> parse_numeric_value('$1,234.56')
    1234.56
    >>> parse_numeric_value('n/a')
    0
    """
    if _is_missing(value):
        return 0
    if _is_number(value):
        return value

    text = str(value).strip()
    text = _CURRENCY_PATTERN.sub('', text)
    text = re.sub(r'\s', '', text)

    last_separator = max(text.rfind(','), text.rfind('.'))
    if last_separator >= 0:
        before = text[:last_separator]
        after = text[last_separator + 1:]
        before = re.sub(r'[.,]', '', before)
        text = before + '.' + after

    match = _LEADING_NUMBER.match(text)
    if not match:
        return 0
    return float(match.group(0))


def parse_date(value):
    """Convert a date cell to YYYY-MM-DD.

    Numbers are spreadsheet serials counted from 1899-12-30. Date and
    datetime cells are formatted directly and strings with a date part go
    through pandas' date parser. Returns None for empty or unreadable values,
    including a time of day on its own.
    """
    if _is_missing(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, time):
        return None
    if _is_number(value):
        if value == 0:
            return None
        try:
            return (SPREADSHEET_EPOCH + timedelta(days=float(value))).strftime('%Y-%m-%d')
        except (OverflowError, ValueError):
            return None

    text = str(value).strip()
    if not _DATE_PART.search(text):
        return None
    parsed = pd.to_datetime(text, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.strftime('%Y-%m-%d')


def find_column_by_names(headers, candidate_names):
    """Find the first header, scanning left to right, matching any candidate.

    Candidate order does not matter: when several headers are acceptable the
    leftmost one wins.

    Returns:
        dict or None: {'index', 'header', 'normalized'} for the winning column
    """
    normalized_candidates = {normalize_header(name) for name in candidate_names}
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        if normalized in normalized_candidates:
            return {'index': index, 'header': header, 'normalized': normalized}
    return None


def _source_name(file):
    if isinstance(file, (str, os.PathLike)):
        return os.path.basename(os.fspath(file))
    name = getattr(file, 'name', None)
    if isinstance(name, str):
        return os.path.basename(name)
    return 'upload'


def _csv_rows(text_file):
    """Read CSV rows, skipping blank ones and padding the rest to the widest row."""
    rows = [row for row in csv.reader(text_file) if any(cell.strip() for cell in row)]
    width = max((len(row) for row in rows), default=0)
    return [row + [''] * (width - len(row)) for row in rows]


def _read_csv(file, file_name):
    try:
        if not isinstance(file, (str, os.PathLike)):
            if isinstance(file, io.TextIOBase):
                return _csv_rows(file)
            text_file = io.TextIOWrapper(file, encoding=CSV_ENCODINGS[0], newline='')
            try:
                return _csv_rows(text_file)
            finally:
                text_file.detach()

        for encoding in CSV_ENCODINGS:
            try:
                with open(file, encoding=encoding, newline='') as f:
                    rows = _csv_rows(f)
                logger.debug(f"Read {file_name} with encoding: {encoding}")
                return rows
            except UnicodeDecodeError:
                continue
    except (csv.Error, UnicodeDecodeError) as e:
        raise UnreadableFileError(f"Could not parse {file_name}: {str(e)}") from e
    raise UnreadableFileError(f"Could not read CSV file {file_name} with any supported encoding")


def _frame_to_rows(df):
    if df.empty:
        return []
    df = df.astype(object).where(pd.notna(df), '')
    return df.values.tolist()


def read_first_sheet(file):
    """Read the first sheet of a workbook (or a CSV file) as raw rows.

    Args:
        file (str, pathlib.Path or binary file object): Export to read

    Returns:
        tuple: (rows, sheet_count, file_name) where rows is a list of lists,
        header row first, with empty cells as ''

    Raises:
        FileNotFoundError: If a path does not exist
        UnreadableFileError: If the path is a directory or the file cannot be parsed
    """
    file_name = _source_name(file)
    if isinstance(file, (str, os.PathLike)):
        if not os.path.exists(file):
            raise FileNotFoundError(f"File not found: {file}")
        if os.path.isdir(file):
            raise UnreadableFileError(f"Path is a directory: {file}")

    _, ext = os.path.splitext(file_name)
    logger.debug(f"Reading file: {file_name}")

    if ext.lower() == '.csv':
        return _read_csv(file, file_name), 1, file_name

    try:
        with pd.ExcelFile(file) as workbook:
            sheet_count = len(workbook.sheet_names)
            if not sheet_count:
                return [], 0, file_name
            df = pd.read_excel(workbook, sheet_name=workbook.sheet_names[0], header=None, dtype=object)
    except (ValueError, zipfile.BadZipFile, InvalidFileException) as e:
        raise UnreadableFileError(f"Could not parse {file_name}: {str(e)}") from e

    return _frame_to_rows(df), sheet_count, file_name


def _cell(row, index):
    if index < len(row):
        return row[index]
    return ''


def load_rows(rows, schema, file_name=None, sheet_count=1, reporter=None):
    """Turn raw sheet rows into validated records for one source.

    Args:
        rows (list): Header row followed by data rows
        schema (SourceSchema): Column vocabulary of the source
        file_name (str, optional): Name reported in metadata
        sheet_count (int): Number of sheets in the workbook
        reporter (callable, optional): Event reporter, defaults to logging

    Returns:
        dict: {'source_label', 'records', 'metadata', 'header_mapping'}

    Raises:
        FileStructureError: If there is no data row below the header
        SchemaResolutionError: If the invoice or amount column is missing
    """
    reporter = reporter or log_reporter
    label = schema.source_label

    if len(rows) < 2:
        raise FileStructureError(
            f"{label} file must contain at least headers and one data row",
            source_label=label,
        )

    headers = list(rows[0])
    invoice_col = find_column_by_names(headers, schema.invoice_candidates)
    amount_col = find_column_by_names(headers, schema.amount_candidates)
    date_col = find_column_by_names(headers, schema.date_candidates)

    if invoice_col is None or amount_col is None:
        missing = []
        if invoice_col is None:
            missing.append(schema.invoice_field)
        if amount_col is None:
            missing.append(schema.amount_field)
        raise SchemaResolutionError(
            f"Could not find {schema.invoice_field} and {schema.amount_field} columns in {label} file",
            source_label=label,
            missing=missing,
        )

    records = []
    invalid_count = 0
    invalid_sample = []

    # Row numbers are spreadsheet rows: the header is row 1.
    for row_number, row in enumerate(rows[1:], start=2):
        invoice = normalize_invoice(_cell(row, invoice_col['index']))
        amount = parse_numeric_value(_cell(row, amount_col['index']))
        row_date = parse_date(_cell(row, date_col['index'])) if date_col else None

        if not invoice or amount <= 0:
            invalid_count += 1
            if len(invalid_sample) < INVALID_ROW_SAMPLE_SIZE:
                invalid_sample.append({'index': row_number, 'data': list(row)})
            continue

        records.append({
            'invoice_number': invoice,
            'amount': amount,
            'date': row_date,
            'raw_row': list(row),
        })

    header_mapping = {
        'invoice': invoice_col['header'],
        'amount': amount_col['header'],
        'date': date_col['header'] if date_col else 'not found',
    }
    metadata = {
        'file_name': file_name,
        'sheet_count': sheet_count,
        'total_rows': len(rows) - 1,
        'valid_rows': len(records),
        'invalid_rows': invalid_count,
    }

    reporter(
        'rows_parsed',
        source_label=label,
        file_name=file_name,
        valid_rows=len(records),
        total_rows=metadata['total_rows'],
        header_mapping=header_mapping,
    )
    if invalid_count:
        reporter(
            'invalid_rows',
            source_label=label,
            file_name=file_name,
            count=invalid_count,
            sample=invalid_sample,
        )

    return {
        'source_label': label,
        'records': records,
        'metadata': metadata,
        'header_mapping': header_mapping,
    }


def load_source(file, schema, reporter=None):
    """Read an export file and load it with the given schema."""
    rows, sheet_count, file_name = read_first_sheet(file)
    return load_rows(rows, schema, file_name=file_name, sheet_count=sheet_count, reporter=reporter)


def load_accurate(file, reporter=None):
    return load_source(file, ACCURATE_SCHEMA, reporter=reporter)


def load_shopee(file, reporter=None):
    return load_source(file, SHOPEE_SCHEMA, reporter=reporter)


def load_tiktok(file, reporter=None):
    return load_source(file, TIKTOK_SCHEMA, reporter=reporter)


def load_lazada(file, reporter=None):
    return load_source(file, LAZADA_SCHEMA, reporter=reporter)
