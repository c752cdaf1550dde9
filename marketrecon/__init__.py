"""
Market Recon - reconcile marketplace order exports against Accurate invoices.

This package provides functionality to:
- Read Shopee, TikTok, Lazada and Accurate spreadsheet exports (first sheet)
- Find invoice, amount and date columns from differently worded headers
- Normalize invoice numbers, locale-variant amounts and spreadsheet dates
- Pair orders with invoices and classify every record
- Summarize and export the reconciliation

Each result record carries:
- invoice_number: Normalized invoice/order identifier
- marketplace_amount / accurate_amount / difference ('-' when a side is absent)
- status: Match, Amount Difference, <Marketplace> Only or Accurate Only
- marketplace_date / accurate_date: YYYY-MM-DD or None
"""

from .parsers import (
    normalize_header,
    normalize_invoice,
    parse_numeric_value,
    parse_date,
    find_column_by_names,
    read_first_sheet,
    load_rows,
    load_source,
    load_accurate,
    load_shopee,
    load_tiktok,
    load_lazada,
    get_schema,
    SourceSchema,
    ReconciliationInputError,
    UnreadableFileError,
    FileStructureError,
    SchemaResolutionError,
)
from .reconcile import (
    reconcile_records,
    summarize_results,
    filter_results,
    results_to_dataframe,
    save_reconciliation_results,
    generate_reconciliation_report,
    run_reconciliation,
)

__all__ = [
    'normalize_header',
    'normalize_invoice',
    'parse_numeric_value',
    'parse_date',
    'find_column_by_names',
    'read_first_sheet',
    'load_rows',
    'load_source',
    'load_accurate',
    'load_shopee',
    'load_tiktok',
    'load_lazada',
    'get_schema',
    'SourceSchema',
    'ReconciliationInputError',
    'UnreadableFileError',
    'FileStructureError',
    'SchemaResolutionError',
    'reconcile_records',
    'summarize_results',
    'filter_results',
    'results_to_dataframe',
    'save_reconciliation_results',
    'generate_reconciliation_report',
    'run_reconciliation',
]
