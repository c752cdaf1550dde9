"""
Marketplace / Accurate Reconciliation

Pairs the orders of one marketplace export (Shopee, TikTok or Lazada) with
the invoices of an Accurate accounting export by invoice number and
classifies every record:

- Match: both sides present, amounts within 0.01
- Amount Difference: both sides present, amounts differ by 0.01 or more
- <Marketplace> Only: order without an accounting invoice
- Accurate Only: accounting invoice without an order

Result format (one dict per record):
- invoice_number: Normalized invoice/order identifier
- marketplace_amount / accurate_amount: Amount, or '-' when that side is absent
- difference: Absolute difference, or '-' for one-sided records
- status: One of the four classifications above
- marketplace_date / accurate_date: YYYY-MM-DD or None
- marketplace: Marketplace label
- details: Raw rows ('marketplace_row' and/or 'accurate_row')

Results are ordered Amount Difference, Match, <Marketplace> Only,
Accurate Only; within each group records keep the order they were found in.
"""

import pandas as pd
import os
import sys
import csv
import logging
import argparse
import numbers
from datetime import date

from marketrecon.events import log_reporter
from marketrecon.parsers import (
    ReconciliationInputError,
    MARKETPLACE_SCHEMAS,
    get_schema,
    load_source,
    load_accurate,
)
from marketrecon.utils import setup_logging, ensure_directory, resolve_output_file

logger = logging.getLogger(__name__)

MATCH_TOLERANCE = 0.01

STATUS_MATCH = 'Match'
STATUS_AMOUNT_DIFFERENCE = 'Amount Difference'
STATUS_ACCURATE_ONLY = 'Accurate Only'

# Placeholder for the amount/difference of a side that has no record
MISSING = '-'

def source_only_status(source_label):
    return f"{source_label} Only"

def _paired_result(source_record, accounting_record, source_label):
    difference = abs(source_record['amount'] - accounting_record['amount'])
    return {
        'invoice_number': source_record['invoice_number'],
        'marketplace_amount': source_record['amount'],
        'accurate_amount': accounting_record['amount'],
        'difference': difference,
        'status': STATUS_MATCH if difference < MATCH_TOLERANCE else STATUS_AMOUNT_DIFFERENCE,
        'marketplace_date': source_record['date'],
        'accurate_date': accounting_record['date'],
        'marketplace': source_label,
        'details': {
            'marketplace_row': source_record['raw_row'],
            'accurate_row': accounting_record['raw_row'],
        },
    }

def _source_only_result(source_record, source_label):
    return {
        'invoice_number': source_record['invoice_number'],
        'marketplace_amount': source_record['amount'],
        'accurate_amount': MISSING,
        'difference': MISSING,
        'status': source_only_status(source_label),
        'marketplace_date': source_record['date'],
        'accurate_date': None,
        'marketplace': source_label,
        'details': {
            'marketplace_row': source_record['raw_row'],
        },
    }

def _accurate_only_result(accounting_record, source_label):
    return {
        'invoice_number': accounting_record['invoice_number'],
        'marketplace_amount': MISSING,
        'accurate_amount': accounting_record['amount'],
        'difference': MISSING,
        'status': STATUS_ACCURATE_ONLY,
        'marketplace_date': None,
        'accurate_date': accounting_record['date'],
        'marketplace': source_label,
        'details': {
            'accurate_row': accounting_record['raw_row'],
        },
    }

def reconcile_records(source_records, accounting_records, source_label, reporter=None):
    """Reconcile marketplace records against accounting records.

    Each marketplace record, in order, takes the first accounting record with
    the same invoice number unless that invoice number has already been
    paired. Once an invoice number is paired it is consumed: later
    marketplace records with that number become '<label> Only', and further
    accounting records with that number are not reported. Pairing is
    therefore order dependent, not closest-amount.

    Args:
        source_records (list): Marketplace records from a loader
        accounting_records (list): Accurate records from a loader
        source_label (str): Marketplace label used in statuses
        reporter (callable, optional): Event reporter, defaults to logging

    Returns:
        list: Result dicts ordered by status group
    """
    reporter = reporter or log_reporter

    # First accounting record per invoice; later duplicates can never be
    # selected because the invoice is consumed as soon as the first is paired.
    first_by_invoice = {}
    for record in accounting_records:
        first_by_invoice.setdefault(record['invoice_number'], record)

    consumed = set()
    differences = []
    matches = []
    source_only = []

    for record in source_records:
        invoice = record['invoice_number']
        counterpart = None if invoice in consumed else first_by_invoice.get(invoice)

        if counterpart is None:
            source_only.append(_source_only_result(record, source_label))
            continue

        consumed.add(invoice)
        result = _paired_result(record, counterpart, source_label)
        if result['status'] == STATUS_MATCH:
            matches.append(result)
        else:
            differences.append(result)

    accurate_only = [
        _accurate_only_result(record, source_label)
        for record in accounting_records
        if record['invoice_number'] not in consumed
    ]

    reporter(
        'match_summary',
        source_label=source_label,
        source_records=len(source_records),
        accounting_records=len(accounting_records),
        matched=len(matches),
        differences=len(differences),
        source_only=len(source_only),
        accurate_only=len(accurate_only),
    )

    return differences + matches + source_only + accurate_only

def _is_amount(value):
    return isinstance(value, numbers.Number) and not isinstance(value, bool)

def summarize_results(results, source_label):
    """Count results per status and total the amounts on each side.

    Returns:
        dict: Counts (total, matched, differences, source_only, accurate_only),
        match_rate in percent and the money totals
    """
    only_status = source_only_status(source_label)
    total = len(results)
    matched = sum(1 for r in results if r['status'] == STATUS_MATCH)

    summary = {
        'total': total,
        'matched': matched,
        'differences': sum(1 for r in results if r['status'] == STATUS_AMOUNT_DIFFERENCE),
        'source_only': sum(1 for r in results if r['status'] == only_status),
        'accurate_only': sum(1 for r in results if r['status'] == STATUS_ACCURATE_ONLY),
        'match_rate': round(matched / total * 100, 1) if total else 0,
        'total_difference': sum(abs(r['difference']) for r in results if _is_amount(r['difference'])),
        'total_source': sum(r['marketplace_amount'] for r in results if _is_amount(r['marketplace_amount'])),
        'total_accurate': sum(r['accurate_amount'] for r in results if _is_amount(r['accurate_amount'])),
        'total_mismatch': sum(
            abs(r['difference']) for r in results
            if r['status'] == STATUS_AMOUNT_DIFFERENCE and _is_amount(r['difference'])
        ),
    }
    summary['net_difference'] = summary['total_source'] - summary['total_accurate']
    return summary

def _amount_text(value):
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

def filter_results(results, status=None, search=None):
    """Filter results by status and a search term, keeping their order.

    The search term is matched case-insensitively against the invoice
    number and against both amounts as text. status None or 'all' keeps
    every status.
    """
    term = (search or '').strip().lower()
    filtered = []
    for result in results:
        if status not in (None, 'all') and result['status'] != status:
            continue
        if term:
            haystack = [
                result['invoice_number'].lower(),
                _amount_text(result['marketplace_amount']),
                _amount_text(result['accurate_amount']),
            ]
            if not any(term in text for text in haystack):
                continue
        filtered.append(result)
    return filtered

def export_columns(source_label):
    return ['Invoice Number', f'{source_label} Amount', 'Accurate Amount', 'Difference', 'Status']

def results_to_dataframe(results, source_label):
    """Build the export table; one-sided amounts become empty cells."""
    columns = export_columns(source_label)
    rows = []
    for result in results:
        rows.append([
            result['invoice_number'],
            '' if result['marketplace_amount'] == MISSING else result['marketplace_amount'],
            '' if result['accurate_amount'] == MISSING else result['accurate_amount'],
            '' if result['difference'] == MISSING else result['difference'],
            result['status'],
        ])
    return pd.DataFrame(rows, columns=columns)

def save_reconciliation_results(results, source_label, output_path, file_format='xlsx'):
    """Save reconciliation results to an Excel or CSV file.

    Args:
        results (list): Result dicts from reconcile_records
        source_label (str): Marketplace label
        output_path (str or pathlib.Path): File path, or directory for a
            dated default file name
        file_format (str): 'xlsx' or 'csv', used for the default file name

    Returns:
        pathlib.Path: The file that was written
    """
    if file_format not in ('xlsx', 'csv'):
        raise ValueError(f"Unsupported export format: {file_format}")

    default_name = f"{source_label}_Reconciliation_{date.today().isoformat()}.{file_format}"
    output_path = resolve_output_file(output_path, default_name)
    result = results_to_dataframe(results, source_label)

    logger.debug(f"Writing {len(result)} results to {output_path}")
    if output_path.suffix.lower() == '.xlsx':
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            result.to_excel(writer, sheet_name='Reconciliation', index=False)
    else:
        result.to_csv(output_path, index=False, quoting=csv.QUOTE_NONNUMERIC)
    return output_path

def format_report_summary(summary, source_label):
    """Format a summary dict from summarize_results as text."""
    lines = [
        f"Total Invoices: {summary['total']}",
        f"Match: {summary['matched']} ({summary['match_rate']}%)",
        f"Amount Difference: {summary['differences']}",
        f"{source_label} Only: {summary['source_only']}",
        f"Accurate Only: {summary['accurate_only']}",
        f"Total {source_label}: {summary['total_source']:,.2f}",
        f"Total Accurate: {summary['total_accurate']:,.2f}",
        f"Total Mismatch: {summary['total_mismatch']:,.2f}",
        f"Net Difference: {summary['net_difference']:,.2f}",
    ]
    return "\n".join(lines)

def generate_reconciliation_report(results, source_label, output_path):
    """Write the text summary of a reconciliation run.

    Returns:
        pathlib.Path: The report file
    """
    summary = summarize_results(results, source_label)
    report = format_report_summary(summary, source_label)
    if not results:
        report += "\n\nNo reconciliation data generated"

    output_path = resolve_output_file(output_path, "reconciliation_report.txt")
    logger.debug(f"Writing reconciliation report to {output_path}")
    with open(output_path, 'w') as f:
        f.write(report)
    return output_path

def run_reconciliation(marketplace_file, accurate_file, platform, reporter=None):
    """Load both exports and reconcile them.

    Args:
        marketplace_file: Marketplace export (path or file object)
        accurate_file: Accurate export (path or file object)
        platform (str): 'shopee', 'tiktok' or 'lazada'
        reporter (callable, optional): Event reporter, defaults to logging

    Returns:
        dict: results, summary and the ingestion metadata of both files
    """
    key = str(platform).strip().lower()
    if key not in MARKETPLACE_SCHEMAS:
        raise ValueError(f"Unknown platform: {platform}. Expected one of: {list(MARKETPLACE_SCHEMAS)}")
    schema = get_schema(key)

    marketplace = load_source(marketplace_file, schema, reporter=reporter)
    accurate = load_accurate(accurate_file, reporter=reporter)

    results = reconcile_records(
        marketplace['records'],
        accurate['records'],
        schema.source_label,
        reporter=reporter,
    )
    return {
        'results': results,
        'summary': summarize_results(results, schema.source_label),
        'marketplace_metadata': marketplace['metadata'],
        'accurate_metadata': accurate['metadata'],
    }

def main(argv=None):
    """Command line entry point. Returns the process exit status."""
    parser = argparse.ArgumentParser(description='Reconcile a marketplace export against Accurate')
    parser.add_argument('--platform', required=True, choices=sorted(MARKETPLACE_SCHEMAS),
                        help='Marketplace the export comes from')
    parser.add_argument('--marketplace', required=True,
                        help='Path to the marketplace export')
    parser.add_argument('--accurate', required=True,
                        help='Path to the Accurate export')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (default: DATA_DIR/output)')
    parser.add_argument('--format', dest='file_format', choices=['xlsx', 'csv'], default='xlsx',
                        help='Export file format')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug)
    logger.info(f"Starting reconciliation for {args.platform}")

    try:
        run = run_reconciliation(args.marketplace, args.accurate, args.platform)
    except (ReconciliationInputError, FileNotFoundError) as e:
        logger.error(f"Error during reconciliation: {str(e)}")
        return 1
    except Exception as e:
        logger.error(f"Error during reconciliation: {str(e)}")
        raise

    label = get_schema(args.platform).source_label
    if not run['results']:
        logger.warning("No reconciliation data generated. Please check your files.")

    if args.output:
        output_dir = args.output
        os.makedirs(output_dir, exist_ok=True)
    else:
        output_dir = ensure_directory('output')
    export_path = save_reconciliation_results(run['results'], label, output_dir, file_format=args.file_format)
    report_path = generate_reconciliation_report(run['results'], label, output_dir)

    logger.info(f"Results written to {export_path}")
    logger.info(f"Report written to {report_path}")
    logger.info("\n" + format_report_summary(run['summary'], label))
    return 0

if __name__ == '__main__':
    sys.exit(main())
