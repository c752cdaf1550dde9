"""
Structured progress events.

Loaders and the matcher report what they did through a reporter callable,
``reporter(event, **fields)``, instead of printing. The embedding application
decides where events go; by default they are written to the logging system.

Events:
- rows_parsed: source_label, file_name, valid_rows, total_rows, header_mapping
- invalid_rows: source_label, file_name, count, sample
- match_summary: source_label, source_records, accounting_records, matched,
  differences, source_only, accurate_only
"""

import logging

logger = logging.getLogger(__name__)

def log_reporter(event, **fields):
    """Default reporter: write events through the logging module."""
    if event == 'rows_parsed':
        logger.info(
            f"{fields.get('source_label')}: {fields.get('valid_rows')} valid of "
            f"{fields.get('total_rows')} rows parsed from {fields.get('file_name')}"
        )
        logger.info(f"Header mapping: {fields.get('header_mapping')}")
    elif event == 'invalid_rows':
        sample = fields.get('sample') or []
        logger.warning(
            f"{fields.get('source_label')}: {fields.get('count')} invalid rows "
            f"(showing first {len(sample)})"
        )
        for row in sample:
            logger.debug(f"  Row {row['index']}: {row['data']}")
    elif event == 'match_summary':
        label = fields.get('source_label')
        logger.info(f"Reconciliation: {label} vs Accurate")
        logger.info(
            f"{label} records: {fields.get('source_records')}, "
            f"Accurate records: {fields.get('accounting_records')}"
        )
        logger.info(
            f"Matched: {fields.get('matched')}, "
            f"Amount Differences: {fields.get('differences')}, "
            f"{label} Only: {fields.get('source_only')}, "
            f"Accurate Only: {fields.get('accurate_only')}"
        )
    else:
        logger.debug(f"{event}: {fields}")

def null_reporter(event, **fields):
    """Reporter that discards every event."""
    return None

class CollectingReporter:
    """Reporter that keeps every event in memory, in emission order."""

    def __init__(self):
        self.events = []

    def __call__(self, event, **fields):
        self.events.append((event, fields))

    def names(self):
        return [event for event, _ in self.events]

    def get(self, event):
        """Return the fields of the first event with this name, or None."""
        for name, fields in self.events:
            if name == event:
                return fields
        return None
