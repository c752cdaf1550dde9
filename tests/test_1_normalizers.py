import pytest
import numpy as np
import pandas as pd
from datetime import date, datetime, time
from marketrecon.parsers import (
    normalize_header,
    normalize_invoice,
    parse_numeric_value,
    parse_date,
)

class TestHeaderNormalization:
    """Test suite for header normalization"""

    def test_case_and_spacing(self):
        """Headers are lowercased with whitespace removed"""
        assert normalize_header('Order ID') == 'orderid'
        assert normalize_header('  Total Amount  ') == 'totalamount'

    def test_punctuation(self):
        """Parentheses, hyphens, underscores and other symbols are dropped"""
        assert normalize_header('Total (Rp)') == 'totalrp'
        assert normalize_header('created_time') == 'createdtime'
        assert normalize_header('Invoice-No.') == 'invoiceno'
        assert normalize_header('Grand Total #') == 'grandtotal'

    def test_non_string_headers(self):
        """Empty and non-string headers"""
        assert normalize_header(None) == ''
        assert normalize_header('') == ''
        assert normalize_header(np.nan) == ''
        assert normalize_header(2025) == '2025'

class TestInvoiceNormalization:
    """Test suite for invoice number normalization"""

    def test_trim_and_uppercase(self):
        assert normalize_invoice(' inv-001 ') == 'INV-001'
        assert normalize_invoice('2501ABCD') == '2501ABCD'

    def test_numeric_identifiers(self):
        """Spreadsheet readers hand integral ids over as numbers"""
        assert normalize_invoice(12345) == '12345'
        assert normalize_invoice(12345.0) == '12345'

    def test_missing_values(self):
        assert normalize_invoice(None) == ''
        assert normalize_invoice('') == ''
        assert normalize_invoice('   ') == ''
        assert normalize_invoice(np.nan) == ''

    def test_zero_is_empty(self):
        """A numeric zero id counts as no invoice; the text '0' is kept"""
        assert normalize_invoice(0) == ''
        assert normalize_invoice(0.0) == ''
        assert normalize_invoice('0') == '0'

class TestNumericParsing:
    """Test suite for amount parsing"""

    def test_eu_and_us_separators(self):
        """The last separator is the decimal point"""
        assert parse_numeric_value('1.234,56') == 1234.56
        assert parse_numeric_value('1,234.56') == 1234.56
        assert parse_numeric_value('1.234.567,89') == 1234567.89
        assert parse_numeric_value('1,234,567.89') == 1234567.89

    def test_single_separator_is_decimal(self):
        """A lone separator is always read as the decimal point"""
        assert parse_numeric_value('12,5') == 12.5
        assert parse_numeric_value('10.000') == 10.0
        assert parse_numeric_value('150000') == 150000.0

    def test_currency_and_whitespace(self):
        assert parse_numeric_value('$1,234.56') == 1234.56
        assert parse_numeric_value('€ 1.234,56') == 1234.56
        assert parse_numeric_value('₱ 500') == 500.0
        assert parse_numeric_value(' 1 234,50 ') == 1234.5

    def test_negative_amounts(self):
        assert parse_numeric_value('-40.00') == -40.0
        assert parse_numeric_value('-1.234,56') == -1234.56

    def test_numbers_pass_through(self):
        assert parse_numeric_value(150000) == 150000
        assert parse_numeric_value(99.95) == 99.95
        assert parse_numeric_value(np.float64(12.5)) == 12.5

    def test_leading_number_is_used(self):
        """Trailing text after the number is ignored"""
        assert parse_numeric_value('100 IDR') == 100.0
        assert parse_numeric_value('12abc') == 12.0

    def test_unreadable_amounts_are_zero(self):
        """Unparseable input is 0, never an error"""
        assert parse_numeric_value('') == 0
        assert parse_numeric_value(None) == 0
        assert parse_numeric_value(np.nan) == 0
        assert parse_numeric_value('n/a') == 0
        assert parse_numeric_value('Rp 10') == 0
        assert parse_numeric_value('(50.00)') == 0
        assert parse_numeric_value(True) == 0

class TestDateParsing:
    """Test suite for date parsing"""

    def test_spreadsheet_serials(self):
        """Numbers are day counts from 1899-12-30"""
        assert parse_date(45658) == '2025-01-01'
        assert parse_date(45000) == '2023-03-15'
        assert parse_date(1) == '1899-12-31'
        assert parse_date(60) == '1900-02-28'

    def test_serial_with_time_of_day(self):
        assert parse_date(45658.75) == '2025-01-01'

    def test_date_objects(self):
        assert parse_date(datetime(2025, 3, 17, 14, 30)) == '2025-03-17'
        assert parse_date(date(2025, 3, 17)) == '2025-03-17'
        assert parse_date(pd.Timestamp('2025-03-17')) == '2025-03-17'

    def test_date_strings(self):
        assert parse_date('2025-03-17') == '2025-03-17'
        assert parse_date('2025-03-17 12:34:56') == '2025-03-17'
        assert parse_date('03/17/2025') == '2025-03-17'
        assert parse_date(' 2025-03-17 ') == '2025-03-17'

    def test_month_names(self):
        assert parse_date('Jan 5, 2025') == '2025-01-05'
        assert parse_date('5 March 2025') == '2025-03-05'

    def test_time_of_day_is_not_a_date(self):
        """A clock time alone has no calendar date"""
        assert parse_date('10:30:00') is None
        assert parse_date('14:05') is None
        assert parse_date(time(10, 30)) is None

    def test_unreadable_dates_are_none(self):
        """Unparseable input is None, never an error"""
        assert parse_date(None) is None
        assert parse_date('') is None
        assert parse_date(0) is None
        assert parse_date(np.nan) is None
        assert parse_date('not a date') is None
        assert parse_date(1e12) is None
