import pytest
import pandas as pd

from marketrecon.events import CollectingReporter

# Sample exports for each source, as column -> values
accurate_sample_data = {
    'Faktur': ['INV-001', 'INV-002', 'INV-003', 'INV-004'],
    'Tanggal': ['2025-01-05', '2025-01-06', '2025-01-07', '2025-01-08'],
    'Pelanggan': ['Shopee', 'Shopee', 'Shopee', 'Shopee'],
    'Total': ['150.000,00', '75.500,50', '20.000,00', '12.000,00'],
}

shopee_sample_data = {
    'Order ID': ['inv-001', 'INV-002', 'INV-005', ''],
    'Order Status': ['Completed', 'Completed', 'Completed', 'Cancelled'],
    'Total Amount': ['150000', '75000', '9.999,00', '5000'],
    'Completed Time': ['2025-01-05 10:15', '2025-01-06 11:00', '2025-01-09 09:30', '2025-01-09 12:00'],
}

tiktok_sample_data = {
    'Order Number': ['TT-100', 'TT-101'],
    'Buyer Paid Amount': ['Rp 10', '250.75'],
    'Paid Date': ['01/15/2025', '01/16/2025'],
}

lazada_sample_data = {
    'Transaction Number': ['LZ-1', 'LZ-2', 'LZ-3'],
    'Amount': ['1,250.00', '-40.00', '300'],
    'Created Time': ['2025-02-01', 'not a date', '2025-02-03'],
}

@pytest.fixture
def create_test_df():
    """Helper fixture to create DataFrames shaped like each export"""
    def _create_df(format_name):
        sample_data = {
            'accurate': accurate_sample_data,
            'shopee': shopee_sample_data,
            'tiktok': tiktok_sample_data,
            'lazada': lazada_sample_data,
        }
        if format_name not in sample_data:
            raise ValueError(f"Unknown format: {format_name}")
        return pd.DataFrame(sample_data[format_name])
    return _create_df

@pytest.fixture
def write_export(tmp_path):
    """Write a DataFrame to tmp_path as .xlsx or .csv and return the path"""
    def _write(df, name, extra_sheets=None):
        file_path = tmp_path / name
        if file_path.suffix == '.csv':
            df.to_csv(file_path, index=False)
        else:
            with pd.ExcelWriter(file_path, engine='openpyxl') as writer:
                df.to_excel(writer, sheet_name='Sheet1', index=False)
                for sheet_name, sheet_df in (extra_sheets or {}).items():
                    sheet_df.to_excel(writer, sheet_name=sheet_name, index=False)
        return file_path
    return _write

@pytest.fixture
def make_record():
    """Build a loader-style record"""
    def _make(invoice, amount, date=None):
        return {
            'invoice_number': invoice,
            'amount': amount,
            'date': date,
            'raw_row': [invoice, amount, date],
        }
    return _make

@pytest.fixture
def reporter():
    return CollectingReporter()
