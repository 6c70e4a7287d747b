"""
Unit tests for spreadsheet parsing and product field validation.
"""

import pytest
import pandas as pd
from decimal import Decimal
from io import BytesIO
from dealerdesk.exceptions import ValidationError
from dealerdesk.services.import_service import (
    parse_product_records, parse_product_sheet, validate_product_fields
)


def record(code='A-1', description='Widget', stock='5', dealer='80', retail='100'):
    return {
        'Item No.': code,
        'Item Description': description,
        'Total': stock,
        'SPDLR': dealer,
        'RE': retail,
    }


class TestValidateProductFields:

    def test_valid_fields_are_normalized(self):
        row = validate_product_fields(' A-1 ', ' Widget ', '100.5', 80, 3)

        assert row.code == 'A-1'
        assert row.description == 'Widget'
        assert row.retail_price == Decimal('100.5')
        assert row.dealer_price == Decimal('80')
        assert row.stock == 3

    def test_zero_prices_and_stock_are_allowed(self):
        row = validate_product_fields('A-1', 'Widget', 0, 0, 0)
        assert row.stock == 0

    def test_collects_every_error(self):
        with pytest.raises(ValidationError) as exc:
            validate_product_fields('', '', 'abc', -1, 1.5)

        assert len(exc.value.errors) == 5
        assert exc.value.status_code == 422

    def test_length_limits(self):
        with pytest.raises(ValidationError):
            validate_product_fields('X' * 51, 'Widget', 1, 1, 1)
        with pytest.raises(ValidationError):
            validate_product_fields('A', 'D' * 501, 1, 1, 1)
        assert validate_product_fields('X' * 50, 'D' * 500, 1, 1, 1).code == 'X' * 50

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            validate_product_fields('A', 'Widget', 1, 1, -2)


class TestParseProductRecords:

    def test_thousands_separators_are_stripped(self):
        parsed = parse_product_records([record(stock='1,204', dealer='1,250.50', retail='2,000')])

        row, = parsed.rows
        assert row.stock == 1204
        assert row.dealer_price == Decimal('1250.50')
        assert row.retail_price == Decimal('2000')

    def test_unparseable_numbers_become_zero(self):
        parsed = parse_product_records([record(stock='n/a', dealer='', retail=None)])

        row, = parsed.rows
        assert row.stock == 0
        assert row.dealer_price == Decimal('0')
        assert row.retail_price == Decimal('0')

    def test_invalid_rows_are_dropped_and_counted(self):
        parsed = parse_product_records([
            record(code='A-1'),
            record(code=''),
            record(code='A-2', description=None),
            record(code='A-3', stock='-4'),
        ])

        assert [row.code for row in parsed.rows] == ['A-1']
        assert parsed.invalid_count == 3
        assert parsed.total == 4


class TestParseProductSheet:

    def test_reads_first_worksheet(self):
        df = pd.DataFrame([
            record(code='A-1', stock='12', dealer='80', retail='100'),
            record(code='A-2', stock='3', dealer='1,100', retail='1,400'),
            record(code='', description=''),
        ])
        buffer = BytesIO()
        df.to_excel(buffer, index=False)
        buffer.seek(0)

        parsed = parse_product_sheet(buffer)

        assert [row.code for row in parsed.rows] == ['A-1', 'A-2']
        assert parsed.rows[1].dealer_price == Decimal('1100')
        assert parsed.invalid_count == 1

    def test_unreadable_workbook(self):
        with pytest.raises(ValidationError):
            parse_product_sheet(BytesIO(b'not a workbook'))
