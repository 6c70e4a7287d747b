"""
Import service - reconcile spreadsheet product rows against the catalog.

Flow:
    workbook -> parse_product_sheet (pandas) -> validated ProductRow list
             -> run_import -> BatchExecutor -> ImportReconciler (one session per row)
             -> ImportSummary
"""
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from dealerdesk.exceptions import RowFailure, ValidationError
from dealerdesk.models import Unit
from dealerdesk.services.batch_service import (
    BatchExecutor, ImportChange, ImportProgress, ImportSummary, RowOutcome, RowResult
)
from dealerdesk.services.catalog_store import CatalogStore, SqlCatalogStore, to_money

logger = logging.getLogger(__name__)

CODE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500

# Spreadsheet header -> ProductRow field
SHEET_COLUMNS = {
    'Item No.': 'code',
    'Item Description': 'description',
    'Total': 'stock',
    'SPDLR': 'dealer_price',
    'RE': 'retail_price',
}


@dataclass(frozen=True)
class ProductRow:
    """One validated import row."""
    code: str
    description: str
    stock: int
    dealer_price: Decimal
    retail_price: Decimal


@dataclass
class ParsedSheet:
    rows: List[ProductRow]
    invalid_count: int = 0

    @property
    def total(self) -> int:
        return len(self.rows) + self.invalid_count


def validate_product_fields(code, description, retail_price, dealer_price, stock) -> ProductRow:
    """
    Validate and normalize product fields.

    Raises:
        ValidationError: listing every violated rule
    """
    errors = []

    code = str(code or '').strip()
    description = str(description or '').strip()

    if not code:
        errors.append('Product code is required')
    elif len(code) > CODE_MAX_LENGTH:
        errors.append(f'Product code must be less than {CODE_MAX_LENGTH} characters')

    if not description:
        errors.append('Description is required')
    elif len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f'Description must be less than {DESCRIPTION_MAX_LENGTH} characters')

    prices = {}
    for label, value in (('Retail price', retail_price), ('Dealer price', dealer_price)):
        try:
            price = Decimal(str(value))
            if not price.is_finite():
                raise InvalidOperation
        except (InvalidOperation, ValueError, TypeError):
            errors.append(f'{label} must be a number')
            continue
        if price < 0:
            errors.append(f'{label} cannot be negative')
        prices[label] = price

    quantity = None
    if isinstance(stock, bool) or stock is None:
        errors.append('Stock must be a whole number')
    else:
        try:
            as_decimal = Decimal(str(stock))
            if as_decimal != as_decimal.to_integral_value():
                errors.append('Stock must be a whole number')
            elif as_decimal < 0:
                errors.append('Stock cannot be negative')
            else:
                quantity = int(as_decimal)
        except (InvalidOperation, ValueError):
            errors.append('Stock must be a whole number')

    if errors:
        raise ValidationError(errors)

    return ProductRow(
        code=code,
        description=description,
        stock=quantity,
        dealer_price=prices['Dealer price'],
        retail_price=prices['Retail price'],
    )


def _clean_number(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    return str(value).replace(',', '').strip()


def _parse_int(value) -> int:
    """Leading integer of a cell ('1,204' -> 1204, '12.7' -> 12); 0 when unparseable."""
    match = re.match(r'^[+-]?\d+', _clean_number(value))
    return int(match.group(0)) if match else 0


def _parse_float(value) -> Decimal:
    """Leading decimal number of a cell; 0 when unparseable."""
    match = re.match(r'^[+-]?(\d+(\.\d*)?|\.\d+)', _clean_number(value))
    return Decimal(match.group(0)) if match else Decimal('0')


def _cell_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    return str(value).strip()


def parse_product_records(records: Iterable[Dict[str, Any]]) -> ParsedSheet:
    """Map raw sheet records onto ProductRow, dropping and counting invalid rows."""
    parsed = ParsedSheet(rows=[])

    for record in records:
        fields = {field: record.get(header) for header, field in SHEET_COLUMNS.items()}
        try:
            row = validate_product_fields(
                code=_cell_text(fields['code']),
                description=_cell_text(fields['description']),
                retail_price=_parse_float(fields['retail_price']),
                dealer_price=_parse_float(fields['dealer_price']),
                stock=_parse_int(fields['stock']),
            )
        except ValidationError as e:
            logger.debug(f"Invalid product row {record!r}: {e.message}")
            parsed.invalid_count += 1
            continue
        parsed.rows.append(row)

    return parsed


def parse_product_sheet(source) -> ParsedSheet:
    """
    Read the first worksheet of an Excel workbook.

    Args:
        source: path or binary file-like object (e.g. an uploaded file stream)

    Expected columns: Item No., Item Description, Total, SPDLR, RE
    """
    try:
        df = pd.read_excel(source, sheet_name=0, dtype=str)
    except Exception as e:
        raise ValidationError(f'Could not read workbook: {e}')

    df.columns = [str(col).strip() for col in df.columns]
    df = df.where(pd.notna(df), None)
    return parse_product_records(df.to_dict(orient='records'))


def get_or_create_unit(session: Session, name: str = 'PCS') -> Unit:
    """Get the named unit of measure, creating it on first use."""
    unit = session.query(Unit).filter(Unit.name == name).first()
    if not unit:
        unit = Unit(name=name)
        session.add(unit)
        session.flush()
    return unit


class ImportReconciler:
    """
    Decide and apply the catalog writes for one import row.

    - absent code: insert product, pricing and stock -> NEW
    - present code: description/unit always refreshed; pricing upserted when
      either price differs or pricing is missing -> PRICE_UPDATED; stock at
      ``location`` upserted when different or missing -> STOCK_UPDATED
    - otherwise NO_CHANGE
    """

    def __init__(self, store: CatalogStore, unit_id: int, location: str = 'TRU'):
        self.store = store
        self.unit_id = unit_id
        self.location = location

    def reconcile(self, row: ProductRow) -> RowResult:
        try:
            return RowOutcome(code=row.code, changes=self._apply(row))
        except Exception as e:
            logger.warning(f"Import row '{row.code}' failed: {e}")
            return RowFailure(code=row.code, error=e)

    def _apply(self, row: ProductRow) -> frozenset:
        existing = self.store.find_product_by_code(row.code)

        if existing is None:
            product_id = self.store.insert_product(row.code, row.description, self.unit_id)
            self.store.upsert_pricing(product_id, row.retail_price, row.dealer_price)
            self.store.upsert_stock(product_id, self.location, row.stock)
            return frozenset({ImportChange.NEW})

        changes = set()
        self.store.update_product(existing.id, row.description, self.unit_id)

        pricing = existing.pricing
        if (pricing is None
                or pricing.retail_price != to_money(row.retail_price)
                or pricing.dealer_price != to_money(row.dealer_price)):
            self.store.upsert_pricing(existing.id, row.retail_price, row.dealer_price)
            changes.add(ImportChange.PRICE_UPDATED)

        if existing.stock_quantity is None or existing.stock_quantity != row.stock:
            self.store.upsert_stock(existing.id, self.location, row.stock)
            changes.add(ImportChange.STOCK_UPDATED)

        return frozenset(changes)


def make_row_worker(session_factory: Callable[[], Session], unit_id: int, location: str = 'TRU'):
    """Build a BatchExecutor worker that reconciles each row in its own transaction."""

    def worker(row: ProductRow) -> RowResult:
        session = session_factory()
        try:
            result = ImportReconciler(SqlCatalogStore(session, location), unit_id, location).reconcile(row)
            if result.ok:
                session.commit()
            else:
                session.rollback()
            return result
        except Exception as e:
            session.rollback()
            return RowFailure(code=row.code, error=e)
        finally:
            session.close()

    return worker


def run_import(
    session_factory: Callable[[], Session],
    rows: Iterable[ProductRow],
    *,
    unit_id: int,
    location: str = 'TRU',
    batch_size: int = 50,
    max_workers: Optional[int] = None,
    on_progress: Optional[Callable[[ImportProgress], None]] = None,
    cancel_event=None,
) -> ImportSummary:
    """Reconcile ``rows`` against the catalog in sequential, concurrent chunks."""
    rows = list(rows)
    logger.info(f"Importing {len(rows)} products in batches of {batch_size}")

    executor = BatchExecutor(
        make_row_worker(session_factory, unit_id, location),
        chunk_size=batch_size,
        max_workers=max_workers,
    )
    summary = executor.run(rows, on_progress=on_progress, cancel_event=cancel_event)

    logger.info(
        f"Import finished: {len(summary.new_items)} new, "
        f"{len(summary.prices_updated)} prices updated, "
        f"{len(summary.stock_updated)} stock updated, {summary.errors} errors"
    )
    return summary
