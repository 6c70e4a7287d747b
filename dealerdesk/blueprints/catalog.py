"""Catalog blueprint - product import and maintenance (JSON)."""
from io import BytesIO

from flask import Blueprint, request, jsonify, current_app, g

from dealerdesk.blueprints.metrics import record_import_summary
from dealerdesk.database import get_session, get_session_factory
from dealerdesk.exceptions import ValidationError
from dealerdesk.middleware import require_login, require_role
from dealerdesk.models import Role
from dealerdesk.services.import_service import get_or_create_unit, parse_product_sheet, run_import
from dealerdesk.services.product_service import create_product, update_product

catalog_bp = Blueprint('catalog', __name__, url_prefix='/products')


def _allowed_file(filename: str) -> bool:
    extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    return extension in current_app.config.get('ALLOWED_IMPORT_EXTENSIONS', {'xlsx'})


def _product_to_dict(product):
    pricing = product.pricing
    return {
        'id': product.id,
        'code': product.code,
        'description': product.description,
        'retail_price': str(pricing.retail_price) if pricing else None,
        'dealer_price': str(pricing.dealer_price) if pricing else None,
        'stock': product.stock_at(current_app.config['STOCK_LOCATION']),
    }


@catalog_bp.route('/import', methods=['POST'])
@require_login
@require_role(Role.ADMIN)
def import_products():
    """
    Import an Excel workbook (columns: Item No., Item Description, Total, SPDLR, RE).

    Returns the import summary, the number of rows skipped by validation and
    the progress reported after each batch.
    """
    upload = request.files.get('file')
    if not upload or upload.filename == '':
        raise ValidationError('Please select a file')
    if not _allowed_file(upload.filename):
        raise ValidationError('Only .xlsx files can be imported')

    parsed = parse_product_sheet(BytesIO(upload.read()))
    current_app.logger.info(
        f"Import {upload.filename}: {len(parsed.rows)} valid rows, {parsed.invalid_count} skipped"
    )

    session = get_session()
    try:
        unit_id = get_or_create_unit(session, current_app.config['DEFAULT_UNIT_NAME']).id
        session.commit()
    except Exception:
        session.rollback()
        raise

    progress = []
    summary = run_import(
        get_session_factory(),
        parsed.rows,
        unit_id=unit_id,
        location=current_app.config['STOCK_LOCATION'],
        batch_size=current_app.config['IMPORT_BATCH_SIZE'],
        max_workers=current_app.config['IMPORT_MAX_WORKERS'],
        on_progress=progress.append,
    )
    record_import_summary(summary, parsed.invalid_count)

    if summary.errors:
        current_app.logger.warning(f"Import {upload.filename}: {summary.errors} products failed")

    payload = summary.to_dict()
    payload.update({
        'status': 'ok',
        'skipped': parsed.invalid_count,
        'progress': [step.to_dict() for step in progress],
    })
    return jsonify(payload)


@catalog_bp.route('', methods=['POST'])
@require_login
def add_product():
    product = create_product(
        get_session(),
        g.user_role,
        request.get_json(silent=True) or {},
        location=current_app.config['STOCK_LOCATION'],
        unit_name=current_app.config['DEFAULT_UNIT_NAME'],
    )
    return jsonify({'status': 'ok', 'product': _product_to_dict(product)}), 201


@catalog_bp.route('/<int:product_id>', methods=['PUT'])
@require_login
def edit_product(product_id: int):
    product = update_product(get_session(), g.user_role, product_id, request.get_json(silent=True) or {})
    return jsonify({'status': 'ok', 'product': _product_to_dict(product)})
