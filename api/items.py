# api/items.py
"""
Item REST API
"""

import logging

from flask import Blueprint, abort, current_app, jsonify, request

from api.schemas import ItemRequest
from core.database_models import Item
from core.exceptions import ConstraintViolationError, TypeMismatchError

items_bp = Blueprint('items', __name__)
logger = logging.getLogger(__name__)

ITEM_NOT_FOUND = 'Item not found'
MAX_ITEM_ID = 2**63 - 1  # signed 64-bit INTEGER column


def _service():
    return current_app.item_service


def _parse_item_id(raw: str) -> int:
    """Path ids must be positive integers"""
    try:
        item_id = int(raw)
    except (TypeError, ValueError):
        raise TypeMismatchError('id', 'int')
    if item_id > MAX_ITEM_ID:
        raise TypeMismatchError('id', 'int')
    if item_id <= 0:
        raise ConstraintViolationError('id', 'must be greater than 0')
    return item_id


def _parse_item_request() -> ItemRequest:
    payload = request.get_json()
    return ItemRequest.model_validate(
        payload,
        context={'email_validator': current_app.email_validator}
    )


@items_bp.route('', methods=['GET'])
def list_items():
    """List every item"""
    items = _service().find_all()
    return jsonify([item.to_dict() for item in items])


@items_bp.route('', methods=['POST'])
def create_item():
    """Create an item from a validated request body"""
    item_request = _parse_item_request()
    item = Item(**item_request.model_dump())
    saved = _service().save(item)
    logger.info(f"Created item id={saved.id}")
    return jsonify(saved.to_dict()), 201


@items_bp.route('/process', methods=['GET'])
async def process_items():
    """Mark every item PROCESSED; responds with the items that were saved"""
    processed = await _service().process_items_async()
    return jsonify([item.to_dict() for item in processed])


@items_bp.route('/<item_id>', methods=['GET'])
def get_item(item_id):
    item = _service().find_by_id(_parse_item_id(item_id))
    if item is None:
        abort(404, description=ITEM_NOT_FOUND)
    return jsonify(item.to_dict())


@items_bp.route('/<item_id>', methods=['PUT'])
def update_item(item_id):
    """Replace an existing item's fields"""
    item_id = _parse_item_id(item_id)
    item_request = _parse_item_request()

    updated = _service().update(item_id, item_request.model_dump())
    if updated is None:
        abort(404, description=ITEM_NOT_FOUND)
    return jsonify(updated.to_dict())


@items_bp.route('/<item_id>', methods=['DELETE'])
def delete_item(item_id):
    item_id = _parse_item_id(item_id)
    if not _service().exists_by_id(item_id):
        abort(404, description=ITEM_NOT_FOUND)

    _service().delete_by_id(item_id)
    logger.info(f"Deleted item id={item_id}")
    return '', 204
