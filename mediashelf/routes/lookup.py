from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user

from mediashelf.services.catalog import CatalogService
from mediashelf.services.errors import InvalidIdentifierFormat
from mediashelf.services.identifiers import ISBNValidator, normalize_lccn
from mediashelf.services.registry import get_services
from mediashelf.utils.messages import (
    ERROR_INVALID_ISBN, ERROR_ISBN_NOT_FOUND, ERROR_LCCN_NOT_FOUND, ERROR_LOOKUP_FAILED
)

bp = Blueprint("lookup", __name__, url_prefix="/api/v1")


def _found(metadata):
    return jsonify({"found": True, "source": metadata.source, "data": metadata.to_dict()})


def _duplicate_response(match):
    if match is None:
        return jsonify({"isDuplicate": False, "itemType": None, "item": None})
    item_type, item = match
    return jsonify({"isDuplicate": True, "itemType": item_type, "item": item.to_dict()})


@bp.route("/isbn/lookup/<isbn>", methods=["GET"])
@login_required
def lookup_isbn(isbn):
    """
    Resolve book metadata by ISBN.

    Google Books is asked first, Open Library second; results are cached.
    """
    try:
        current_app.logger.info(f"API /api/v1/isbn/lookup called with: {isbn}")
        metadata = get_services().isbn_resolver.resolve(isbn)
    except InvalidIdentifierFormat:
        return jsonify({"found": False, "error": str(ERROR_INVALID_ISBN)}), 400
    except Exception as e:
        current_app.logger.error(f"ISBN lookup error: {e}")
        return jsonify({"found": False, "error": str(ERROR_LOOKUP_FAILED)}), 500

    if metadata is None:
        return jsonify({"found": False, "error": str(ERROR_ISBN_NOT_FOUND)}), 404
    return _found(metadata)


@bp.route("/isbn/validate/<isbn>", methods=["GET"])
@login_required
def validate_isbn(isbn):
    """Checksum-validate an ISBN without any network lookup."""
    normalized = ISBNValidator.normalize(isbn)
    valid = ISBNValidator.validate(normalized)
    isbn_format = None
    if valid:
        isbn_format = "ISBN-10" if len(normalized) == 10 else "ISBN-13"
    return jsonify({"valid": valid, "isbn": normalized, "format": isbn_format})


@bp.route("/isbn/check-duplicate/<isbn>", methods=["GET"])
@login_required
def check_duplicate_isbn(isbn):
    match = CatalogService.find_by_identifier(current_user, isbn=isbn)
    return _duplicate_response(match)


@bp.route("/lccn/lookup/<lccn>", methods=["GET"])
@login_required
def lookup_lccn(lccn):
    """Resolve book metadata by Library of Congress Control Number via Open Library."""
    try:
        current_app.logger.info(f"API /api/v1/lccn/lookup called with: {lccn}")
        metadata = get_services().lccn_resolver.resolve(lccn)
    except Exception as e:
        current_app.logger.error(f"LCCN lookup error: {e}")
        return jsonify({"found": False, "error": str(ERROR_LOOKUP_FAILED)}), 500

    if metadata is None:
        return jsonify({"found": False, "error": str(ERROR_LCCN_NOT_FOUND)}), 404
    return _found(metadata)


@bp.route("/lccn/check-duplicate/<lccn>", methods=["GET"])
@login_required
def check_duplicate_lccn(lccn):
    if not normalize_lccn(lccn):
        return _duplicate_response(None)
    match = CatalogService.find_by_identifier(current_user, lccn=lccn)
    return _duplicate_response(match)
