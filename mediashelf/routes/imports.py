from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user

from mediashelf import db
from mediashelf.forms import CsvImportForm
from mediashelf.importer.orchestrator import ImportOrchestrator
from mediashelf.importer.spool import spool_upload
from mediashelf.services.errors import BatchParseFailed
from mediashelf.services.registry import get_services
from mediashelf.utils.messages import (
    ERROR_INVALID_INPUT, ERROR_IMPORT_PARSE_FAILED, ERROR_IMPORT_FAILED, IMPORT_COMPLETED
)

bp = Blueprint("imports", __name__, url_prefix="/api/v1/import")


@bp.route("/csv", methods=["POST"])
@login_required
def import_csv():
    """
    Import a library export (multipart field ``file``).

    Returns counts of imported physical and digital items, skipped rows and
    per-row error messages. The uploaded file is removed in every case.
    """
    form = CsvImportForm()
    if not form.validate_on_submit():
        details = {name: [str(message) for message in messages]
                   for name, messages in form.errors.items()}
        current_app.logger.info(f"CSV import rejected: {details}")
        return jsonify({"success": False, "error": str(ERROR_INVALID_INPUT), "details": details}), 400

    user = current_user._get_current_object()
    orchestrator = ImportOrchestrator(
        get_services().covers,
        max_rows=current_app.config.get("IMPORT_MAX_ROWS"),
    )

    try:
        csv_path = spool_upload(form.file.data, current_app.config["UPLOAD_FOLDER"])
        current_app.logger.info(f"CSV import started by {user.username}: {form.file.data.filename}")
        outcome = orchestrator.run(user, csv_path)
    except BatchParseFailed as e:
        current_app.logger.warning(f"CSV import parse failure: {e}")
        return jsonify({
            "success": False,
            "error": str(ERROR_IMPORT_PARSE_FAILED),
            "details": str(e),
        }), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"CSV import error: {e}")
        return jsonify({"success": False, "error": str(ERROR_IMPORT_FAILED)}), 500

    response = {
        "success": True,
        "message": str(IMPORT_COMPLETED % {"imported": outcome.imported, "skipped": outcome.skipped}),
    }
    response.update(outcome.to_dict())
    return jsonify(response)
