from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed, FileRequired

from mediashelf.utils.messages import ERROR_IMPORT_NO_FILE, ERROR_IMPORT_CSV_ONLY
from mediashelf.utils.validators import validate_import_file_size


class CsvImportForm(FlaskForm):
    """Multipart upload of a library export for the JSON import endpoint."""

    class Meta:
        # JSON API endpoint; authenticated by session, not a rendered form
        csrf = False

    file = FileField('file', validators=[
        FileRequired(ERROR_IMPORT_NO_FILE),
        FileAllowed(['csv'], ERROR_IMPORT_CSV_ONLY),
        validate_import_file_size,
    ])
