import os

from flask import current_app
from wtforms.validators import ValidationError

from mediashelf.utils.messages import ERROR_IMPORT_FILE_TOO_LARGE


def file_size_in_bytes(storage):
    """Return the size of an uploaded FileStorage without consuming it."""
    stream = storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


# WTForms-compatible validator (callable receiving form, field)
def validate_import_file_size(form, field):
    """Reject uploads larger than MAX_IMPORT_FILE_SIZE.

    The limit is read from config at validation time so it can differ per app.
    """
    if not field.data:
        return
    max_size = current_app.config['MAX_IMPORT_FILE_SIZE']
    if file_size_in_bytes(field.data) > max_size:
        raise ValidationError(ERROR_IMPORT_FILE_TOO_LARGE % {'size': round(max_size / (1024 * 1024), 1)})
