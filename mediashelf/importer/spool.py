"""Temporary storage for CSV files waiting to be imported."""

import os
import secrets
import shutil
import time

SPOOL_DIR = 'imports'


def new_spool_path(upload_folder: str) -> str:
    """Return a fresh ``<upload_folder>/imports/import-<ms>-<hex>.csv`` path."""
    spool_dir = os.path.join(upload_folder, SPOOL_DIR)
    os.makedirs(spool_dir, exist_ok=True)
    filename = f"import-{int(time.time() * 1000)}-{secrets.token_hex(4)}.csv"
    return os.path.join(spool_dir, filename)


def spool_upload(file_storage, upload_folder: str) -> str:
    """Save a werkzeug FileStorage into the spool and return its path."""
    path = new_spool_path(upload_folder)
    file_storage.save(path)
    return path


def spool_copy(source_path: str, upload_folder: str) -> str:
    """Copy a local file into the spool so the import can delete it freely."""
    path = new_spool_path(upload_folder)
    shutil.copyfile(source_path, path)
    return path
