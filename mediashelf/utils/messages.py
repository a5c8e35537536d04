"""
Standardized user-facing messages for the JSON API.
All messages go through Flask-Babel so responses follow the request locale.
"""

from flask_babel import lazy_gettext as _

# Generic errors
ERROR_UNAUTHORIZED = _("Authentication required.")
ERROR_INVALID_INPUT = _("Invalid input provided.")

# Identifier lookup
ERROR_INVALID_ISBN = _("Invalid ISBN format. Please check the number and try again.")
ERROR_ISBN_NOT_FOUND = _("No data found for this ISBN. Please check the number and try again.")
ERROR_LCCN_NOT_FOUND = _("No data found for this LCCN.")
ERROR_LOOKUP_FAILED = _("Error during search. Please try again.")

# CSV import
IMPORT_COMPLETED = _("Import completed: %(imported)s items imported, %(skipped)s skipped.")
ERROR_IMPORT_NO_FILE = _("No CSV file provided.")
ERROR_IMPORT_CSV_ONLY = _("Only CSV files are allowed!")
ERROR_IMPORT_FILE_TOO_LARGE = _("File size must be less than %(size)s MB.")
ERROR_IMPORT_PARSE_FAILED = _("Failed to parse CSV file.")
ERROR_IMPORT_FAILED = _("Import failed. Please try again.")
