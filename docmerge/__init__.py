"""Mail merge: spreadsheet rows + HTML template -> one PDF or DOCX per row."""

from docmerge.generator import BatchResult, DocumentGenerator, RowResult
from docmerge.filenames import generate_safe_filename
from docmerge.pages import PAGE_DELIMITER, PageIndexError, PageModel
from docmerge.variables import extract_variables, substitute, validate_template

__all__ = [
    "BatchResult",
    "DocumentGenerator",
    "PAGE_DELIMITER",
    "PageIndexError",
    "PageModel",
    "RowResult",
    "extract_variables",
    "generate_safe_filename",
    "substitute",
    "validate_template",
]
