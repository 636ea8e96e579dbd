"""Field extractors for notifications, CSV statements and PDF statements."""

from .notifications import NotificationVariant, VariantTag
from .statement_csv import detect_csv_format, parse_csv
from .statement_pdf import extract_pdf_text, parse_pdf_text
from .variants import REGISTRY, select_variant

__all__ = [
    "REGISTRY",
    "NotificationVariant",
    "VariantTag",
    "detect_csv_format",
    "extract_pdf_text",
    "parse_csv",
    "parse_pdf_text",
    "select_variant",
]
