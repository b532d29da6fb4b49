"""
Validation helpers for user-supplied names, search terms and descriptions.

Each validator returns ``(is_valid, error_message)``.
"""
from typing import Optional, Tuple

import bleach

MAX_FILE_NAME_LENGTH = 255
MAX_SEARCH_TERM_LENGTH = 1000
MAX_DESCRIPTION_LENGTH = 5000

INVALID_FILE_NAME_CHARS = set('/\\:*?"<>|') | {chr(c) for c in range(32)}


def is_optional_text(value) -> bool:
    """True for None or a str; JSON bodies can carry any type."""
    return value is None or isinstance(value, str)


def validate_file_name(file_name: Optional[str]) -> Tuple[bool, Optional[str]]:
    if not is_optional_text(file_name):
        return False, "File name must be a string."
    if file_name is None or not file_name.strip():
        return False, "File name cannot be empty."

    if len(file_name) > MAX_FILE_NAME_LENGTH:
        return False, f"File name exceeds maximum length of {MAX_FILE_NAME_LENGTH} characters."

    if "\0" in file_name:
        return False, "File name contains null bytes."

    if any(c in INVALID_FILE_NAME_CHARS for c in file_name):
        return False, "File name contains invalid characters."

    if ".." in file_name or file_name.startswith("."):
        return False, "File name cannot contain path traversal patterns."

    return True, None


def validate_search_term(search_term: Optional[str]) -> Tuple[bool, Optional[str]]:
    if not is_optional_text(search_term):
        return False, "Search term must be a string."
    if search_term is None or not search_term.strip():
        return True, None

    if len(search_term) > MAX_SEARCH_TERM_LENGTH:
        return False, f"Search term exceeds maximum length of {MAX_SEARCH_TERM_LENGTH} characters."

    if "\0" in search_term:
        return False, "Search term contains null bytes."

    return True, None


def validate_description(description: Optional[str]) -> Tuple[bool, Optional[str]]:
    if not is_optional_text(description):
        return False, "Description must be a string."
    if description is None or not description.strip():
        return True, None

    if len(description) > MAX_DESCRIPTION_LENGTH:
        return False, f"Description exceeds maximum length of {MAX_DESCRIPTION_LENGTH} characters."

    if "\0" in description:
        return False, "Description contains null bytes."

    return True, None


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip markup from free text before it is stored."""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True, strip_comments=True).strip()
