"""
Name normalization rules shared by the submission form and provisioning.
"""
import re
import secrets

from accredit.core.config import settings

_WORD_START = re.compile(r"(^|\s)(\S)")


def normalize_person_name(name: str) -> str:
    """President, adviser and officer names are stored upper-cased."""
    return name.strip().upper()


def normalize_org_name(name: str) -> str:
    """Lower-case the name, then capitalize the first letter of each word.

    Only characters following whitespace are capitalized, so
    ``"computer SCIENCE-society"`` becomes ``"Computer Science-society"``.
    """
    lowered = name.strip().lower()
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), lowered)


def normalize_code(code: str) -> str:
    """Organization codes are stored upper-cased; ``css`` and ``CSS`` are the same code."""
    return code.strip().upper()


def council_code(college_code: str) -> str:
    """Canonical council code for a college."""
    return f"{college_code}-SC"


def council_name(college_name: str) -> str:
    """Canonical council name for a college."""
    return f"{college_name} Student Council"


def generate_username(person_name: str) -> str:
    """``Juan Dela Cruz`` -> ``juan.dela.cruz_1a2b``."""
    base = person_name.strip().lower().replace(" ", ".")
    return f"{base}_{secrets.token_hex(settings.USERNAME_SUFFIX_BYTES)}"
