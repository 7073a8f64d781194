"""
Tests for name normalization and generated credentials.
"""
import re

from accredit.core.security import generate_otp, generate_password
from accredit.services.naming import (
    council_code, council_name, generate_username, normalize_org_name, normalize_person_name
)


class TestNameNormalization:
    """Stored-name rules."""

    def test_person_names_are_upper_cased(self):
        """President, adviser and officer names are stored upper-case."""
        assert normalize_person_name("  juan dela cruz ") == "JUAN DELA CRUZ"

    def test_org_name_capitalizes_words(self):
        """Each whitespace-separated word starts with a capital."""
        assert normalize_org_name("computer SCIENCE society") == "Computer Science Society"

    def test_org_name_only_capitalizes_after_whitespace(self):
        """Letters after hyphens are left lower-case."""
        assert normalize_org_name("computer SCIENCE-society") == "Computer Science-society"

    def test_council_identity(self):
        """Council code and name derive from the college."""
        assert council_code("CEIT") == "CEIT-SC"
        assert council_name("College of Engineering") == "College of Engineering Student Council"


class TestGeneratedCredentials:
    """Usernames, passwords and verification codes."""

    def test_username_format(self):
        """Lower-cased name with dots and a 4 hex digit suffix."""
        username = generate_username("JUAN DELA CRUZ")
        assert re.fullmatch(r"juan\.dela\.cruz_[0-9a-f]{4}", username)

    def test_password_is_eight_hex_characters(self):
        """Generated passwords are 8 lowercase hex characters."""
        assert re.fullmatch(r"[0-9a-f]{8}", generate_password())

    def test_otp_is_six_digits(self):
        """Verification codes are exactly 6 digits."""
        for _ in range(20):
            assert re.fullmatch(r"\d{6}", generate_otp())
