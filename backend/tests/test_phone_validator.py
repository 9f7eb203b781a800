"""
Tests for Malawian phone number validation and WhatsApp links.
"""

import pytest
from yardsale.utils.phone_validator import (
    validate_malawian_phone,
    normalize_phone,
    get_whatsapp_link
)


class TestPhoneValidation:
    """Test phone number validation."""
    
    def test_valid_phone_with_plus(self):
        """Test valid phone number with + prefix."""
        is_valid, cleaned, error = validate_malawian_phone("+265991234567")
        assert is_valid is True
        assert cleaned == "+265991234567"
        assert error is None
    
    def test_valid_phone_without_plus(self):
        """Test valid phone number without + prefix."""
        is_valid, cleaned, error = validate_malawian_phone("265991234567")
        assert is_valid is True
        assert cleaned == "+265991234567"
        assert error is None
    
    def test_valid_local_phone(self):
        """Test valid local number with leading 0."""
        is_valid, cleaned, error = validate_malawian_phone("0881234567")
        assert is_valid is True
        assert cleaned == "+265881234567"
        assert error is None
    
    def test_valid_phone_with_spaces(self):
        """Test valid phone number with spaces."""
        is_valid, cleaned, error = validate_malawian_phone("+265 99 123 4567")
        assert is_valid is True
        assert cleaned == "+265991234567"
        assert error is None
    
    def test_valid_phone_with_hyphens_and_parentheses(self):
        """Test valid phone number with separators."""
        is_valid, cleaned, error = validate_malawian_phone("(+265) 991-234-567")
        assert is_valid is True
        assert cleaned == "+265991234567"
    
    def test_invalid_phone_empty(self):
        """Test empty phone number."""
        is_valid, cleaned, error = validate_malawian_phone("")
        assert is_valid is False
        assert cleaned is None
        assert error == "Phone number is required"
    
    def test_invalid_phone_wrong_country_code(self):
        """Test phone number with wrong country code."""
        is_valid, cleaned, error = validate_malawian_phone("+2250707123456")
        assert is_valid is False
        assert error is not None
    
    def test_invalid_phone_zambian_number(self):
        """Test a neighbouring country code is rejected."""
        is_valid, cleaned, error = validate_malawian_phone("+2609912345678")
        assert is_valid is False
        assert cleaned is None
    
    def test_invalid_phone_too_short(self):
        """Test phone number that's too short."""
        is_valid, cleaned, error = validate_malawian_phone("+26599123456")
        assert is_valid is False
        assert "length" in error
    
    def test_invalid_phone_too_long(self):
        """Test phone number that's too long."""
        is_valid, cleaned, error = validate_malawian_phone("+2659912345678")
        assert is_valid is False
        assert "length" in error
    
    def test_invalid_phone_non_numeric(self):
        """Test phone number with non-numeric characters."""
        is_valid, cleaned, error = validate_malawian_phone("+26599123abcd")
        assert is_valid is False
        assert error is not None


class TestNormalizePhone:
    """Test phone normalisation used by request schemas."""
    
    def test_normalize_local_number(self):
        """Test local numbers get the country code."""
        assert normalize_phone("0991234567") == "+265991234567"
    
    def test_normalize_invalid_number(self):
        """Test invalid numbers raise ValueError."""
        with pytest.raises(ValueError):
            normalize_phone("12345")


class TestWhatsAppLink:
    """Test WhatsApp contact links."""
    
    def test_link_for_valid_number(self):
        """Test link uses the number without the + sign."""
        assert get_whatsapp_link("+265991234567") == "https://wa.me/265991234567"
    
    def test_link_for_local_number(self):
        """Test local numbers are converted first."""
        assert get_whatsapp_link("0991234567") == "https://wa.me/265991234567"
    
    def test_no_link_for_invalid_number(self):
        """Test invalid numbers have no link."""
        assert get_whatsapp_link("+233123") is None
