"""
==============================================================================
Validator Tests
==============================================================================

Tests for payload classification, normalization and rejection.

==============================================================================
"""

import pytest

from bistro_scan.core.exceptions import ValidationError
from bistro_scan.scanner import CodeType, DecodedSymbol, Symbology
from bistro_scan.utils.validators import CodeValidator, GTINValidator


def symbol(payload: bytes, symbology: Symbology = Symbology.QR) -> DecodedSymbol:
    return DecodedSymbol(payload=payload, symbology=symbology)


class TestGTINValidator:
    """Tests for the GS1 check digit."""

    @pytest.mark.parametrize("gtin", ["4006381333931", "96385074", "036000291452"])
    def test_valid(self, gtin):
        assert GTINValidator().is_valid(gtin) is True

    @pytest.mark.parametrize("gtin", ["4006381333932", "12345678", "123", "40063813339a1"])
    def test_invalid(self, gtin):
        assert GTINValidator().is_valid(gtin) is False

    def test_non_ascii_digits_rejected(self):
        assert GTINValidator().is_valid("４００６３８１３３３９３１") is False


class TestCodeValidator:
    """Tests for the pattern table."""

    def test_order_id(self):
        code = CodeValidator().validate(symbol(b"123456"))
        assert code.code_type == CodeType.ORDER_ID
        assert code.normalized_payload == "123456"

    def test_padding_is_stripped(self):
        code = CodeValidator().validate(symbol(b" \t123456\r\n\x00"))
        assert code.normalized_payload == "123456"

    def test_order_id_length_is_configurable(self):
        validator = CodeValidator(order_id_digits=8)
        assert validator.validate(symbol(b"00001234")).code_type == CodeType.ORDER_ID
        with pytest.raises(ValidationError):
            validator.validate(symbol(b"123456"))

    @pytest.mark.parametrize("raw, expected", [
        (b"SKU-BURGER01", "SKU-BURGER01"),
        (b"sku_burger01", "SKU-BURGER01"),
        (b"SKU BURGER01", "SKU-BURGER01"),
        (b"SKUBURGER01", "SKU-BURGER01"),
        (b"itm-salad03", "ITM-SALAD03"),
    ])
    def test_sku_normalization(self, raw, expected):
        code = CodeValidator().validate(symbol(raw, Symbology.CODE128))
        assert code.code_type == CodeType.ITEM_SKU
        assert code.normalized_payload == expected

    @pytest.mark.parametrize("raw", [
        "SKU-\u212aEBAB01".encode("utf-8"),
        "\u017fku-burger01".encode("utf-8"),
    ])
    def test_unicode_case_folding_not_a_sku(self, raw):
        # Kelvin sign and long s fold onto ASCII letters under IGNORECASE
        with pytest.raises(ValidationError):
            CodeValidator().validate(symbol(raw, Symbology.CODE128))

        code = CodeValidator(allow_unknown=True).validate(symbol(raw, Symbology.CODE128))
        assert code.code_type == CodeType.UNKNOWN

    def test_custom_sku_prefixes(self):
        validator = CodeValidator(sku_prefixes=["DISH"])
        assert validator.validate(symbol(b"dish-42a")).normalized_payload == "DISH-42A"
        with pytest.raises(ValidationError):
            validator.validate(symbol(b"SKU-BURGER01"))

    def test_gtin_is_item_sku(self):
        code = CodeValidator().validate(symbol(b"4006381333931", Symbology.EAN13))
        assert code.code_type == CodeType.ITEM_SKU
        assert code.normalized_payload == "4006381333931"

    def test_unknown_rejected_by_default(self):
        with pytest.raises(ValidationError) as exc_info:
            CodeValidator().validate(symbol(b"XYZZY"))
        assert exc_info.value.code == "CODE_INVALID"
        assert exc_info.value.status_code == 422
        assert exc_info.value.retryable is False

    def test_unknown_allowed(self):
        code = CodeValidator(allow_unknown=True).validate(symbol(b" XYZZY "))
        assert code.code_type == CodeType.UNKNOWN
        assert code.normalized_payload == "XYZZY"

    def test_empty_payload_rejected_even_when_unknown_allowed(self):
        with pytest.raises(ValidationError):
            CodeValidator(allow_unknown=True).validate(symbol(b"  \r\n"))

    def test_invalid_utf8_rejected(self):
        with pytest.raises(ValidationError):
            CodeValidator(allow_unknown=True).validate(symbol(b"\xff\xfe\xfa"))

    @pytest.mark.parametrize("raw", [b"123456", b"sku_burger01", b"4006381333931", b" XYZZY "])
    def test_idempotent(self, raw):
        validator = CodeValidator(allow_unknown=True)
        first = validator.validate(symbol(raw))
        again = validator.validate(symbol(first.normalized_payload.encode("utf-8")))
        assert again == first
        assert validator.validate(symbol(raw)) == first

    def test_is_valid(self):
        validator = CodeValidator()
        assert validator.is_valid(symbol(b"123456")) is True
        assert validator.is_valid(symbol(b"XYZZY")) is False
