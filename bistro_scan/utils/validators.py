"""
==============================================================================
Validation Utilities Module
==============================================================================

Classification and normalization of decoded barcode payloads.

This module implements:
- CodeValidator: Turns a DecodedSymbol into a ValidatedCode
- GTINValidator: Mod-10 check digit for EAN-8, UPC-A and EAN-13

Pattern Table (first match wins):
--------------------------------
1. ORDER_ID   exactly N digits (N = order_id_digits, default 6)
2. ITEM_SKU   known prefix, optional '-', '_' or ' ', 3-32 alphanumerics
              normalized to PREFIX-BODY in upper case
3. ITEM_SKU   8/12/13 digit GTIN with a valid check digit
4. UNKNOWN    anything else, only when unknown codes are allowed

==============================================================================
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Tuple

from bistro_scan.config import Settings
from bistro_scan.core.exceptions import ValidationError
from bistro_scan.scanner.models import CodeType, DecodedSymbol, ValidatedCode


class GTINValidator:
    """
    Check digit validation for retail item numbers.

    Example:
        >>> GTINValidator().is_valid("4006381333931")
        True
    """

    LENGTHS = (8, 12, 13)
    DIGITS = re.compile(r"^[0-9]+$")

    def is_valid(self, digits: str) -> bool:
        """Check length, digits only and the mod-10 check digit."""
        if len(digits) not in self.LENGTHS or not self.DIGITS.match(digits):
            return False
        return self.check_digit(digits[:-1]) == int(digits[-1])

    @staticmethod
    def check_digit(body: str) -> int:
        """
        Compute the GS1 check digit for a digit string.

        Weights alternate 3, 1 starting from the rightmost body digit.
        """
        total = 0
        for position, char in enumerate(reversed(body)):
            weight = 3 if position % 2 == 0 else 1
            total += int(char) * weight
        return (10 - total % 10) % 10


class CodeValidator:
    """
    Validator for decoded barcode payloads.

    Stateless after construction: validating the same symbol twice gives
    equal results.

    Example:
        >>> validator = CodeValidator()
        >>> code = validator.validate(DecodedSymbol(payload=b" 123456 ", symbology="qr"))
        >>> code.normalized_payload, code.code_type
        ('123456', <CodeType.ORDER_ID: 'order_id'>)
    """

    DEFAULT_SKU_PREFIXES = ("SKU", "ITM")

    # Stripped from both ends of every payload
    PADDING = " \t\r\n\x00"

    def __init__(
        self,
        sku_prefixes: Optional[Iterable[str]] = None,
        order_id_digits: int = 6,
        allow_unknown: bool = False
    ) -> None:
        """
        Initialize validator and build the pattern table.

        Args:
            sku_prefixes: Recognized SKU prefixes (case-insensitive)
            order_id_digits: Digit count of an order id
            allow_unknown: Accept payloads matching no pattern as UNKNOWN
        """
        prefixes = [p.strip().upper() for p in (sku_prefixes or self.DEFAULT_SKU_PREFIXES) if p.strip()]
        self._allow_unknown = allow_unknown
        self._gtin = GTINValidator()

        order_pattern = re.compile(rf"^[0-9]{{{order_id_digits}}}$")
        sku_pattern = None
        if prefixes:
            alternatives = "|".join(re.escape(p) for p in sorted(prefixes, key=len, reverse=True))
            sku_pattern = re.compile(
                rf"^({alternatives})[-_ ]?([A-Z0-9]{{3,32}})$",
                re.IGNORECASE | re.ASCII
            )

        self._patterns: List[Tuple[CodeType, Callable[[str], Optional[str]]]] = [
            (CodeType.ORDER_ID, lambda text: text if order_pattern.match(text) else None),
        ]
        if sku_pattern is not None:
            self._patterns.append((CodeType.ITEM_SKU, lambda text: self._match_sku(sku_pattern, text)))
        self._patterns.append((CodeType.ITEM_SKU, lambda text: text if self._gtin.is_valid(text) else None))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CodeValidator":
        """Build a validator from application settings."""
        return cls(
            sku_prefixes=settings.sku_prefix_list,
            order_id_digits=settings.order_id_digits,
            allow_unknown=settings.allow_unknown_codes,
        )

    @staticmethod
    def _match_sku(pattern: "re.Pattern[str]", text: str) -> Optional[str]:
        match = pattern.match(text)
        if not match:
            return None
        return f"{match.group(1).upper()}-{match.group(2).upper()}"

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def normalize(self, payload: bytes) -> str:
        """
        Decode and trim a raw payload.

        Raises:
            ValidationError: If the bytes are not valid UTF-8
        """
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("Payload is not valid UTF-8 text", payload.hex()) from None
        return text.strip(self.PADDING)

    def classify(self, text: str) -> Tuple[CodeType, str]:
        """
        Run the pattern table over normalized text.

        Returns:
            Tuple of (code_type, normalized_payload)
        """
        for code_type, matcher in self._patterns:
            normalized = matcher(text)
            if normalized:
                return code_type, normalized
        return CodeType.UNKNOWN, text

    def validate(self, symbol: DecodedSymbol) -> ValidatedCode:
        """
        Validate a decoded symbol.

        Args:
            symbol: Symbol from the decoder

        Returns:
            ValidatedCode with a non-empty normalized payload

        Raises:
            ValidationError: Empty payload, undecodable bytes, or an
                UNKNOWN payload while unknown codes are disallowed
        """
        text = self.normalize(symbol.payload)
        if not text:
            raise ValidationError("Payload is empty", "")

        code_type, normalized = self.classify(text)

        if code_type == CodeType.UNKNOWN and not self._allow_unknown:
            raise ValidationError("Payload matches no known code format", text)

        return ValidatedCode(normalized_payload=normalized, code_type=code_type)

    def is_valid(self, symbol: DecodedSymbol) -> bool:
        """Quick validation check."""
        try:
            self.validate(symbol)
        except ValidationError:
            return False
        return True
