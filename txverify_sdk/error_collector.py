"""
Collects and deduplicates verification diagnostics.
"""
from enum import Enum
from typing import Any, Iterable, List, Optional, Set, Tuple

from .models import (
    DecodedData,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    VerificationError,
    VerificationResult,
)

_SCHEMA_HINT = (
    "Check that your data matches the expected format for this blockchain. "
    "Refer to the documentation for valid field values."
)
_DECODE_HINT = (
    "The encoded transaction data may be corrupted or in an unexpected format. "
    "Verify the transaction was encoded correctly."
)
_INTENT_TAMPERED_HINT = (
    "SECURITY ALERT: Do not sign this transaction! The encoded data does not match "
    "your intent. This could be a malicious API response."
)

RECOVERY_STRATEGIES = {
    ErrorCode.MISSING_DECODER: (
        "This blockchain may not be fully supported yet. Consider registering a custom "
        "decoder or checking that the chain id and format are correct."
    ),
    ErrorCode.INVALID_API_RESPONSE: _SCHEMA_HINT,
    ErrorCode.INVALID_INTENT: _SCHEMA_HINT,
    ErrorCode.DECODE_FAILED: _DECODE_HINT,
    ErrorCode.INVALID_DECODED_STRUCTURE: _DECODE_HINT,
    ErrorCode.VERIFICATION_FAILED: (
        "Verification could not be completed. Do not sign the transaction until it "
        "can be verified."
    ),
    ErrorCode.CRITICAL_CHAIN_MISMATCH: (
        "SECURITY ALERT: Do not sign this transaction! The transaction is for a "
        "different blockchain network than expected."
    ),
    ErrorCode.CRITICAL_RECIPIENT_MISMATCH: _INTENT_TAMPERED_HINT,
    ErrorCode.CRITICAL_AMOUNT_MISMATCH: _INTENT_TAMPERED_HINT,
    ErrorCode.CRITICAL_TOKEN_MISMATCH: _INTENT_TAMPERED_HINT,
    ErrorCode.CRITICAL_VALIDATOR_MISMATCH: _INTENT_TAMPERED_HINT,
    ErrorCode.DECODED_API_MISMATCH: (
        "The decoded transaction data does not match the API response. This could "
        "indicate data corruption or encoding issues."
    ),
}

FIELD_MISMATCH_CODES = frozenset({
    ErrorCode.MODE_MISMATCH,
    ErrorCode.SENDER_MISMATCH,
    ErrorCode.RECIPIENT_MISMATCH,
    ErrorCode.AMOUNT_MISMATCH,
    ErrorCode.TOKEN_MISMATCH,
    ErrorCode.VALIDATOR_MISMATCH,
})


def recovery_strategy(code: ErrorCode, severity: ErrorSeverity) -> Optional[str]:
    """Advice shown to the user for a diagnostic."""
    if code in FIELD_MISMATCH_CODES:
        if severity == ErrorSeverity.CRITICAL:
            return "SECURITY ALERT: Do not sign this transaction! Critical field mismatch detected."
        return (
            "Some fields in the API response do not match your original intent. "
            "Review the differences and ensure they are acceptable."
        )
    return RECOVERY_STRATEGIES.get(code)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, Enum):
        return str(value.value)
    if value is None or isinstance(value, str):
        return value
    return str(value)


class ErrorCollector:
    """
    Accumulates diagnostics for one verification run.

    Diagnostics are deduplicated on (code, field, severity, expected, actual)
    and kept in insertion order.
    """

    def __init__(self):
        self._errors: List[VerificationError] = []
        self._keys: Set[Tuple[Any, ...]] = set()

    def _add(self, error: VerificationError) -> None:
        key = (error.code, error.field, error.severity, error.context.expected, error.context.actual)
        if key in self._keys:
            return
        self._keys.add(key)
        self._errors.append(error)

    def add_error(
        self,
        code: ErrorCode,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        field: Optional[str] = None,
        **context: Any
    ) -> None:
        """
        Record a diagnostic.

        Args:
            code: Error code
            message: Human readable message
            severity: Severity of the diagnostic
            field: Name of the offending field, if any
            **context: Extra context (``expected``, ``actual`` ...)
        """
        ctx = {k: _text(v) if k in ("expected", "actual") else v for k, v in context.items()}
        self._add(VerificationError(
            code=code,
            severity=severity,
            message=message,
            field=field,
            context=ErrorContext(**ctx),
            recovery_strategy=recovery_strategy(code, severity),
        ))

    def add_field_mismatch(
        self,
        code: ErrorCode,
        field: str,
        expected: Any,
        actual: Any,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        message: Optional[str] = None
    ) -> None:
        expected, actual = _text(expected), _text(actual)
        self.add_error(
            code,
            message or f"{field} mismatch: expected {expected}, got {actual}",
            severity=severity,
            field=field,
            expected=expected,
            actual=actual,
        )

    def add_validation_error(self, issues: Iterable[Any], code: ErrorCode) -> None:
        """Record one error-severity diagnostic per schema issue."""
        for issue in issues:
            self.add_error(code, f"{issue.field}: {issue.message}", field=issue.field)

    def has_errors(self) -> bool:
        return bool(self._errors)

    def has_critical_errors(self) -> bool:
        return any(e.severity == ErrorSeverity.CRITICAL for e in self._errors)

    @property
    def diagnostics(self) -> List[VerificationError]:
        return list(self._errors)

    def result(self, decoded_data: Optional[DecodedData] = None) -> VerificationResult:
        errors = [e for e in self._errors if e.severity == ErrorSeverity.ERROR]
        warnings = [e for e in self._errors if e.severity == ErrorSeverity.WARNING]
        critical = [e for e in self._errors if e.severity == ErrorSeverity.CRITICAL]
        return VerificationResult(
            is_valid=not errors and not critical,
            errors=errors,
            warnings=warnings,
            critical_errors=critical,
            decoded_data=decoded_data,
        )
