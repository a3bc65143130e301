"""
Field comparison passes between intent, API data and decoded transaction.
"""
import logging
from typing import Any, Optional

from pydantic.alias_generators import to_camel

from .error_collector import ErrorCollector
from .models import (
    MODE_FIELDS,
    STAKING_MODES,
    ConvertAssetIntent,
    DecodedTransaction,
    ErrorCode,
    ErrorSeverity,
    TransactionData,
    TransactionMode,
)
from .normalizers import addresses_equal, amounts_equal

logger = logging.getLogger(__name__)

# field -> (code when intent and API data differ, code when the decoded bytes differ from the intent)
FIELD_CODES = {
    "recipient_address": (ErrorCode.RECIPIENT_MISMATCH, ErrorCode.CRITICAL_RECIPIENT_MISMATCH),
    "validator_address": (ErrorCode.VALIDATOR_MISMATCH, ErrorCode.CRITICAL_VALIDATOR_MISMATCH),
    "target_validator_address": (ErrorCode.VALIDATOR_MISMATCH, ErrorCode.CRITICAL_VALIDATOR_MISMATCH),
    "token_id": (ErrorCode.TOKEN_MISMATCH, ErrorCode.CRITICAL_TOKEN_MISMATCH),
    "amount": (ErrorCode.AMOUNT_MISMATCH, ErrorCode.CRITICAL_AMOUNT_MISMATCH),
}

# Validator field cross-checked between decoded bytes and API data
_DECODED_VALIDATOR_FIELD = {
    TransactionMode.STAKE: "target_validator_address",
    TransactionMode.UNSTAKE: "validator_address",
}


class TransactionVerifier:
    """
    Runs the three comparison passes for one verification.

    Addresses are compared with the normalization of ``family``; amounts
    are compared as integers and only when canonical.
    """

    def __init__(self, collector: ErrorCollector, family=None):
        self.collector = collector
        self.family = family

    def _equal(self, field: str, a: Optional[str], b: Optional[str]) -> bool:
        if field == "amount":
            return amounts_equal(a, b)
        return addresses_equal(a, b, self.family)

    @staticmethod
    def _skip_amount(intent: Any) -> bool:
        return bool(getattr(intent, "use_max_amount", None))

    def compare_intent_to_data(self, intent: Any, data: TransactionData) -> None:
        """Intent against the transaction data the API claims to have encoded."""
        mode = TransactionMode(intent.mode)
        if data.mode != mode:
            self.collector.add_field_mismatch(ErrorCode.MODE_MISMATCH, "mode", mode, data.mode)

        if intent.sender_address is not None and not addresses_equal(
            intent.sender_address, data.sender_address, self.family
        ):
            self.collector.add_field_mismatch(
                ErrorCode.SENDER_MISMATCH, "senderAddress", intent.sender_address, data.sender_address
            )

        for field in MODE_FIELDS[mode]:
            if field == "amount" and self._skip_amount(intent):
                continue
            expected = getattr(intent, field, None)
            if expected is None:
                continue
            actual = getattr(data, field, None)
            if not self._equal(field, expected, actual):
                self.collector.add_field_mismatch(FIELD_CODES[field][0], to_camel(field), expected, actual)

        if isinstance(intent, ConvertAssetIntent):
            self._compare_conversion(intent, data)

    def _compare_conversion(self, intent: ConvertAssetIntent, data: TransactionData) -> None:
        legs = (
            ("from", intent.from_, data.from_, ("chain_id", "token_id", "amount")),
            ("to", intent.to, data.to, ("chain_id", "token_id")),
        )
        for prefix, expected_leg, actual_leg, fields in legs:
            for field in fields:
                expected = getattr(expected_leg, field)
                actual = getattr(actual_leg, field, None) if actual_leg is not None else None
                if field == "amount":
                    equal = amounts_equal(expected, actual)
                    code = ErrorCode.AMOUNT_MISMATCH
                else:
                    equal = expected == actual
                    code = ErrorCode.TOKEN_MISMATCH
                if not equal:
                    self.collector.add_field_mismatch(code, f"{prefix}.{to_camel(field)}", expected, actual)

    def compare_decoded_to_intent(self, decoded: DecodedTransaction, intent: Any) -> None:
        """Decoded bytes against the intent; any disagreement is critical."""
        mode = TransactionMode(intent.mode)
        if decoded.mode is not None and decoded.mode != mode:
            self.collector.add_field_mismatch(ErrorCode.MODE_MISMATCH, "mode", mode, decoded.mode)

        for field in MODE_FIELDS[mode]:
            if field == "amount" and self._skip_amount(intent):
                continue
            expected = getattr(intent, field, None)
            if expected is None:
                continue
            actual = getattr(decoded, field, None)
            if not self._equal(field, expected, actual):
                name = to_camel(field)
                logger.warning(f"Encoded {name} does not match intent: expected {expected}, got {actual}")
                self.collector.add_field_mismatch(
                    FIELD_CODES[field][1],
                    name,
                    expected,
                    actual,
                    severity=ErrorSeverity.CRITICAL,
                    message=f"Encoded transaction {name} does not match intent: expected {expected}, got {actual}",
                )

    def compare_decoded_to_data(self, decoded: DecodedTransaction, data: TransactionData) -> None:
        """Decoded bytes against the API's own summary; disagreements are warnings."""
        checks = []
        if decoded.mode is not None:
            checks.append(("mode", data.mode, decoded.mode))
        if data.mode not in STAKING_MODES and "recipient_address" in MODE_FIELDS[data.mode]:
            checks.append(("recipient_address", data.recipient_address, decoded.recipient_address))
        validator_field = _DECODED_VALIDATOR_FIELD.get(data.mode)
        if validator_field is not None and getattr(data, validator_field) is not None:
            checks.append((validator_field, getattr(data, validator_field), getattr(decoded, validator_field)))
        if data.amount is not None and decoded.amount is not None:
            checks.append(("amount", data.amount, decoded.amount))
        if data.token_id is not None:
            checks.append(("token_id", data.token_id, decoded.token_id))

        for field, expected, actual in checks:
            if field == "mode":
                equal = expected == actual
            else:
                equal = self._equal(field, expected, actual)
            if not equal:
                name = to_camel(field)
                self.collector.add_field_mismatch(
                    ErrorCode.DECODED_API_MISMATCH,
                    name,
                    expected,
                    actual,
                    severity=ErrorSeverity.WARNING,
                    message=f"Decoded {name} does not match API data: API has {expected}, transaction has {actual}",
                )
