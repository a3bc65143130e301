"""
Cross-verification of a transaction intent against an encode API response.
"""
import logging
from typing import Any, Optional, Tuple

from ._rate_limited_log import rate_limited_log
from .config import ChainConfig, ChainMetadata
from .decoders.registry import DecoderRegistry
from .error_collector import ErrorCollector
from .exceptions import ChainIdMismatchError, DecodeError, UnknownChainError
from .models import (
    ChainFamily,
    DecodedData,
    DecodedTransaction,
    EncodeResponse,
    ErrorCode,
    ErrorSeverity,
    VerificationResult,
)
from .validation import parse_encode_response, parse_intent
from .verifier import TransactionVerifier


class VerificationEngine:
    """
    Decides whether an intent, the API's claimed transaction data and the
    encoded transaction bytes agree.

    ``verify`` never raises: every problem is reported as a diagnostic in
    the returned VerificationResult. The engine keeps no state between
    calls apart from its registry, so one instance can be shared.
    """

    def __init__(
        self,
        registry: Optional[DecoderRegistry] = None,
        chain_metadata: ChainMetadata = ChainConfig,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the engine

        Args:
            registry: Decoder registry (a registry with the built-in decoders by default)
            chain_metadata: Chain metadata provider
            logger: Optional logger instance to use
        """
        self.logger = logger or logging.getLogger(__name__)
        self.chain_metadata = chain_metadata
        if registry is None:
            registry = DecoderRegistry(chain_metadata=chain_metadata, logger=self.logger)
        self.registry = registry

    def verify(self, intent: Any, api_response: Any) -> VerificationResult:
        """
        Verify an encode API response against the user's intent.

        Args:
            intent: Transaction intent (dict in API JSON shape, or an intent model)
            api_response: Encode API response (dict or EncodeResponse)

        Returns:
            VerificationResult; ``is_valid`` is False when any error or
            critical error was found
        """
        collector = ErrorCollector()

        parsed_intent = parse_intent(intent)
        if not parsed_intent.ok:
            collector.add_validation_error(parsed_intent.issues, ErrorCode.INVALID_INTENT)
            return collector.result()

        parsed_response = parse_encode_response(api_response)
        if not parsed_response.ok:
            collector.add_validation_error(parsed_response.issues, ErrorCode.INVALID_API_RESPONSE)
            return collector.result()

        typed_intent = parsed_intent.value
        response = parsed_response.value
        data = response.transaction.data
        decoded = None

        try:
            verifier = TransactionVerifier(collector, self._family(response.chain_id))
            verifier.compare_intent_to_data(typed_intent, data)

            decoded, usable = self._decode(response, collector)
            if decoded is not None and usable:
                verifier.compare_decoded_to_intent(decoded, typed_intent)
                verifier.compare_decoded_to_data(decoded, data)
        except Exception as e:
            self.logger.error(f"Unexpected error while verifying {response.chain_id} transaction: {e}")
            collector.add_error(ErrorCode.VERIFICATION_FAILED, f"Verification failed: {e}")

        result = collector.result(DecodedData(chain_id=response.chain_id, transaction=data, raw=decoded))
        if result.critical_errors:
            codes = ", ".join(e.code.value for e in result.critical_errors)
            self.logger.warning(f"Critical verification failures for {response.chain_id}: {codes}")
        else:
            self.logger.debug(f"Verification of {response.chain_id} transaction finished, valid={result.is_valid}")
        return result

    def _family(self, chain_id: str) -> Optional[ChainFamily]:
        try:
            return self.chain_metadata.family(chain_id)
        except UnknownChainError:
            return None

    def _decode(
        self, response: EncodeResponse, collector: ErrorCollector
    ) -> Tuple[Optional[DecodedTransaction], bool]:
        """
        Decode the first raw payload of the response.

        Returns:
            (decoded transaction or None, whether it may be compared)
        """
        raw = response.raw_payload
        if raw is None:
            self.logger.debug(f"No raw payload in {response.chain_id} response, skipping decode")
            return None, False

        chain_id = response.chain_id
        decoder = self.registry.lookup(chain_id, raw.format)
        if decoder is None:
            rate_limited_log(
                f"No decoder registered for {chain_id} with format {raw.format.value}",
                level="warning",
                logger_instance=self.logger,
            )
            collector.add_error(
                ErrorCode.MISSING_DECODER,
                f"No decoder available for {chain_id} with format {raw.format.value}",
                severity=ErrorSeverity.WARNING,
            )
            return None, False

        try:
            decoded = decoder.decode(raw.value)
        except ChainIdMismatchError as e:
            self.logger.error(f"Chain id check failed for {chain_id}: {e}")
            collector.add_error(ErrorCode.DECODE_FAILED, f"Failed to decode transaction: {e}")
            collector.add_error(
                ErrorCode.CRITICAL_CHAIN_MISMATCH,
                str(e),
                severity=ErrorSeverity.CRITICAL,
                field="chainId",
                expected=e.expected,
                actual=e.actual,
            )
            return None, False
        except DecodeError as e:
            self.logger.warning(f"Failed to decode {chain_id} {raw.format.value} transaction: {e}")
            collector.add_error(ErrorCode.DECODE_FAILED, f"Failed to decode transaction: {e}")
            return None, False
        except Exception as e:
            self.logger.error(f"Decoder {decoder!r} raised unexpectedly: {e}")
            collector.add_error(ErrorCode.DECODE_FAILED, f"Failed to decode transaction: {e}")
            return None, False

        if not decoder.validate(decoded):
            self.logger.warning(f"Decoded {chain_id} transaction failed structural validation")
            collector.add_error(
                ErrorCode.INVALID_DECODED_STRUCTURE,
                "Decoded transaction has an invalid structure",
            )
            return decoded, False

        return decoded, True
