"""
txverify SDK - independent verification of transaction-encoding API responses.
"""
from .client import EncodeAPIClient
from .config import ChainConfig, ChainMetadata
from .decoders import (
    BaseDecoder,
    BitcoinDecoder,
    CosmosDecoder,
    DecoderRegistry,
    EVMDecoder,
    SolanaDecoder,
    TronDecoder,
)
from .engine import VerificationEngine
from .error_collector import ErrorCollector
from .exceptions import (
    APIConnectionError,
    APIError,
    ChainIdMismatchError,
    DecodeError,
    TxVerifyError,
    UnknownChainError,
)
from .models import (
    ChainFamily,
    DecodedData,
    DecodedTransaction,
    EncodeResponse,
    ErrorCode,
    ErrorSeverity,
    HashFormat,
    RawFormat,
    TransactionData,
    TransactionIntent,
    TransactionMode,
    VerificationError,
    VerificationResult,
)
from .validation import parse_encode_response, parse_intent
from .version import __version__

__all__ = [
    "APIConnectionError",
    "APIError",
    "BaseDecoder",
    "BitcoinDecoder",
    "ChainConfig",
    "ChainFamily",
    "ChainIdMismatchError",
    "ChainMetadata",
    "CosmosDecoder",
    "DecodeError",
    "DecodedData",
    "DecodedTransaction",
    "DecoderRegistry",
    "EVMDecoder",
    "EncodeAPIClient",
    "EncodeResponse",
    "ErrorCode",
    "ErrorCollector",
    "ErrorSeverity",
    "HashFormat",
    "RawFormat",
    "SolanaDecoder",
    "TransactionData",
    "TransactionIntent",
    "TransactionMode",
    "TronDecoder",
    "TxVerifyError",
    "UnknownChainError",
    "VerificationEngine",
    "VerificationError",
    "VerificationResult",
    "__version__",
    "parse_encode_response",
    "parse_intent",
]
