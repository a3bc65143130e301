"""
Exceptions for the txverify SDK.
"""
from typing import Optional


class TxVerifyError(Exception):
    """Base exception for SDK errors."""
    pass


class DecodeError(TxVerifyError):
    """Raised when encoded transaction bytes cannot be parsed."""

    def __init__(self, message: str, chain_id: Optional[str] = None, raw_format: Optional[str] = None):
        self.chain_id = chain_id
        self.raw_format = raw_format
        super().__init__(message)


class ChainIdMismatchError(DecodeError):
    """
    Raised when an EVM transaction is bound to a different network than expected.

    ``actual`` is None when the transaction carries no chain id at all.
    """

    def __init__(
        self,
        message: str,
        expected: int,
        actual: Optional[int],
        chain_id: Optional[str] = None,
        raw_format: Optional[str] = None
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(message, chain_id=chain_id, raw_format=raw_format)


class UnknownChainError(TxVerifyError, ValueError):
    """Raised when a chain id is not present in the chain metadata."""
    pass


class APIError(TxVerifyError):
    """Raised when the encode API returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class APIConnectionError(APIError):
    """Raised when the encode API cannot be reached."""
    pass
