"""
Base class for wire-format decoders.
"""
import binascii
from abc import ABC, abstractmethod
from typing import Union

from ..exceptions import DecodeError
from ..models import DecodedTransaction, RawFormat


class BaseDecoder(ABC):
    """
    Turns the raw bytes of one (chain, format) pair into a DecodedTransaction.

    Decoders keep no per-call state; one instance may be shared across threads.
    """

    def __init__(self, chain_id: str, raw_format: Union[RawFormat, str]):
        self.chain_id = chain_id
        self.raw_format = RawFormat(raw_format)

    @classmethod
    def from_metadata(cls, chain_id: str, raw_format: RawFormat, chain_metadata) -> "BaseDecoder":
        """Build a decoder for ``chain_id`` using the chain metadata provider."""
        return cls(chain_id, raw_format)

    @abstractmethod
    def decode(self, raw: str) -> DecodedTransaction:
        """
        Decode an encoded transaction.

        Args:
            raw: Encoded transaction, usually hex with an optional 0x prefix

        Returns:
            The decoded transaction

        Raises:
            DecodeError: If the data cannot be parsed
        """

    def validate(self, decoded: DecodedTransaction) -> bool:
        """Structural sanity check of a decoded transaction."""
        return decoded.mode is not None

    def _error(self, message: str) -> DecodeError:
        return DecodeError(message, chain_id=self.chain_id, raw_format=self.raw_format.value)

    def _hex_to_bytes(self, raw: str) -> bytes:
        if not isinstance(raw, str):
            raise self._error(f"Expected hex string, got {type(raw).__name__}")
        data = raw[2:] if raw[:2] in ("0x", "0X") else raw
        if not data:
            raise self._error("Empty transaction data")
        try:
            return binascii.unhexlify(data)
        except (binascii.Error, ValueError) as e:
            raise self._error(f"Invalid hex data: {e}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(chain_id={self.chain_id!r}, raw_format={self.raw_format.value!r})"
