"""
Heuristic decoder for Tron raw transactions.

Tron transactions are protobuf-encoded, but the contract parameters are
located here by byte pattern rather than by a full schema. Only
TransferContract (native TRX) and TriggerSmartContract calls to the TRC-20
``transfer(address,uint256)`` function are recognized.
"""
import logging
import re
from typing import Tuple

import base58

from ..exceptions import DecodeError
from ..models import DecodedTransaction, RawFormat, TransactionMode
from .base import BaseDecoder

logger = logging.getLogger(__name__)

TRIGGER_SMART_CONTRACT = b"TriggerSmartContract"

# owner_address (1), to_address (2), amount (3, varint)
_NATIVE_TRANSFER = re.compile(
    rb"\x0a\x15(\x41.{20})\x12\x15(\x41.{20})\x18([\x80-\xff]*[\x00-\x7f])",
    re.DOTALL,
)

# owner_address (1), contract_address (2), optional call_value (3), data (4)
_TOKEN_TRANSFER = re.compile(
    rb"\x0a\x15(\x41.{20})\x12\x15(\x41.{20})(?:\x18[\x80-\xff]*[\x00-\x7f])?"
    rb"\x22\x44\xa9\x05\x9c\xbb(.{32})(.{32})",
    re.DOTALL,
)


def tron_address(raw: bytes) -> str:
    """Base58check rendering of a 21-byte 0x41-prefixed address."""
    return base58.b58encode_check(raw).decode("ascii")


def _read_varint(data: bytes) -> int:
    value = 0
    for shift, byte in enumerate(data):
        value |= (byte & 0x7f) << (7 * shift)
        if not byte & 0x80:
            return value
    raise DecodeError("Truncated varint")


class TronDecoder(BaseDecoder):

    def __init__(self, chain_id: str, raw_format: RawFormat = RawFormat.RAW_TRANSACTION):
        super().__init__(chain_id, raw_format)

    def decode(self, raw: str) -> DecodedTransaction:
        data = self._hex_to_bytes(raw)
        if TRIGGER_SMART_CONTRACT in data:
            logger.debug("TriggerSmartContract found, decoding as TRC-20 transfer")
            owner, contract, recipient, amount = self._token_transfer(data)
            return DecodedTransaction(
                chain_id=self.chain_id,
                mode=TransactionMode.TRANSFER_TOKEN,
                sender_address=owner,
                recipient_address=recipient,
                amount=str(amount),
                token_id=contract,
                chain_specific_data={"contractType": "TriggerSmartContract"},
            )

        match = _NATIVE_TRANSFER.search(data)
        if match is None:
            raise self._error("No recognizable Tron transfer contract found")
        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=TransactionMode.TRANSFER,
            sender_address=tron_address(match.group(1)),
            recipient_address=tron_address(match.group(2)),
            amount=str(_read_varint(match.group(3))),
            chain_specific_data={"contractType": "TransferContract"},
        )

    def _token_transfer(self, data: bytes) -> Tuple[str, str, str, int]:
        match = _TOKEN_TRANSFER.search(data)
        if match is None:
            raise self._error("TriggerSmartContract without a recognizable TRC-20 transfer call")
        recipient_word = match.group(3)
        if any(recipient_word[:12]):
            raise self._error("TRC-20 recipient word is not a left-padded address")
        return (
            tron_address(match.group(1)),
            tron_address(match.group(2)),
            tron_address(b"\x41" + recipient_word[12:]),
            int.from_bytes(match.group(4), "big"),
        )

    def validate(self, decoded: DecodedTransaction) -> bool:
        if decoded.mode is None or decoded.amount is None:
            return False
        for address in (decoded.sender_address, decoded.recipient_address):
            if not address or not address.startswith("T") or len(address) != 34:
                return False
        return True
