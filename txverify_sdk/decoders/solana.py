"""
Decoder for the encode API's custom Solana layout (raw format ``BORSH``).

Layout::

    [0]       version
    [1:4]     reserved
    [4:36]    public key 1 (fee payer / sender)
    [36:68]   public key 2 (recipient, all zero for a self transfer)
    [68:100]  recent blockhash
    [100:]    instruction payload

This is not the standard Solana wire format. Payloads are classified by
signature, in order: stake program reference, SPL token program id, then
the system transfer instruction in the final 12 bytes.
"""
import logging
import struct
from typing import Any, Dict, Optional

import base58

from ..models import DecodedTransaction, RawFormat, TransactionMode
from .base import BaseDecoder

logger = logging.getLogger(__name__)

HEADER_LENGTH = 100
SYSTEM_TRANSFER_LENGTH = 12
SYSTEM_TRANSFER_DISCRIMINANT = 2

SPL_TOKEN_PROGRAM_ID = bytes.fromhex("06ddf6e1d765a193d9cbe146ceeb79ac1cb485ed5f5b37913a8cf5857eff00a9")
# The layout does not carry the mint; token transfers report this USDC mint
PLACEHOLDER_SPL_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

# Stake program reference, matched on the hex rendering of the whole transaction
STAKE_SIGNATURE = "06a1d817"
STAKE_MIN_LENGTH = 201
STAKE_AMOUNT_OFFSET = 234
# Upper bound for the amount scan when the payload is too short for the fixed offset
MAX_SCANNED_LAMPORTS = 10 ** 15

_ZERO_KEY = bytes(32)


def _b58(key: bytes) -> str:
    return base58.b58encode(key).decode("ascii")


def _scan_amount(payload: bytes) -> Optional[int]:
    """First plausible u64 LE value on a 4-byte boundary."""
    for offset in range(0, len(payload) - 7, 4):
        value = struct.unpack_from("<Q", payload, offset)[0]
        if 0 < value < MAX_SCANNED_LAMPORTS:
            return value
    return None


class SolanaDecoder(BaseDecoder):

    def __init__(self, chain_id: str, raw_format: RawFormat = RawFormat.BORSH):
        super().__init__(chain_id, raw_format)

    def decode(self, raw: str) -> DecodedTransaction:
        data = self._hex_to_bytes(raw)
        if len(data) < HEADER_LENGTH:
            raise self._error(f"Solana transaction too short: {len(data)} bytes, need at least {HEADER_LENGTH}")

        key1 = data[4:36]
        key2 = data[36:68]
        payload = data[HEADER_LENGTH:]
        chain_specific = {
            "version": data[0],
            "pubkeys": [_b58(key1), _b58(key2)],
            "blockhash": _b58(data[68:100]),
            "instructionData": payload.hex(),
        }

        if len(data) >= STAKE_MIN_LENGTH and STAKE_SIGNATURE in data.hex():
            return self._decode_stake(key1, payload, chain_specific)
        if SPL_TOKEN_PROGRAM_ID in data:
            return self._decode_token_transfer(key1, payload, chain_specific)

        if len(payload) < SYSTEM_TRANSFER_LENGTH:
            raise self._error("Instruction payload too short for a transfer")
        discriminant, amount = struct.unpack("<IQ", payload[-SYSTEM_TRANSFER_LENGTH:])
        if discriminant != SYSTEM_TRANSFER_DISCRIMINANT:
            raise self._error(f"Unsupported system instruction {discriminant}")
        recipient = key1 if key2 == _ZERO_KEY else key2
        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=TransactionMode.TRANSFER,
            sender_address=_b58(key1),
            recipient_address=_b58(recipient),
            amount=str(amount),
            chain_specific_data=chain_specific,
        )

    def _decode_token_transfer(self, key1: bytes, payload: bytes, chain_specific: Dict[str, Any]) -> DecodedTransaction:
        if len(payload) < 8:
            raise self._error("Token transfer payload does not contain an amount")

        logger.debug(f"Decoding {self.chain_id} payload of {len(payload)} bytes as SPL token transfer")
        amount = struct.unpack("<Q", payload[-8:])[0]
        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=TransactionMode.TRANSFER_TOKEN,
            sender_address=_b58(key1),
            recipient_address=_b58(key1),
            amount=str(amount),
            token_id=PLACEHOLDER_SPL_MINT,
            chain_specific_data=chain_specific,
        )

    def _decode_stake(self, key1: bytes, payload: bytes, chain_specific: Dict[str, Any]) -> DecodedTransaction:
        """
        The validator vote account is the first 32 payload bytes. The amount
        sits at a fixed offset in full-size payloads and is otherwise taken
        from the first plausible lamport value.
        """
        if len(payload) >= STAKE_AMOUNT_OFFSET + 8:
            amount = struct.unpack_from("<Q", payload, STAKE_AMOUNT_OFFSET)[0]
        else:
            amount = _scan_amount(payload)
            if amount is None:
                raise self._error("Stake instruction does not contain an amount")

        logger.debug(f"Decoding {self.chain_id} payload of {len(payload)} bytes as stake")
        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=TransactionMode.STAKE,
            sender_address=_b58(key1),
            target_validator_address=_b58(payload[:32]),
            amount=str(amount),
            chain_specific_data=chain_specific,
        )

    def validate(self, decoded: DecodedTransaction) -> bool:
        if decoded.mode is None or decoded.amount is None or not decoded.sender_address:
            return False
        if decoded.mode == TransactionMode.STAKE:
            return bool(decoded.target_validator_address)
        if not decoded.recipient_address:
            return False
        if decoded.mode == TransactionMode.TRANSFER_TOKEN and not decoded.token_id:
            return False
        return True
