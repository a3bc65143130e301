"""
Decoder for RLP-encoded EVM transactions.

Handles legacy (EIP-155 signed, unsigned 6 and 9 field forms), EIP-2930
(type 0x01) and EIP-1559 (type 0x02) envelopes, signed or unsigned.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import rlp
from rlp.exceptions import DecodingError as RLPDecodingError, DeserializationError
from eth_account import Account
from web3 import Web3

from ..exceptions import ChainIdMismatchError, DecodeError
from ..models import DecodedTransaction, RawFormat, TransactionMode
from .base import BaseDecoder

logger = logging.getLogger(__name__)

ERC20_TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")
# selector + two 32-byte words
ERC20_TRANSFER_CALL_LENGTH = 4 + 32 + 32

TX_TYPE_ACCESS_LIST = 0x01
TX_TYPE_DYNAMIC_FEE = 0x02


def _to_int(item: Any, name: str) -> int:
    if not isinstance(item, bytes):
        raise DecodeError(f"Field '{name}' must be a byte string")
    return int.from_bytes(item, "big")


def _to_bytes(item: Any, name: str) -> bytes:
    if not isinstance(item, bytes):
        raise DecodeError(f"Field '{name}' must be a byte string")
    return item


def _to_address(item: Any) -> Optional[str]:
    to = _to_bytes(item, "to")
    if len(to) == 0:
        return None
    if len(to) != 20:
        raise DecodeError(f"Field 'to' must be 0 or 20 bytes, got {len(to)}")
    return Web3.to_checksum_address("0x" + to.hex())


class EVMDecoder(BaseDecoder):
    """
    Decodes EVM transactions and enforces the EIP-155 chain id.

    A transaction whose embedded chain id is absent or differs from
    ``expected_chain_id`` raises ChainIdMismatchError.
    """

    def __init__(self, chain_id: str, expected_chain_id: int, raw_format: RawFormat = RawFormat.RLP):
        super().__init__(chain_id, raw_format)
        self.expected_chain_id = expected_chain_id

    @classmethod
    def from_metadata(cls, chain_id: str, raw_format: RawFormat, chain_metadata) -> "EVMDecoder":
        numeric_id = chain_metadata.evm_numeric_id(chain_id)
        if numeric_id is None:
            raise ValueError(f"Chain '{chain_id}' has no EVM chain id")
        return cls(chain_id, numeric_id, raw_format)

    def decode(self, raw: str) -> DecodedTransaction:
        data = self._hex_to_bytes(raw)
        try:
            fields = self._parse_envelope(data)
        except DecodeError as e:
            e.chain_id, e.raw_format = self.chain_id, self.raw_format.value
            raise
        except (RLPDecodingError, DeserializationError) as e:
            raise self._error(f"Invalid RLP data: {e}") from e

        self._check_chain_id(fields["chainId"])

        to = fields["to"]
        call_data: bytes = fields["data"]
        gas_limit = fields["gasLimit"]
        fee_price = fields.get("maxFeePerGas") or fields.get("gasPrice") or 0

        chain_specific: Dict[str, Any] = {
            "txType": fields["txType"],
            "nonce": fields["nonce"],
            "gasLimit": gas_limit,
            "chainId": fields["chainId"],
            "data": "0x" + call_data.hex(),
            "signed": fields["signed"],
        }
        for key in ("gasPrice", "maxFeePerGas", "maxPriorityFeePerGas"):
            if key in fields:
                chain_specific[key] = fields[key]

        if to is not None and call_data[:4] == ERC20_TRANSFER_SELECTOR:
            if len(call_data) < ERC20_TRANSFER_CALL_LENGTH:
                raise self._error(
                    f"ERC-20 transfer call data too short: {len(call_data)} bytes, "
                    f"expected {ERC20_TRANSFER_CALL_LENGTH}"
                )
            recipient = Web3.to_checksum_address("0x" + call_data[16:36].hex())
            amount = int.from_bytes(call_data[36:68], "big")
            mode = TransactionMode.TRANSFER_TOKEN
            token_id = to
            chain_specific["nativeValue"] = str(fields["value"])
        else:
            recipient = to
            amount = fields["value"]
            mode = TransactionMode.TRANSFER
            token_id = None

        sender = self._recover_sender(data) if fields["signed"] else None

        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=mode,
            sender_address=sender,
            recipient_address=recipient,
            amount=str(amount),
            token_id=token_id,
            fee=str(gas_limit * fee_price),
            chain_specific_data=chain_specific,
        )

    def validate(self, decoded: DecodedTransaction) -> bool:
        if decoded.mode not in (TransactionMode.TRANSFER, TransactionMode.TRANSFER_TOKEN):
            return False
        if decoded.amount is None:
            return False
        for address in (decoded.recipient_address, decoded.token_id, decoded.sender_address):
            if address is not None and not Web3.is_checksum_address(address):
                return False
        if decoded.mode == TransactionMode.TRANSFER_TOKEN and decoded.token_id is None:
            return False
        return True

    def _check_chain_id(self, actual: Optional[int]) -> None:
        if actual is None:
            raise ChainIdMismatchError(
                "Transaction does not contain chain ID, vulnerable to replay attacks",
                expected=self.expected_chain_id,
                actual=None,
                chain_id=self.chain_id,
                raw_format=self.raw_format.value,
            )
        if actual != self.expected_chain_id:
            raise ChainIdMismatchError(
                f"Chain ID mismatch: expected {self.expected_chain_id} for {self.chain_id}, "
                f"but transaction has {actual}",
                expected=self.expected_chain_id,
                actual=actual,
                chain_id=self.chain_id,
                raw_format=self.raw_format.value,
            )

    def _parse_envelope(self, data: bytes) -> Dict[str, Any]:
        first = data[0]
        if first == TX_TYPE_DYNAMIC_FEE:
            return self._parse_typed(data[1:], TX_TYPE_DYNAMIC_FEE)
        if first == TX_TYPE_ACCESS_LIST:
            return self._parse_typed(data[1:], TX_TYPE_ACCESS_LIST)
        if first >= 0xc0:
            return self._parse_legacy(data)
        raise DecodeError(f"Unsupported transaction type 0x{first:02x}")

    @staticmethod
    def _decode_list(payload: bytes) -> List[Any]:
        items = rlp.decode(payload)
        if not isinstance(items, (list, tuple)):
            raise DecodeError("Transaction payload is not an RLP list")
        return list(items)

    def _parse_typed(self, payload: bytes, tx_type: int) -> Dict[str, Any]:
        items = self._decode_list(payload)
        if tx_type == TX_TYPE_DYNAMIC_FEE:
            if len(items) not in (9, 12):
                raise DecodeError(f"EIP-1559 transaction must have 9 or 12 fields, got {len(items)}")
            fields = {
                "chainId": _to_int(items[0], "chainId"),
                "nonce": _to_int(items[1], "nonce"),
                "maxPriorityFeePerGas": _to_int(items[2], "maxPriorityFeePerGas"),
                "maxFeePerGas": _to_int(items[3], "maxFeePerGas"),
                "gasLimit": _to_int(items[4], "gasLimit"),
                "to": _to_address(items[5]),
                "value": _to_int(items[6], "value"),
                "data": _to_bytes(items[7], "data"),
            }
            access_list, signature = items[8], items[9:]
        else:
            if len(items) not in (8, 11):
                raise DecodeError(f"EIP-2930 transaction must have 8 or 11 fields, got {len(items)}")
            fields = {
                "chainId": _to_int(items[0], "chainId"),
                "nonce": _to_int(items[1], "nonce"),
                "gasPrice": _to_int(items[2], "gasPrice"),
                "gasLimit": _to_int(items[3], "gasLimit"),
                "to": _to_address(items[4]),
                "value": _to_int(items[5], "value"),
                "data": _to_bytes(items[6], "data"),
            }
            access_list, signature = items[7], items[8:]

        if not isinstance(access_list, (list, tuple)):
            raise DecodeError("Access list must be an RLP list")
        for i, item in enumerate(signature):
            _to_int(item, ("yParity", "r", "s")[i])

        fields["txType"] = tx_type
        fields["signed"] = bool(signature)
        return fields

    def _parse_legacy(self, data: bytes) -> Dict[str, Any]:
        items = self._decode_list(data)
        if len(items) not in (6, 9):
            raise DecodeError(f"Legacy transaction must have 6 or 9 fields, got {len(items)}")
        fields = {
            "nonce": _to_int(items[0], "nonce"),
            "gasPrice": _to_int(items[1], "gasPrice"),
            "gasLimit": _to_int(items[2], "gasLimit"),
            "to": _to_address(items[3]),
            "value": _to_int(items[4], "value"),
            "data": _to_bytes(items[5], "data"),
            "txType": 0,
        }
        chain_id, signed = self._legacy_chain_id(items[6:])
        fields["chainId"] = chain_id
        fields["signed"] = signed
        return fields

    @staticmethod
    def _legacy_chain_id(vrs: List[Any]) -> Tuple[Optional[int], bool]:
        """Chain id and signed flag from the trailing (v, r, s) of a legacy transaction."""
        if not vrs:
            return None, False
        v = _to_int(vrs[0], "v")
        r = _to_int(vrs[1], "r")
        s = _to_int(vrs[2], "s")
        if r == 0 and s == 0:
            # EIP-155 signing payload: (chainId, 0, 0)
            return v, False
        if v in (27, 28):
            return None, True
        if v < 35:
            raise DecodeError(f"Invalid legacy signature v value: {v}")
        return (v - 35) // 2, True

    def _recover_sender(self, data: bytes) -> Optional[str]:
        try:
            return Account.recover_transaction(data)
        except Exception as e:
            logger.warning(f"Could not recover sender of {self.chain_id} transaction: {e}")
            return None
