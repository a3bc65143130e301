"""
Decoder for Cosmos SDK protobuf transactions (TxRaw and SignDoc).
"""
import logging
import re
from typing import Any, Dict, Optional

from google.protobuf.message import DecodeError as ProtobufDecodeError
from pydantic import ValidationError

from ..exceptions import DecodeError
from ..models import DecodedTransaction, RawFormat, TransactionMode
from . import _cosmos_proto as pb
from .base import BaseDecoder

logger = logging.getLogger(__name__)

# hrp, separator, data part
_ADDRESS_SHAPE = re.compile(r"[a-z][a-z0-9]*1[a-z0-9]+")
MIN_ADDRESS_LENGTH = 40


def _first_coin_amount(coins) -> Optional[str]:
    for coin in coins:
        return coin.amount
    return None


class CosmosDecoder(BaseDecoder):
    """
    Decodes the first message of a Cosmos transaction.

    Bytes are read as a SignDoc when they carry a chain id and body bytes,
    otherwise as a TxRaw. Unrecognized message types decode to a placeholder
    transfer of amount 0 with no recipient.
    """

    def __init__(
        self,
        chain_id: str,
        raw_format: RawFormat = RawFormat.COSMOS_PROTOBUF,
        address_prefix: Optional[str] = None
    ):
        super().__init__(chain_id, raw_format)
        self.address_prefix = address_prefix

    @classmethod
    def from_metadata(cls, chain_id: str, raw_format: RawFormat, chain_metadata) -> "CosmosDecoder":
        return cls(chain_id, raw_format, address_prefix=chain_metadata.bech32_prefix(chain_id))

    def decode(self, raw: str) -> DecodedTransaction:
        data = self._hex_to_bytes(raw)
        try:
            return self._decode(data)
        except DecodeError as e:
            e.chain_id, e.raw_format = self.chain_id, self.raw_format.value
            raise
        except (ProtobufDecodeError, ValidationError, ValueError) as e:
            raise self._error(f"Failed to decode Cosmos transaction: {e}") from e

    def _parse_envelope(self, data: bytes) -> Dict[str, Any]:
        sign_doc = pb.SignDoc()
        try:
            sign_doc.ParseFromString(data)
            if sign_doc.chain_id and sign_doc.body_bytes:
                return {
                    "envelope": "SignDoc",
                    "body_bytes": sign_doc.body_bytes,
                    "auth_info_bytes": sign_doc.auth_info_bytes,
                    "networkId": sign_doc.chain_id,
                    "accountNumber": sign_doc.account_number,
                }
        except (ProtobufDecodeError, ValueError):
            logger.debug("Data is not a SignDoc, trying TxRaw")

        tx_raw = pb.TxRaw()
        tx_raw.ParseFromString(data)
        if not tx_raw.body_bytes:
            raise DecodeError("Transaction has no body")
        return {
            "envelope": "TxRaw",
            "body_bytes": tx_raw.body_bytes,
            "auth_info_bytes": tx_raw.auth_info_bytes,
            "signatureCount": len(tx_raw.signatures),
        }

    def _decode(self, data: bytes) -> DecodedTransaction:
        envelope = self._parse_envelope(data)

        body = pb.TxBody()
        body.ParseFromString(envelope.pop("body_bytes"))
        auth_info = pb.AuthInfo()
        auth_info.ParseFromString(envelope.pop("auth_info_bytes"))

        if not body.messages:
            raise DecodeError("Transaction body contains no messages")

        first = body.messages[0]
        chain_specific: Dict[str, Any] = dict(envelope)
        chain_specific["messageCount"] = len(body.messages)
        chain_specific["messageTypes"] = [m.type_url for m in body.messages]
        chain_specific["gasLimit"] = auth_info.fee.gas_limit
        if auth_info.fee.amount:
            chain_specific["feeDenom"] = auth_info.fee.amount[0].denom

        decoded: Dict[str, Any] = {
            "chain_id": self.chain_id,
            "fee": _first_coin_amount(auth_info.fee.amount),
            "memo": body.memo or None,
        }

        if first.type_url == pb.MSG_SEND:
            msg = pb.MsgSend()
            msg.ParseFromString(first.value)
            decoded.update(
                mode=TransactionMode.TRANSFER,
                sender_address=msg.from_address,
                recipient_address=msg.to_address,
                amount=_first_coin_amount(msg.amount),
            )
            if msg.amount:
                chain_specific["denom"] = msg.amount[0].denom
        elif first.type_url in (pb.MSG_DELEGATE, pb.MSG_UNDELEGATE):
            msg = pb.MsgDelegate() if first.type_url == pb.MSG_DELEGATE else pb.MsgUndelegate()
            msg.ParseFromString(first.value)
            amount = msg.amount.amount if msg.HasField("amount") else None
            if first.type_url == pb.MSG_DELEGATE:
                decoded.update(mode=TransactionMode.STAKE, target_validator_address=msg.validator_address)
            else:
                decoded.update(mode=TransactionMode.UNSTAKE, validator_address=msg.validator_address)
            decoded.update(sender_address=msg.delegator_address, amount=amount)
            if msg.HasField("amount"):
                chain_specific["denom"] = msg.amount.denom
        elif first.type_url == pb.MSG_WITHDRAW_REWARD:
            msg = pb.MsgWithdrawDelegatorReward()
            msg.ParseFromString(first.value)
            decoded.update(
                mode=TransactionMode.CLAIM_REWARDS,
                sender_address=msg.delegator_address,
                validator_address=msg.validator_address,
                amount="0",
            )
        else:
            logger.info(f"Unrecognized Cosmos message type {first.type_url}, decoding as placeholder")
            chain_specific["unrecognized"] = True
            decoded.update(mode=TransactionMode.TRANSFER, amount="0")

        decoded["chain_specific_data"] = chain_specific
        return DecodedTransaction(**decoded)

    def validate(self, decoded: DecodedTransaction) -> bool:
        if decoded.mode is None or not decoded.chain_specific_data.get("messageCount"):
            return False
        for address in (decoded.sender_address, decoded.recipient_address):
            if address and not self._looks_like_address(address):
                return False
        return True

    def _looks_like_address(self, address: str) -> bool:
        """
        Shape check only: the fixed prefix when one is configured, otherwise
        any lowercase bech32-style human-readable part.
        """
        if len(address) < MIN_ADDRESS_LENGTH or not _ADDRESS_SHAPE.fullmatch(address):
            return False
        prefix = address.rpartition("1")[0]
        return self.address_prefix is None or prefix == self.address_prefix
