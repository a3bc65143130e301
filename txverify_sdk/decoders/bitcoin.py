"""
Decoder for BIP-174 partially signed Bitcoin transactions (PSBT v0).
"""
import base64
import binascii
import logging
import struct
from typing import Any, Dict, List, Optional, Tuple

import base58

from ..exceptions import DecodeError
from ..models import DecodedTransaction, RawFormat, TransactionMode
from .base import BaseDecoder

logger = logging.getLogger(__name__)

PSBT_MAGIC = b"psbt\xff"

PSBT_GLOBAL_UNSIGNED_TX = 0x00
PSBT_GLOBAL_VERSION = 0xfb
PSBT_IN_NON_WITNESS_UTXO = 0x00
PSBT_IN_WITNESS_UTXO = 0x01

# (p2pkh version, p2sh version, bech32 hrp)
MAINNET = (0x00, 0x05, "bc")
TESTNET = (0x6f, 0xc4, "tb")

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_CONST = 1
_BECH32M_CONST = 0x2bc830a3


def _bech32_polymod(values: List[int]) -> int:
    generator = [0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1ffffff) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if ((top >> i) & 1) else 0
    return chk


def _convert_bits(data: bytes, from_bits: int, to_bits: int) -> List[int]:
    acc = 0
    bits = 0
    out = []
    maxv = (1 << to_bits) - 1
    for value in data:
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & maxv)
    if bits:
        out.append((acc << (to_bits - bits)) & maxv)
    return out


def segwit_address(hrp: str, witness_version: int, program: bytes) -> str:
    """Encode a witness program as bech32 (v0) or bech32m (v1+)."""
    const = _BECH32_CONST if witness_version == 0 else _BECH32M_CONST
    data = [witness_version] + _convert_bits(program, 8, 5)
    expanded = [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]
    polymod = _bech32_polymod(expanded + data + [0] * 6) ^ const
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(_BECH32_CHARSET[d] for d in data + checksum)


def script_to_address(script: bytes, network: Tuple[int, int, str] = MAINNET) -> Optional[str]:
    """
    Render a scriptPubKey as an address.

    Supports P2PKH, P2SH, P2WPKH, P2WSH and P2TR. Returns None for OP_RETURN
    and any other script.
    """
    p2pkh_version, p2sh_version, hrp = network
    if len(script) == 25 and script[:3] == b"\x76\xa9\x14" and script[23:] == b"\x88\xac":
        return base58.b58encode_check(bytes([p2pkh_version]) + script[3:23]).decode("ascii")
    if len(script) == 23 and script[:2] == b"\xa9\x14" and script[22] == 0x87:
        return base58.b58encode_check(bytes([p2sh_version]) + script[2:22]).decode("ascii")
    if len(script) == 22 and script[:2] == b"\x00\x14":
        return segwit_address(hrp, 0, script[2:])
    if len(script) == 34 and script[:2] == b"\x00\x20":
        return segwit_address(hrp, 0, script[2:])
    if len(script) == 34 and script[:2] == b"\x51\x20":
        return segwit_address(hrp, 1, script[2:])
    return None


class _Reader:
    """Sequential reader over a byte buffer"""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def read(self, n: int) -> bytes:
        if n < 0 or self.pos + n > len(self.data):
            raise DecodeError(f"Unexpected end of data at offset {self.pos} (wanted {n} bytes)")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def peek(self, n: int = 1) -> bytes:
        return self.data[self.pos:self.pos + n]

    def u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def compact_size(self) -> int:
        first = self.read(1)[0]
        if first < 0xfd:
            return first
        if first == 0xfd:
            return struct.unpack("<H", self.read(2))[0]
        if first == 0xfe:
            return struct.unpack("<I", self.read(4))[0]
        return struct.unpack("<Q", self.read(8))[0]

    def var_bytes(self) -> bytes:
        return self.read(self.compact_size())


def parse_transaction(reader: _Reader) -> Dict[str, Any]:
    """Parse a serialized Bitcoin transaction (legacy or segwit)."""
    version = struct.unpack("<i", reader.read(4))[0]
    segwit = reader.peek(2) == b"\x00\x01"
    if segwit:
        reader.read(2)

    inputs = []
    for _ in range(reader.compact_size()):
        txid = reader.read(32)[::-1].hex()
        vout = reader.u32()
        script_sig = reader.var_bytes().hex()
        sequence = reader.u32()
        inputs.append({"txid": txid, "vout": vout, "scriptSig": script_sig, "sequence": sequence})

    outputs = []
    for _ in range(reader.compact_size()):
        value = reader.u64()
        script = reader.var_bytes()
        outputs.append({"value": value, "scriptPubKey": script.hex()})

    if segwit:
        for _ in inputs:
            for _ in range(reader.compact_size()):
                reader.var_bytes()

    locktime = reader.u32()
    return {"version": version, "inputs": inputs, "outputs": outputs, "locktime": locktime}


def _read_map(reader: _Reader) -> List[Tuple[bytes, bytes]]:
    entries = []
    while True:
        key_len = reader.compact_size()
        if key_len == 0:
            return entries
        key = reader.read(key_len)
        value = reader.var_bytes()
        entries.append((key, value))


class BitcoinDecoder(BaseDecoder):
    """
    Decodes PSBTs given as hex or base64.

    Recipient and amount come from the first output, the sender from the
    first input's witness UTXO. The fee is only reported when every input
    value is known.
    """

    def __init__(self, chain_id: str, raw_format: RawFormat = RawFormat.PSBT, testnet: bool = False):
        super().__init__(chain_id, raw_format)
        self.network = TESTNET if testnet else MAINNET

    @classmethod
    def from_metadata(cls, chain_id: str, raw_format: RawFormat, chain_metadata) -> "BitcoinDecoder":
        return cls(chain_id, raw_format, testnet=chain_metadata.is_testnet(chain_id))

    def _psbt_bytes(self, raw: str) -> bytes:
        if not isinstance(raw, str):
            raise self._error(f"Expected hex or base64 string, got {type(raw).__name__}")
        text = raw.strip()
        if text.startswith("cHNidP"):
            try:
                return base64.b64decode(text, validate=True)
            except (binascii.Error, ValueError) as e:
                raise self._error(f"Invalid base64 PSBT: {e}") from e
        return self._hex_to_bytes(text)

    def decode(self, raw: str) -> DecodedTransaction:
        data = self._psbt_bytes(raw)
        try:
            return self._decode_psbt(data)
        except DecodeError as e:
            e.chain_id, e.raw_format = self.chain_id, self.raw_format.value
            raise
        except (struct.error, IndexError, ValueError) as e:
            raise self._error(f"Malformed PSBT: {e}") from e

    def _decode_psbt(self, data: bytes) -> DecodedTransaction:
        if not data.startswith(PSBT_MAGIC):
            raise DecodeError("Invalid PSBT magic bytes")
        reader = _Reader(data)
        reader.read(len(PSBT_MAGIC))

        unsigned_tx = None
        for key, value in _read_map(reader):
            if key[0] == PSBT_GLOBAL_UNSIGNED_TX:
                unsigned_tx = parse_transaction(_Reader(value))
            elif key[0] == PSBT_GLOBAL_VERSION:
                psbt_version = struct.unpack("<I", value)[0]
                if psbt_version != 0:
                    raise DecodeError(f"Unsupported PSBT version {psbt_version}")
        if unsigned_tx is None:
            raise DecodeError("PSBT is missing the global unsigned transaction")

        inputs = unsigned_tx["inputs"]
        outputs = unsigned_tx["outputs"]

        input_values: List[Optional[int]] = []
        input_scripts: List[Optional[bytes]] = []
        for tx_in in inputs:
            value, script = None, None
            for key, entry in _read_map(reader):
                if key[0] == PSBT_IN_WITNESS_UTXO:
                    utxo = _Reader(entry)
                    value = utxo.u64()
                    script = utxo.var_bytes()
                elif key[0] == PSBT_IN_NON_WITNESS_UTXO and value is None:
                    prev_outputs = parse_transaction(_Reader(entry))["outputs"]
                    if tx_in["vout"] >= len(prev_outputs):
                        raise DecodeError(f"Input spends missing output {tx_in['vout']} of {tx_in['txid']}")
                    prev = prev_outputs[tx_in["vout"]]
                    value = prev["value"]
                    script = bytes.fromhex(prev["scriptPubKey"])
            input_values.append(value)
            input_scripts.append(script)

        for output in outputs:
            _read_map(reader)
            output["address"] = script_to_address(bytes.fromhex(output["scriptPubKey"]), self.network)

        for tx_in, value in zip(inputs, input_values):
            if value is not None:
                tx_in["value"] = value

        if not outputs:
            raise DecodeError("PSBT transaction has no outputs")

        fee = None
        if inputs and all(v is not None for v in input_values):
            fee = sum(input_values) - sum(o["value"] for o in outputs)

        sender = None
        if input_scripts and input_scripts[0] is not None:
            sender = script_to_address(input_scripts[0], self.network)

        logger.debug(f"Decoded PSBT with {len(inputs)} inputs and {len(outputs)} outputs")
        first = outputs[0]
        return DecodedTransaction(
            chain_id=self.chain_id,
            mode=TransactionMode.TRANSFER,
            sender_address=sender,
            recipient_address=first["address"],
            amount=str(first["value"]),
            fee=str(fee) if fee is not None else None,
            chain_specific_data={
                "version": unsigned_tx["version"],
                "locktime": unsigned_tx["locktime"],
                "inputs": inputs,
                "outputs": outputs,
            },
        )

    def validate(self, decoded: DecodedTransaction) -> bool:
        if decoded.mode != TransactionMode.TRANSFER or decoded.amount is None:
            return False
        outputs = decoded.chain_specific_data.get("outputs") or []
        if not outputs:
            return False
        # A negative fee means outputs spend more than the inputs provide
        return decoded.fee is None or int(decoded.fee) >= 0
