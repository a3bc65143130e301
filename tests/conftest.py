"""
Pytest fixtures and transaction builders for the txverify SDK tests.

Encoded transactions are produced with the real libraries (rlp, eth_account,
protobuf, base58) rather than hand-written hex wherever possible.
"""
import struct

import base58
import pytest
import rlp
from eth_account import Account
from web3 import Web3

from txverify_sdk._rate_limited_log import reset_rate_limits
from txverify_sdk.config import ChainConfig
from txverify_sdk.decoders import _cosmos_proto as pb
from txverify_sdk.decoders.registry import DecoderRegistry
from txverify_sdk.engine import VerificationEngine

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_SENDER = Account.from_key(TEST_PRIVATE_KEY).address

RECIPIENT = Web3.to_checksum_address("0x8bc6922eb94e4858efaf9f433c35bc241f69e8a6")
USDC = Web3.to_checksum_address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
ATTACKER = Web3.to_checksum_address("0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb")

COSMOS_SENDER = "cosmos1sender0000000000000000000000000000000"
COSMOS_RECIPIENT = "cosmos1recipient000000000000000000000000000"
COSMOS_VALIDATOR = "cosmosvaloper1validator00000000000000000000000"


# ─────────────────────────────────────────────────────────────────────────
#  EVM
# ─────────────────────────────────────────────────────────────────────────

def _address_bytes(address):
    return bytes.fromhex(address[2:]) if address else b""


def erc20_transfer_data(recipient, amount):
    return bytes.fromhex("a9059cbb") + bytes(12) + _address_bytes(recipient) + amount.to_bytes(32, "big")


def eip1559_unsigned(chain_id=1, to=RECIPIENT, value=0, data=b"", nonce=0,
                     max_priority_fee=1_000_000_000, max_fee=2_000_000_000, gas=21000):
    fields = [chain_id, nonce, max_priority_fee, max_fee, gas, _address_bytes(to), value, data, []]
    return "0x02" + rlp.encode(fields).hex()


def eip2930_unsigned(chain_id=1, to=RECIPIENT, value=0, data=b"", nonce=0, gas_price=1_000_000_000, gas=21000):
    fields = [chain_id, nonce, gas_price, gas, _address_bytes(to), value, data, []]
    return "0x01" + rlp.encode(fields).hex()


def legacy_unsigned(to=RECIPIENT, value=0, data=b"", nonce=0, gas_price=1_000_000_000, gas=21000, chain_id=None):
    fields = [nonce, gas_price, gas, _address_bytes(to), value, data]
    if chain_id is not None:
        fields += [chain_id, 0, 0]
    return "0x" + rlp.encode(fields).hex()


def signed_transaction(tx):
    return "0x" + Account.sign_transaction(tx, TEST_PRIVATE_KEY).raw_transaction.hex().removeprefix("0x")


def signed_eip1559(chain_id=1, to=RECIPIENT, value=0, data=b"", nonce=0):
    return signed_transaction({
        "type": 2,
        "chainId": chain_id,
        "nonce": nonce,
        "maxPriorityFeePerGas": 1_000_000_000,
        "maxFeePerGas": 2_000_000_000,
        "gas": 60000,
        "to": to,
        "value": value,
        "data": data,
    })


def signed_legacy(chain_id=1, to=RECIPIENT, value=0):
    tx = {"nonce": 0, "gasPrice": 1_000_000_000, "gas": 21000, "to": to, "value": value, "data": b""}
    if chain_id is not None:
        tx["chainId"] = chain_id
    return signed_transaction(tx)


# ─────────────────────────────────────────────────────────────────────────
#  Bitcoin
# ─────────────────────────────────────────────────────────────────────────

def compact_size(n):
    if n < 0xfd:
        return bytes([n])
    if n <= 0xffff:
        return b"\xfd" + struct.pack("<H", n)
    return b"\xfe" + struct.pack("<I", n)


def p2wpkh(h):
    return b"\x00\x14" + h


def p2pkh(h):
    return b"\x76\xa9\x14" + h + b"\x88\xac"


def p2tr(key):
    return b"\x51\x20" + key


def bitcoin_tx(inputs, outputs, version=2, locktime=0):
    out = struct.pack("<i", version) + compact_size(len(inputs))
    for txid, vout in inputs:
        out += bytes.fromhex(txid)[::-1] + struct.pack("<I", vout) + compact_size(0) + struct.pack("<I", 0xfffffffd)
    out += compact_size(len(outputs))
    for value, script in outputs:
        out += struct.pack("<Q", value) + compact_size(len(script)) + script
    return out + struct.pack("<I", locktime)


def _kv(key, value):
    return compact_size(len(key)) + key + compact_size(len(value)) + value


def build_psbt(inputs, outputs, witness_utxos=None, non_witness_utxos=None):
    """PSBT v0 bytes; witness_utxos is a list of (value, script) or None per input."""
    psbt = b"psbt\xff" + _kv(b"\x00", bitcoin_tx(inputs, outputs)) + b"\x00"
    for i in range(len(inputs)):
        if non_witness_utxos and non_witness_utxos[i] is not None:
            psbt += _kv(b"\x00", non_witness_utxos[i])
        if witness_utxos and witness_utxos[i] is not None:
            value, script = witness_utxos[i]
            psbt += _kv(b"\x01", struct.pack("<Q", value) + compact_size(len(script)) + script)
        psbt += b"\x00"
    for _ in outputs:
        psbt += b"\x00"
    return psbt


# ─────────────────────────────────────────────────────────────────────────
#  Cosmos
# ─────────────────────────────────────────────────────────────────────────

def cosmos_tx(type_url, msg, memo="", fee_amount="5000", sign_doc_chain=None, extra_messages=()):
    messages = [pb.Any(type_url=type_url, value=msg.SerializeToString())]
    messages += [pb.Any(type_url=t, value=m.SerializeToString()) for t, m in extra_messages]
    body = pb.TxBody(messages=messages, memo=memo).SerializeToString()
    auth_info = pb.AuthInfo(
        fee=pb.Fee(amount=[pb.Coin(denom="uatom", amount=fee_amount)], gas_limit=200000)
    ).SerializeToString()
    if sign_doc_chain:
        envelope = pb.SignDoc(body_bytes=body, auth_info_bytes=auth_info, chain_id=sign_doc_chain, account_number=7)
    else:
        # 0xff is never valid UTF-8, like a real signature in practice
        envelope = pb.TxRaw(body_bytes=body, auth_info_bytes=auth_info, signatures=[b"\xff" * 64])
    return envelope.SerializeToString().hex()


def cosmos_send(recipient=COSMOS_RECIPIENT, amount="1000000", **kwargs):
    msg = pb.MsgSend(
        from_address=COSMOS_SENDER,
        to_address=recipient,
        amount=[pb.Coin(denom="uatom", amount=amount)],
    )
    return cosmos_tx("/cosmos.bank.v1beta1.MsgSend", msg, **kwargs)


def cosmos_delegate(validator=COSMOS_VALIDATOR, amount="1000000", **kwargs):
    msg = pb.MsgDelegate(
        delegator_address=COSMOS_SENDER,
        validator_address=validator,
        amount=pb.Coin(denom="uatom", amount=amount),
    )
    return cosmos_tx("/cosmos.staking.v1beta1.MsgDelegate", msg, **kwargs)


# ─────────────────────────────────────────────────────────────────────────
#  Tron
# ─────────────────────────────────────────────────────────────────────────

TRON_OWNER = bytes.fromhex("41" + "11" * 20)
TRON_RECIPIENT = bytes.fromhex("41" + "22" * 20)
TRON_USDT = base58.b58decode_check("TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t")


def tron_b58(raw):
    return base58.b58encode_check(raw).decode("ascii")


def varint(n):
    out = b""
    while True:
        byte = n & 0x7f
        n >>= 7
        if n:
            out += bytes([byte | 0x80])
        else:
            return out + bytes([byte])


def tron_native_transfer(amount, owner=TRON_OWNER, recipient=TRON_RECIPIENT):
    params = b"\x0a\x15" + owner + b"\x12\x15" + recipient + b"\x18" + varint(amount)
    contract = b"\x0a\x2dtype.googleapis.com/protocol.TransferContract\x12" + varint(len(params)) + params
    raw = b"\x0a\x02\xab\xcd\x22\x08" + bytes(8) + b"\x5a" + varint(len(contract) + 2) + b"\x08\x01" + contract
    return raw.hex()


def tron_token_transfer(amount, owner=TRON_OWNER, recipient=TRON_RECIPIENT, contract_address=TRON_USDT):
    call = bytes.fromhex("a9059cbb") + bytes(12) + recipient[1:] + amount.to_bytes(32, "big")
    params = b"\x0a\x15" + owner + b"\x12\x15" + contract_address + b"\x22\x44" + call
    contract = b"\x0a\x31type.googleapis.com/protocol.TriggerSmartContract\x12" + varint(len(params)) + params
    raw = b"\x0a\x02\xab\xcd" + b"\x5a" + varint(len(contract) + 2) + b"\x08\x1f" + contract
    return raw.hex()


# ─────────────────────────────────────────────────────────────────────────
#  Solana
# ─────────────────────────────────────────────────────────────────────────

SOL_KEY1 = bytes(range(1, 33))
SOL_KEY2 = bytes(range(33, 65))
SOL_BLOCKHASH = bytes(range(65, 97))
SPL_TOKEN_PROGRAM_ID = bytes.fromhex("06ddf6e1d765a193d9cbe146ceeb79ac1cb485ed5f5b37913a8cf5857eff00a9")


def sol_b58(key):
    return base58.b58encode(key).decode("ascii")


def solana_tx(payload, key1=SOL_KEY1, key2=SOL_KEY2):
    return (b"\x01\x00\x00\x00" + key1 + key2 + SOL_BLOCKHASH + payload).hex()


def solana_system_transfer(amount, key2=SOL_KEY2):
    return solana_tx(struct.pack("<IQ", 2, amount), key2=key2)


def solana_spl_transfer(amount):
    return solana_tx(SPL_TOKEN_PROGRAM_ID + b"\x0c" + struct.pack("<Q", amount))


# ─────────────────────────────────────────────────────────────────────────
#  API responses
# ─────────────────────────────────────────────────────────────────────────

def make_response(chain_id, data, raw_value=None, raw_format="RLP", hash_value=None):
    encoded = {}
    if hash_value is not None:
        encoded["hash"] = {"format": "keccak256", "value": hash_value}
    if raw_value is not None:
        encoded["raw"] = {"format": raw_format, "value": raw_value}
    return {
        "chainId": chain_id,
        "transaction": {
            "data": {"fees": "21000000000000", **data},
            "encoded": [encoded] if encoded else [],
        },
        "status": {"errors": [], "warnings": []},
    }


# ─────────────────────────────────────────────────────────────────────────
#  Fixtures
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _fresh_state():
    """Reload chain metadata and forget rate-limited messages between tests."""
    ChainConfig.clear_cache()
    reset_rate_limits()
    yield
    ChainConfig.clear_cache()


@pytest.fixture
def registry():
    return DecoderRegistry()


@pytest.fixture
def engine(registry):
    return VerificationEngine(registry=registry)


@pytest.fixture
def transfer_intent():
    return {
        "mode": "transfer",
        "senderAddress": TEST_SENDER,
        "recipientAddress": RECIPIENT,
        "amount": "1000",
    }


@pytest.fixture
def transfer_response():
    """Honest ethereum response for transfer_intent."""
    return make_response(
        "ethereum",
        {"mode": "transfer", "senderAddress": TEST_SENDER, "recipientAddress": RECIPIENT, "amount": "1000"},
        raw_value=eip1559_unsigned(chain_id=1, to=RECIPIENT, value=1000),
    )
