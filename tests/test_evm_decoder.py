"""
Tests for the RLP/EVM decoder.
"""
import pytest
import rlp
from web3 import Web3

from txverify_sdk.decoders.evm import EVMDecoder
from txverify_sdk.exceptions import ChainIdMismatchError, DecodeError
from txverify_sdk.models import TransactionMode

from conftest import (
    RECIPIENT,
    TEST_SENDER,
    USDC,
    eip1559_unsigned,
    eip2930_unsigned,
    erc20_transfer_data,
    legacy_unsigned,
    signed_eip1559,
    signed_legacy,
)

# Real encode API responses for optimism and base
OPTIMISM_TX = "0x02ed0a818f830f4240830f5ac7825208948bc6922eb94e4858efaf9f433c35bc241f69e8a6870f781467ca0c4280c0"
BASE_TX = "0x02e782210509830f424083873643825208948bc6922eb94e4858efaf9f433c35bc241f69e8a67b80c0"


@pytest.fixture
def ethereum():
    return EVMDecoder("ethereum", 1)


class TestEVMDecoder:
    """Decoding of EVM transaction envelopes."""

    def test_real_optimism_transaction(self):
        decoded = EVMDecoder("optimism", 10).decode(OPTIMISM_TX)
        assert decoded.mode == TransactionMode.TRANSFER
        assert decoded.recipient_address == RECIPIENT
        assert decoded.amount == str(0x0f781467ca0c42)
        assert decoded.fee == str(21000 * 0x0f5ac7)
        assert decoded.chain_specific_data["chainId"] == 10
        assert decoded.chain_specific_data["nonce"] == 143
        assert decoded.chain_specific_data["signed"] is False

    def test_real_base_transaction(self):
        decoded = EVMDecoder("base", 8453).decode(BASE_TX)
        assert decoded.amount == "123"
        assert decoded.recipient_address == RECIPIENT

    def test_unsigned_eip1559_native_transfer(self, ethereum):
        decoded = ethereum.decode(eip1559_unsigned(value=10 ** 18))
        assert decoded.mode == TransactionMode.TRANSFER
        assert decoded.amount == str(10 ** 18)
        assert decoded.sender_address is None
        assert decoded.token_id is None
        assert decoded.chain_specific_data["txType"] == 2
        assert ethereum.validate(decoded)

    def test_prefix_is_optional(self, ethereum):
        raw = eip1559_unsigned(value=5)
        assert ethereum.decode(raw) == ethereum.decode(raw[2:])

    def test_erc20_transfer(self, ethereum):
        raw = eip1559_unsigned(to=USDC, data=erc20_transfer_data(RECIPIENT, 1_000_000), gas=65000)
        decoded = ethereum.decode(raw)
        assert decoded.mode == TransactionMode.TRANSFER_TOKEN
        assert decoded.recipient_address == RECIPIENT
        assert decoded.amount == "1000000"
        assert decoded.token_id == USDC
        assert ethereum.validate(decoded)

    def test_erc20_call_data_too_short(self, ethereum):
        data = erc20_transfer_data(RECIPIENT, 1)[:40]
        with pytest.raises(DecodeError, match="too short"):
            ethereum.decode(eip1559_unsigned(to=USDC, data=data))

    def test_other_call_data_is_native_transfer(self, ethereum):
        decoded = ethereum.decode(eip1559_unsigned(to=USDC, value=7, data=bytes.fromhex("095ea7b3") + bytes(64)))
        assert decoded.mode == TransactionMode.TRANSFER
        assert decoded.recipient_address == USDC
        assert decoded.amount == "7"

    def test_contract_creation_has_no_recipient(self, ethereum):
        decoded = ethereum.decode(eip1559_unsigned(to=None, data=b"\x60\x80"))
        assert decoded.recipient_address is None

    def test_signed_eip1559_recovers_sender(self, ethereum):
        decoded = ethereum.decode(signed_eip1559(value=42))
        assert decoded.sender_address == TEST_SENDER
        assert decoded.amount == "42"
        assert decoded.fee == str(60000 * 2_000_000_000)
        assert decoded.chain_specific_data["signed"] is True

    def test_eip2930(self, ethereum):
        decoded = ethereum.decode(eip2930_unsigned(value=9, gas_price=3))
        assert decoded.amount == "9"
        assert decoded.fee == str(21000 * 3)
        assert decoded.chain_specific_data["txType"] == 1

    def test_signed_legacy_eip155(self):
        decoded = EVMDecoder("polygon", 137).decode(signed_legacy(chain_id=137, value=5))
        assert decoded.sender_address == TEST_SENDER
        assert decoded.chain_specific_data["chainId"] == 137
        assert decoded.fee == str(21000 * 1_000_000_000)

    def test_unsigned_legacy_with_chain_id(self, ethereum):
        decoded = ethereum.decode(legacy_unsigned(value=3, chain_id=1))
        assert decoded.amount == "3"
        assert decoded.chain_specific_data["signed"] is False


class TestChainIdCheck:
    """The embedded chain id must match the decoder's chain."""

    def test_mismatch(self, ethereum):
        with pytest.raises(ChainIdMismatchError) as exc_info:
            ethereum.decode(OPTIMISM_TX)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 10
        assert str(exc_info.value) == "Chain ID mismatch: expected 1 for ethereum, but transaction has 10"
        assert isinstance(exc_info.value, DecodeError)

    def test_pre_eip155_signature_has_no_chain_id(self, ethereum):
        with pytest.raises(ChainIdMismatchError, match="does not contain chain ID") as exc_info:
            ethereum.decode(signed_legacy(chain_id=None))
        assert exc_info.value.actual is None

    def test_unsigned_legacy_without_chain_id(self, ethereum):
        with pytest.raises(ChainIdMismatchError):
            ethereum.decode(legacy_unsigned(value=1))

    def test_signed_transaction_for_other_chain(self):
        with pytest.raises(ChainIdMismatchError):
            EVMDecoder("base", 8453).decode(signed_eip1559(chain_id=1))


class TestMalformedInput:

    @pytest.mark.parametrize("raw", ["", "0x", "0xzz", "not hex", "0x123"])
    def test_invalid_hex(self, ethereum, raw):
        with pytest.raises(DecodeError):
            ethereum.decode(raw)

    def test_unsupported_type(self, ethereum):
        with pytest.raises(DecodeError, match="Unsupported transaction type"):
            ethereum.decode("0x05c0")

    def test_truncated_rlp(self, ethereum):
        with pytest.raises(DecodeError):
            ethereum.decode(eip1559_unsigned(value=1)[:-6])

    def test_wrong_field_count(self, ethereum):
        with pytest.raises(DecodeError, match="9 or 12 fields"):
            ethereum.decode("0x02" + rlp.encode([1, 0, 0]).hex())

    def test_nested_list_in_scalar_field(self, ethereum):
        fields = [1, 0, 0, 0, 21000, bytes.fromhex(RECIPIENT[2:]), [b"\x01"], b"", []]
        with pytest.raises(DecodeError, match="byte string"):
            ethereum.decode("0x02" + rlp.encode(fields).hex())

    def test_bad_to_length(self, ethereum):
        fields = [1, 0, 0, 0, 21000, b"\x01\x02", 0, b"", []]
        with pytest.raises(DecodeError, match="0 or 20 bytes"):
            ethereum.decode("0x02" + rlp.encode(fields).hex())

    def test_errors_carry_chain_and_format(self, ethereum):
        with pytest.raises(DecodeError) as exc_info:
            ethereum.decode("0x05c0")
        assert exc_info.value.chain_id == "ethereum"
        assert exc_info.value.raw_format == "RLP"


class TestValidate:

    def test_rejects_missing_amount(self, ethereum):
        decoded = ethereum.decode(eip1559_unsigned(value=1)).model_copy(update={"amount": None})
        assert not ethereum.validate(decoded)

    def test_rejects_non_checksum_recipient(self, ethereum):
        decoded = ethereum.decode(eip1559_unsigned(value=1))
        decoded = decoded.model_copy(update={"recipient_address": Web3.to_checksum_address(RECIPIENT).lower()})
        assert not ethereum.validate(decoded)
