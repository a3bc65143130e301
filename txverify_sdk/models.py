"""
Data models for the txverify SDK.

All models accept and emit the camelCase JSON shape used by the encode API
(``senderAddress``, ``useMaxAmount`` ...) while exposing snake_case attributes.
"""
import re
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

_AMOUNT_RE = re.compile(r"0|[1-9][0-9]*")


def _check_amount(value: str) -> str:
    if not _AMOUNT_RE.fullmatch(value):
        raise ValueError("Amount must be a non-negative integer string without leading zeros")
    return value


Amount = Annotated[StrictStr, AfterValidator(_check_amount)]


class TransactionMode(str, Enum):
    """Transaction modes understood by the encode API"""
    TRANSFER = "transfer"
    TRANSFER_TOKEN = "transferToken"
    STAKE = "stake"
    UNSTAKE = "unstake"
    CLAIM_REWARDS = "claimRewards"
    DEPLOY_ACCOUNT = "deployAccount"
    WITHDRAW = "withdraw"
    REGISTER_STAKE = "registerStake"
    CONVERT_ASSET = "convertAsset"


class HashFormat(str, Enum):
    SHA256 = "sha256"
    KECCAK256 = "keccak256"
    SHA512_256 = "sha512_256"
    PEDERSEN = "pedersen"


class RawFormat(str, Enum):
    """Wire formats of encoded transactions"""
    RLP = "RLP"
    WALLET_CONNECT = "WALLET_CONNECT"
    SIGNDOC_DIRECT = "SIGNDOC_DIRECT"
    SIGNDOC_DIRECT_JSON = "SIGNDOC_DIRECT_JSON"
    SIGNDOC_AMINO = "SIGNDOC_AMINO"
    SIGNDOC_AMINO_JSON = "SIGNDOC_AMINO_JSON"
    BOC = "BOC"
    RAW_TRANSACTION = "RAW_TRANSACTION"
    MSGPACK = "MSGPACK"
    PSBT = "PSBT"
    BCS = "BCS"
    BORSH = "BORSH"
    COSMOS_PROTOBUF = "COSMOS_PROTOBUF"


class ChainFamily(str, Enum):
    EVM = "evm"
    BITCOIN = "bitcoin"
    COSMOS = "cosmos"
    TRON = "tron"
    SOLANA = "solana"
    APTOS = "aptos"
    ALGORAND = "algorand"
    TON = "ton"
    STARKNET = "starknet"


class ErrorSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    CRITICAL = "critical"


class ErrorCode(str, Enum):
    """
    Diagnostic codes reported in a VerificationResult.
    """
    # Structural
    INVALID_API_RESPONSE = "INVALID_API_RESPONSE"
    INVALID_INTENT = "INVALID_INTENT"
    MISSING_DECODER = "MISSING_DECODER"
    DECODE_FAILED = "DECODE_FAILED"
    INVALID_DECODED_STRUCTURE = "INVALID_DECODED_STRUCTURE"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"

    # Field mismatch between intent and API data
    MODE_MISMATCH = "MODE_MISMATCH"
    SENDER_MISMATCH = "SENDER_MISMATCH"
    RECIPIENT_MISMATCH = "RECIPIENT_MISMATCH"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    TOKEN_MISMATCH = "TOKEN_MISMATCH"
    VALIDATOR_MISMATCH = "VALIDATOR_MISMATCH"

    # Encoded bytes disagree with the intent
    CRITICAL_RECIPIENT_MISMATCH = "CRITICAL_RECIPIENT_MISMATCH"
    CRITICAL_AMOUNT_MISMATCH = "CRITICAL_AMOUNT_MISMATCH"
    CRITICAL_TOKEN_MISMATCH = "CRITICAL_TOKEN_MISMATCH"
    CRITICAL_VALIDATOR_MISMATCH = "CRITICAL_VALIDATOR_MISMATCH"
    CRITICAL_CHAIN_MISMATCH = "CRITICAL_CHAIN_MISMATCH"

    # Encoded bytes disagree with the API's own summary
    DECODED_API_MISMATCH = "DECODED_API_MISMATCH"


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Transaction intents
# ---------------------------------------------------------------------------

class _IntentBase(_Model):
    sender_address: Optional[StrictStr] = None
    sender_pub_key: Optional[StrictStr] = None
    memo: Optional[StrictStr] = None


class TransferIntent(_IntentBase):
    mode: Literal["transfer"]
    recipient_address: StrictStr
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None


class TransferTokenIntent(_IntentBase):
    mode: Literal["transferToken"]
    recipient_address: StrictStr
    token_id: StrictStr
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None


class StakeIntent(_IntentBase):
    mode: Literal["stake"]
    target_validator_address: StrictStr
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None


class UnstakeIntent(_IntentBase):
    mode: Literal["unstake"]
    validator_address: StrictStr
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None
    stake_id: Optional[StrictStr] = None


class ClaimRewardsIntent(_IntentBase):
    mode: Literal["claimRewards"]
    validator_address: Optional[StrictStr] = None
    compound: Optional[StrictBool] = None


class DeployAccountIntent(_IntentBase):
    mode: Literal["deployAccount"]


class WithdrawIntent(_IntentBase):
    mode: Literal["withdraw"]
    validator_address: StrictStr
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None


class RegisterStakeIntent(_IntentBase):
    mode: Literal["registerStake"]
    validator_address: StrictStr


class AssetSource(_Model):
    chain_id: StrictStr
    token_id: Optional[StrictStr] = None
    amount: Amount


class AssetTarget(_Model):
    chain_id: StrictStr
    token_id: Optional[StrictStr] = None


class ConvertAssetIntent(_IntentBase):
    mode: Literal["convertAsset"]
    from_: AssetSource = Field(alias="from")
    to: AssetTarget


TransactionIntent = Annotated[
    Union[
        TransferIntent,
        TransferTokenIntent,
        StakeIntent,
        UnstakeIntent,
        ClaimRewardsIntent,
        DeployAccountIntent,
        WithdrawIntent,
        RegisterStakeIntent,
        ConvertAssetIntent,
    ],
    Field(discriminator="mode"),
]

INTENT_TYPES = (
    TransferIntent,
    TransferTokenIntent,
    StakeIntent,
    UnstakeIntent,
    ClaimRewardsIntent,
    DeployAccountIntent,
    WithdrawIntent,
    RegisterStakeIntent,
    ConvertAssetIntent,
)

# Mode-specific fields compared between intent, API data and decoded data.
# Every TransactionMode has an entry.
MODE_FIELDS: Dict[TransactionMode, Tuple[str, ...]] = {
    TransactionMode.TRANSFER: ("recipient_address", "amount"),
    TransactionMode.TRANSFER_TOKEN: ("recipient_address", "token_id", "amount"),
    TransactionMode.STAKE: ("target_validator_address", "amount"),
    TransactionMode.UNSTAKE: ("validator_address", "amount"),
    TransactionMode.CLAIM_REWARDS: ("validator_address",),
    TransactionMode.DEPLOY_ACCOUNT: (),
    TransactionMode.WITHDRAW: ("validator_address", "amount"),
    TransactionMode.REGISTER_STAKE: ("validator_address",),
    TransactionMode.CONVERT_ASSET: (),
}

STAKING_MODES = frozenset({
    TransactionMode.STAKE,
    TransactionMode.UNSTAKE,
    TransactionMode.CLAIM_REWARDS,
    TransactionMode.WITHDRAW,
    TransactionMode.REGISTER_STAKE,
})


# ---------------------------------------------------------------------------
# Encode API response
# ---------------------------------------------------------------------------

class TransactionData(_Model):
    """Transaction data as computed by the remote API (untrusted)"""
    mode: TransactionMode
    sender_address: Optional[StrictStr] = None
    sender_pub_key: Optional[StrictStr] = None
    recipient_address: Optional[StrictStr] = None
    amount: Optional[Amount] = None
    use_max_amount: Optional[StrictBool] = None
    token_id: Optional[StrictStr] = None
    validator_address: Optional[StrictStr] = None
    target_validator_address: Optional[StrictStr] = None
    source_validator_address: Optional[StrictStr] = None
    stake_id: Optional[StrictStr] = None
    compound: Optional[StrictBool] = None
    memo: Optional[StrictStr] = None
    fees: StrictStr
    gas: Optional[StrictStr] = None
    nonce: Optional[StrictStr] = None
    params: Optional[Any] = None
    from_: Optional[AssetSource] = Field(default=None, alias="from")
    to: Optional[AssetTarget] = None


class EncodedHash(_Model):
    format: HashFormat
    value: StrictStr


class EncodedRaw(_Model):
    format: RawFormat
    value: StrictStr


class EncodedTransaction(_Model):
    hash: Optional[EncodedHash] = None
    raw: Optional[EncodedRaw] = None


class TransactionPayload(_Model):
    data: TransactionData
    encoded: List[EncodedTransaction]


class StatusMessage(_Model):
    message: StrictStr


class ResponseStatus(_Model):
    errors: List[Union[StrictStr, StatusMessage]] = Field(default_factory=list)
    warnings: List[Union[StrictStr, StatusMessage]] = Field(default_factory=list)


class EncodeResponse(_Model):
    """Response of the ``/{chainId}/transaction/encode`` endpoint"""
    chain_id: StrictStr = Field(min_length=1)
    transaction: TransactionPayload
    status: Optional[ResponseStatus] = None

    @property
    def raw_payload(self) -> Optional[EncodedRaw]:
        """First encoded entry carrying a raw section, if any."""
        for entry in self.transaction.encoded:
            if entry.raw is not None:
                return entry.raw
        return None


# ---------------------------------------------------------------------------
# Decoder output
# ---------------------------------------------------------------------------

class DecodedTransaction(_Model):
    """Canonical view of an encoded transaction produced by a decoder"""
    chain_id: Optional[str] = None
    mode: Optional[TransactionMode] = None
    sender_address: Optional[str] = None
    recipient_address: Optional[str] = None
    amount: Optional[Amount] = None
    token_id: Optional[str] = None
    validator_address: Optional[str] = None
    target_validator_address: Optional[str] = None
    fee: Optional[str] = None
    memo: Optional[str] = None
    chain_specific_data: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Verification output
# ---------------------------------------------------------------------------

class ErrorContext(_Model):
    model_config = ConfigDict(extra="allow")

    expected: Optional[str] = None
    actual: Optional[str] = None


class VerificationError(_Model):
    code: ErrorCode
    severity: ErrorSeverity
    message: str
    field: Optional[str] = None
    context: ErrorContext = Field(default_factory=ErrorContext)
    recovery_strategy: Optional[str] = None


class DecodedData(_Model):
    chain_id: str
    transaction: TransactionData
    raw: Optional[DecodedTransaction] = None


class VerificationResult(_Model):
    is_valid: bool
    errors: List[VerificationError] = Field(default_factory=list)
    warnings: List[VerificationError] = Field(default_factory=list)
    critical_errors: List[VerificationError] = Field(default_factory=list)
    decoded_data: Optional[DecodedData] = None

    @property
    def codes(self) -> List[ErrorCode]:
        """All diagnostic codes in the result, errors first."""
        return [e.code for e in self.errors + self.critical_errors + self.warnings]
