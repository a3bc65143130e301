"""
Protobuf message classes for the Cosmos SDK transaction types we decode.

Descriptors are declared here and loaded into a private descriptor pool so
no generated ``_pb2`` modules are needed. Field numbers follow the Cosmos SDK
``.proto`` definitions; ``AuthInfo.signer_infos`` is kept as raw bytes.
"""
from typing import Dict, List, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_F = descriptor_pb2.FieldDescriptorProto

PACKAGE = "txverify.cosmos"

# name -> [(field name, number, type, repeated, message type)]
_MESSAGES: Dict[str, List[Tuple[str, int, int, bool, str]]] = {
    "Any": [
        ("type_url", 1, _F.TYPE_STRING, False, ""),
        ("value", 2, _F.TYPE_BYTES, False, ""),
    ],
    "Coin": [
        ("denom", 1, _F.TYPE_STRING, False, ""),
        ("amount", 2, _F.TYPE_STRING, False, ""),
    ],
    "TxRaw": [
        ("body_bytes", 1, _F.TYPE_BYTES, False, ""),
        ("auth_info_bytes", 2, _F.TYPE_BYTES, False, ""),
        ("signatures", 3, _F.TYPE_BYTES, True, ""),
    ],
    "SignDoc": [
        ("body_bytes", 1, _F.TYPE_BYTES, False, ""),
        ("auth_info_bytes", 2, _F.TYPE_BYTES, False, ""),
        ("chain_id", 3, _F.TYPE_STRING, False, ""),
        ("account_number", 4, _F.TYPE_UINT64, False, ""),
    ],
    "TxBody": [
        ("messages", 1, _F.TYPE_MESSAGE, True, "Any"),
        ("memo", 2, _F.TYPE_STRING, False, ""),
        ("timeout_height", 3, _F.TYPE_UINT64, False, ""),
    ],
    "Fee": [
        ("amount", 1, _F.TYPE_MESSAGE, True, "Coin"),
        ("gas_limit", 2, _F.TYPE_UINT64, False, ""),
        ("payer", 3, _F.TYPE_STRING, False, ""),
        ("granter", 4, _F.TYPE_STRING, False, ""),
    ],
    "AuthInfo": [
        ("signer_infos", 1, _F.TYPE_BYTES, True, ""),
        ("fee", 2, _F.TYPE_MESSAGE, False, "Fee"),
    ],
    "MsgSend": [
        ("from_address", 1, _F.TYPE_STRING, False, ""),
        ("to_address", 2, _F.TYPE_STRING, False, ""),
        ("amount", 3, _F.TYPE_MESSAGE, True, "Coin"),
    ],
    "MsgDelegate": [
        ("delegator_address", 1, _F.TYPE_STRING, False, ""),
        ("validator_address", 2, _F.TYPE_STRING, False, ""),
        ("amount", 3, _F.TYPE_MESSAGE, False, "Coin"),
    ],
    "MsgUndelegate": [
        ("delegator_address", 1, _F.TYPE_STRING, False, ""),
        ("validator_address", 2, _F.TYPE_STRING, False, ""),
        ("amount", 3, _F.TYPE_MESSAGE, False, "Coin"),
    ],
    "MsgWithdrawDelegatorReward": [
        ("delegator_address", 1, _F.TYPE_STRING, False, ""),
        ("validator_address", 2, _F.TYPE_STRING, False, ""),
    ],
}

MSG_SEND = "/cosmos.bank.v1beta1.MsgSend"
MSG_DELEGATE = "/cosmos.staking.v1beta1.MsgDelegate"
MSG_UNDELEGATE = "/cosmos.staking.v1beta1.MsgUndelegate"
MSG_WITHDRAW_REWARD = "/cosmos.distribution.v1beta1.MsgWithdrawDelegatorReward"


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="txverify/cosmos.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=name)
        for field_name, number, field_type, repeated, type_name in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())

_classes = {
    name: message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))
    for name in _MESSAGES
}

Any = _classes["Any"]
Coin = _classes["Coin"]
TxRaw = _classes["TxRaw"]
SignDoc = _classes["SignDoc"]
TxBody = _classes["TxBody"]
Fee = _classes["Fee"]
AuthInfo = _classes["AuthInfo"]
MsgSend = _classes["MsgSend"]
MsgDelegate = _classes["MsgDelegate"]
MsgUndelegate = _classes["MsgUndelegate"]
MsgWithdrawDelegatorReward = _classes["MsgWithdrawDelegatorReward"]
