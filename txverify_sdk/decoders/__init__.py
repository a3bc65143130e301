"""
Wire-format decoders and the decoder registry.
"""
from .base import BaseDecoder
from .bitcoin import BitcoinDecoder
from .cosmos import CosmosDecoder
from .evm import EVMDecoder
from .registry import DEFAULT_DECODERS, DecoderRegistry
from .solana import SolanaDecoder
from .tron import TronDecoder

__all__ = [
    "BaseDecoder",
    "BitcoinDecoder",
    "CosmosDecoder",
    "DEFAULT_DECODERS",
    "DecoderRegistry",
    "EVMDecoder",
    "SolanaDecoder",
    "TronDecoder",
]
