"""
Registry of decoders keyed by (chain id, raw format).
"""
import logging
from typing import Dict, List, Optional, Tuple, Type, Union

from ..config import ChainConfig, ChainMetadata
from ..models import ChainFamily, RawFormat
from .base import BaseDecoder
from .bitcoin import BitcoinDecoder
from .cosmos import CosmosDecoder
from .evm import EVMDecoder
from .solana import SolanaDecoder
from .tron import TronDecoder

# family -> [(format, decoder class)]
DEFAULT_DECODERS: Dict[ChainFamily, List[Tuple[RawFormat, Type[BaseDecoder]]]] = {
    ChainFamily.EVM: [(RawFormat.RLP, EVMDecoder)],
    ChainFamily.BITCOIN: [(RawFormat.PSBT, BitcoinDecoder)],
    ChainFamily.COSMOS: [
        (RawFormat.COSMOS_PROTOBUF, CosmosDecoder),
        (RawFormat.SIGNDOC_DIRECT, CosmosDecoder),
    ],
    ChainFamily.TRON: [(RawFormat.RAW_TRANSACTION, TronDecoder)],
    ChainFamily.SOLANA: [(RawFormat.BORSH, SolanaDecoder)],
}


def _format_key(raw_format: Union[RawFormat, str]) -> str:
    return getattr(raw_format, "value", raw_format)


class DecoderRegistry:
    """
    Holds at most one decoder per (chain id, raw format).

    Built-in decoders are created at construction for every chain the
    metadata provider lists under a supported family. Lookups never build
    new decoders, so the same pair always yields the same instance.
    """

    def __init__(
        self,
        chain_metadata: ChainMetadata = ChainConfig,
        register_defaults: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        self.chain_metadata = chain_metadata
        self.logger = logger or logging.getLogger(__name__)
        self._decoders: Dict[Tuple[str, str], BaseDecoder] = {}
        if register_defaults:
            self._register_defaults()

    def _register_defaults(self) -> None:
        for family, entries in DEFAULT_DECODERS.items():
            for chain_id in self.chain_metadata.chains_by_family(family):
                for raw_format, decoder_cls in entries:
                    try:
                        decoder = decoder_cls.from_metadata(chain_id, raw_format, self.chain_metadata)
                    except (ValueError, KeyError) as e:
                        self.logger.warning(f"Skipping {raw_format.value} decoder for {chain_id}: {e}")
                        continue
                    self.register(decoder)
        self.logger.debug(f"Registered {len(self._decoders)} built-in decoders")

    def register(self, decoder: BaseDecoder) -> None:
        """Add a decoder, replacing any existing one for the same pair."""
        key = (decoder.chain_id, _format_key(decoder.raw_format))
        if key in self._decoders:
            self.logger.debug(f"Replacing decoder for {key[0]}:{key[1]}")
        self._decoders[key] = decoder

    def lookup(self, chain_id: str, raw_format: Union[RawFormat, str]) -> Optional[BaseDecoder]:
        return self._decoders.get((chain_id, _format_key(raw_format)))

    def list_decoders(self) -> List[str]:
        """Sorted ``chain:format`` keys of all registered decoders."""
        return sorted(f"{chain_id}:{fmt}" for chain_id, fmt in self._decoders)

    def __len__(self) -> int:
        return len(self._decoders)

    def __contains__(self, key) -> bool:
        chain_id, raw_format = key
        return (chain_id, _format_key(raw_format)) in self._decoders
