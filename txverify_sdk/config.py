"""
Chain metadata for the txverify SDK.
"""
import importlib.resources
import json
import logging
import os
from typing import Any, Dict, List, Optional, Protocol

from .exceptions import UnknownChainError
from .models import ChainFamily

logger = logging.getLogger(__name__)

CHAINS_FILE_ENV = "TXVERIFY_CHAINS_FILE"


class ChainMetadata(Protocol):
    """What the registry and engine need to know about chains."""

    def family(self, chain_id: str) -> ChainFamily:
        ...

    def evm_numeric_id(self, chain_id: str) -> Optional[int]:
        ...

    def chains_by_family(self, family: ChainFamily) -> List[str]:
        ...

    def is_testnet(self, chain_id: str) -> bool:
        ...

    def bech32_prefix(self, chain_id: str) -> Optional[str]:
        ...


class ChainConfig:
    """
    Chain metadata backed by a JSON file.

    The bundled ``chains.json`` is used unless ``TXVERIFY_CHAINS_FILE`` names
    another file. The file is loaded once per process and cached on the class.
    """

    _chains_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_chains(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load chain definitions.

        Returns:
            Mapping of chain id to its definition

        Raises:
            FileNotFoundError: If the override file does not exist
            ValueError: If the file is not a JSON object
        """
        if cls._chains_cache is not None:
            return cls._chains_cache

        override = os.environ.get(CHAINS_FILE_ENV)
        if override:
            logger.debug(f"Loading chains from {override}")
            with open(override, "r", encoding="utf-8") as f:
                chains = json.load(f)
        else:
            resource = importlib.resources.files("txverify_sdk").joinpath("chains.json")
            chains = json.loads(resource.read_text(encoding="utf-8"))

        if not isinstance(chains, dict):
            raise ValueError("Chain configuration must be a JSON object keyed by chain id")

        cls._chains_cache = chains
        return chains

    @classmethod
    def clear_cache(cls) -> None:
        """Drop the cached definitions so the next call reloads them."""
        cls._chains_cache = None

    @classmethod
    def get_chain(cls, chain_id: str) -> Dict[str, Any]:
        chains = cls.load_chains()
        if chain_id not in chains:
            known = ", ".join(sorted(chains))
            raise UnknownChainError(f"Unknown chain '{chain_id}'. Known chains: {known}")
        return chains[chain_id]

    @classmethod
    def family(cls, chain_id: str) -> ChainFamily:
        return ChainFamily(cls.get_chain(chain_id)["family"])

    @classmethod
    def evm_numeric_id(cls, chain_id: str) -> Optional[int]:
        """
        Numeric EIP-155 chain id for an EVM chain, None for other families.
        """
        chain = cls.get_chain(chain_id)
        if chain["family"] != ChainFamily.EVM.value:
            return None
        return int(chain["chainId"])

    @classmethod
    def decimals(cls, chain_id: str) -> int:
        return int(cls.get_chain(chain_id)["decimals"])

    @classmethod
    def ticker(cls, chain_id: str) -> str:
        return cls.get_chain(chain_id)["ticker"]

    @classmethod
    def is_testnet(cls, chain_id: str) -> bool:
        chain = cls.get_chain(chain_id)
        return bool(chain.get("testnet") or chain.get("testnetFor"))

    @classmethod
    def mainnet_for_testnet(cls, chain_id: str) -> Optional[str]:
        """Mainnet a testnet chain belongs to, None for mainnets and orphan testnets."""
        mainnet = cls.get_chain(chain_id).get("testnetFor")
        if mainnet is None or mainnet not in cls.load_chains():
            return None
        return mainnet

    @classmethod
    def native_id(cls, chain_id: str) -> Optional[str]:
        """
        Identifier the chain itself uses: the EIP-155 id for EVM chains, the
        network id (``cosmoshub-4`` ...) elsewhere.
        """
        chain = cls.get_chain(chain_id)
        if "nativeId" in chain:
            return str(chain["nativeId"])
        if chain["family"] == ChainFamily.EVM.value:
            return str(chain["chainId"])
        return None

    @classmethod
    def chain_by_native_id(cls, native_id: str, family: Optional[ChainFamily] = None) -> Optional[str]:
        """
        Reverse of ``native_id``: the first chain (in sorted order) whose native
        id matches, optionally restricted to one family.
        """
        for chain_id in sorted(cls.load_chains()):
            if family is not None and cls.family(chain_id) != ChainFamily(family):
                continue
            if cls.native_id(chain_id) == str(native_id):
                return chain_id
        return None

    @classmethod
    def bech32_prefix(cls, chain_id: str) -> Optional[str]:
        """Human-readable part of account addresses on a Cosmos chain."""
        return cls.get_chain(chain_id).get("bech32Prefix")

    @classmethod
    def chains_by_family(cls, family: ChainFamily) -> List[str]:
        family = ChainFamily(family)
        return sorted(
            chain_id for chain_id, chain in cls.load_chains().items()
            if chain.get("family") == family.value
        )
