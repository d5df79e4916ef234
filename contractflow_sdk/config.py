"""
Configuration for the contractflow SDK.

``NetworkConfig`` reads named network profiles shipped with the package;
``ClientConfig`` holds the settings of one client session, with
``CONTRACTFLOW_*`` environment variables overriding profile values.
"""
import importlib.resources
import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

_ENV_PREFIX = "CONTRACTFLOW_"


class NetworkConfig:
    """Access to the packaged ``networks.json`` profiles"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load all network profiles, cached after the first call.

        Returns:
            Mapping of network name to profile
        """
        if cls._networks_cache is None:
            text = importlib.resources.files("contractflow_sdk.data").joinpath("networks.json").read_text()
            cls._networks_cache = json.loads(text)
        return cls._networks_cache

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        """
        Get one network profile.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if name not in networks:
            raise ValueError(f"Unknown network '{name}'. Available networks: {', '.join(sorted(networks))}")
        return networks[name]


class ClientConfig(BaseModel):
    """Settings for one ContractClient session"""
    chain_id: str
    node_url: str
    keys_url: str
    compiler_url: Optional[str] = None
    registry_dir: Optional[str] = None
    language: str = "sol"
    fee: int = Field(0, ge=0)
    gas_limit: int = Field(1000, ge=0)
    amount: int = Field(1, ge=0)
    poll_interval: float = Field(0.5, gt=0)
    confirmation_timeout: float = Field(60.0, gt=0)
    retry_count: int = Field(3, ge=0)
    timeout: int = Field(30, gt=0)
    allow_insecure: bool = False

    @field_validator('chain_id')
    @classmethod
    def validate_chain_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("chain_id must not be empty")
        return v

    @classmethod
    def from_network(cls, network: str = "local", **overrides: Any) -> "ClientConfig":
        """
        Build a config from a named profile, environment overrides and keyword overrides.

        Precedence, lowest first: profile, ``CONTRACTFLOW_*`` variables, keyword arguments.
        """
        profile = NetworkConfig.get_network(network)
        values: Dict[str, Any] = {
            "chain_id": profile.get("chainId"),
            "node_url": profile.get("node"),
            "keys_url": profile.get("keys"),
            "compiler_url": profile.get("compiler"),
        }
        values.update(cls._from_env())
        values.update({k: v for k, v in overrides.items() if v is not None})
        logger.debug(f"Using network profile '{network}' with chain id {values['chain_id']}")
        return cls(**values)

    @classmethod
    def _from_env(cls) -> Dict[str, Any]:
        values = {}
        for field in cls.model_fields:
            env_value = os.environ.get(_ENV_PREFIX + field.upper())
            if env_value is not None:
                values[field] = env_value
        return values
