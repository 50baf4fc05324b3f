"""
Settings for talking to a Raisin deployment.
"""
import os
import urllib.parse
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, InvalidAddressError
from .utils import parse_address

DEFAULT_RAISIN_ADDRESS = "0x7e37cd627c75db9b76331f484449e5d98d5c82c5"
DEFAULT_CONFIRMATIONS = 6

# environment variable -> config field
_ENV_FIELDS = {
    "RAISIN_RPC_URL": "rpc_url",
    "RAISIN_ADDRESS": "raisin_address",
    "RAISIN_ABI_PATH": "raisin_abi_path",
    "RAISIN_TOKEN_ABI_PATH": "token_abi_path",
    "RAISIN_CONFIRMATIONS": "confirmations",
    "RAISIN_POLL_INTERVAL": "poll_interval",
    "RAISIN_CONFIRMATION_TIMEOUT": "confirmation_timeout",
    "RAISIN_CHAIN_ID": "expected_chain_id",
    "RAISIN_GAS_PRICE": "gas_price",
    "RAISIN_RETRY_COUNT": "retry_count",
    "RAISIN_REQUEST_TIMEOUT": "request_timeout",
}

# Older deployments kept the RPC endpoint in API_KEY
_LEGACY_RPC_VAR = "API_KEY"


class RaisinConfig(BaseModel):
    """
    Connection and transaction settings.

    Attributes:
        rpc_url: JSON-RPC endpoint; must be https unless it is localhost
        raisin_address: Address of the Raisin contract
        raisin_abi_path: Raisin interface descriptor (packaged one if unset)
        token_abi_path: Token interface descriptor (packaged one if unset)
        confirmations: Blocks required before a state change is final
        poll_interval: Seconds between receipt polls
        confirmation_timeout: Seconds to wait for the confirmation depth
        expected_chain_id: Refuse to sign if the node reports another chain
        gas_price: Fixed gas price in wei instead of the node's suggestion
        retry_count: Connection retries for the RPC session
        request_timeout: Per-request timeout in seconds
    """
    rpc_url: str
    raisin_address: str = Field(DEFAULT_RAISIN_ADDRESS, validate_default=True)
    raisin_abi_path: Optional[str] = None
    token_abi_path: Optional[str] = None
    confirmations: int = Field(DEFAULT_CONFIRMATIONS, ge=1)
    poll_interval: float = Field(1.0, ge=0)
    confirmation_timeout: float = Field(900.0, gt=0)
    expected_chain_id: Optional[int] = None
    gas_price: Optional[int] = Field(None, ge=0)
    retry_count: int = Field(3, ge=0)
    request_timeout: int = Field(30, gt=0)

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, url: str) -> str:
        parsed = urllib.parse.urlparse(url)
        host = parsed.hostname or ""
        is_local = host in ("localhost", "127.0.0.1")
        if parsed.scheme != "https" and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")
        return url

    @field_validator("raisin_address")
    @classmethod
    def _check_raisin_address(cls, address: str) -> str:
        try:
            return parse_address(address)
        except InvalidAddressError as e:
            raise ValueError(str(e))

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "RaisinConfig":
        """
        Build a config from environment variables.

        A ``.env`` file (``env_file`` or the one found from the working
        directory) is loaded first without overriding variables that are
        already set. Keyword overrides win over the environment.

        Raises:
            ConfigurationError: If the RPC URL is missing or a value is invalid
        """
        if environ is None:
            if env_file:
                load_dotenv(env_file)
            else:
                load_dotenv()
            environ = os.environ

        values: Dict[str, Any] = {}
        legacy_rpc = environ.get(_LEGACY_RPC_VAR)
        if legacy_rpc:
            values["rpc_url"] = legacy_rpc
        for var, field_name in _ENV_FIELDS.items():
            raw = environ.get(var)
            if raw not in (None, ""):
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        if not values.get("rpc_url"):
            raise ConfigurationError(
                "No RPC endpoint configured. Set RAISIN_RPC_URL in your environment or .env file"
            )
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
