"""Publisher configuration loaded from the environment or a YAML file."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from eth_account import Account
from eth_account.signers.local import LocalAccount
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from web3 import Web3

from .constants import DEFAULT_RPC_URL
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable -> config field.
ENV_FIELDS: Dict[str, str] = {
    "UP_PRIVATE_KEY": "signing_key",
    "UP_ADDRESS": "profile_address",
    "KEY_MANAGER": "controller_address",
    "RPC_URL": "rpc_endpoint",
    "CHAIN_ID": "chain_id",
}


def _checksum(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        # YAML reads unquoted 0x literals as integers.
        value = f"0x{value:040x}"
    text = str(value).strip()
    if not text:
        return None
    if not Web3.is_address(text):
        raise ValueError(f"{text!r} is not a valid address")
    return Web3.to_checksum_address(text)


class PublisherConfig(BaseModel):
    """Settings for one publication run.

    ``profile_address`` is not part of call construction: the Key Manager
    already knows which profile it controls. It is only needed to read the
    slot back (``fetch_grid`` and ``verify=True``).
    """

    model_config = ConfigDict(frozen=True)

    signing_key: SecretStr = Field(..., description="Private key of a controller allowed to SETDATA")
    controller_address: str = Field(..., description="LSP6 Key Manager address")
    profile_address: Optional[str] = Field(None, description="Universal Profile address")
    rpc_endpoint: str = Field(DEFAULT_RPC_URL, description="JSON-RPC endpoint")
    chain_id: Optional[int] = Field(None, gt=0)
    request_timeout: float = Field(30.0, gt=0)
    confirmation_timeout: float = Field(120.0, gt=0)

    @field_validator("controller_address", "profile_address", mode="before")
    @classmethod
    def _validate_address(cls, value: Any) -> Optional[str]:
        return _checksum(value)

    @field_validator("signing_key", mode="before")
    @classmethod
    def _coerce_key(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return f"0x{value:064x}"
        return value

    @field_validator("signing_key")
    @classmethod
    def _validate_key(cls, value: SecretStr) -> SecretStr:
        raw = value.get_secret_value().strip()
        digits = raw[2:] if raw.startswith("0x") else raw
        if len(digits) != 64:
            raise ValueError("signing key must be 32 bytes of hex")
        try:
            int(digits, 16)
        except ValueError:
            raise ValueError("signing key must be 32 bytes of hex") from None
        return SecretStr(raw)

    @field_validator("rpc_endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        text = value.strip()
        if not text.startswith(("http://", "https://")):
            raise ValueError("rpc_endpoint must be an http(s) URL")
        return text

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PublisherConfig":
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid publisher configuration: {exc}") from exc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PublisherConfig":
        source = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            raw = source.get(env_name)
            if raw is not None and raw.strip():
                data[field_name] = raw.strip()
        missing = [env for env, name in ENV_FIELDS.items() if name in ("signing_key", "controller_address") and name not in data]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
        return cls.from_mapping(data)

    @classmethod
    def load(cls, path: Path | str, environ: Optional[Mapping[str, str]] = None) -> "PublisherConfig":
        """Load a YAML (or JSON) file; environment variables fill unset fields."""

        file_path = Path(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Unable to read config file {file_path}: {exc}") from exc
        try:
            if file_path.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Config file {file_path} is not valid: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {file_path} must contain a mapping")
        source = os.environ if environ is None else environ
        for env_name, field_name in ENV_FIELDS.items():
            raw = source.get(env_name)
            if field_name not in data and raw is not None and raw.strip():
                data[field_name] = raw.strip()
        logger.debug("Loaded publisher config", extra={"path": str(file_path)})
        return cls.from_mapping(data)

    def account(self) -> LocalAccount:
        return Account.from_key(self.signing_key.get_secret_value())


__all__ = ["ENV_FIELDS", "PublisherConfig"]
