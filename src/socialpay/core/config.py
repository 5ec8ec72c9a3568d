"""
Configuration management for SocialPay.

Handles loading configuration from environment variables and validation.
The payment core never reads the environment itself; it receives a Config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from eth_utils import is_address, to_checksum_address

from socialpay.core.exceptions import ConfigurationError

SEPOLIA_CHAIN_ID = 11155111


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class Config:
    """SocialPay configuration."""

    signer_private_key: str
    contract_address: str
    rpc_url: str
    chain_id: int = SEPOLIA_CHAIN_ID
    platform: str = "telegram"
    # Key paying gas for payToHandleWithSignature; defaults to the signer key
    executor_private_key: str | None = None

    # Token
    token_decimals: int = 6
    token_symbol: str = "PYUSD"

    # EIP-712 domain of the SocialPay contract
    domain_name: str = "SocialPayEVVM"
    domain_version: str = "1"

    # Payment lifecycle
    proposal_ttl_seconds: float = 300.0  # /confirm window (5 minutes)
    deadline_window_minutes: int = 60

    # Timeouts (seconds)
    request_timeout: float = 30.0
    receipt_poll_interval: float = 2.0
    receipt_timeout: float = 120.0

    claim_portal_url: str = "http://localhost:3000"

    log_level: str = "INFO"
    env: str = "development"

    def __post_init__(self) -> None:
        if not self.signer_private_key:
            raise ConfigurationError("signer_private_key is required")
        if not self.contract_address:
            raise ConfigurationError("contract_address is required")
        if not is_address(self.contract_address):
            raise ConfigurationError(f"contract_address is not a valid address: {self.contract_address}")
        if not self.rpc_url:
            raise ConfigurationError("rpc_url is required")
        if self.chain_id <= 0:
            raise ConfigurationError("chain_id must be positive")
        if not self.platform:
            raise ConfigurationError("platform is required")
        if self.proposal_ttl_seconds <= 0:
            raise ConfigurationError("proposal_ttl_seconds must be positive")
        if self.deadline_window_minutes <= 0:
            raise ConfigurationError("deadline_window_minutes must be positive")
        # Normalize to checksum form once so every consumer sees the same string
        object.__setattr__(self, "contract_address", to_checksum_address(self.contract_address))

    @property
    def executor_key(self) -> str:
        """Key used to pay gas for submissions."""
        return self.executor_private_key or self.signer_private_key

    @property
    def rpc_urls(self) -> list[str]:
        """RPC endpoints in fallback order (comma-separated in ``rpc_url``)."""
        return [u.strip() for u in self.rpc_url.split(",") if u.strip()]

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        signer_private_key = overrides.get("signer_private_key") or _get_env_var(
            "EXECUTOR_PRIVATE_KEY", required=True
        )
        contract_address = overrides.get("contract_address") or _get_env_var(
            "SOCIALPAY_CONTRACT", required=True
        )
        rpc_url = (
            overrides.get("rpc_url")
            or _get_env_var("SOCIALPAY_RPC_URL")
            or _get_env_var("SEPOLIA_RPC_URL", required=True)
        )

        chain_id_raw = overrides.get("chain_id") or _get_env_var(
            "SOCIALPAY_CHAIN_ID", default=str(SEPOLIA_CHAIN_ID)
        )
        try:
            chain_id = int(chain_id_raw)  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"SOCIALPAY_CHAIN_ID must be an integer: {chain_id_raw}") from e

        platform = overrides.get("platform") or _get_env_var(
            "SOCIALPAY_PLATFORM", default="telegram"
        )
        log_level = overrides.get("log_level") or _get_env_var(
            "SOCIALPAY_LOG_LEVEL", default="INFO"
        )
        env = overrides.get("env") or _get_env_var("SOCIALPAY_ENV", default="development")
        claim_portal_url = overrides.get("claim_portal_url") or _get_env_var(
            "SOCIALPAY_CLAIM_PORTAL_URL", default=cls.claim_portal_url
        )

        return cls(
            signer_private_key=signer_private_key,  # type: ignore
            contract_address=contract_address,  # type: ignore
            rpc_url=rpc_url,  # type: ignore
            chain_id=chain_id,
            platform=platform,  # type: ignore
            executor_private_key=overrides.get("executor_private_key"),
            token_decimals=overrides.get("token_decimals", cls.token_decimals),
            token_symbol=overrides.get("token_symbol", cls.token_symbol),
            domain_name=overrides.get("domain_name", cls.domain_name),
            domain_version=overrides.get("domain_version", cls.domain_version),
            proposal_ttl_seconds=overrides.get("proposal_ttl_seconds", cls.proposal_ttl_seconds),
            deadline_window_minutes=overrides.get(
                "deadline_window_minutes", cls.deadline_window_minutes
            ),
            request_timeout=overrides.get("request_timeout", cls.request_timeout),
            receipt_poll_interval=overrides.get("receipt_poll_interval", cls.receipt_poll_interval),
            receipt_timeout=overrides.get("receipt_timeout", cls.receipt_timeout),
            claim_portal_url=claim_portal_url,  # type: ignore
            log_level=log_level,  # type: ignore
            env=env,  # type: ignore
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def masked_signer_key(self) -> str:
        """Return the signer key with most characters masked for safe logging."""
        if len(self.signer_private_key) <= 10:
            return "****"
        return self.signer_private_key[:4] + "..." + self.signer_private_key[-4:]

    def __repr__(self) -> str:
        return (
            f"Config(contract_address={self.contract_address!r}, chain_id={self.chain_id}, "
            f"platform={self.platform!r}, signer_private_key={self.masked_signer_key()!r})"
        )
