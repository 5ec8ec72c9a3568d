"""
Handle Resolver.

Resolves a social handle's on-chain status from the SocialPay contract:
whether it has been claimed, the wallet it is linked to, and the balance
waiting for it. Read-through only; balances change between polls, so
nothing is cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from socialpay.core.exceptions import LedgerUnavailableError, ValidationError
from socialpay.core.logging import get_logger
from socialpay.core.types import ZERO_ADDRESS, HandleInfo
from socialpay.utils.amounts import DEFAULT_DECIMALS, format_units, normalize_handle

if TYPE_CHECKING:
    from socialpay.ledger.client import LedgerClient

logger = get_logger("identity.resolver")


class HandleResolver:
    """
    Resolves platform-scoped handles against the ledger.

    Uses two contract reads per lookup:
        1. isHandleClaimed(handle, platform) → (claimed, wallet)
        2. getPendingBalance(handle, platform) → base units
    """

    def __init__(
        self,
        ledger: LedgerClient,
        platform: str = "telegram",
        token_decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        """
        Args:
            ledger: Client for the SocialPay contract
            platform: Platform used when none is passed to resolve()
            token_decimals: Decimals used to format the pending balance
        """
        self._ledger = ledger
        self._platform = platform
        self._token_decimals = token_decimals

    async def resolve(self, handle: str, platform: str | None = None) -> HandleInfo:
        """
        Look up a handle.

        Raises:
            ValidationError: If the handle is empty
            LedgerUnavailableError: If any read fails
        """
        handle = normalize_handle(handle)
        platform = platform or self._platform

        try:
            is_claimed, wallet = await self._ledger.is_handle_claimed(handle, platform)
            pending = await self._ledger.get_pending_balance(handle, platform)
        except LedgerUnavailableError:
            logger.warning(f"Ledger unavailable while resolving @{handle} ({platform})")
            raise
        except ValidationError:
            raise
        except Exception as e:
            logger.error(f"Failed to resolve @{handle} ({platform}): {e}")
            raise LedgerUnavailableError(f"Failed to resolve @{handle}: {e}") from e

        linked_wallet = wallet if wallet and wallet.lower() != ZERO_ADDRESS else None
        info = HandleInfo(
            handle=handle,
            platform=platform,
            is_claimed=is_claimed,
            linked_wallet=linked_wallet,
            pending_balance=pending,
            pending_balance_decimal=format_units(pending, self._token_decimals),
        )
        logger.debug(
            f"Resolved @{handle}: claimed={is_claimed} pending={info.pending_balance_decimal}"
        )
        return info


__all__ = ["HandleResolver"]
