"""Base interfaces for origin-chain deposits.

Deposit flow:
1. Engine builds a DepositRequest from the quote
2. Signer builds, signs and broadcasts the transfer
3. Signer returns the transaction reference (never key material)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from wavebridge.chains import ChainId

logger = logging.getLogger(__name__)


@dataclass
class DepositRequest:
    """Request to move funds into a bridge deposit target.

    Attributes:
        chain: Origin chain of the deposit
        from_address: Sender address on the origin chain
        to_address: Provider deposit address or escrow
        amount_units: Amount in smallest units
        token: Token address on the origin chain
        memo: Optional memo required by some deposit targets
    """
    chain: ChainId
    from_address: str
    to_address: str
    amount_units: int
    token: str
    memo: Optional[str] = None


class DepositSigner(ABC):
    """Abstract base class for wallet collaborators.

    Implementations should NEVER expose raw private keys.
    """

    @abstractmethod
    async def submit_deposit(self, request: DepositRequest) -> str:
        """Sign and broadcast a deposit.

        Args:
            request: Deposit parameters

        Returns:
            Transaction reference on the origin chain

        Raises:
            SigningError: If the deposit could not be submitted
        """
        pass

    async def health_check(self) -> bool:
        """Check if the wallet is ready to sign."""
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class SigningError(Exception):
    """Exception raised when a deposit cannot be signed or broadcast."""
    pass


class UserRejectedError(SigningError):
    """Exception raised when the wallet owner declines the deposit."""
    pass
