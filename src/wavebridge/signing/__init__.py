"""Deposit signing collaborators.

The engine never holds keys. Wallet integrations implement DepositSigner.
"""

from wavebridge.signing.base import (
    DepositRequest,
    DepositSigner,
    SigningError,
    UserRejectedError,
)

__all__ = [
    "DepositRequest",
    "DepositSigner",
    "SigningError",
    "UserRejectedError",
]
