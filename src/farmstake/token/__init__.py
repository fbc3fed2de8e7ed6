from farmstake.token.ledger import (
    AtomicTokenLedger,
    InMemoryTokenLedger,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientCustodyBalance,
    TokenError,
    TokenLedger,
)

__all__ = [
    "AtomicTokenLedger",
    "InMemoryTokenLedger",
    "InsufficientAllowance",
    "InsufficientBalance",
    "InsufficientCustodyBalance",
    "TokenError",
    "TokenLedger",
]
