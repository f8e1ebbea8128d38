from moviehub_auth.models.account import (
    Account,
    AccountDeleted,
    AccountDisabled,
    AccountEvent,
    AccountLocked,
    AccountRegistered,
    AccountRole,
    AccountStatus,
)
from moviehub_auth.models.refresh_token import RefreshToken

__all__ = [
    "Account",
    "AccountDeleted",
    "AccountDisabled",
    "AccountEvent",
    "AccountLocked",
    "AccountRegistered",
    "AccountRole",
    "AccountStatus",
    "RefreshToken",
]
