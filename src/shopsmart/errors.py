"""
Error taxonomy shared by the store, the record engine and the HTTP layer.

* `RecordNotFound` / `Unauthorized` are distinct internally but both derive
  from `AccessDenied`, which the HTTP layer maps to one client-visible code.
* `StoreUnavailable` wraps any driver failure (redis, SQLAlchemy).
"""

from __future__ import annotations

from enum import Enum


class ResultCode(str, Enum):
    InvalidCredentials = "INVALID_CREDENTIALS"
    InvalidSubmission = "INVALID_SUBMISSION"
    UnknownError = "UNKNOWN_ERROR"
    RateLimited = "RATE_LIMIT_EXCEEDED"

    # user
    UserCreated = "USER_CREATED"
    UserAlreadyExists = "USER_ALREADY_EXISTS"
    UserLoggedIn = "USER_LOGGED_IN"
    UserUpdated = "USER_UPDATED"

    # profile
    ProfileCreated = "PROFILE_CREATED"
    ProfileUpdated = "PROFILE_UPDATED"

    # chat
    ChatCreated = "CHAT_CREATED"
    ChatUpdated = "CHAT_UPDATED"


_MESSAGES = {
    ResultCode.InvalidCredentials: "Invalid credentials!",
    ResultCode.InvalidSubmission: "Invalid submission, please try again!",
    ResultCode.UserAlreadyExists: "User already exists, please log in!",
    ResultCode.UserCreated: "User created, welcome!",
    ResultCode.UserUpdated: "User settings updated!",
    ResultCode.ProfileCreated: "Profile created",
    ResultCode.UnknownError: "Something went wrong, please try again!",
    ResultCode.UserLoggedIn: "Logged in!",
    ResultCode.RateLimited: "Rate limit exceeded, come back tomorrow!",
}


def message_for(code: ResultCode) -> str | None:
    """Human readable text for a result code (None when there is none)."""
    return _MESSAGES.get(code)


class ShopsmartError(Exception):
    """Base error for everything raised by shopsmart."""


class AccessDenied(ShopsmartError):
    """Record is absent or belongs to someone else."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class RecordNotFound(AccessDenied):
    def __init__(self, key: str):
        super().__init__(key, f"{key} does not exist")


class Unauthorized(AccessDenied):
    def __init__(self, key: str, owner_id: str | None = None):
        self.owner_id = owner_id
        super().__init__(key, f"{key} is not owned by {owner_id}")


class AssistantUnavailable(ShopsmartError):
    """The language-model provider failed or refused the request."""


class StoreUnavailable(ShopsmartError):
    """The underlying key-value store failed (network, timeout, protocol)."""


class NotAuthenticated(ShopsmartError):
    """No session, or the session has no user."""


class ResultError(ShopsmartError):
    """Domain failure that carries the result code the client should see."""

    def __init__(self, message: str, result_code: ResultCode | None = None):
        super().__init__(message)
        self.result_code = result_code or ResultCode.UnknownError
