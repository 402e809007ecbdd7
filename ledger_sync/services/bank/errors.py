"""
Bank Sync Errors

Each error carries a `user_message` the UI can show as-is. The three
messages users must be able to tell apart are: credentials invalid,
bank session expired (reconnect), and a temporary network or
rate-limit issue (retry later).
"""

from typing import Optional


class BankSyncError(Exception):
    """Base exception for bank sync errors."""

    user_message = "Bank sync failed."


class BankConnectivityError(BankSyncError):
    """
    The request never reached the aggregator.

    Covers DNS, TLS, timeouts and platform network-security policies.
    """

    user_message = "Temporary network issue while contacting the bank. Retry later."


class BankApiError(BankSyncError):
    """The aggregator answered with a non-success status."""

    def __init__(self, status_code: int, detail: str = "", path: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.path = path
        where = f" on {path}" if path else ""
        super().__init__(f"Bank API error {status_code}{where}: {detail}".rstrip(": "))

    @property
    def user_message(self) -> str:
        return f"Bank API error {self.status_code}: {self.detail}" if self.detail else (
            f"Bank API error {self.status_code}."
        )


class RateLimitedError(BankApiError):
    """HTTP 429 that persisted through every retry."""

    user_message = "The bank is rate limiting requests. Retry later."

    def __init__(self, detail: str = "", path: Optional[str] = None):
        super().__init__(429, detail, path)


class SessionExpiredError(BankApiError):
    """HTTP 401 on a session or account call."""

    user_message = "Bank session expired. Reconnect the bank."

    def __init__(self, detail: str = "", path: Optional[str] = None):
        super().__init__(401, detail, path)


class BankAuthenticationError(BankSyncError):
    """
    The signed assertion could not be built or was rejected outright.

    Aborts the whole sync cycle.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def user_message(self) -> str:
        prefix = f"Credentials invalid ({self.status_code})" if self.status_code else "Credentials invalid"
        return f"{prefix}: {self}"


class AllSessionsExpiredError(BankSyncError):
    """Every session was unauthorized and none resolved a single account."""

    user_message = "All bank sessions expired. Reconnect your banks."

    def __init__(self, expired_sessions: list[str]):
        self.expired_sessions = expired_sessions
        super().__init__(f"All {len(expired_sessions)} bank sessions expired")
