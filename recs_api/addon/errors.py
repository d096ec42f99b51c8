"""Error taxonomy for the add-on client.

Every component catches these at its boundary and turns them into a status
plus a message the merchant can read.
"""

OAUTH_SETUP_MARKER = "OAuth setup"


class AddonError(Exception):
    """Base class for add-on client errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MissingStoreId(AddonError):
    """An operation needs a store id and none was resolved."""

    def __init__(self, message: str = "Store ID is required") -> None:
        super().__init__(message)


class Unauthenticated(AddonError):
    """The backend answered 401 with the OAuth setup marker."""


class NetworkError(AddonError):
    """The request never produced an HTTP response."""


class BackendError(AddonError):
    """The backend answered with a non-2xx status or ``success: false``."""


def user_message(exc: AddonError) -> str:
    """Short text to show inline next to a retry button."""
    if isinstance(exc, MissingStoreId):
        return "Enter your store ID to continue."
    if isinstance(exc, Unauthenticated):
        return "Authorization required. Connect your store to continue."
    if isinstance(exc, NetworkError):
        return "Could not reach the server. Check your connection and try again."
    return exc.message or "Something went wrong. Please try again."
