"""Quoter error classes.

Every error carries an ErrorCode so callers (and the API layer) can map
failures without matching on message text.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable reason attached to a QuoterError."""

    TOKEN_A_ADDRESS_REQUIRED = "token_a_address_required"
    TOKEN_A_ADDRESS_NOT_VALID = "token_a_address_not_valid"
    TOKEN_B_ADDRESS_REQUIRED = "token_b_address_required"
    TOKEN_B_ADDRESS_NOT_VALID = "token_b_address_not_valid"
    ETHEREUM_ADDRESS_REQUIRED = "ethereum_address_required"
    ETHEREUM_ADDRESS_NOT_VALID = "ethereum_address_not_valid"
    INVALID_PAIR_CONTEXT = "invalid_pair_context"
    INVALID_SETTINGS = "invalid_settings"
    CHAIN_ID_NOT_SUPPORTED = "chain_id_not_supported"
    TOKEN_NOT_FOUND = "token_not_found"
    NO_ROUTES_FOUND = "no_routes_found"
    CALL_REVERTED = "call_reverted"
    NETWORK_REQUEST_FAILED = "network_request_failed"
    INVALID_PROTOCOL_VERSION = "invalid_protocol_version"


class QuoterError(Exception):
    """Base error for quoting operations."""

    def __init__(self, message: str, code: ErrorCode) -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(QuoterError):
    """Invalid addresses, unsupported chain or missing connection parameters."""

    pass


class RouteNotFound(QuoterError):
    """No route survived pruning for the requested trade."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.NO_ROUTES_FOUND) -> None:
        super().__init__(message, code)


class CallFailure(QuoterError):
    """A single call inside a batch reverted.

    Executors convert this into an unsuccessful call return; it is never
    raised to engine callers.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CALL_REVERTED) -> None:
        super().__init__(message, code)


class NetworkFailure(QuoterError):
    """The batch request itself could not complete."""

    def __init__(
        self, message: str, code: ErrorCode = ErrorCode.NETWORK_REQUEST_FAILED
    ) -> None:
        super().__init__(message, code)


class UnsupportedVersion(QuoterError):
    """A result was tagged with a protocol version the decoder does not know."""

    def __init__(
        self, message: str, code: ErrorCode = ErrorCode.INVALID_PROTOCOL_VERSION
    ) -> None:
        super().__init__(message, code)
