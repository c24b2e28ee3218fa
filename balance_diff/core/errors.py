"""
Error Classification

Defines the error taxonomy for balance queries.
Every error carries a machine-readable code and the process exit code it maps to.
RPC-class errors are the ones watch mode may treat as transient.
"""

from enum import Enum
from typing import Any, Dict, Optional

import httpx

from .models import ExitCode


class ErrorCategory(str, Enum):
    """Categories of RPC failures."""

    NETWORK = "network"           # DNS failure, refused connection
    TIMEOUT = "timeout"           # Per-request timeout elapsed
    RATE_LIMIT = "rate_limit"     # HTTP 429 or node throttling
    PROVIDER = "provider"         # Node answered with an error or malformed payload
    UNKNOWN = "unknown"


class BalanceDiffError(Exception):
    """Base class for all errors raised by balance-diff."""

    code: str = "error"
    exit_code: ExitCode = ExitCode.DIFF

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AddressError(BalanceDiffError):
    """Address is not well-formed for the target chain family."""

    code = "invalid_address"

    def __init__(self, address: str, chain_family: str, hint: Optional[str] = None):
        super().__init__(
            f"Invalid {chain_family.upper()} address: {address}",
            details={"address": address, "chainType": chain_family},
        )
        self.address = address
        self.chain_family = chain_family
        self.hint = hint


class UnknownNetworkError(BalanceDiffError):
    """Network key is not present in the registry."""

    code = "unknown_network"

    def __init__(self, network: str):
        super().__init__(f"Unknown network: {network}", details={"network": network})
        self.network = network


class ConfigError(BalanceDiffError):
    """Config file or profile could not be resolved."""

    code = "config_error"


class InvalidArgumentError(BalanceDiffError):
    """Command-line arguments are inconsistent or out of range."""

    code = "invalid_argument"


class RpcError(BalanceDiffError):
    """Transport or node-side failure while talking to an RPC endpoint."""

    code = "rpc_error"
    exit_code = ExitCode.RPC_ERROR

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        rpc_code: Optional[int] = None,
        method: Optional[str] = None,
    ):
        super().__init__(
            message,
            details={"category": category.value, "rpcCode": rpc_code, "method": method},
        )
        self.category = category
        self.rpc_code = rpc_code
        self.method = method

    @property
    def node_rejected(self) -> bool:
        """True when the node answered but refused the request."""
        return self.category == ErrorCategory.PROVIDER


class RpcConnectionError(RpcError):
    """Endpoint unreachable or handshake response malformed."""

    code = "connection_error"


def is_rpc_error(error: BaseException) -> bool:
    """Return True if the failure came from the RPC transport or node."""

    if isinstance(error, RpcError):
        return True
    return isinstance(error, httpx.TransportError)


def exit_code_for(error: BaseException) -> ExitCode:
    """Map any exception onto the process exit code contract."""

    if isinstance(error, BalanceDiffError):
        return error.exit_code
    if is_rpc_error(error):
        return ExitCode.RPC_ERROR
    return ExitCode.DIFF


def error_code_for(error: BaseException) -> Optional[str]:
    if isinstance(error, BalanceDiffError):
        return error.code
    if is_rpc_error(error):
        return RpcError.code
    return None


__all__ = [
    "ErrorCategory",
    "BalanceDiffError",
    "AddressError",
    "UnknownNetworkError",
    "ConfigError",
    "InvalidArgumentError",
    "RpcError",
    "RpcConnectionError",
    "is_rpc_error",
    "exit_code_for",
    "error_code_for",
]
