from .errors import (
    AddressError,
    BalanceDiffError,
    ConfigError,
    ErrorCategory,
    InvalidArgumentError,
    RpcConnectionError,
    RpcError,
    UnknownNetworkError,
    is_rpc_error,
)
from .models import (
    AlertOutcome,
    BalanceDiffRecord,
    BalanceSnapshot,
    ChainFamily,
    ExitCode,
    PollResult,
    ThresholdOperator,
    ThresholdSpec,
    TokenBalanceRecord,
)
from .networks import NetworkDescriptor, TokenDescriptor, get_network, networks_by_family

__all__ = [
    "AddressError",
    "BalanceDiffError",
    "ConfigError",
    "ErrorCategory",
    "InvalidArgumentError",
    "RpcConnectionError",
    "RpcError",
    "UnknownNetworkError",
    "is_rpc_error",
    "AlertOutcome",
    "BalanceDiffRecord",
    "BalanceSnapshot",
    "ChainFamily",
    "ExitCode",
    "PollResult",
    "ThresholdOperator",
    "ThresholdSpec",
    "TokenBalanceRecord",
    "NetworkDescriptor",
    "TokenDescriptor",
    "get_network",
    "networks_by_family",
]
