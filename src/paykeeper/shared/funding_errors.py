"""
Funding-related error handling and exception classes.
"""

from datetime import datetime
from typing import Optional


class KeeperError(Exception):
    """Base exception for keeper errors."""

    def __init__(self, message: str):
        self.timestamp = datetime.utcnow()
        super().__init__(message)


class PriceSourceError(KeeperError):
    """Raised when the price quote cannot be fetched or parsed.

    Recovered by the decision engine: the check ends without action.
    """

    def __init__(self, message: str, asset: Optional[str] = None):
        self.asset = asset
        super().__init__(message)


class ContractReadError(KeeperError):
    """Raised when the payroll contract balance cannot be read."""

    def __init__(self, message: str, contract_address: Optional[str] = None):
        self.contract_address = contract_address
        super().__init__(
            f"{message} (Contract: {contract_address})" if contract_address else message
        )


class PolicyError(KeeperError):
    """Raised when the funding policy is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(f"Invalid funding policy: {message}")


class RpcError(KeeperError):
    """Raised when a JSON-RPC call fails at transport or protocol level."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(f"{message} (code {code})" if code is not None else message)
