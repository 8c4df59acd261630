"""
Payroll contract access: balance reads and funding call encoding.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_errors import ContractReadError, RpcError
from src.paykeeper.shared.funding_models import BalanceSnapshot
from .rpc_client import JsonRpcClient

logger = get_logger(__name__)

# Function selectors: first 4 bytes of keccak256 of the signature
PAYROLL_ABI = {
    "fundContract()": bytes.fromhex("bd097e21"),
    "getTotalFunds()": bytes.fromhex("eb8bbd28"),
}


def encode_fund_contract() -> bytes:
    """Calldata for the payable, argument-less fundContract()."""
    return PAYROLL_ABI["fundContract()"]


def decode_uint256(result: str) -> int:
    """Decode a single ABI-encoded uint256 return value."""
    if not isinstance(result, str) or not result.startswith("0x"):
        raise ValueError(f"expected hex string, got {result!r}")

    data = result[2:]
    if not data:
        raise ValueError("empty return data")
    if len(data) != 64:
        raise ValueError(f"expected 32 bytes of return data, got {len(data) // 2}")

    return int(data, 16)


class BalanceReader(ABC):
    """Read-only view of a payroll contract's funds."""

    @abstractmethod
    async def get_total_funds(self, contract_address: str) -> BalanceSnapshot:
        """
        Read the contract's total funds.

        Raises:
            ContractReadError: If the balance cannot be read
        """

    async def close(self):
        """Release any held resources."""


class PayrollContract(BalanceReader):
    """Payroll contract reader over JSON-RPC eth_call."""

    def __init__(self, rpc_client: Optional[JsonRpcClient] = None, block_tag: Optional[str] = None):
        self.rpc = rpc_client or JsonRpcClient()
        self.block_tag = block_tag or self.rpc.config.block_tag

    async def get_total_funds(self, contract_address: str) -> BalanceSnapshot:
        call = {
            "to": contract_address,
            "data": "0x" + PAYROLL_ABI["getTotalFunds()"].hex(),
        }

        try:
            result = await self.rpc.call("eth_call", [call, self.block_tag])
        except RpcError as e:
            raise ContractReadError(f"getTotalFunds() call failed: {e}", contract_address) from e

        try:
            raw_balance = decode_uint256(result)
        except ValueError as e:
            raise ContractReadError(
                f"getTotalFunds() returned malformed data: {e}", contract_address
            ) from e

        logger.debug(f"Contract {contract_address} total funds: {raw_balance} wei")

        return BalanceSnapshot(
            contract_address=contract_address,
            raw_balance=raw_balance,
            block_tag=self.block_tag,
            observed_at=datetime.utcnow(),
        )

    async def close(self):
        await self.rpc.close()
