"""Readers for the price feed and the payroll contract."""

from .payroll_contract import BalanceReader, PayrollContract
from .price_client import CoinGeckoPriceProvider, PriceProvider
from .rpc_client import JsonRpcClient

__all__ = [
    "BalanceReader",
    "PayrollContract",
    "CoinGeckoPriceProvider",
    "PriceProvider",
    "JsonRpcClient",
]
