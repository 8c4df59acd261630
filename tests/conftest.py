"""Shared pytest fixtures and configuration."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.paykeeper.collector.payroll_contract import BalanceReader
from src.paykeeper.collector.price_client import PriceProvider
from src.paykeeper.shared.funding_models import BalanceSnapshot, FundingPolicy, PriceQuote

PAYROLL_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture
def payroll_address() -> str:
    return PAYROLL_ADDRESS


@pytest.fixture
def policy() -> FundingPolicy:
    """Policy from the reference scenario: threshold 1500, top-up 500."""
    return FundingPolicy(
        payroll_contract_address=PAYROLL_ADDRESS,
        top_up_amount_fiat=Decimal("500"),
        threshold_fiat=Decimal("1500"),
    )


@pytest.fixture
def price_provider() -> AsyncMock:
    """Price provider quoting ETH at 2000 USD."""
    provider = AsyncMock(spec=PriceProvider)
    provider.quote.return_value = PriceQuote(
        asset="ethereum", fiat_currency="usd", fiat_per_unit=Decimal("2000")
    )
    return provider


@pytest.fixture
def balance_reader() -> AsyncMock:
    """Balance reader reporting 0.5 ETH."""
    reader = AsyncMock(spec=BalanceReader)
    reader.get_total_funds.return_value = BalanceSnapshot(
        contract_address=PAYROLL_ADDRESS, raw_balance=500_000_000_000_000_000
    )
    return reader
