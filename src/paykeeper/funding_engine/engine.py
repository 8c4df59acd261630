"""
Funding decision engine: decides whether and how much to top up a payroll contract.
"""

from src.paykeeper.collector.payroll_contract import BalanceReader, encode_fund_contract
from src.paykeeper.collector.price_client import PriceProvider
from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_calculator import FundingCalculator
from src.paykeeper.shared.funding_errors import PolicyError, PriceSourceError
from src.paykeeper.shared.funding_models import (
    REASON_ABOVE_THRESHOLD,
    REASON_PRICE_UNAVAILABLE,
    REASON_ZERO_TOP_UP,
    FundingAssessment,
    FundingDecision,
    FundingInstruction,
    FundingPolicy,
)

logger = get_logger(__name__)


class FundingDecisionEngine:
    """
    Evaluates a funding policy against live price and balance data.

    Each evaluation is independent: the quote is fetched fresh, the balance is
    read once, and nothing is kept between calls. The price is fetched first
    because a failed fetch makes the balance read unnecessary.
    """

    def __init__(
        self,
        price_provider: PriceProvider,
        balance_reader: BalanceReader,
        asset: str = "ethereum",
        unit_decimals: int = 18,
    ):
        self.price_provider = price_provider
        self.balance_reader = balance_reader
        self.asset = asset
        self.unit_decimals = unit_decimals

    async def evaluate(self, policy: FundingPolicy) -> FundingDecision:
        """
        Decide whether the payroll contract needs funding.

        A below-threshold balance whose top-up floors to zero base units
        yields no action ("top-up amount rounds to zero"), never a
        zero-value instruction.

        Raises:
            PolicyError: If the policy is not a valid FundingPolicy
            ContractReadError: If the contract balance cannot be read
        """
        assessment = await self.assess(policy)
        return assessment.decision

    async def assess(self, policy: FundingPolicy) -> FundingAssessment:
        """Like evaluate, but also returns the quote and balance used."""
        if not isinstance(policy, FundingPolicy):
            raise PolicyError(f"expected FundingPolicy, got {type(policy).__name__}")

        try:
            quote = await self.price_provider.quote(self.asset)
        except PriceSourceError as e:
            logger.warning(f"Price fetch failed for {self.asset}: {e}")
            return FundingAssessment(
                decision=FundingDecision.no_action(f"{REASON_PRICE_UNAVAILABLE}: {e}")
            )

        # ContractReadError propagates: no decision without a balance
        balance = await self.balance_reader.get_total_funds(policy.payroll_contract_address)

        price = quote.fiat_per_unit
        balance_fiat = FundingCalculator.balance_to_fiat(
            balance.raw_balance, price, self.unit_decimals
        )

        logger.info(f"Current contract balance (wei): {balance.raw_balance}")
        logger.info(f"Current contract balance ({quote.fiat_currency}): {balance_fiat}")
        logger.info(f"Threshold ({quote.fiat_currency}): {policy.threshold_fiat}")

        if FundingCalculator.is_sufficient(balance_fiat, policy.threshold_fiat):
            return FundingAssessment(
                decision=FundingDecision.no_action(REASON_ABOVE_THRESHOLD, balance_fiat, price),
                quote=quote,
                balance=balance,
            )

        top_up_units = FundingCalculator.top_up_units(
            policy.top_up_amount_fiat, price, self.unit_decimals
        )

        logger.info(f"Top-up amount ({quote.fiat_currency}): {policy.top_up_amount_fiat}")
        logger.info(f"{self.asset} price ({quote.fiat_currency}): {price}")
        logger.info(
            f"Top-up amount (units): {FundingCalculator.units_to_whole(top_up_units, self.unit_decimals)}"
        )
        logger.info(f"Top-up amount (wei): {top_up_units}")

        if top_up_units <= 0:
            logger.warning(
                f"Top-up of {policy.top_up_amount_fiat} {quote.fiat_currency} at price {price} "
                f"is below one base unit, skipping"
            )
            return FundingAssessment(
                decision=FundingDecision.no_action(REASON_ZERO_TOP_UP, balance_fiat, price),
                quote=quote,
                balance=balance,
            )

        instruction = FundingInstruction(
            target=policy.payroll_contract_address,
            call_data=encode_fund_contract(),
            value=top_up_units,
        )

        return FundingAssessment(
            decision=FundingDecision.execute(instruction, balance_fiat, price),
            quote=quote,
            balance=balance,
        )
