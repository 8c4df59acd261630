#!/usr/bin/env python3
"""
One-shot payroll balance check.
Runs a single funding evaluation from environment configuration and prints the decision.
"""

import asyncio
import json
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.paykeeper.collector.payroll_contract import PayrollContract
from src.paykeeper.collector.price_client import CoinGeckoPriceProvider
from src.paykeeper.collector.rpc_client import JsonRpcClient
from src.paykeeper.config import settings
from src.paykeeper.funding_engine.engine import FundingDecisionEngine
from src.paykeeper.shared.funding_calculator import FundingCalculator
from src.paykeeper.shared.funding_errors import ContractReadError, PolicyError
from src.paykeeper.shared.funding_models import FundingAssessment, FundingPolicy

console = Console()


def render(policy: FundingPolicy, assessment: FundingAssessment):
    """Render an assessment as a table."""
    decision = assessment.decision
    currency = settings.price_feed.fiat_currency.upper()

    table = Table(title="Payroll Funding Check")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Contract", policy.payroll_contract_address)
    if assessment.quote:
        table.add_row(f"Price ({currency})", str(assessment.quote.fiat_per_unit))
    if assessment.balance:
        table.add_row("Balance (wei)", str(assessment.balance.raw_balance))
    if decision.balance_fiat is not None:
        table.add_row(f"Balance ({currency})", f"{decision.balance_fiat:.2f}")
    table.add_row(f"Threshold ({currency})", str(policy.threshold_fiat))
    table.add_row(f"Top-up ({currency})", str(policy.top_up_amount_fiat))

    color = "red" if decision.should_execute else "green"
    table.add_row("Outcome", f"[{color}]{decision.outcome.value}[/{color}]")
    table.add_row("Reason", decision.reason)

    console.print(table)

    if decision.instruction:
        units = FundingCalculator.units_to_whole(
            decision.instruction.value, settings.chain.unit_decimals
        )
        console.print(
            Panel(
                json.dumps(decision.instruction.to_relay_payload(), indent=2),
                title=f"Funding instruction ({units} {settings.price_feed.asset_id})",
                border_style="yellow",
            )
        )


async def main() -> int:
    price_provider = CoinGeckoPriceProvider(settings.price_feed)
    contract = PayrollContract(JsonRpcClient(settings.chain))
    engine = FundingDecisionEngine(
        price_provider,
        contract,
        asset=settings.price_feed.asset_id,
        unit_decimals=settings.chain.unit_decimals,
    )

    try:
        policy = FundingPolicy.from_raw(
            settings.policy.payroll_contract_address,
            settings.policy.top_up_amount_fiat,
            settings.policy.threshold_fiat,
        )
        assessment = await engine.assess(policy)
    except (PolicyError, ContractReadError) as e:
        console.print(f"[bold red]Check failed:[/bold red] {e}")
        return 1
    finally:
        await price_provider.close()
        await contract.close()

    render(policy, assessment)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
