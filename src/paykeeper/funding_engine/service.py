"""
Keeper service - runs funding checks on a schedule and publishes instructions.
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.paykeeper.collector.payroll_contract import PayrollContract
from src.paykeeper.collector.price_client import CoinGeckoPriceProvider
from src.paykeeper.collector.rpc_client import JsonRpcClient
from src.paykeeper.config import Settings, settings as default_settings
from src.paykeeper.logging import check_context, get_logger
from src.paykeeper.shared.funding_errors import (
    ContractReadError,
    KeeperError,
    PolicyError,
)
from src.paykeeper.shared.funding_models import (
    FundingAssessment,
    FundingDecision,
    FundingDecisionMessage,
    FundingPolicy,
)
from . import metrics
from .engine import FundingDecisionEngine
from .kafka_config import InstructionProducer

logger = get_logger(__name__)

KAFKA_START_ATTEMPTS = 5
KAFKA_START_DELAY_SECONDS = 5


class KeeperService:
    """
    Periodic payroll balance keeper.

    Responsibilities:
    - Build the funding policy from configuration for every check
    - Run the decision engine on a fixed interval or on demand
    - Publish execute decisions for the external transaction submitter
    - Track check statistics and expose metrics
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        engine: Optional[FundingDecisionEngine] = None,
        producer: Optional[InstructionProducer] = None,
    ):
        self.config = config or default_settings
        self.engine = engine or self._build_engine()
        self.producer = producer or InstructionProducer(self.config.kafka)
        self.producer_ready = False

        # Service state
        self.running = False
        self.tasks: List[asyncio.Task] = []
        self._check_lock = asyncio.Lock()

        # Statistics
        self.checks_run = 0
        self.executions = 0
        self.no_actions = 0
        self.errors = 0
        self.last_decision: Optional[FundingDecision] = None
        self.last_error: Optional[str] = None
        self.last_check_at: Optional[datetime] = None

    def _build_engine(self) -> FundingDecisionEngine:
        return FundingDecisionEngine(
            price_provider=CoinGeckoPriceProvider(self.config.price_feed),
            balance_reader=PayrollContract(JsonRpcClient(self.config.chain)),
            asset=self.config.price_feed.asset_id,
            unit_decimals=self.config.chain.unit_decimals,
        )

    def build_policy(self) -> FundingPolicy:
        """Parse the configured policy. Raises PolicyError when it is invalid."""
        policy = self.config.policy
        return FundingPolicy.from_raw(
            policy.payroll_contract_address,
            policy.top_up_amount_fiat,
            policy.threshold_fiat,
        )

    async def start(self):
        """Start the keeper service."""
        logger.info("Starting keeper service...")

        self.running = True
        self.tasks = [asyncio.create_task(self.periodic_check())]
        if self.config.keeper.publish_instructions:
            self.tasks.append(asyncio.create_task(self._start_producer()))

        logger.info(
            f"Keeper service started, checking every "
            f"{self.config.keeper.check_interval_seconds}s"
        )

    async def _start_producer(self):
        """Start the Kafka producer, retrying a few times."""
        for attempt in range(1, KAFKA_START_ATTEMPTS + 1):
            try:
                await self.producer.start()
                self.producer_ready = True
                return
            except Exception as e:
                logger.warning(
                    f"Failed to start Kafka producer (attempt {attempt}/{KAFKA_START_ATTEMPTS}): {e}"
                )
                await asyncio.sleep(KAFKA_START_DELAY_SECONDS)
        logger.error("Kafka producer unavailable, instructions will not be published")

    async def stop(self):
        """Stop the keeper service."""
        logger.info("Stopping keeper service...")

        self.running = False

        for task in self.tasks:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        await self.producer.stop()
        self.producer_ready = False

        logger.info("Keeper service stopped")

    async def periodic_check(self):
        """Main loop: one check per interval. Failed checks skip the cycle."""
        interval = self.config.keeper.check_interval_seconds

        if not self.config.keeper.run_on_start:
            await asyncio.sleep(interval)

        while self.running:
            try:
                await self.run_check()
            except KeeperError as e:
                logger.error(f"Funding check skipped: {e}")
            except Exception as e:
                logger.opt(exception=e).error(f"Unexpected error in funding check: {e}")

            await asyncio.sleep(interval)

    async def run_check(self) -> FundingDecision:
        """
        Run one funding check now.

        Raises:
            PolicyError: If the configured policy is invalid
            ContractReadError: If the contract balance cannot be read
        """
        async with self._check_lock:
            with check_context(self.config.policy.payroll_contract_address) as trace_id:
                self.checks_run += 1
                self.last_check_at = datetime.utcnow()
                started = time.monotonic()

                try:
                    policy = self.build_policy()
                    assessment = await self.engine.assess(policy)
                except PolicyError as e:
                    self._record_error(e)
                    metrics.policy_errors.inc()
                    raise
                except ContractReadError as e:
                    self._record_error(e)
                    metrics.contract_read_failures.inc()
                    raise
                finally:
                    metrics.check_duration.observe(time.monotonic() - started)

                self._record_assessment(assessment)
                decision = assessment.decision

                logger.info(
                    f"Funding check for {policy.payroll_contract_address}: "
                    f"{decision.outcome.value} ({decision.reason})"
                )

                if decision.should_execute and self.config.keeper.publish_instructions:
                    await self._publish(policy, assessment, trace_id)

                return decision

    def _record_error(self, error: KeeperError):
        self.errors += 1
        self.last_error = str(error)

    def _record_assessment(self, assessment: FundingAssessment):
        decision = assessment.decision
        self.last_decision = decision
        self.last_error = None

        metrics.checks_total.labels(outcome=decision.outcome.value).inc()
        if assessment.quote is None:
            metrics.price_fetch_failures.inc()
        else:
            metrics.asset_price_fiat.set(float(assessment.quote.fiat_per_unit))
        if assessment.balance is not None:
            metrics.contract_balance_wei.set(assessment.balance.raw_balance)
        if decision.balance_fiat is not None:
            metrics.contract_balance_fiat.set(float(decision.balance_fiat))

        if decision.should_execute:
            self.executions += 1
            metrics.last_top_up_wei.set(decision.instruction.value)
        else:
            self.no_actions += 1

    async def _publish(
        self, policy: FundingPolicy, assessment: FundingAssessment, trace_id: str
    ):
        """Hand the instruction to the submitter topic."""
        if not self.producer_ready:
            logger.warning("Kafka producer not ready, funding instruction not published")
            return

        message = FundingDecisionMessage(
            service=self.config.service_name,
            contract_address=policy.payroll_contract_address,
            decision=assessment.decision,
            quote=assessment.quote,
            balance=assessment.balance,
            trace_id=trace_id,
        )
        try:
            await self.producer.send_decision(message)
        except Exception as e:
            self.last_error = f"publish failed: {e}"
            logger.error(f"Failed to publish funding instruction: {e}")
            return

        logger.info(
            f"Published funding instruction: {assessment.decision.instruction.value} wei "
            f"to {policy.payroll_contract_address}"
        )

    def get_status(self) -> Dict[str, Any]:
        """Get current service status."""
        return {
            "service": self.config.service_name,
            "running": self.running,
            "check_interval_seconds": self.config.keeper.check_interval_seconds,
            "publishing": self.config.keeper.publish_instructions and self.producer_ready,
            "checks_run": self.checks_run,
            "executions": self.executions,
            "no_actions": self.no_actions,
            "errors": self.errors,
            "last_check_at": self.last_check_at.isoformat() if self.last_check_at else None,
            "last_decision": (
                self.last_decision.model_dump(mode="json") if self.last_decision else None
            ),
            "last_error": self.last_error,
        }

    async def close(self):
        """Release HTTP clients held by the engine."""
        await self.engine.price_provider.close()
        await self.engine.balance_reader.close()
