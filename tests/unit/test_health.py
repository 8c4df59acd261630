"""Unit tests for keeper health checks."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.paykeeper.config import KeeperSettings, PolicySettings, Settings
from src.paykeeper.funding_engine.engine import FundingDecisionEngine
from src.paykeeper.funding_engine.service import KeeperService
from src.paykeeper.health import HealthChecker, HealthStatus
from src.paykeeper.shared.funding_models import FundingDecision


@pytest.fixture
def keeper(price_provider, balance_reader, payroll_address):
    """Keeper with a 60s interval and mocked collaborators."""
    config = Settings(
        policy=PolicySettings(
            payroll_contract_address=payroll_address,
            top_up_amount_fiat="500",
            threshold_fiat="1500",
        ),
        keeper=KeeperSettings(check_interval_seconds=60, publish_instructions=True),
    )
    service = KeeperService(
        config,
        engine=FundingDecisionEngine(price_provider, balance_reader),
        producer=AsyncMock(),
    )
    service.running = True
    service.producer_ready = True
    return service


@pytest.fixture
def checker(keeper):
    return HealthChecker("paykeeper", lambda: keeper, stale_after_intervals=3)


class TestLoopHealth:
    """Test keeper loop freshness."""

    def test_no_keeper(self):
        checker = HealthChecker("paykeeper", lambda: None)

        assert checker.loop_health().status == HealthStatus.UNHEALTHY
        assert checker.is_ready() is False

    def test_not_running(self, checker, keeper):
        keeper.running = False

        assert checker.loop_health().status == HealthStatus.UNHEALTHY
        assert checker.is_ready() is False

    def test_no_check_yet(self, checker):
        health = checker.loop_health()

        assert health.status == HealthStatus.DEGRADED
        assert health.metadata["last_check_at"] is None

    def test_recent_check(self, checker, keeper):
        keeper.last_check_at = datetime.utcnow()
        keeper.last_decision = FundingDecision.no_action("balance above threshold", Decimal("2000"), Decimal("2000"))

        health = checker.loop_health()

        assert health.status == HealthStatus.HEALTHY
        assert health.metadata["interval_seconds"] == 60
        assert health.metadata["last_outcome"] == "no_action"

    def test_stale_check(self, checker, keeper):
        keeper.last_check_at = datetime.utcnow() - timedelta(seconds=181)

        health = checker.loop_health()

        assert health.status == HealthStatus.UNHEALTHY
        assert "3 intervals" in health.message

    def test_stale_boundary_uses_given_time(self, checker, keeper):
        keeper.last_check_at = datetime(2024, 1, 1, 12, 0, 0)

        assert checker.loop_health(now=datetime(2024, 1, 1, 12, 3, 0)).status == HealthStatus.HEALTHY
        assert checker.loop_health(now=datetime(2024, 1, 1, 12, 3, 1)).status == HealthStatus.UNHEALTHY

    def test_last_check_failed(self, checker, keeper):
        keeper.last_check_at = datetime.utcnow()
        keeper.last_error = "getTotalFunds() call failed: rpc down"

        health = checker.loop_health()

        assert health.status == HealthStatus.DEGRADED
        assert "rpc down" in health.message

    @pytest.mark.asyncio
    async def test_healthy_after_real_check(self, checker, keeper):
        await keeper.run_check()

        assert checker.loop_health().status == HealthStatus.HEALTHY


class TestServiceHealth:
    """Test the combined keeper health."""

    def test_producer_not_connected(self, checker, keeper):
        keeper.last_check_at = datetime.utcnow()
        keeper.producer_ready = False

        health = checker.check_health()

        assert health.status == HealthStatus.DEGRADED
        assert [c.name for c in health.components] == ["keeper_loop", "instruction_channel"]
        assert checker.is_ready() is True

    def test_publishing_disabled(self, checker, keeper):
        keeper.last_check_at = datetime.utcnow()
        keeper.producer_ready = False
        keeper.config.keeper.publish_instructions = False

        assert checker.check_health().status == HealthStatus.HEALTHY

    def test_worst_component_wins(self, checker, keeper):
        keeper.running = False
        keeper.producer_ready = False

        health = checker.check_health()

        assert health.status == HealthStatus.UNHEALTHY
        assert health.service == "paykeeper"
