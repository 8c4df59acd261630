"""
Unit tests for the keeper API.
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from src.paykeeper.funding_engine.api import app
from src.paykeeper.funding_engine.service import KeeperService
from src.paykeeper.shared.funding_errors import ContractReadError, PolicyError
from src.paykeeper.shared.funding_models import FundingDecision, FundingInstruction

ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class TestKeeperAPI:
    """Test keeper API endpoints."""

    @pytest.fixture
    def mock_service(self):
        """Create mock keeper service."""
        mock = Mock(spec=KeeperService)
        mock.running = True
        mock.last_decision = None
        mock.last_error = None
        mock.last_check_at = datetime.utcnow()
        mock.config = Mock()
        mock.config.keeper.check_interval_seconds = 300
        mock.config.keeper.publish_instructions = True
        mock.producer_ready = True
        mock.run_check = AsyncMock()
        mock.get_status = Mock()
        return mock

    @pytest.fixture
    def client(self, mock_service):
        """Create test client with mocked service and no lifespan."""
        with patch("src.paykeeper.funding_engine.api.keeper_service", mock_service):
            yield TestClient(app)

    @pytest.fixture
    def execute_decision(self):
        instruction = FundingInstruction(
            target=ADDRESS, call_data="0xbd097e21", value=250_000_000_000_000_000
        )
        return FundingDecision.execute(instruction, Decimal("1000"), Decimal("2000"))

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "paykeeper"

    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"][0]["name"] == "keeper_loop"
        assert data["components"][1]["name"] == "instruction_channel"

    def test_healthz_degraded_without_producer(self, client, mock_service):
        mock_service.producer_ready = False

        data = client.get("/healthz").json()

        assert data["status"] == "degraded"
        assert client.get("/ready").status_code == 200

    def test_not_ready_when_loop_stopped(self, client, mock_service):
        mock_service.running = False

        assert client.get("/ready").status_code == 503

    def test_ready(self, client):
        assert client.get("/ready").status_code == 200

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "paykeeper_check_duration_seconds" in response.text

    def test_get_status(self, client, mock_service):
        mock_service.get_status.return_value = {"service": "paykeeper", "running": True}

        response = client.get("/status")

        assert response.status_code == 200
        assert response.json()["running"] is True

    def test_latest_decision_missing(self, client):
        assert client.get("/decision/latest").status_code == 404

    def test_latest_decision(self, client, mock_service, execute_decision):
        mock_service.last_decision = execute_decision

        response = client.get("/decision/latest")

        assert response.status_code == 200
        assert response.json()["instruction"]["value"] == 250_000_000_000_000_000

    def test_trigger_check(self, client, mock_service, execute_decision):
        mock_service.run_check.return_value = execute_decision

        response = client.post("/check")

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "execute"
        assert data["should_execute"] is True
        assert data["instruction"]["call_data"] == "0xbd097e21"

    def test_trigger_check_policy_error(self, client, mock_service):
        mock_service.run_check.side_effect = PolicyError("missing threshold_fiat")

        response = client.post("/check")

        assert response.status_code == 422
        assert "threshold_fiat" in response.json()["detail"]

    def test_trigger_check_contract_error(self, client, mock_service):
        mock_service.run_check.side_effect = ContractReadError("rpc down", ADDRESS)

        response = client.post("/check")

        assert response.status_code == 502

    def test_service_not_initialized(self):
        with patch("src.paykeeper.funding_engine.api.keeper_service", None):
            client = TestClient(app)
            assert client.get("/status").status_code == 503
            assert client.post("/check").status_code == 503
            assert client.get("/ready").status_code == 503
