"""
Kafka producer for funding instructions.
"""

import json
from typing import Optional

from aiokafka import AIOKafkaProducer

from src.paykeeper.config import KafkaSettings, settings
from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_models import FundingDecisionMessage

logger = get_logger(__name__)


class InstructionProducer:
    """Producer for funding decision messages consumed by the submitter."""

    def __init__(self, config: Optional[KafkaSettings] = None):
        self.config = config or settings.kafka
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self):
        """Start the Kafka producer."""
        self.producer = AIOKafkaProducer(
            bootstrap_servers=self.config.bootstrap_servers,
            request_timeout_ms=self.config.producer_timeout_ms,
            value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8"),
        )
        await self.producer.start()
        logger.info("Instruction producer started")

    async def stop(self):
        """Stop the Kafka producer."""
        if self.producer:
            await self.producer.stop()
            self.producer = None
            logger.info("Instruction producer stopped")

    async def send_decision(self, message: FundingDecisionMessage):
        """Send a funding decision, keyed by contract address."""
        if not self.producer:
            raise RuntimeError("Producer not started")

        await self.producer.send_and_wait(
            self.config.topic_funding_instructions,
            value=message.model_dump(mode="json"),
            key=message.contract_address,
        )
        logger.debug(f"Sent funding decision for {message.contract_address}")
