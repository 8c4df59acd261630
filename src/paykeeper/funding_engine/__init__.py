"""
PayKeeper Funding Engine - payroll contract balance monitoring.

Checks the payroll contract balance against a fiat threshold and
emits a funding instruction when a top-up is needed.
"""

from .engine import FundingDecisionEngine
from .service import KeeperService

__all__ = ["FundingDecisionEngine", "KeeperService"]
