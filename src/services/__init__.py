"""Business logic services."""

from src.services.commission import calculate_commission
from src.services.orchestrator import PayoutOrchestrator

__all__ = [
    "calculate_commission",
    "PayoutOrchestrator",
]
