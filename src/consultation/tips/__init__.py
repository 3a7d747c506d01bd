"""Role-aware tip generation.

Provides strategy-per-role tip generation for consultation participants.
"""

from src.consultation.tips.base import TipStrategy
from src.consultation.tips.dispatcher import TipDispatcher, create_tip_dispatcher
from src.consultation.tips.strategies import ClientTipStrategy, ProfessionalTipStrategy

__all__ = [
    "TipStrategy",
    "TipDispatcher",
    "create_tip_dispatcher",
    "ProfessionalTipStrategy",
    "ClientTipStrategy",
]
