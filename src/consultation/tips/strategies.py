"""Tip strategies for the professional (doctor) and client (patient) roles."""

from src.consultation.keywords import KeywordMatcher
from src.consultation.llm import LanguageModel
from src.consultation.models import ChatContext, TipPriority
from src.consultation.tips.base import TipStrategy
from src.consultation.tips.prompts import CLIENT_PROMPTS, PROFESSIONAL_PROMPTS


class ProfessionalTipStrategy(TipStrategy):
    """Clinical tips for the doctor.

    Priority is HIGH when any of the last ``priority_window`` history
    entries mentions an urgency keyword, MEDIUM otherwise.
    """

    prompt_templates = PROFESSIONAL_PROMPTS

    def __init__(
        self,
        llm: LanguageModel,
        urgency_matcher: KeywordMatcher,
        language: str = "en",
        history_window: int = 10,
        priority_window: int = 5,
    ) -> None:
        super().__init__(llm, language=language, history_window=history_window)
        self.urgency_matcher = urgency_matcher
        self.priority_window = priority_window

    def priority(self, context: ChatContext) -> TipPriority:
        recent = context.history[-self.priority_window :]
        if self.urgency_matcher.any_match(recent):
            return TipPriority.HIGH
        return TipPriority.MEDIUM


class ClientTipStrategy(TipStrategy):
    """Lay-language tips for the patient. Always LOW priority."""

    prompt_templates = CLIENT_PROMPTS

    def priority(self, context: ChatContext) -> TipPriority:
        return TipPriority.LOW
