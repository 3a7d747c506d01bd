"""Base class for role-specific tip strategies."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from src.consultation.llm import LanguageModel
from src.consultation.models import (
    ChatContext,
    Participant,
    TipPriority,
    TranscriptionMessage,
)
from src.consultation.tips.prompts import ROLE_LABELS


class TipStrategy(ABC):
    """Generates tip text and scores its priority for one participant role.

    Subclasses provide the prompt template and the priority policy; the
    base class handles history rendering and the model call.

    Attributes:
        llm: Language model used for completions
        language: Prompt language code
        history_window: Number of recent history entries rendered into the prompt
    """

    #: Prompt templates keyed by language, with {system_prompt} and {history}
    prompt_templates: dict[str, str] = {}

    def __init__(self, llm: LanguageModel, language: str = "en", history_window: int = 10) -> None:
        if language not in self.prompt_templates:
            raise ValueError(
                f"{type(self).__name__} has no prompt for language '{language}'"
            )
        self.llm = llm
        self.language = language
        self.history_window = history_window

    async def generate(self, context: ChatContext, participant: Participant) -> str:
        """Generate tip text for a participant.

        Raises:
            GenerationFailure: If the language model call fails
        """
        return await self.llm.complete(self.build_prompt(context, participant))

    def build_prompt(self, context: ChatContext, participant: Participant) -> str:
        history = self.format_history(context.history[-self.history_window :])
        return self.prompt_templates[self.language].format(
            system_prompt=context.system_prompt,
            history=history,
        )

    def format_history(self, messages: Sequence[TranscriptionMessage]) -> str:
        """Render messages as ``<RoleLabel>: <text>`` lines."""
        labels = ROLE_LABELS[self.language]
        return "\n".join(f"{labels[msg.participant_role]}: {msg.text}" for msg in messages)

    @abstractmethod
    def priority(self, context: ChatContext) -> TipPriority:
        """Score the priority of a tip generated from this context."""
