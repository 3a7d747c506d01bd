"""Role-aware tip dispatch.

Selects a strategy by participant role, gates on minimum context, and runs
generation for every eligible participant concurrently. One participant's
failure (model error, timeout, empty completion) yields no tip for that
participant and never affects the others.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence

from src.consultation.config import ConsultationConfig
from src.consultation.errors import GenerationFailure
from src.consultation.keywords import KeywordMatcher
from src.consultation.llm import LanguageModel
from src.consultation.models import (
    ChatContext,
    Participant,
    ParticipantRole,
    TipMessage,
    utc_now,
)
from src.consultation.tips.base import TipStrategy
from src.consultation.tips.strategies import ClientTipStrategy, ProfessionalTipStrategy

logger = logging.getLogger(__name__)


class TipDispatcher:
    """Maps participant roles to tip strategies and runs them.

    New roles are supported by registering a strategy; dispatch logic does
    not change. AGENT participants never receive tips.
    """

    def __init__(
        self,
        strategies: Mapping[ParticipantRole, TipStrategy] | None = None,
        min_history: int = 3,
        generation_timeout_s: float = 30.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            strategies: Initial role → strategy table
            min_history: Minimum history length before any tip is generated
            generation_timeout_s: Timeout for a single participant's generation
        """
        self._strategies: dict[ParticipantRole, TipStrategy] = dict(strategies or {})
        self.min_history = min_history
        self.generation_timeout_s = generation_timeout_s

    def register_strategy(self, role: ParticipantRole, strategy: TipStrategy) -> None:
        """Register or replace the strategy for a role."""
        if role is ParticipantRole.AGENT:
            raise ValueError("AGENT participants do not receive tips")
        self._strategies[role] = strategy

    def strategy_for(self, role: ParticipantRole) -> TipStrategy | None:
        return self._strategies.get(role)

    async def generate_tip(
        self, context: ChatContext, participant: Participant
    ) -> TipMessage | None:
        """Generate a tip for one participant.

        Args:
            context: Current chat context
            participant: Tip recipient

        Returns:
            The tip, or None when there is not enough context, no strategy
            for the role, or generation failed
        """
        if participant.role is ParticipantRole.AGENT:
            return None

        # Not enough conversation yet
        if len(context.history) < self.min_history:
            return None

        strategy = self._strategies.get(participant.role)
        if strategy is None:
            logger.warning(f"No tip generation strategy for role: {participant.role.value}")
            return None

        try:
            content = await asyncio.wait_for(
                strategy.generate(context, participant),
                timeout=self.generation_timeout_s,
            )
        except GenerationFailure as e:
            logger.error(
                "Tip generation failed",
                extra={"participant": participant.identity, "error": str(e)},
            )
            return None
        except TimeoutError:
            logger.error(
                "Tip generation timed out",
                extra={
                    "participant": participant.identity,
                    "timeout_s": self.generation_timeout_s,
                },
            )
            return None

        content = content.strip()
        if not content:
            logger.warning(
                "Empty tip generated, skipping",
                extra={"participant": participant.identity},
            )
            return None

        return TipMessage(
            target_participant_id=participant.identity,
            content=content,
            priority=strategy.priority(context),
            category=f"{participant.role.value}_tip",
            timestamp=utc_now(),
        )

    async def generate_for_all(
        self, context: ChatContext, participants: Sequence[Participant]
    ) -> list[TipMessage]:
        """Generate tips for every eligible participant concurrently.

        Never raises: unexpected strategy errors are logged and dropped
        along with ordinary generation failures.

        Args:
            context: Current chat context
            participants: Candidate recipients (AGENTs are filtered out)

        Returns:
            Successful tips, in participant order
        """
        eligible = [p for p in participants if p.role is not ParticipantRole.AGENT]
        if not eligible:
            return []

        results = await asyncio.gather(
            *(self.generate_tip(context, p) for p in eligible),
            return_exceptions=True,
        )

        tips: list[TipMessage] = []
        for participant, result in zip(eligible, results, strict=True):
            if isinstance(result, TipMessage):
                tips.append(result)
            elif isinstance(result, Exception):
                logger.error(
                    f"Unexpected error generating tip for {participant.identity}: {result}",
                    exc_info=result,
                )
        return tips


def create_tip_dispatcher(llm: LanguageModel, config: ConsultationConfig) -> TipDispatcher:
    """Build a dispatcher with the default doctor and patient strategies.

    Args:
        llm: Language model shared by all strategies
        config: Session configuration

    Returns:
        Configured dispatcher
    """
    tips = config.tips
    urgency_matcher = KeywordMatcher(tips.urgency_keywords)
    return TipDispatcher(
        strategies={
            ParticipantRole.DOCTOR: ProfessionalTipStrategy(
                llm,
                urgency_matcher,
                language=config.language,
                history_window=tips.prompt_history_window,
                priority_window=tips.priority_window,
            ),
            ParticipantRole.PATIENT: ClientTipStrategy(
                llm,
                language=config.language,
                history_window=tips.prompt_history_window,
            ),
        },
        min_history=tips.min_history,
        generation_timeout_s=tips.generation_timeout_s,
    )
