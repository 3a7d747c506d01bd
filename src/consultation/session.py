"""Consultation session orchestrator.

Binds the participant registry, transcription store, tip dispatcher,
channel manager and event bus into one session lifecycle, and schedules
periodic and keyword-triggered tip generation.
"""

import asyncio
import logging
from enum import Enum

from src.consultation.channels.base import DataPublisher
from src.consultation.channels.manager import ChannelManager
from src.consultation.config import ConsultationConfig
from src.consultation.errors import (
    DeliveryFailure,
    SessionStateError,
    TransportUnavailableError,
    UnknownParticipantError,
)
from src.consultation.events import EventBus, EventHandler
from src.consultation.keywords import KeywordMatcher
from src.consultation.llm import LanguageModel
from src.consultation.models import (
    ChatContext,
    Participant,
    ParticipantJoined,
    ParticipantLeft,
    ParticipantRole,
    TipGenerated,
    TipMessage,
    TranscriptionRecorded,
)
from src.consultation.registry import ParticipantRegistry
from src.consultation.tips.dispatcher import TipDispatcher, create_tip_dispatcher
from src.consultation.tips.prompts import build_system_prompt
from src.consultation.transcription import TranscriptionMessageFactory, TranscriptionStore

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Session state machine states.

    State Transitions:
    - UNINITIALIZED → INITIALIZED (on initialize)
    - UNINITIALIZED → RUNNING (on initialize with pre-seeded participants)
    - INITIALIZED → RUNNING (on first participant registration)
    - * → SHUT_DOWN (on shutdown)

    States:
    - UNINITIALIZED: Constructed, no channels or timers yet
    - INITIALIZED: General channel created, waiting for participants
    - RUNNING: Accepting transcriptions; periodic tips active if configured
    - SHUT_DOWN: Terminal, all state cleared
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    SHUT_DOWN = "shut_down"


# Valid state transitions
VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.UNINITIALIZED: {
        SessionState.INITIALIZED,
        SessionState.RUNNING,
        SessionState.SHUT_DOWN,
    },
    SessionState.INITIALIZED: {SessionState.RUNNING, SessionState.SHUT_DOWN},
    SessionState.RUNNING: {SessionState.SHUT_DOWN},
    SessionState.SHUT_DOWN: set(),  # Terminal state
}


class ConsultationSession:
    """Orchestrates one multi-participant consultation.

    Per transcription turn: record → broadcast → keyword check →
    (optional) tip cycle. Tip cycles read the bounded recent history,
    generate for all non-agent participants concurrently, deliver each tip
    privately and publish ``tip_generated``.

    Overlapping tip cycles (periodic tick plus keyword trigger) are
    allowed; each cycle reads current state and sends independently.

    Example:
        >>> session = ConsultationSession(publisher, llm, config)
        >>> await session.initialize()
        >>> await session.register_participant("dr-1", ParticipantRole.DOCTOR, "Dr. Lee")
        >>> await session.handle_transcription("dr-1", "How long has the pain lasted?")
    """

    def __init__(
        self,
        publisher: DataPublisher,
        llm: LanguageModel | None = None,
        config: ConsultationConfig | None = None,
        *,
        dispatcher: TipDispatcher | None = None,
        registry: ParticipantRegistry | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize session.

        Args:
            publisher: Transport capability used by all channels
            llm: Language model for the default tip strategies
            config: Session configuration (defaults if None)
            dispatcher: Pre-built tip dispatcher (overrides llm)
            registry: Pre-seeded participant registry
            event_bus: Event bus for domain events

        Raises:
            ValueError: If neither llm nor dispatcher is provided
        """
        self.config = config or ConsultationConfig()

        if dispatcher is None:
            if llm is None:
                raise ValueError("ConsultationSession requires an llm or a dispatcher")
            dispatcher = create_tip_dispatcher(llm, self.config)

        self._publisher = publisher
        self.registry = registry or ParticipantRegistry()
        self.transcriptions = TranscriptionStore(self.registry)
        self.channels = ChannelManager(publisher)
        self.dispatcher = dispatcher
        self.events = event_bus or EventBus()
        self.trigger_matcher = KeywordMatcher(self.config.tips.effective_trigger_keywords)

        self.state = SessionState.UNINITIALIZED

        # Periodic tip generation; the epoch invalidates ticks racing shutdown
        self._tip_task: asyncio.Task[None] | None = None
        self._epoch = 0

    @property
    def is_running(self) -> bool:
        return self.state == SessionState.RUNNING

    def transition_state(self, new_state: SessionState) -> None:
        """Transition session to a new state with validation.

        Raises:
            SessionStateError: If transition is invalid
        """
        if new_state not in VALID_TRANSITIONS.get(self.state, set()):
            raise SessionStateError(
                f"Invalid state transition: {self.state.value} → {new_state.value}"
            )

        old_state = self.state
        self.state = new_state

        logger.info(
            "Session state transition",
            extra={"from_state": old_state.value, "to_state": new_state.value},
        )

    async def initialize(self) -> None:
        """Create the general channel and arm periodic tip generation.

        Raises:
            TransportUnavailableError: If the publisher is not connected
            SessionStateError: If the session was already initialized
        """
        if self.state != SessionState.UNINITIALIZED:
            raise SessionStateError(f"Cannot initialize session in state {self.state.value}")

        if not self._publisher.is_connected:
            raise TransportUnavailableError("Transport session not available")

        self.channels.get_or_create_general(
            self.registry.identities(),
            audience_provider=self.registry.identities,
        )

        interval_s = self.config.tips.interval_s
        if interval_s > 0:
            self._tip_task = asyncio.create_task(self._periodic_tips(interval_s, self._epoch))
            logger.info(f"Periodic tip generation armed every {interval_s}s")

        if len(self.registry) > 0:
            self.transition_state(SessionState.RUNNING)
        else:
            self.transition_state(SessionState.INITIALIZED)

    async def register_participant(
        self, identity: str, role: ParticipantRole, name: str
    ) -> Participant:
        """Register a participant and announce it.

        Raises:
            SessionStateError: If the session is not initialized or running
        """
        if self.state not in (SessionState.INITIALIZED, SessionState.RUNNING):
            raise SessionStateError(
                f"Cannot register participants in state {self.state.value}"
            )

        participant = self.registry.register(identity, role, name)

        if role is ParticipantRole.AGENT:
            # AGENTs never hold a private channel, even after a role change
            self.channels.remove_private(identity)
        else:
            self.channels.get_or_create_private(identity)

        if self.state == SessionState.INITIALIZED:
            self.transition_state(SessionState.RUNNING)

        logger.info(
            "Participant registered",
            extra={"participant": identity, "role": role.value},
        )

        await self.events.publish(ParticipantJoined(participant=participant))
        return participant

    async def handle_transcription(
        self,
        identity: str,
        text: str,
        confidence: float | None = None,
    ) -> None:
        """Record, broadcast and react to one transcribed utterance.

        Unknown identities are logged and dropped. If the text matches the
        trigger keywords a full tip cycle runs before this returns.

        Raises:
            SessionStateError: If the session is not running
        """
        if self.state != SessionState.RUNNING:
            raise SessionStateError(
                f"Cannot accept transcriptions in state {self.state.value}"
            )

        participant = self.registry.get(identity)
        if participant is None:
            logger.warning(f"Unknown participant: {identity}")
            return

        message = TranscriptionMessageFactory.create(
            participant,
            text,
            confidence,
            not_before=self.transcriptions.last_timestamp(identity),
        )
        if not message.text:
            logger.debug("Ignoring empty transcription", extra={"participant": identity})
            return

        try:
            self.transcriptions.record(message)
        except UnknownParticipantError as e:
            logger.warning(str(e))
            return

        await self.events.publish(TranscriptionRecorded(message=message))

        try:
            await self.channels.broadcast_transcript(message)
        except DeliveryFailure as e:
            logger.error(
                "Transcript broadcast failed",
                extra={"participant": identity, "error": str(e)},
            )

        if self.trigger_matcher.matches(text):
            logger.info(
                "Urgency keyword detected, generating tips immediately",
                extra={"participant": identity},
            )
            await self.generate_and_send_tips()

    def build_chat_context(self) -> ChatContext:
        """Build a fresh context from the bounded recent history."""
        participants = tuple(self.registry.all())
        return ChatContext(
            history=tuple(
                self.transcriptions.recent_across_all(self.config.max_conversation_history)
            ),
            participants=participants,
            system_prompt=build_system_prompt(participants, self.config.language),
        )

    async def generate_and_send_tips(self) -> list[TipMessage]:
        """Run one tip cycle for every non-agent participant.

        Delivery failures are logged per tip and do not stop the cycle.
        Tips from a cycle that straddles shutdown are dropped.

        Returns:
            Tips that were delivered
        """
        if self.state == SessionState.SHUT_DOWN:
            return []

        epoch = self._epoch
        context = self.build_chat_context()
        tips = await self.dispatcher.generate_for_all(context, context.participants)

        delivered: list[TipMessage] = []
        for tip in tips:
            if self._epoch != epoch:
                logger.info("Session shut down during tip cycle, dropping remaining tips")
                break

            try:
                await self.channels.send_tip(tip)
            except DeliveryFailure as e:
                logger.error(
                    "Tip delivery failed",
                    extra={"participant": tip.target_participant_id, "error": str(e)},
                )
                continue

            delivered.append(tip)
            await self.events.publish(TipGenerated(tip=tip))

        logger.debug(
            "Tip cycle complete",
            extra={"generated": len(tips), "delivered": len(delivered)},
        )
        return delivered

    async def handle_participant_left(self, identity: str) -> None:
        """Remove a participant and everything tied to it.

        Raises:
            SessionStateError: If the session is shut down
        """
        if self.state == SessionState.SHUT_DOWN:
            raise SessionStateError("Cannot remove participants from a shut down session")

        removed = self.registry.remove(identity)
        self.channels.remove_private(identity)
        self.transcriptions.clear_participant(identity)

        if removed is None:
            logger.warning(f"Participant left but was never registered: {identity}")
            return

        logger.info("Participant left", extra={"participant": identity})
        await self.events.publish(ParticipantLeft(participant_id=identity))

    def add_event_listener(self, handler: EventHandler) -> None:
        self.events.subscribe(handler)

    def remove_event_listener(self, handler: EventHandler) -> None:
        self.events.unsubscribe(handler)

    async def shutdown(self) -> None:
        """Stop periodic generation and clear all session state.

        Idempotent: calling on a shut down session is a no-op.
        """
        if self.state == SessionState.SHUT_DOWN:
            return

        # Invalidate in-flight ticks and cycles before anything else
        self._epoch += 1
        self.transition_state(SessionState.SHUT_DOWN)

        task, self._tip_task = self._tip_task, None
        if task is not None:
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self.transcriptions.clear()
        self.channels.clear()
        self.registry.clear()
        self.events.clear()

        logger.info("Consultation session shut down")

    async def _periodic_tips(self, interval_s: float, epoch: int) -> None:
        """Run a tip cycle every ``interval_s`` seconds until shutdown."""
        try:
            while True:
                await asyncio.sleep(interval_s)
                if self._epoch != epoch or self.state == SessionState.SHUT_DOWN:
                    return

                try:
                    await self.generate_and_send_tips()
                except Exception as e:
                    logger.error(f"Error in periodic tip generation: {e}", exc_info=True)

        except asyncio.CancelledError:
            # Clean shutdown
            pass
