"""Integration tests for a full consultation flow.

Wires the real session, room bridge and LiveKit data publisher together
over a mocked LiveKit room. Only the SDK boundary (room, participants,
publish_data) and the language model are faked.

Scenario:
1. Doctor and patient join the room
2. Three calm turns are transcribed and broadcast
3. An urgency keyword triggers an immediate tip cycle
4. The patient leaves, the job shuts down
"""

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from livekit import rtc

from src.consultation.channels.livekit_publisher import LiveKitDataPublisher
from src.consultation.config import ConsultationConfig
from src.consultation.models import ParticipantRole, TipPriority
from src.consultation.room_bridge import RoomEventBridge
from src.consultation.session import ConsultationSession, SessionState
from tests.helpers.session_fakes import EventRecorder, FakeLanguageModel

pytestmark = [pytest.mark.integration]

def make_participant(identity: str, name: str, role: str) -> Mock:
    participant = Mock(spec=rtc.RemoteParticipant)
    participant.identity = identity
    participant.name = name
    participant.attributes = {}
    participant.metadata = json.dumps({"role": role})
    participant.kind = rtc.ParticipantKind.PARTICIPANT_KIND_STANDARD
    return participant


def make_segment(segment_id: str, text: str) -> Mock:
    segment = Mock()
    segment.id = segment_id
    segment.text = text
    segment.final = True
    return segment


class RoomHarness:
    """Mocked LiveKit room that captures registered callbacks and sent packets."""

    def __init__(self) -> None:
        self.room = Mock(spec=rtc.Room)
        self.room.name = "consultation-42"
        self.room.connection_state = rtc.ConnectionState.CONN_CONNECTED
        self.room.remote_participants = {}
        self.room.local_participant = Mock()
        self.room.local_participant.publish_data = AsyncMock()
        self.room.on = Mock(side_effect=self._on)
        self.room.off = Mock()
        self.handlers: dict[str, Callable[..., None]] = {}

    def _on(self, event: str, callback: Callable[..., None]) -> None:
        self.handlers[event] = callback

    def emit(self, event: str, *args: Any) -> None:
        self.handlers[event](*args)

    def sent(self, topic: str) -> list[dict[str, Any]]:
        """Decoded packets published on a topic, with their destinations."""
        packets = []
        for call in self.room.local_participant.publish_data.call_args_list:
            if call.kwargs["topic"] != topic:
                continue
            message = json.loads(call.args[0].decode("utf-8"))
            message["_destinations"] = call.kwargs["destination_identities"]
            packets.append(message)
        return packets


@pytest.fixture
def harness() -> RoomHarness:
    return RoomHarness()


@pytest.fixture
def llm() -> FakeLanguageModel:
    return FakeLanguageModel(
        responses={
            "auxiliando um médico": "Pergunte se a dor irradia para o braço.",
            "auxiliando um paciente": "Informe se a dor piora com esforço.",
        }
    )


@pytest_asyncio.fixture
async def running(harness: RoomHarness, llm: FakeLanguageModel):
    """Initialized session with an attached bridge."""
    config = ConsultationConfig(language="pt-BR")
    session = ConsultationSession(LiveKitDataPublisher(harness.room), llm, config)
    recorder = EventRecorder()
    session.add_event_listener(recorder)
    await session.initialize()

    bridge = RoomEventBridge(session, harness.room, default_role=config.default_role)
    bridge.attach()

    yield session, bridge, recorder

    await bridge.detach()
    await session.shutdown()


@pytest.mark.asyncio
async def test_full_consultation(harness: RoomHarness, llm: FakeLanguageModel, running) -> None:
    """Test join, transcribe, keyword-triggered tips and departure end to end."""
    session, bridge, recorder = running
    doctor = make_participant("dr-1", "Dra. Souza", "doctor")
    patient = make_participant("p-1", "João", "patient")

    harness.emit("participant_connected", doctor)
    harness.emit("participant_connected", patient)
    await bridge.drain()

    assert session.state == SessionState.RUNNING
    assert [e.participant.role for e in recorder.of_type("participant_joined")] == [
        ParticipantRole.DOCTOR,
        ParticipantRole.PATIENT,
    ]

    turns = [
        (doctor, "Bom dia, o que o traz aqui hoje?"),
        (patient, "Estou sentindo um aperto no peito"),
        (doctor, "Desde quando?"),
    ]
    for i, (speaker, text) in enumerate(turns):
        harness.emit("transcription_received", [make_segment(f"seg-{i}", text)], speaker, None)
        await bridge.drain()

    transcripts = harness.sent("transcript")
    assert [t["content"]["transcript"] for t in transcripts] == [text for _, text in turns]
    assert all(t["_destinations"] == [] for t in transcripts)
    assert harness.sent("tip") == []

    harness.emit(
        "transcription_received",
        [make_segment("seg-3", "Desde ontem, e a dor está muito forte")],
        patient,
        None,
    )
    await bridge.drain()

    tips = {t["_destinations"][0]: t for t in harness.sent("tip")}
    assert set(tips) == {"dr-1", "p-1"}
    assert tips["dr-1"]["content"] == "Pergunte se a dor irradia para o braço."
    assert tips["dr-1"]["priority"] == "high"
    assert tips["dr-1"]["category"] == "doctor_tip"
    assert tips["p-1"]["priority"] == "low"
    assert tips["p-1"]["targetParticipant"] == "p-1"

    generated = [e.tip for e in recorder.of_type("tip_generated")]
    assert {t.target_participant_id: t.priority for t in generated} == {
        "dr-1": TipPriority.HIGH,
        "p-1": TipPriority.LOW,
    }

    # Prompts were rendered in Portuguese with the participant list
    assert all("Médico: Bom dia" in prompt for prompt in llm.prompts)
    assert all("- João (patient)" in prompt for prompt in llm.prompts)

    harness.emit("participant_disconnected", patient)
    await bridge.drain()

    assert "p-1" not in session.registry
    assert [e.participant_id for e in recorder.of_type("participant_left")] == ["p-1"]


@pytest.mark.asyncio
async def test_agent_participant_never_receives_tips(harness: RoomHarness, running) -> None:
    """Test another agent in the room is registered but excluded from tips."""
    session, bridge, _ = running
    doctor = make_participant("dr-1", "Dra. Souza", "doctor")
    other_agent = Mock(spec=rtc.RemoteParticipant)
    other_agent.identity = "agent-scribe"
    other_agent.name = "Scribe"
    other_agent.attributes = {}
    other_agent.metadata = ""
    other_agent.kind = rtc.ParticipantKind.PARTICIPANT_KIND_AGENT

    harness.emit("participant_connected", doctor)
    harness.emit("participant_connected", other_agent)
    await bridge.drain()

    assert session.registry.get("agent-scribe").role is ParticipantRole.AGENT

    for i in range(3):
        harness.emit(
            "transcription_received", [make_segment(f"s{i}", f"frase {i}")], doctor, None
        )
        await bridge.drain()

    delivered = await session.generate_and_send_tips()

    assert [t.target_participant_id for t in delivered] == ["dr-1"]
    assert all(t["_destinations"] != ["agent-scribe"] for t in harness.sent("tip"))


@pytest.mark.asyncio
async def test_disconnected_room_drops_tips_without_failing(
    harness: RoomHarness, running
) -> None:
    """Test a transport drop mid-session loses packets but keeps history."""
    session, bridge, recorder = running
    patient = make_participant("p-1", "João", "patient")
    harness.emit("participant_connected", patient)
    await bridge.drain()

    harness.room.connection_state = rtc.ConnectionState.CONN_DISCONNECTED
    for i, text in enumerate(["um", "dois", "socorro, é uma emergência"]):
        harness.emit("transcription_received", [make_segment(f"s{i}", text)], patient, None)
        await bridge.drain()

    assert len(session.transcriptions) == 3
    harness.room.local_participant.publish_data.assert_not_awaited()
    assert recorder.of_type("tip_generated") == []
