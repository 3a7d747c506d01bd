"""LiveKit Agents worker for the consultation assistant.

Each dispatched job joins a consultation room, tracks its participants,
consumes final transcription segments published in the room, and sends
role-specific tips to the doctor and patient over private data packets.

Requirements:
- LIVEKIT_URL: LiveKit server URL (e.g., ws://localhost:7880)
- LIVEKIT_API_KEY: LiveKit API key
- LIVEKIT_API_SECRET: LiveKit API secret
- OPENAI_API_KEY: OpenAI API key (tip generation)

Optional:
- CONSULTATION_CONFIG: Path to YAML configuration file

Usage:
    python -m src.consultation.agent start
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from livekit import agents
from livekit.agents import JobContext, WorkerOptions

from src.consultation.channels.livekit_publisher import LiveKitDataPublisher
from src.consultation.config import ConsultationConfig
from src.consultation.llm import OpenAILanguageModel
from src.consultation.models import DomainEvent
from src.consultation.room_bridge import RoomEventBridge
from src.consultation.session import ConsultationSession

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "configs" / "consultation.yaml"


def load_config() -> ConsultationConfig:
    """Load configuration from CONSULTATION_CONFIG or the default path."""
    path = Path(os.getenv("CONSULTATION_CONFIG", str(DEFAULT_CONFIG_PATH)))
    return ConsultationConfig.from_yaml_with_defaults(path)


def log_domain_event(event: DomainEvent) -> None:
    """Log every domain event at INFO level."""
    logger.info(f"Domain event: {event.event_type}", extra={"event": repr(event)})


async def entrypoint(ctx: JobContext) -> None:
    """Agent entry point - called when a new job is assigned.

    Args:
        ctx: Job context containing room and participant information
    """
    logger.info(
        "Agent entrypoint called",
        extra={
            "room": ctx.room.name if ctx.room else "unknown",
            "job_id": ctx.job.id if ctx.job else "unknown",
        },
    )

    config = load_config()

    await ctx.connect()

    session = ConsultationSession(
        publisher=LiveKitDataPublisher(ctx.room),
        llm=OpenAILanguageModel(
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=config.llm.model,
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        ),
        config=config,
    )
    session.add_event_listener(log_domain_event)
    await session.initialize()

    bridge = RoomEventBridge(session, ctx.room, default_role=config.default_role)
    bridge.attach()

    async def cleanup() -> None:
        await bridge.detach()
        await session.shutdown()
        logger.info("Consultation session closed", extra={"room": ctx.room.name})

    ctx.add_shutdown_callback(cleanup)

    logger.info(
        "Consultation session running",
        extra={"room": ctx.room.name, "language": config.language},
    )


def main() -> None:
    """Main entry point for the agent worker.

    Validates the environment and starts the LiveKit Agents worker, which
    calls entrypoint() for each dispatched job.
    """
    config = load_config()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Verify environment variables
    required_env_vars = [
        "LIVEKIT_URL",
        "LIVEKIT_API_KEY",
        "LIVEKIT_API_SECRET",
        "OPENAI_API_KEY",
    ]

    missing_vars = [var for var in required_env_vars if not os.getenv(var)]
    if missing_vars:
        logger.error(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )
        logger.error("Please set these in your environment or .env file")
        return

    logger.info("Starting consultation assistant worker...")
    logger.info(f"LiveKit URL: {os.getenv('LIVEKIT_URL')}")

    agents.cli.run_app(
        WorkerOptions(
            entrypoint_fnc=entrypoint,
            agent_name=config.livekit.agent_name,
        )
    )


if __name__ == "__main__":
    main()
