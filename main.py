"""
Terminal chat entry point wired to the configured integrations.

Uses OpenRouter for replies, the email relay for notifications, Supabase
for lead records (when configured) and a JSON file store for session
snapshots, so restarting the process resumes the conversation.

Usage:
    Live chat:    python main.py
    Offline demo: python main.py console
"""

import asyncio
import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _build_concierge():
    """Build an AppointmentConcierge from the loaded settings."""
    from console_demo import DryRunNotifier
    from src.conversation.concierge import AppointmentConcierge
    from src.tools.lead_records import SupabaseLeadRecorder
    from src.tools.notifier import EmailRelayNotifier
    from src.tools.reply_generator import OpenRouterReplyGenerator, ScriptedReplyGenerator
    from src.tools.session_store import JsonFileSessionStore

    config = settings.concierge
    if config.reply_generator_key:
        generator = OpenRouterReplyGenerator(config)
    else:
        logger.warning("OPENROUTER_API_KEY not set; using scripted replies")
        generator = ScriptedReplyGenerator()

    if config.notifier_endpoint:
        notifier = EmailRelayNotifier(
            config, lead_recorder=SupabaseLeadRecorder.from_config(settings.supabase)
        )
    else:
        logger.warning("NOTIFIER_ENDPOINT not set; confirmations will only be printed")
        notifier = DryRunNotifier()

    return AppointmentConcierge(
        config=config,
        reply_generator=generator,
        notifier=notifier,
        store=JsonFileSessionStore(settings.persistence.storage_dir),
    )


def _run_live_mode() -> None:
    from console_demo import ConsoleSession

    session = ConsoleSession(_build_concierge())
    asyncio.run(session.run())


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    asyncio.run(ConsoleSession().run())


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_live_mode()
