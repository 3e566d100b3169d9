"""
Offline console demo: runs the full lead-capture dialogue without any API keys.

Uses the real state machine, session snapshots and concierge with the
scripted reply generator and a dry-run notifier that prints the relay
payload instead of sending it. No LLM, no email relay, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario quick
"""

import argparse
import asyncio
import json
from typing import Optional, Sequence

from src.config import settings
from src.conversation.concierge import AppointmentConcierge
from src.errors import ConciergeError
from src.schemas.conversation_schema import ChatMessage, NotificationStatus
from src.schemas.lead_schema import NotifierRequest
from src.tools.reply_generator import ScriptedReplyGenerator
from src.tools.session_store import InMemorySessionStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class DryRunNotifier:
    """Prints the relay payload instead of posting it."""

    def __init__(self) -> None:
        self.sent: list[NotifierRequest] = []

    async def notify(self, request: NotifierRequest, history: Sequence[ChatMessage]) -> None:
        self.sent.append(request)
        print(f"{DIM}  >> relay payload:{RESET}")
        for line in json.dumps(request.to_wire(), indent=2).splitlines():
            print(f"{DIM}     {line}{RESET}")


class ConsoleSession:
    """Drives an AppointmentConcierge from the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "iPhone 13 screen cracked",
            "Ada Obi, +2348011112222",
            "ada@example.com",
            "Saturday morning",
        ],
        "quick": [
            "MacBook Air battery swelling",
            "Ada Obi, ada@example.com",
            "Tomorrow around 3pm",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, concierge: Optional[AppointmentConcierge] = None) -> None:
        self.concierge = concierge or AppointmentConcierge(
            config=settings.concierge,
            reply_generator=ScriptedReplyGenerator(),
            notifier=DryRunNotifier(),
            store=InMemorySessionStore(),
        )
        self.name = self.concierge.config.assistant_name

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{self.name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  APPOINTMENT CONCIERGE - {title}{RESET}")
        print(f"{BOLD}  Business: {self.concierge.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _summary(self) -> None:
        status = self.concierge.email_status
        colour = GREEN if status.status == NotificationStatus.SUCCESS else YELLOW
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  Step: {self.concierge.state.value}{RESET}")
        print(f"{DIM}  Slots: {self.concierge.slots.to_dict()}{RESET}")
        if status.message:
            print(f"  {colour}{status.message}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def _process_input(self, text: str) -> None:
        reply = await self.concierge.submit(text)
        if reply is not None:
            self.agent_say(reply)
        elif self.concierge.chat_error:
            print(f"{RED}{self.concierge.chat_error}{RESET}")
        self.system_log(f"Step: {self.concierge.state.value}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        self.concierge.restore()
        self.agent_say(self.concierge.messages[-1].content)

        for step in steps:
            print(f"\n{BLUE}[Client] {RESET}{step}")
            await self._process_input(step)

        self._summary()

    async def run(self) -> None:
        self._banner("Console Chat")
        print(f"{DIM}  Type 'quit' to exit, '/retry [email]' to resend confirmations{RESET}")
        if self.concierge.restore():
            self.system_log("Resumed previous conversation")
        self.agent_say(self.concierge.messages[-1].content)

        while True:
            user_input = input(f"\n{BLUE}[Client] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if user_input.startswith("/retry"):
                email = user_input[len("/retry"):].strip() or None
                try:
                    status = await self.concierge.retry_notification(email)
                except ConciergeError as exc:
                    print(f"{RED}{exc}{RESET}")
                else:
                    self.system_log(status.message)
                continue
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue

            await self._process_input(user_input)
            if self.concierge.email_status.message:
                self.system_log(self.concierge.email_status.message)

        self._summary()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline appointment concierge demo")
    parser.add_argument("--scenario", choices=sorted(ConsoleSession.SCENARIOS))
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
