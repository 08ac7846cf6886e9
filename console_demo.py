"""
Offline console demo: chat with the FAQ assistant in a terminal.

Uses the real router, matcher, branch evaluator and lead-capture flow
with in-memory stores. No completion fallback, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario sales
    python console_demo.py --scenario branch
"""

import argparse
import asyncio
import re
import uuid

from tappy.config import settings
from tappy.conversation.router import IntentRouter, InvalidMessageError
from tappy.knowledge.corpus import FaqCorpus
from tappy.schemas.reply_schema import OptionsReply, TextReply, YesNoReply
from tappy.storage.lead_store import InMemoryLeadStore
from tappy.storage.session_store import SessionStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

_TAGS = re.compile(r"<[^>]+>")


def _plain(html: str) -> str:
    text = html.replace("<br>", "\n").replace("</li>", "\n")
    return _TAGS.sub("", text).strip()


class ConsoleSession:
    """Runs a conversation against the router in the terminal."""

    SCENARIOS: dict[str, list[str]] = {
        "sales": [
            "How much does TapaPOS cost?",
            "Sam Taylor",
            "Taylor's Cafe",
            "not-an-email",
            "sam@gamil.com",
            "yes",
            "Two tills and a kitchen screen",
        ],
        "branch": [
            "receipt printer not printing",
            "maybe",
            "no",
            "new question",
        ],
        "vouchers": [
            "set up vouchers",
            "yes",
        ],
        "support": [
            "card terminal offline",
            "no",
        ],
    }

    def __init__(self) -> None:
        self.corpus = FaqCorpus.from_files(settings.data.faq_files())
        self.leads = InMemoryLeadStore()
        self.sessions = SessionStore()
        self.router = IntentRouter(self.corpus, self.sessions, self.leads)
        self.session_id = uuid.uuid4().hex

    def agent_say(self, reply) -> None:
        name = settings.business.assistant_name
        if isinstance(reply, TextReply):
            body = _plain(reply.html)
            print(f"{GREEN}{BOLD}[{name}]{RESET} {GREEN}{body}{RESET}")
            print(f"{DIM}  >> source: {reply.source}{RESET}")
        elif isinstance(reply, YesNoReply):
            print(f"{GREEN}{BOLD}[{name}] {reply.title}{RESET}")
            if reply.intro:
                print(f"{GREEN}{_plain(reply.intro)}{RESET}")
            for number, step in enumerate(reply.steps, start=1):
                print(f"{GREEN}  {number}. {_plain(step)}{RESET}")
            print(f"{YELLOW}{reply.question} (yes/no){RESET}")
        elif isinstance(reply, OptionsReply):
            print(f"{GREEN}{BOLD}[{name}]{RESET} {GREEN}{reply.intro}{RESET}")
            for option in reply.options:
                print(f"{YELLOW}  {option.index}. {option.label}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _send(self, text: str) -> None:
        try:
            reply = asyncio.run(self.router.handle_message(text, self.session_id))
        except InvalidMessageError as exc:
            print(f"{RED}{exc}{RESET}")
            return
        self.agent_say(reply)
        state = self.sessions.peek(self.session_id)
        if state is not None:
            self.system_log(f"Phase: {state.phase.kind}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name} ({len(self.corpus)} FAQs){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"FAQ ASSISTANT - Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[Visitor] {RESET}{step}")
            self._send(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Leads captured: {len(self.leads.leads)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run(self) -> None:
        self._banner("FAQ ASSISTANT - Console Demo (type 'quit' to exit)")
        self._send("hello")

        while True:
            user_input = input(f"\n{BLUE}[Visitor] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            self._send(user_input)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="FAQ assistant console demo")
    parser.add_argument("--scenario", choices=sorted(ConsoleSession.SCENARIOS))
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()
