"""
Console chat: talks to the relay the same way the web widget does.

Bot replies are printed as they arrive. When the automation opens the
scheduling form, the session prompts for the form fields and submits
them as a structured turn.

Usage:
    python console_demo.py
    python console_demo.py --new-session
"""

import argparse
import asyncio
from typing import Optional

from pydantic import ValidationError

from chatbridge.config import settings
from chatbridge.schemas.chat_schema import ConversationMessage, Sender
from chatbridge.widget import ChatWidget, create_widget

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """Interactive terminal chat backed by a ChatWidget."""

    MAX_INPUT_LENGTH = 2000

    def __init__(self, widget: Optional[ChatWidget] = None) -> None:
        self.widget = widget or create_widget()
        self._shown = 0

    def bot_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _print_new_messages(self) -> None:
        messages: list[ConversationMessage] = self.widget.messages
        for message in messages[self._shown:]:
            if message.sender == Sender.BOT:
                self.bot_say(message.text)
        self._shown = len(messages)

    def _ask(self, label: str, required: bool = True) -> str:
        while True:
            value = input(f"{YELLOW}  {label}: {RESET}").strip()
            if value or not required:
                return value
            print(f"{RED}  {label} is required.{RESET}")

    def _choose_slot(self) -> str:
        slots = self.widget.form_state.slots
        for i, slot in enumerate(slots, start=1):
            label = slot.get("label", slot) if isinstance(slot, dict) else slot
            print(f"{YELLOW}    {i}. {label}{RESET}")
        while True:
            choice = input(f"{YELLOW}  Preferred time slot [1-{len(slots)}]: {RESET}").strip()
            if choice.isdigit() and 1 <= int(choice) <= len(slots):
                slot = slots[int(choice) - 1]
                return str(slot.get("value", "")) if isinstance(slot, dict) else str(slot)
            print(f"{RED}  Please pick a number from the list.{RESET}")

    async def _fill_form(self) -> None:
        print(f"\n{BOLD}{self.widget.form_state.initial_message}{RESET}")
        fields = {
            "name": self._ask("Full name"),
            "email": self._ask("Email address"),
            "phone": self._ask("Phone (optional)", required=False) or None,
            "preferred_time": self._choose_slot(),
        }
        try:
            await self.widget.submit_form(fields)
        except ValidationError:
            print(f"{RED}Please fill in your Name, Email, and select a Time Slot.{RESET}")
            return
        self._print_new_messages()

    async def _loop(self) -> None:
        session_id = self.widget.ensure_session()
        self.system_log(f"Session: {session_id}")
        self.system_log(f"Relay: {settings.proxy.endpoint_url}")

        while True:
            user_input = input(f"\n{BLUE}[You] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.bot_say("That was quite long. Could you keep it brief for me?")
                continue

            await self.widget.send(user_input)
            self._print_new_messages()
            self.system_log(f"State: {self.widget.state.value}")

            while self.widget.form_state.visible:
                await self._fill_form()
                self.system_log(f"State: {self.widget.state.value}")
                if self.widget.form_state.visible:
                    again = input(f"{DIM}  Fill the form again? [y/N] {RESET}").strip().lower()
                    if again != "y":
                        break

    def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} - Console Chat{RESET}")
        print(f"{BOLD}  Type 'quit' to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        asyncio.run(self._loop())


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the automation from a terminal")
    parser.add_argument(
        "--new-session", action="store_true", help="Forget the stored session before starting"
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.new_session:
        session.widget.reset_session()
    session.run()


if __name__ == "__main__":
    main()
