"""
Run the voice assistant conversation in a terminal.

Prompts are printed and answers are typed. A blank answer counts as
no speech; Ctrl-D stops the conversation.

Usage:
    python scripts/voice_assistant.py [--language ta] [--fast]
"""

import argparse
import asyncio
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from quickpost.logging_config import get_logger, setup_logging
from quickpost.schemas.voice import SupportedLanguage
from quickpost.services.console_speech import ConsoleRecognizer, ConsoleSynthesizer
from quickpost.services.conversation_driver import ConversationCallbacks, ConversationDriver

setup_logging()
logger = get_logger(__name__)


async def run_assistant(language: SupportedLanguage, fast: bool = False) -> dict[str, str]:
    """Run one conversation and return the selections it made."""
    selections: dict[str, str] = {}
    callbacks = ConversationCallbacks(
        on_service_select=lambda v: selections.__setitem__("service", v),
        on_state_select=lambda v: selections.__setitem__("state", v),
        on_district_select=lambda v: selections.__setitem__("district", v),
        on_description_update=lambda v: selections.__setitem__("description", v),
    )
    delay = 0.0 if fast else None
    driver = ConversationDriver(
        ConsoleSynthesizer(),
        ConsoleRecognizer(),
        callbacks,
        language=language,
        advance_delay=delay,
        close_delay=delay,
    )

    outcome = await driver.run()
    print(f"\nConversation {outcome.value}.")
    return selections


def main() -> None:
    parser = argparse.ArgumentParser(description="Text-mode voice assistant")
    parser.add_argument(
        "--language",
        choices=[SupportedLanguage.ENGLISH.value, SupportedLanguage.TAMIL.value],
        default=SupportedLanguage.ENGLISH.value,
        help="Conversation language",
    )
    parser.add_argument("--fast", action="store_true", help="Skip the pauses between steps")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")

    args = parser.parse_args()
    if args.verbose:
        setup_logging("DEBUG")

    selections = asyncio.run(run_assistant(SupportedLanguage(args.language), fast=args.fast))
    for key, value in selections.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
