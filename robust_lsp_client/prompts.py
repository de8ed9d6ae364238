"""
User prompts for install and update decisions.

The orchestrator only talks to a ``Prompter``. An editor host supplies its
own (notification with buttons); the command line uses ``ConsolePrompter``
or, with ``--yes``, ``AutoConfirmPrompter``.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, Optional, Protocol, Sequence, TextIO

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    """Asks the user to pick between choices and shows messages."""

    async def ask(self, message: str, choices: Sequence[str]) -> Optional[str]:
        """Return the chosen label, or None if the prompt was dismissed."""
        ...

    async def inform(self, message: str) -> None:
        """Show an informational message."""
        ...


class ConsolePrompter:
    """
    Prompts on a terminal.

    Input is read in the default executor so the event loop keeps running
    while the user decides. End of input counts as dismissal.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        reader: Callable[[str], str] = input,
    ):
        self._stream = stream
        self._reader = reader

    @property
    def _out(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _ask_sync(self, message: str, choices: Sequence[str]) -> Optional[str]:
        options = "/".join(f"[{i}] {label}" for i, label in enumerate(choices, 1))
        while True:
            try:
                answer = self._reader(f"{message} {options}: ").strip()
            except EOFError:
                return None

            if not answer:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return choices[int(answer) - 1]
            for label in choices:
                if answer.lower() == label.lower():
                    return label
            print(f"Please answer one of: {', '.join(choices)}", file=self._out)

    async def ask(self, message: str, choices: Sequence[str]) -> Optional[str]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._ask_sync, message, choices)

    async def inform(self, message: str) -> None:
        print(message, file=self._out)


class AutoConfirmPrompter:
    """Picks the first (affirmative) choice of every prompt."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    async def ask(self, message: str, choices: Sequence[str]) -> Optional[str]:
        choice = choices[0] if choices else None
        logger.info(f"{message} -> {choice} (auto-confirmed)")
        return choice

    async def inform(self, message: str) -> None:
        if self._stream is not None:
            print(message, file=self._stream)
        else:
            logger.info(message)
