"""
User interaction seam for the task panel.

The controller never talks to a terminal or widget directly; it asks a
``Prompter`` for confirmations and required text, and reports outcomes through
a ``Notifier``. ``ConsolePrompter`` implements both for the CLI.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Callable, Optional, Protocol, TextIO


class Prompter(Protocol):
    async def confirm(self, title: str, message: str) -> bool:
        """Ask a yes/no question. False means the user declined."""
        ...

    async def ask_text(self, title: str, message: str) -> Optional[str]:
        """Ask for free text. None means the user cancelled."""
        ...


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def alert(self, title: str, message: str) -> None:
        """Blocking error notification; the message is shown verbatim."""
        ...


class ConsolePrompter:
    """Prompter and Notifier backed by stdin/stdout."""

    def __init__(
        self,
        read_line: Callable[[str], str] = input,
        out: TextIO | None = None,
    ):
        self._read_line = read_line
        self._out = out or sys.stdout

    async def _read(self, prompt: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_line, prompt)
        except EOFError:
            return None

    async def confirm(self, title: str, message: str) -> bool:
        answer = await self._read(f"{title}: {message} [y/N] ")
        return (answer or "").strip().lower() in ("y", "yes")

    async def ask_text(self, title: str, message: str) -> Optional[str]:
        answer = await self._read(f"{title}: {message} (blank line to retry, Ctrl-D to cancel) ")
        return None if answer is None else answer.strip()

    def success(self, message: str) -> None:
        print(f"✔ {message}", file=self._out)

    def alert(self, title: str, message: str) -> None:
        print(f"✖ {title}: {message}", file=self._out)
