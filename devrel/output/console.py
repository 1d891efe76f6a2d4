"""Console output and operator prompts.

Services never print directly: they receive a ``ConsoleProtocol`` so the
same code can render through Rich in a terminal or be captured in tests.
The console is also where the operator answers yes/no questions during a
release, e.g. whether to merge into an expired LTS branch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Leading marker for the shorthand methods; both backends render the same text.
_PREFIX: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}

_RICH_STYLE: dict[Style, str] = {
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.HEADER: "blue bold",
}


class ConsoleProtocol(Protocol):
    """Styled output plus interactive confirmation.

    Release actions and pull request checks only talk to this protocol, so
    tests can swap in ``MockConsole`` and assert on what was reported.
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling.

        Args:
            message: The text to print, never interpreted as markup
            style: The style to apply
        """
        ...

    def success(self, message: str) -> None:
        """Print a success message (shorthand for print with SUCCESS style)."""
        ...

    def error(self, message: str) -> None:
        """Print an error message (shorthand for print with ERROR style)."""
        ...

    def warning(self, message: str) -> None:
        """Print a warning message (shorthand for print with WARNING style)."""
        ...

    def info(self, message: str) -> None:
        """Print an info message (shorthand for print with INFO style)."""
        ...

    def header(self, message: str) -> None:
        """Print a section header."""
        ...

    def newline(self) -> None:
        """Print an empty line."""
        ...

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a yes/no question.

        Args:
            message: The question shown to the operator
            default: Answer used when no input can be read

        Returns:
            The operator's answer.
        """
        ...


class RichConsole:
    """Terminal console backed by Rich."""

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console(highlight=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        # Branch names and labels contain brackets; never parse them as markup.
        self._console.print(message, style=_RICH_STYLE.get(style), markup=False)

    def success(self, message: str) -> None:
        self._marked(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._marked(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._marked(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._marked(Style.INFO, message)

    def header(self, message: str) -> None:
        self._console.print()
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self._console.print()

    def confirm(self, message: str, *, default: bool = False) -> bool:
        from rich.prompt import Confirm

        return Confirm.ask(message, default=default, console=self._console)

    def _marked(self, style: Style, message: str) -> None:
        from rich.text import Text

        line = Text(_PREFIX[style], style=_RICH_STYLE[style])
        line.append(f" {message}")
        self._console.print(line)


@dataclass
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Console that records output and answers prompts from a script.

    ``answers`` is consumed front to back by ``confirm``; once empty,
    ``confirm`` returns the prompt's default.
    """

    outputs: list[OutputRecord] = field(default_factory=lambda: list[OutputRecord]())
    answers: list[bool] = field(default_factory=lambda: list[bool]())
    prompts: list[str] = field(default_factory=lambda: list[str]())

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._marked(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._marked(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._marked(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._marked(Style.INFO, message)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self.print("")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        self.prompts.append(message)
        return self.answers.pop(0) if self.answers else default

    def _marked(self, style: Style, message: str) -> None:
        self.print(f"{_PREFIX[style]} {message}", style)

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return self._any(Style.ERROR)

    def has_warning(self) -> bool:
        return self._any(Style.WARNING)

    def find(self, substring: str) -> list[OutputRecord]:
        return [record for record in self.outputs if substring in record.message]

    def _any(self, style: Style) -> bool:
        return any(record.style is style for record in self.outputs)
