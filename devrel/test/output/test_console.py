"""Tests for devrel.output.console module."""

from __future__ import annotations

from devrel.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"

    def test_all_styles_exist(self) -> None:
        expected = {"DEFAULT", "SUCCESS", "ERROR", "WARNING", "INFO", "DIM", "HEADER"}
        assert {s.name for s in Style} == expected


class TestMockConsole:
    def test_prefixed_messages(self) -> None:
        console = MockConsole()
        console.success("staged")
        console.error("failed")
        console.warning("careful")
        console.info("note")

        assert console.messages == ["OK staged", "error: failed", "warning: careful", "info: note"]
        assert console.has_error()
        assert console.has_warning()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("Cutting 10.2.0-rc.1", Style.DIM)
        console.print("unrelated")

        found = console.find("10.2.0")
        assert len(found) == 1
        assert found[0].style == Style.DIM

    def test_confirm_consumes_answers_in_order(self) -> None:
        """Scripted answers are used first; then the prompt default applies."""
        console = MockConsole(answers=[True, False])

        assert console.confirm("first?") is True
        assert console.confirm("second?", default=True) is False
        assert console.confirm("third?", default=True) is True
        assert console.confirm("fourth?") is False
        assert console.prompts == ["first?", "second?", "third?", "fourth?"]

    def test_text_joins_lines(self) -> None:
        console = MockConsole()
        console.header("Release trains")
        console.newline()
        console.print("next: main")
        assert console.text == "Release trains\n\nnext: main"


class TestProtocol:
    def test_implementations_conform(self) -> None:
        consoles: list[ConsoleProtocol] = [MockConsole(), RichConsole()]
        assert len(consoles) == 2
