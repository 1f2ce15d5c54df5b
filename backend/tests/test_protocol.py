"""Tests for sentinel marker parsing of tutor replies."""

from __future__ import annotations

from coursetutor.protocol import ParsedReply, parse_reply


class TestNoMarker:
    def test_text_is_returned_unchanged(self) -> None:
        text = "  Loops repeat a block of code.\n"
        parsed = parse_reply(text)
        assert parsed.display_text == text
        assert parsed.options is None
        assert parsed.is_code_request is False

    def test_empty_input(self) -> None:
        assert parse_reply("") == ParsedReply(display_text="")

    def test_marker_spanning_lines_is_not_a_marker(self) -> None:
        text = "Pick {{A\n|B}}"
        assert parse_reply(text).display_text == text


class TestOptions:
    def test_options_are_trimmed_and_ordered(self) -> None:
        parsed = parse_reply("{{ A | B |C }}")
        assert parsed.options == ["A", "B", "C"]
        assert parsed.display_text == ""
        assert parsed.is_code_request is False

    def test_question_with_options(self) -> None:
        parsed = parse_reply("Is 2+2=4? {{Yes|No}}")
        assert parsed.display_text == "Is 2+2=4?"
        assert parsed.options == ["Yes", "No"]

    def test_single_option(self) -> None:
        assert parse_reply("Ready? {{Let's go}}").options == ["Let's go"]

    def test_blank_options_mean_no_options(self) -> None:
        parsed = parse_reply("Hmm {{ | }}")
        assert parsed.options is None
        assert parsed.display_text == "Hmm"

    def test_only_first_marker_is_consumed(self) -> None:
        parsed = parse_reply("Q1 {{A|B}} and later {{C|D}}")
        assert parsed.options == ["A", "B"]
        assert parsed.display_text == "Q1  and later {{C|D}}"


class TestCodeRequest:
    def test_code_request_sets_flag(self) -> None:
        parsed = parse_reply("Pick one {{CODE_REQUEST}}")
        assert parsed.is_code_request is True
        assert parsed.options is None
        assert parsed.display_text == "Pick one"

    def test_code_request_wins_over_pipes(self) -> None:
        parsed = parse_reply("Write it {{CODE_REQUEST|Skip}}")
        assert parsed.is_code_request is True
        assert parsed.options is None

    def test_options_first_then_code_request_keeps_options(self) -> None:
        # Only the first marker is a directive; the second stays literal
        parsed = parse_reply("Choose {{A|B}} {{CODE_REQUEST}}")
        assert parsed.options == ["A", "B"]
        assert parsed.is_code_request is False
        assert parsed.display_text == "Choose  {{CODE_REQUEST}}"

    def test_parsing_is_deterministic(self) -> None:
        text = "Try writing a loop. {{CODE_REQUEST}}"
        assert parse_reply(text) == parse_reply(text)
