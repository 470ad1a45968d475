# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for marker extraction, anchors and dispatch."""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from srcmark import (
    ArgumentError,
    HandlerConfigError,
    Ident,
    MarkerReadError,
    Markers,
    MarkerSyntaxError,
    Position,
    Reporter,
    ResolutionError,
)

SAMPLE_SOURCE = "\n".join(
    [
        "// Greek letters mark the points anchored below.",
        "const table = [",
        "\tαFirst,         //@αFirst",
        '\tsecondβValue,   //@mark(Second, "β")',
        "\tthirdγValue,    //@mark(Third, `\\p{Greek}`)",
        '\tδFourthεFifth,  //@δFourth //@mark(Fifth, "ε")',
        '\tlateζBinding,   //@check(Late, Late) //@mark(Late, "ζBinding")',
        "];",
        "",
        '//Note η lives inside a comment //@mark(InComment,"η")',
        "",
        "function add(a, b) {",
        '\treturn a + b; //@mark(Plus, "+")',
        "}",
        "",
        "//@check(αFirst, αFirst)",
        '//@printI("Total", "Number %d", 12)',
        "",
    ]
).encode("utf-8")

EXPECTED_ANCHOR_TOKENS: dict[str, str] = {
    "αFirst": "α",
    "Second": "β",
    "Third": "γ",
    "δFourth": "δ",
    "Fifth": "ε",
    "Late": "ζ",
    "InComment": "η",
    "Plus": "+",
}


def _expected_position(filename: str, content: bytes, token: str) -> Position:
    offset = content.index(token.encode("utf-8"))
    before = content[:offset]
    line_start = before.rfind(b"\n") + 1
    return Position(
        filename=filename,
        line=before.count(b"\n") + 1,
        column=len(before[line_start:].decode("utf-8")) + 1,
        offset=offset,
    )


def _extracted(content: bytes, filename: str = "sample.js") -> Markers:
    markers = Markers()
    markers.extract(filename, content)
    return markers


def test_ph3_mrk_001_sample_file_resolves_anchors_checks_and_prints() -> None:
    reporter = Reporter()
    markers = Markers(reporter=reporter)
    markers.extract("sample.js", SAMPLE_SOURCE)

    anchors = markers.anchors()
    checks: dict[str, Position] = {}
    prints: dict[str, str] = {}

    def check(name: str, position: Position) -> None:
        checks[name] = position

    def print_int(name: str, template: str, value: int) -> None:
        prints[name] = template % value

    calls = markers.invoke({"check": check, "printI": print_int})

    assert reporter.issues == []
    assert calls == 3
    assert dict(anchors) == {
        name: _expected_position("sample.js", SAMPLE_SOURCE, token)
        for name, token in EXPECTED_ANCHOR_TOKENS.items()
    }
    assert checks == {"Late": anchors["Late"], "αFirst": anchors["αFirst"]}
    assert prints == {"Total": "Number 12"}


def test_ph3_mrk_002_reads_file_from_disk_when_content_is_omitted(tmp_path: Path) -> None:
    source = tmp_path / "sample.js"
    source.write_bytes(SAMPLE_SOURCE)
    markers = Markers()

    count = markers.extract(str(source))

    assert count == len(markers.markers) == 11
    assert markers.anchors()["Second"].filename == str(source)


def test_ph3_mrk_003_missing_file_is_read_error(tmp_path: Path) -> None:
    with pytest.raises(MarkerReadError, match="Could not read marker file"):
        Markers().extract(str(tmp_path / "missing.js"))


def test_ph3_mrk_004_bare_identifier_is_sugar_for_mark() -> None:
    sugar = _extracted(b"var Foo = 1 //@Foo\n").anchors()
    explicit = _extracted(b'var Foo = 1 //@mark(Foo, "Foo")\n').anchors()

    assert dict(sugar) == dict(explicit)
    assert sugar["Foo"] == Position(filename="sample.js", line=1, column=5, offset=4)


def test_ph3_mrk_005_duplicate_anchor_reports_once_and_keeps_first() -> None:
    reporter = Reporter()
    markers = Markers(reporter=reporter)
    markers.extract("dup.js", b'first //@mark(X, "first")\nsecond //@mark(X, "second")\n')

    anchors = markers.anchors()

    assert len(reporter.issues) == 1
    assert "Anchor X already exists" in reporter.issues[0].message
    assert anchors["X"] == Position(filename="dup.js", line=1, column=1, offset=0)


def test_ph3_mrk_006_regex_anchor_matches_unicode_property() -> None:
    content = "abc δ //@mark(G, `\\p{Greek}`)\nαβ x //@mark(X, `x`)\n".encode("utf-8")

    anchors = _extracted(content).anchors()

    assert anchors["G"] == Position(filename="sample.js", line=1, column=5, offset=4)
    second_line_start = content.index(b"\n") + 1
    assert anchors["X"] == Position(
        filename="sample.js", line=2, column=4, offset=second_line_start + 5
    )


def test_ph3_mrk_007_multiple_markers_on_one_line_dispatch_left_to_right() -> None:
    markers = _extracted(b"A B //@A //@B\n")
    seen: list[str] = []

    def mark(name: str, position: Position) -> None:
        seen.append(name)

    markers.invoke({"mark": mark})

    first, second = markers.markers
    assert first.line == second.line
    assert first.args[0] == Ident("A")
    assert second.args[0] == Ident("B")
    assert seen == ["A", "B"]
    assert markers.anchors()["A"].column == 1
    assert markers.anchors()["B"].column == 3


def test_ph3_mrk_008_marker_without_handler_is_skipped() -> None:
    reporter = Reporter()
    markers = Markers(reporter=reporter)
    markers.extract("skip.js", b"x //@unknown(1, `two`, three)\n")

    calls = markers.invoke({"other": lambda: None})

    assert calls == 0
    assert reporter.issues == []


def test_ph3_mrk_009_unknown_anchor_identifier_is_fatal() -> None:
    markers = _extracted(b"x //@check(Missing)\n")

    def check(position: Position) -> None:
        raise AssertionError("handler must not run")

    with pytest.raises(ResolutionError, match="Cannot find anchor Missing for check@sample.js:1"):
        markers.invoke({"check": check})


def test_ph3_mrk_010_mark_pattern_round_trip() -> None:
    markers = _extracted(b'intro\n  foo //@mark(P, "foo")\n')
    recorded: list[tuple[str, Position]] = []

    def mark(name: str, position: Position) -> None:
        recorded.append((name, position))

    markers.invoke({"mark": mark})

    assert recorded == [
        ("P", Position(filename="sample.js", line=2, column=3, offset=8)),
    ]
    assert markers.anchors()["P"] == recorded[0][1]
    single = _extracted(b'foo //@mark(P, "foo")').anchors()["P"]
    assert single.offset == 0
    assert single.column == 1


def test_ph3_mrk_011_pattern_never_matches_marker_text() -> None:
    markers = _extracted(b'foo //@mark(Q, "mark")\n')

    with pytest.raises(ResolutionError, match="was not present in line sample.js:1"):
        markers.anchors()


def test_ph3_mrk_012_invalid_regex_is_resolution_error() -> None:
    markers = _extracted(b"foo //@mark(R, `(`)\n")

    with pytest.raises(ResolutionError, match="Invalid pattern"):
        markers.anchors()


def test_ph3_mrk_013_leftover_arguments_are_fatal() -> None:
    markers = _extracted(b"x //@check(1, 2)\n")

    def check(value: int) -> None:
        pass

    with pytest.raises(ArgumentError, match=r"Unwanted args got \[2\] extra to check@sample.js:1"):
        markers.invoke({"check": check})


def test_ph3_mrk_014_missing_argument_is_fatal() -> None:
    markers = _extracted(b"x //@check(1)\n")

    def check(first: int, second: int) -> None:
        pass

    with pytest.raises(ArgumentError, match="Missing argument for check@sample.js:1"):
        markers.invoke({"check": check})


def test_ph3_mrk_015_unsupported_parameter_fails_before_any_dispatch() -> None:
    markers = _extracted(b"x //@good(1) //@bad(1)\n")
    seen: list[int] = []

    def good(value: int) -> None:
        seen.append(value)

    def bad(value: float) -> None:
        pass

    with pytest.raises(HandlerConfigError, match="unsupported type"):
        markers.invoke({"good": good, "bad": bad})
    assert seen == []


def test_ph3_mrk_016_syntax_error_names_file_and_line() -> None:
    markers = Markers()

    with pytest.raises(MarkerSyntaxError, match="broken.js:2"):
        markers.extract("broken.js", b"ok\nx //@check(\n")
    with pytest.raises(MarkerSyntaxError, match="Unhandled marker expression"):
        markers.extract("literal.js", b'x //@"just a string"\n')
    assert markers.markers == ()


def test_ph3_mrk_017_invoke_can_run_again_with_other_handlers() -> None:
    markers = _extracted(b"x //@note(first) //@note(second)\n")
    upper: list[str] = []
    lower: list[str] = []

    markers.invoke({"note": _collector(upper, str.upper)})
    markers.invoke({"note": _collector(lower, str.lower)})

    assert upper == ["FIRST", "SECOND"]
    assert lower == ["first", "second"]


def _collector(
    target: list[str], transform: Callable[[str], str]
) -> Callable[[str], None]:
    def note(text: str) -> None:
        target.append(transform(text))

    return note


def test_ph3_mrk_018_anchors_are_cached_and_read_only() -> None:
    markers = _extracted(b"A //@A\n")

    first = markers.anchors()
    second = markers.anchors()

    assert first == second
    with pytest.raises(TypeError):
        first["B"] = first["A"]  # type: ignore[index]


def test_ph3_mrk_019_custom_delimiter() -> None:
    markers = Markers(delimiter=b"#@")
    markers.extract("script.py", b'value = 1  #@mark(V, "value")\n// not //@ a marker here\n')

    assert list(markers.anchors()) == ["V"]
    assert len(markers.markers) == 1


def test_ph3_mrk_020_empty_delimiter_is_rejected() -> None:
    with pytest.raises(ValueError):
        Markers(delimiter=b"")


def test_ph3_mrk_021_failed_anchor_pass_is_not_cached() -> None:
    markers = _extracted(
        b'a //@mark(A, "a")\nb //@mark(B, "missing")\nc //@mark(C, "c")\n', filename="p.js"
    )

    with pytest.raises(ResolutionError, match="was not present in line p.js:2"):
        markers.anchors()
    with pytest.raises(ResolutionError, match="was not present in line p.js:2"):
        markers.anchors()

    def use(position: Position) -> None:
        raise AssertionError("handler must not run")

    with pytest.raises(ResolutionError, match="was not present in line p.js:2"):
        markers.invoke({"use": use})


def test_ph3_mrk_022_extract_after_anchors_warns_and_keeps_table(
    caplog: pytest.LogCaptureFixture,
) -> None:
    markers = _extracted(b"Old //@Old\n", filename="first.js")
    anchors = markers.anchors()

    with caplog.at_level(logging.WARNING, logger="srcmark.markers"):
        count = markers.extract("second.js", b"New //@New\n")

    assert count == 1
    assert "Extracting after anchors were computed" in caplog.text
    assert "second.js" in caplog.text
    assert "New" not in markers.anchors()
    assert dict(markers.anchors()) == dict(anchors)


def test_ph3_mrk_023_byte_escapes_resolve_multibyte_text() -> None:
    content = "x = 'α' //@mark(Alpha, \"\\xce\\xb1\")\n".encode("utf-8")

    anchors = _extracted(content).anchors()

    assert anchors["Alpha"] == Position(filename="sample.js", line=1, column=6, offset=5)
