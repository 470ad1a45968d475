# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for extracted markers."""

from dataclasses import dataclass, field

from srcmark.expr import Expr


@dataclass(frozen=True)
class SourceFile:
    """Represent one source file scanned for markers.

    Attributes:
        name: File name, usually the path it was read from.
        content: Raw file bytes.
    """

    name: str
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class Line:
    """Represent one newline-terminated segment of a source file.

    Attributes:
        file: File the line belongs to.
        offset: Byte offset of the line start within the file.
        number: Line number (1-based).
        value: Line bytes with all marker text removed.
        length: Byte length of the original segment, terminator included.
    """

    file: SourceFile
    offset: int
    number: int
    value: bytes
    length: int

    def __str__(self) -> str:
        return f"{self.file.name}:{self.number}"


@dataclass(frozen=True)
class Position:
    """Represent a resolved location within a source file.

    Attributes:
        filename: Name of the file.
        line: Line number (1-based).
        column: Column in code points (1-based).
        offset: Byte offset within the file.
    """

    filename: str
    line: int
    column: int
    offset: int

    def __str__(self) -> str:
        return f"{self.offset}={self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Marker:
    """Represent one marker occurrence.

    Attributes:
        line: Line the marker was found on.
        method: Name of the handler the marker invokes.
        args: Unconverted argument expressions.
    """

    line: Line
    method: str
    args: tuple[Expr, ...]

    def __str__(self) -> str:
        return f"{self.method}@{self.line}"
