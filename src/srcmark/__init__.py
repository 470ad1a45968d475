# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Public import surface for marker extraction and dispatch."""

from srcmark.converters import Handler
from srcmark.errors import (
    ArgumentError,
    HandlerConfigError,
    MarkerError,
    MarkerReadError,
    MarkerSyntaxError,
    ResolutionError,
)
from srcmark.expr import Call, Expr, Ident, Literal, parse_expr
from srcmark.lines import DEFAULT_DELIMITER, index_lines
from srcmark.markers import ANCHOR_METHOD, Markers
from srcmark.model import Line, Marker, Position, SourceFile
from srcmark.reporter import MarkerIssue, Reporter

__all__ = [
    "ANCHOR_METHOD",
    "ArgumentError",
    "Call",
    "DEFAULT_DELIMITER",
    "Expr",
    "Handler",
    "HandlerConfigError",
    "Ident",
    "Line",
    "Literal",
    "Marker",
    "MarkerError",
    "MarkerIssue",
    "MarkerReadError",
    "MarkerSyntaxError",
    "Markers",
    "Position",
    "Reporter",
    "ResolutionError",
    "SourceFile",
    "index_lines",
    "parse_expr",
]
