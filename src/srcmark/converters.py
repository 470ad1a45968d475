# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Build per-parameter converters from handler signatures.

Each handler parameter gets one converter, chosen from its declared type.
A converter takes the reporter, the marker being dispatched and the marker
arguments not yet consumed, and returns the converted value together with
the remaining arguments.
"""

import functools
import inspect
import logging
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import regex

from srcmark.errors import ArgumentError, HandlerConfigError, ResolutionError
from srcmark.expr import Expr, Ident, Literal, format_args
from srcmark.model import Line, Marker, Position
from srcmark.reporter import Reporter

if TYPE_CHECKING:
    from srcmark.markers import Markers

logger = logging.getLogger(__name__)

Converter = Callable[[Reporter, Marker, tuple[Expr, ...]], tuple[Any, tuple[Expr, ...]]]

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


@dataclass(frozen=True)
class Handler:
    """Bind a callable to an explicit list of parameter types.

    Use this instead of a plain function when the callable carries no usable
    annotations, such as a builtin or a function without type hints.

    Attributes:
        func: Callable invoked with the converted values.
        params: Parameter types in call order.
    """

    func: Callable[..., Any]
    params: tuple[Any, ...]

    def __call__(self, *args: Any) -> Any:
        return self.func(*args)


def parameter_types(handler: Callable[..., Any]) -> list[Any]:
    """Return the declared parameter types of a handler in call order.

    Args:
        handler: Plain callable or ``Handler`` descriptor.

    Returns:
        Parameter types.

    Raises:
        HandlerConfigError: If a parameter cannot be bound positionally or
            lacks a type annotation.
    """
    if isinstance(handler, Handler):
        return list(handler.params)

    if isinstance(handler, functools.partial):
        target = handler.func
    elif inspect.isroutine(handler):
        target = handler
    else:
        target = type(handler).__call__
    try:
        signature = inspect.signature(handler)
        hints = typing.get_type_hints(target)
    except (TypeError, ValueError, NameError) as exc:
        raise HandlerConfigError(f"Cannot inspect handler {handler!r}: {exc}") from exc

    types: list[Any] = []
    for parameter in signature.parameters.values():
        if parameter.kind not in _POSITIONAL_KINDS:
            raise HandlerConfigError(
                f"Handler parameter {parameter.name} of {handler!r} must be positional"
            )
        if parameter.name not in hints:
            raise HandlerConfigError(
                f"Handler parameter {parameter.name} of {handler!r} has no type annotation"
            )
        types.append(hints[parameter.name])
    return types


def build_converters(handler: Callable[..., Any], engine: "Markers") -> list[Converter]:
    """Build one converter per handler parameter.

    Args:
        handler: Plain callable or ``Handler`` descriptor.
        engine: Engine injected into ``Markers`` parameters and used for
            anchor lookups.

    Returns:
        Converters in parameter order.

    Raises:
        HandlerConfigError: If any parameter type is unsupported.
    """
    return [
        build_converter(param_type, engine) for param_type in parameter_types(handler)
    ]


def build_converter(param_type: Any, engine: "Markers") -> Converter:
    """Choose the converter for one declared parameter type.

    Args:
        param_type: Declared parameter type.
        engine: Engine injected into ``Markers`` parameters.

    Returns:
        Converter for values of ``param_type``.

    Raises:
        HandlerConfigError: If ``param_type`` is unsupported.
    """
    if isinstance(param_type, type):
        if issubclass(param_type, Reporter):
            return _reporter_converter(param_type)
        if param_type is Position:
            return _position_converter(engine)
        if param_type is str:
            return _convert_str
        if param_type is int:
            return _convert_int
        if param_type is not object and isinstance(engine, param_type):
            return _engine_converter(engine)
    raise HandlerConfigError(f"Handler parameter has unsupported type {param_type!r}")


def _reporter_converter(param_type: type) -> Converter:
    def convert(
        reporter: Reporter, marker: Marker, args: tuple[Expr, ...]
    ) -> tuple[Any, tuple[Expr, ...]]:
        if not isinstance(reporter, param_type):
            raise ArgumentError(
                f"Handler for {marker} expects {param_type.__name__}, "
                f"got {type(reporter).__name__}"
            )
        return reporter, args

    return convert


def _engine_converter(engine: "Markers") -> Converter:
    def convert(
        reporter: Reporter, marker: Marker, args: tuple[Expr, ...]
    ) -> tuple[Any, tuple[Expr, ...]]:
        return engine, args

    return convert


def _position_converter(engine: "Markers") -> Converter:
    def convert(
        reporter: Reporter, marker: Marker, args: tuple[Expr, ...]
    ) -> tuple[Any, tuple[Expr, ...]]:
        arg, rest = _take(marker, args)
        if isinstance(arg, Ident):
            position = engine.anchors(reporter).get(arg.name)
            if position is None:
                raise ResolutionError(f"Cannot find anchor {arg.name} for {marker}")
            return position, rest
        if isinstance(arg, Literal) and arg.kind == "string":
            return find_text(marker.line, arg.value), rest
        if isinstance(arg, Literal) and arg.kind in ("raw", "regex"):
            return find_pattern(marker.line, arg.value), rest
        raise ArgumentError(f"Cannot convert {format_args([arg])} to position for {marker}")

    return convert


def _convert_str(
    reporter: Reporter, marker: Marker, args: tuple[Expr, ...]
) -> tuple[Any, tuple[Expr, ...]]:
    arg, rest = _take(marker, args)
    if isinstance(arg, Ident):
        return arg.name, rest
    if isinstance(arg, Literal) and arg.kind in ("string", "raw"):
        return arg.value, rest
    raise ArgumentError(f"Cannot convert {format_args([arg])} to string for {marker}")


def _convert_int(
    reporter: Reporter, marker: Marker, args: tuple[Expr, ...]
) -> tuple[Any, tuple[Expr, ...]]:
    arg, rest = _take(marker, args)
    if not isinstance(arg, Literal) or arg.kind != "int":
        raise ArgumentError(
            f"Integer args must be an integer literal, got {format_args([arg])} for {marker}"
        )
    try:
        return int(arg.value), rest
    except ValueError as exc:
        raise ArgumentError(f"Cannot convert {format_args([arg])} to int: {exc}") from exc


def _take(marker: Marker, args: Sequence[Expr]) -> tuple[Expr, tuple[Expr, ...]]:
    if not args:
        raise ArgumentError(f"Missing argument for {marker}")
    return args[0], tuple(args[1:])


def find_text(line: Line, text: str) -> Position:
    """Resolve the first exact occurrence of ``text`` on a line.

    Args:
        line: Line to search; only its marker-free value is searched.
        text: Literal text to find.

    Returns:
        Position of the start of the match.

    Raises:
        ResolutionError: If the text does not occur on the line.
    """
    try:
        needle = text.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError as exc:
        raise ResolutionError(f"Pattern {text!r} cannot be encoded for {line}: {exc}") from exc
    index = line.value.find(needle)
    if index < 0:
        raise ResolutionError(f"Pattern {text!r} was not present in line {line}")
    return position_at(line, index)


def find_pattern(line: Line, pattern: str) -> Position:
    """Resolve the first regular expression match on a line.

    Args:
        line: Line to search; only its marker-free value is searched.
        pattern: Regular expression, Unicode property classes allowed.

    Returns:
        Position of the start of the match.

    Raises:
        ResolutionError: If the pattern is invalid or does not match.
    """
    try:
        compiled = regex.compile(pattern)
    except regex.error as exc:
        raise ResolutionError(f"Invalid pattern {pattern!r} in {line}: {exc}") from exc
    text = line.value.decode("utf-8", "surrogateescape")
    match = compiled.search(text)
    if match is None:
        raise ResolutionError(f"Pattern {pattern!r} was not present in line {line}")
    index = len(text[: match.start()].encode("utf-8", "surrogateescape"))
    return position_at(line, index)


def position_at(line: Line, index: int) -> Position:
    """Build the position of a byte index within a line.

    Args:
        line: Line containing the index.
        index: Byte index into the line value.

    Returns:
        Position with file offset and 1-based code point column.
    """
    prefix = line.value[:index].decode("utf-8", "surrogateescape")
    return Position(
        filename=line.file.name,
        line=line.number,
        column=len(prefix) + 1,
        offset=line.offset + index,
    )
