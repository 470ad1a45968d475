# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Extract markers from source files and dispatch them to handlers."""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from srcmark.converters import Converter, build_converters
from srcmark.errors import ArgumentError, MarkerError, MarkerReadError, MarkerSyntaxError
from srcmark.expr import Call, Ident, Literal, format_args, parse_expr, quote
from srcmark.lines import DEFAULT_DELIMITER, index_lines
from srcmark.model import Marker, Position, SourceFile
from srcmark.reporter import Reporter

logger = logging.getLogger(__name__)

ANCHOR_METHOD = "mark"


class Markers:
    """Collect marker comments from source files and invoke them.

    Markers are comments starting with the delimiter (``//@`` by default)
    whose body is a small expression. A bare identifier ``//@Name`` is
    shorthand for ``//@mark(Name, "Name")``, which declares an anchor.
    A call ``//@method(args...)`` is dispatched to the handler registered
    for ``method`` when ``invoke`` runs.

    All files must be extracted before the first call to ``anchors`` or
    ``invoke``; the anchor table is computed once and then frozen.
    """

    def __init__(
        self, delimiter: bytes = DEFAULT_DELIMITER, reporter: Reporter | None = None
    ) -> None:
        """Initialize an empty engine.

        Args:
            delimiter: Marker comment prefix.
            reporter: Default reporter used when a call does not pass one.
        """
        if not delimiter:
            raise ValueError("Marker delimiter must not be empty")
        self.delimiter = delimiter
        self.reporter = reporter or Reporter()
        self._anchors: dict[str, Position] | None = None
        self._markers: list[Marker] = []

    @property
    def markers(self) -> tuple[Marker, ...]:
        """Return all extracted markers in extraction order."""
        return tuple(self._markers)

    def extract(self, filename: str, content: bytes | None = None) -> int:
        """Collect all markers present in one file.

        Args:
            filename: File name; read from disk when ``content`` is None.
            content: Optional in-memory file content.

        Returns:
            Number of markers extracted from the file.

        Raises:
            MarkerReadError: If the file cannot be read.
            MarkerSyntaxError: If a marker body does not parse.
        """
        if self._anchors is not None:
            logger.warning(
                f"Extracting after anchors were computed; new anchors are ignored (file={filename})"
            )
        if content is None:
            try:
                content = Path(filename).read_bytes()
            except OSError as exc:
                raise MarkerReadError(f"Could not read marker file {filename}: {exc}") from exc

        source = SourceFile(name=filename, content=content)
        found: list[Marker] = []
        for line, bodies in index_lines(source, self.delimiter):
            for raw_body in bodies:
                body = raw_body.decode("utf-8", "surrogateescape").strip()
                try:
                    expr = parse_expr(body)
                except MarkerSyntaxError as exc:
                    raise MarkerSyntaxError(f"{line}: {exc}") from exc
                if isinstance(expr, Ident):
                    sugar = Literal(kind="string", value=expr.name, text=quote(expr.name))
                    found.append(Marker(line=line, method=ANCHOR_METHOD, args=(expr, sugar)))
                elif isinstance(expr, Call):
                    found.append(Marker(line=line, method=expr.func, args=expr.args))
                else:
                    raise MarkerSyntaxError(
                        f"{line}: Unhandled marker expression {format_args([expr])} in {body!r}"
                    )

        self._markers.extend(found)
        logger.debug(f"Extracted markers (file={filename} markers={len(found)})")
        return len(found)

    def anchors(self, reporter: Reporter | None = None) -> Mapping[str, Position]:
        """Return the anchors declared across all extracted files.

        Anchors are declared with ``//@Name`` or ``//@mark(Name, pattern)``.
        The first declaration of a name wins; later ones are reported as
        errors through the reporter.

        Args:
            reporter: Reporter for duplicate declarations.

        Returns:
            Read-only mapping of anchor name to position.

        Raises:
            MarkerError: If an anchor marker cannot be resolved. Nothing is
                cached in that case, so a later call retries the pass.
        """
        if self._anchors is None:
            building: dict[str, Position] = {}
            self._anchors = building
            try:
                self.invoke({ANCHOR_METHOD: _anchor_declarer(building)}, reporter)
            except MarkerError:
                self._anchors = None
                raise
            logger.debug(f"Computed anchors (anchors={len(building)})")
        return MappingProxyType(self._anchors)

    def invoke(
        self,
        handlers: Mapping[str, Callable[..., Any]],
        reporter: Reporter | None = None,
    ) -> int:
        """Dispatch every extracted marker to the handler of the same name.

        Markers without a matching handler are skipped. This may be called
        any number of times, with different handlers for the same name.

        Args:
            handlers: Handler per marker method name.
            reporter: Reporter injected into ``Reporter`` parameters.

        Returns:
            Number of handler calls made.

        Raises:
            HandlerConfigError: If a handler declares an unsupported parameter.
            ResolutionError: If a position argument cannot be resolved.
            ArgumentError: If marker arguments do not fit the handler.
        """
        reporter = reporter or self.reporter
        self.anchors(reporter)
        methods: dict[str, tuple[Callable[..., Any], list[Converter]]] = {
            name: (handler, build_converters(handler, self))
            for name, handler in handlers.items()
        }
        calls = 0
        for marker in self._markers:
            method = methods.get(marker.method)
            if method is None:
                continue
            handler, converters = method
            params: list[Any] = []
            args = marker.args
            for convert in converters:
                value, args = convert(reporter, marker, args)
                params.append(value)
            if args:
                raise ArgumentError(f"Unwanted args got {format_args(args)} extra to {marker}")
            handler(*params)
            calls += 1
        logger.debug(f"Invoked markers (handlers={sorted(methods)} calls={calls})")
        return calls


def _anchor_declarer(anchors: dict[str, Position]) -> Callable[..., None]:
    def declare(reporter: Reporter, name: str, position: Position) -> None:
        old = anchors.get(name)
        if old is not None:
            reporter.error(f"Anchor {name} already exists at {old}, found {position}")
            return
        anchors[name] = position

    return declare
