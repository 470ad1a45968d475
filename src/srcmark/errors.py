# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Error taxonomy for marker extraction and dispatch."""


class MarkerError(RuntimeError):
    """Represent any fatal marker processing failure."""


class MarkerReadError(MarkerError):
    """Represent a source file that could not be read."""


class MarkerSyntaxError(MarkerError):
    """Represent a marker body that does not parse."""


class ResolutionError(MarkerError):
    """Represent an anchor or pattern that cannot be resolved to a position."""


class ArgumentError(MarkerError):
    """Represent marker arguments that do not fit the handler parameters."""


class HandlerConfigError(MarkerError):
    """Represent a handler whose parameters cannot be converted."""
