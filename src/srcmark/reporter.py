# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Collect non-fatal issues raised while processing markers."""

import logging
from dataclasses import dataclass
from typing import NoReturn

from srcmark.errors import MarkerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerIssue:
    """Represent one recoverable marker issue.

    Attributes:
        location: ``file:line`` or marker the issue refers to; empty if unknown.
        message: Human readable issue description.
    """

    location: str
    message: str

    def __str__(self) -> str:
        if not self.location:
            return self.message
        return f"{self.location}: {self.message}"


class Reporter:
    """Context handle passed to handlers that declare a ``Reporter`` parameter.

    ``error`` records an issue and lets processing continue; ``fatal`` stops
    the current invocation by raising.
    """

    def __init__(self) -> None:
        self.issues: list[MarkerIssue] = []

    @property
    def failed(self) -> bool:
        """Return whether any issue has been recorded."""
        return bool(self.issues)

    def error(self, message: str, location: str = "") -> None:
        """Record a recoverable issue.

        Args:
            message: Issue description.
            location: Optional location the issue refers to.
        """
        issue = MarkerIssue(location=location, message=message)
        logger.warning(f"Marker issue reported ({issue})")
        self.issues.append(issue)

    def fatal(self, message: str, location: str = "") -> NoReturn:
        """Raise a fatal marker error.

        Args:
            message: Failure description.
            location: Optional location the failure refers to.

        Raises:
            MarkerError: Always.
        """
        raise MarkerError(str(MarkerIssue(location=location, message=message)))
