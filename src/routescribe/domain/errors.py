from __future__ import annotations

from typing import Optional


class RouteScribeError(Exception):
    """Base class for every error the tool reports to its caller."""


class ConfigurationError(RouteScribeError):
    """
    An internal invariant was violated (e.g. the resolver was asked about a
    mapping kind it was not configured with). Always a logic defect.
    """


class MalformedRouteError(RouteScribeError):
    def __init__(self, member: str, reason: str, location: Optional[str] = None) -> None:
        self.member = member
        self.reason = reason
        self.location = location
        where = f" ({location})" if location else ""
        super().__init__(f"Malformed route {member}{where}: {reason}")


class ReportWriteError(RouteScribeError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Could not write report to {path}")
