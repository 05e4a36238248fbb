"""Exception taxonomy for litmusview.

Programming errors signal a broken caller contract and are never caught by
the core. Service errors are recovered by the controller and surfaced on the
console of the affected view.
"""
from __future__ import annotations


class LitmusViewError(Exception):
    """Base class for all litmusview errors."""


# --- Programming / invariant errors ---

class NoCurrentViewError(LitmusViewError, RuntimeError):
    """The controller was asked for the current view before any was created."""


class UnknownOptionError(LitmusViewError, KeyError):
    """An option key outside the fixed option set was used."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown option: {self.key!r}"


class UnknownObserverKindError(LitmusViewError, ValueError):
    """An observer descriptor named a kind with no registered class."""


class QueryInProgressError(LitmusViewError, RuntimeError):
    """A query was started while another one is outstanding for the same view."""


# --- Recoverable errors ---

class ServiceError(LitmusViewError):
    """The checking service could not produce a usable response."""


class ServiceTimeoutError(ServiceError):
    """The checking service did not answer within the request timeout."""


class ResponseFormatError(ServiceError):
    """The checking service answered with a payload we cannot decode."""


class StateTokenError(LitmusViewError, ValueError):
    """A shareable state token could not be decoded."""
