"""Exception hierarchy for flowmap.

Only malformed input is exceptional. A selector that matches nothing or an
edge pointing at a missing node resolves to an empty result instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FlowMapError(Exception):
    """Base class for every error raised by flowmap."""

    category = "general"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_class": type(self).__name__,
            "message": self.message,
            "category": self.category,
            "context": self.context,
        }


class InvalidGraphError(FlowMapError, TypeError):
    """A value that is not a graph was passed where one is expected."""

    category = "invalid_input"


class SnapshotError(FlowMapError, ValueError):
    """A snapshot payload or file could not be turned into a graph."""

    category = "parsing"


class ConfigurationError(FlowMapError, ValueError):
    category = "configuration"
