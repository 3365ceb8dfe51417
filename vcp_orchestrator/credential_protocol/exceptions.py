"""
Custom exceptions for credential proof orchestration.

These exceptions separate caller mistakes from proof engine failures so that
no layer has to guess whether an operation may be retried (none may).
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class OrchestratorError(Exception):
    """Base exception for credential proof orchestration errors."""

    pass


class ConfigurationError(OrchestratorError):
    """Caller-side invariant violation (bad index, unknown label, reuse)."""

    pass


class BackendError(OrchestratorError):
    """
    Proof engine call failed or returned a structurally invalid result.

    Attributes:
        code: Numeric error class reported by the engine (HTTP status for the
            remote engine, 0 for transport failures).
        message: Human readable reason reported by the engine.
        location: Optional engine-side location of the failure.
    """

    def __init__(
        self, code: int, message: str, location: Optional[str] = None
    ) -> None:
        self.code = code
        self.message = message
        self.location = location
        detail = f"[{code}] {message}"
        if location:
            detail = f"{detail} (at {location})"
        super().__init__(detail)

    def matches(self, code: int, marker: str) -> bool:
        """Return True when this failure carries ``code`` and ``marker``."""
        return self.code == code and marker in self.message


class ProofWarningError(OrchestratorError):
    """Engine completed but flagged the result; the artifact is not trusted."""

    def __init__(self, operation: str, warnings: Sequence[Any]) -> None:
        self.operation = operation
        self.warnings = tuple(warnings)
        rendered = "; ".join(str(w) for w in self.warnings)
        super().__init__(f"{operation} returned {len(self.warnings)} warning(s): {rendered}")


class CryptographicError(OrchestratorError):
    """Artifact encoding or decoding failed."""

    pass
