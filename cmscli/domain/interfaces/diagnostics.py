"""Interface for human-readable progress and retry diagnostics.

The orchestrator and the request executor report through this narrow sink;
the console renderer implements it. In machine-readable (JSON) mode the
composition root injects ``NullDiagnostics`` so nothing is written.
"""

import abc


class DiagnosticsSink(abc.ABC):
    """Abstract Base Class for one-line diagnostics."""

    @abc.abstractmethod
    def emit(self, line: str) -> None:
        """Writes one diagnostic line (no trailing newline needed)."""
        pass


class NullDiagnostics(DiagnosticsSink):
    """Sink used when output must stay machine-readable."""

    def emit(self, line: str) -> None:
        return None
