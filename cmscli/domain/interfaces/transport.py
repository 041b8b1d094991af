"""Interface for the physical HTTP transport.

The request executor never talks to a network library directly; it hands a
descriptor to a ``Transport`` and gets a ``RawResponse`` back (or an
exception for transport-level failures).
"""

import abc

from ..models.request import RawResponse, RequestDescriptor


class Transport(abc.ABC):
    """Abstract Base Class for performing one physical request attempt."""

    @abc.abstractmethod
    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        """Performs a single attempt.

        Cancellation of the awaiting task aborts the attempt; the executor
        uses that to enforce ``descriptor.timeout_ms``.

        Raises:
            Exception: Any transport-level failure (connection reset, DNS
                failure, ...). The executor classifies it.
        """
        pass

    async def aclose(self) -> None:
        """Releases pooled connections. Optional."""
        return None
