"""Host chat model contract consumed by the gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .canonical import (
    CancellationToken,
    CanonicalMessage,
    CanonicalOptions,
    HostResponse,
)


@dataclass(frozen=True)
class ModelInfo:
    """Descriptor of a model offered by the host."""

    id: str
    display_name: str
    vendor: str


class HostModel(ABC):
    """A chat model the gateway delegates to.

    Implementations raise :class:`~lmgateway.core.exceptions.HostModelError`
    for every failure, either from ``send_request`` or while the returned
    stream is being iterated.
    """

    id: str
    display_name: str
    vendor: str

    @property
    def info(self) -> ModelInfo:
        return ModelInfo(id=self.id, display_name=self.display_name, vendor=self.vendor)

    @abstractmethod
    async def send_request(
        self,
        messages: Sequence[CanonicalMessage],
        options: CanonicalOptions,
        token: Optional[CancellationToken] = None,
    ) -> HostResponse:
        """Submit a chat request and return the host's response stream."""

    @abstractmethod
    async def count_tokens(self, value: Union[str, CanonicalMessage]) -> int:
        """Return the token cost of a string or a whole message."""
