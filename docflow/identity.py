"""
Actor identity passed explicitly into every workflow call.
"""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class Actor:
    """Who performed an action."""
    id: Optional[str]
    name: str


# Used when no authenticated actor is available
SYSTEM_ACTOR = Actor(id=None, name='System')


class IdentityProvider(Protocol):
    """Source of the currently authenticated actor, if any."""

    def current_actor(self) -> Optional[Actor]:
        ...


def resolve_actor(
    actor: Optional[Actor] = None,
    identity: Optional[IdentityProvider] = None,
) -> Actor:
    """Explicit actor first, then the identity provider, then ``SYSTEM_ACTOR``."""
    if actor is not None:
        return actor
    if identity is not None:
        current = identity.current_actor()
        if current is not None:
            return current
    return SYSTEM_ACTOR
