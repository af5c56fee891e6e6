"""
Caller identity.

Identity is passed explicitly into every entitlement query and mutation.
None stands for an unauthenticated caller.
"""

from dataclasses import dataclass
from typing import Optional

from heartbeat.platform.errors import AuthenticationError


@dataclass(frozen=True)
class Identity:
    """Authenticated user as asserted by the auth provider."""
    subject: str
    email: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        subject = str(self.subject).strip()
        if not subject:
            raise ValueError("subject is required")
        object.__setattr__(self, "subject", subject)


def require_identity(identity: Optional[Identity]) -> Identity:
    """
    Return identity or fail for mutations that need a caller.

    Raises:
        AuthenticationError: If identity is None
    """
    if identity is None:
        raise AuthenticationError()
    return identity
