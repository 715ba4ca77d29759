"""
Value types shared by the workflow services.

TransitionResult is what every workflow call returns: either the updated
entity or the typed error explaining why nothing changed.
"""
from dataclasses import dataclass
from typing import Any, Optional

from app.exceptions import RemitDeskException


@dataclass(frozen=True)
class Actor:
    """The user performing a workflow action."""
    id: int
    is_admin: bool
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        return cls(id=user.id, is_admin=bool(user.is_admin), email=getattr(user, "email", None))


@dataclass
class TransitionPayload:
    """Admin-supplied input for an action."""
    reason: Optional[str] = None
    tracking_info: Optional[str] = None
    proof_url: Optional[str] = None
    notes: Optional[str] = None
    reference: Optional[str] = None  # customer payment reference


@dataclass
class ProofFile:
    """An uploaded proof image, held in memory until it is stored."""
    filename: str
    content_type: Optional[str]
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class TransitionResult:
    """Ok(entity) or Err(error); never both."""
    ok: bool
    entity: Any = None
    error: Optional[RemitDeskException] = None

    @classmethod
    def success(cls, entity: Any) -> "TransitionResult":
        return cls(ok=True, entity=entity)

    @classmethod
    def failure(cls, error: RemitDeskException) -> "TransitionResult":
        return cls(ok=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error else None

    def unwrap(self) -> Any:
        """The entity, or raise the carried error (HTTP layer only)."""
        if not self.ok:
            raise self.error
        return self.entity
