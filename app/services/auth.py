"""Caller identity and the role preconditions every operation enforces."""

from __future__ import annotations

from dataclasses import dataclass

from app.errors import PermissionDeniedError
from app.models.lifecycle import ActorRole


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.admin


SYSTEM_ACTOR = Actor(id="system", role=ActorRole.system, name="System")


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(
            f"Only an administrator may {action}",
            {"actor_id": actor.id, "role": actor.role.value},
        )


def require_party(
    actor: Actor,
    action: str,
    *,
    client_id: str | None = None,
    lawyer_id: str | None = None,
) -> None:
    """Allow admins, the named client, or the named lawyer.

    Passing only ``lawyer_id`` restricts the action to the lawyer side.
    """
    if actor.is_admin:
        return
    if actor.role == ActorRole.client and client_id is not None:
        if actor.id == client_id:
            return
    if actor.role == ActorRole.lawyer and lawyer_id is not None:
        if actor.id == lawyer_id:
            return
    raise PermissionDeniedError(
        f"Actor is not allowed to {action}",
        {"actor_id": actor.id, "role": actor.role.value},
    )
