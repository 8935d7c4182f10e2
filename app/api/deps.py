from fastapi import Depends, Header, HTTPException, Request, status

from app.models.lifecycle import ActorRole
from app.services.auth import Actor
from app.services.engine import LifecycleEngine


def get_engine(request: Request) -> LifecycleEngine:
    return request.app.state.engine


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_actor_name: str | None = Header(default=None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "unauthorized",
                "message": "X-Actor-Id and X-Actor-Role headers are required",
            },
        )
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "unauthorized",
                "message": "Unknown actor role",
                "details": {"role": x_actor_role},
            },
        )
    return Actor(id=x_actor_id, role=role, name=x_actor_name)


def require_role(*roles: str):
    def _require_role(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role.value not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "permission_denied",
                    "message": "Insufficient role",
                    "details": {"required": list(roles)},
                },
            )
        return actor

    return _require_role
