from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from planner.core.session import read_session


@dataclass
class OwnerContext:
    user_id: str


def require_owner(request: Request) -> OwnerContext:
    # The identity provider vouches for the id; no further ownership checks here.
    user_id = read_session(request)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return OwnerContext(user_id=user_id)
