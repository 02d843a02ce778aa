from fastapi import Request, Response
from itsdangerous import BadSignature, URLSafeSerializer

from planner.core.config import get_settings

settings = get_settings()
serializer = URLSafeSerializer(settings.secret_key, salt="session")


def set_session(response: Response, user_id: str) -> None:
    signed = serializer.dumps({"user_id": user_id})
    response.set_cookie(
        settings.session_cookie,
        signed,
        httponly=True,
        secure=False,
        samesite="lax",
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.session_cookie)


def read_session(request: Request) -> str | None:
    raw = request.cookies.get(settings.session_cookie)
    if not raw:
        return None
    try:
        payload = serializer.loads(raw)
    except BadSignature:
        return None
    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    return str(user_id) if user_id else None
