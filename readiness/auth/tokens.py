import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import Settings, get_settings
from ..models import AdminUser


def create_session_token(user: AdminUser, settings: Optional[Settings] = None, days: Optional[int] = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "name": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=days or settings.SESSION_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str, settings: Optional[Settings] = None) -> Optional[dict]:
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
