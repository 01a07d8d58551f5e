import uuid
from datetime import timedelta, datetime, timezone
from jose import jwt
from .config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE


def create_access_token(account_id: uuid.UUID, *, minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Issue an access token the way the identity provider does.

    Used by operational tooling and tests; production tokens come from the
    identity provider with the same claims.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=minutes)
    payload = {
        "sub": str(account_id),
        "iat": int(now.timestamp()),
        "nbf": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "jti": str(uuid.uuid4()),
        "typ": "access",
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)
