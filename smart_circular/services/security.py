import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

# ---- Password hashing ----

def make_password_context(rounds: int = 260_000) -> CryptContext:
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=rounds,
    )


def verify_password(context: CryptContext, password: str, stored: str) -> bool:
    try:
        return context.verify(password, stored)
    except ValueError:
        # Stored value is not a hash this context recognises
        return False


# ---- Signed session tokens ----

JWT_ALG = "HS256"


def create_token(account_id: str, secret: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def decode_token(token: str, secret: str, verify_exp: bool = True) -> Optional[dict]:
    """Claims of a token signed with ``secret``, or ``None`` if it is forged, malformed or expired."""
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALG], options={"verify_exp": verify_exp})
    except JWTError:
        return None
