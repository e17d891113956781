from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import jwt
from passlib.context import CryptContext
from anonyworks.core.config import settings
from datetime import timezone as _tz, datetime as _dt

pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ALGO = "HS256"

# Free mail providers; organization accounts must come from their own domain
PERSONAL_EMAIL_DOMAINS = frozenset({
    "gmail.com", "yahoo.com", "hotmail.com", "outlook.com",
    "aol.com", "icloud.com", "protonmail.com", "yandex.com",
})

def ensure_aware(dt: Optional[_dt]) -> Optional[_dt]:
    """Return a timezone-aware UTC datetime. If naive, assume UTC."""
    if dt is None:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=_tz.utc)

def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_ctx.verify(plain, hashed)

def now_utc():
    return datetime.now(timezone.utc)

def make_access_token(sub: str, email: str) -> str:
    payload = {
        "iss": settings.jwt_issuer,
        "sub": sub,
        "email": email,
        "iat": int(now_utc().timestamp()),
        "exp": int((now_utc() + timedelta(minutes=settings.access_ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def decode_jwt(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[ALGO], issuer=settings.jwt_issuer)

def sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()

def normalize_email(email: str) -> str:
    return email.lower().strip()

def is_company_email(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    return bool(domain) and domain not in PERSONAL_EMAIL_DOMAINS
