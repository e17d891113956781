"""
One-time code issuance and verification.

Codes are 6 digits, valid for five minutes and bound to an email address. Only
one code per email exists at any moment: ``issue`` overwrites the previous row
in a single upsert statement, and ``verify`` consumes a code with a single
conditional DELETE, so a code can validate at most once even when two verify
calls race.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from anonyworks.core.security import now_utc, sha256, normalize_email
from anonyworks.models.otp import OneTimeCode
from anonyworks.services.mailer import send_otp_email

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=5)
OTP_MIN = 100000
OTP_MAX = 999999

_UPSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def generate_code() -> str:
    """Uniform over [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def _code_hash(email: str, code: str) -> str:
    return sha256(f"{email}:{code}")


class OtpAuthenticator:
    def __init__(self, deliver: Optional[Callable[[str, str], object]] = None):
        # deliver(email, code); defaults to the SMTP mailer with log fallback
        self._deliver = deliver or (lambda email, code: send_otp_email(email, code, int(OTP_TTL.total_seconds() // 60)))

    def issue(self, db: Session, email: str, now: Optional[datetime] = None) -> str:
        """Replace any code for ``email`` with a fresh one, commit, and deliver it."""
        email = normalize_email(email)
        now = now or now_utc()
        code = generate_code()
        values = {
            "email": email,
            "code_hash": _code_hash(email, code),
            "expires_at": now + OTP_TTL,
            "created_at": now,
        }

        dialect = db.get_bind().dialect.name
        insert = _UPSERTS.get(dialect)
        if insert is not None:
            stmt = insert(OneTimeCode).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[OneTimeCode.email],
                set_={k: stmt.excluded[k] for k in ("code_hash", "expires_at", "created_at")},
            )
            db.execute(stmt)
        else:
            # no native upsert; merge inside the caller's transaction
            db.merge(OneTimeCode(**values))
        db.commit()

        logger.info("Issued one-time code for %s", email)
        self._deliver(email, code)
        return code

    def verify(self, db: Session, email: str, code: str, now: Optional[datetime] = None) -> bool:
        """Consume the code if it matches and has not expired.

        Wrong, expired and already-used codes all return False; callers must
        not tell them apart.
        """
        email = normalize_email(email)
        now = now or now_utc()
        result = db.execute(
            delete(OneTimeCode).where(
                OneTimeCode.email == email,
                OneTimeCode.code_hash == _code_hash(email, code.strip()),
                OneTimeCode.expires_at > now,
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1
