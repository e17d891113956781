from uuid import UUID

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from anonyworks.api.deps import get_db
from anonyworks.core.security import decode_jwt
from anonyworks.models.auth_models import Account


bearer = HTTPBearer(auto_error=False)


def current_account(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> Account:
    """
    Authenticate with Bearer access token and return the Account.
    Blocks unverified accounts.
    """
    if not creds or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    try:
        payload = decode_jwt(creds.credentials)
        sub = payload.get("sub")
        if not sub:
            raise HTTPException(status_code=401, detail="Invalid token payload")

        account = db.get(Account, UUID(sub))
        if not account:
            raise HTTPException(status_code=401, detail="Account not found")
        if not account.is_verified:
            raise HTTPException(status_code=403, detail="Account is not verified")
        return account

    except HTTPException:
        raise
    except Exception:
        # invalid signature, expired, malformed, etc.
        raise HTTPException(status_code=401, detail="Invalid or expired token")
