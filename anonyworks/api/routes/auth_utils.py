# anonyworks/api/routes/auth_utils.py
from urllib.parse import unquote

from authlib.integrations.requests_client import OAuth2Session

from anonyworks.core.config import settings
from anonyworks.core.security import make_access_token
from anonyworks.models.auth_models import Account
from anonyworks.schemas.auth import AccountOut, TokenResponse

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPE = "openid email profile"


class OAuthExchangeError(Exception):
    pass


def issue_token(account: Account) -> TokenResponse:
    return TokenResponse(
        access_token=make_access_token(str(account.id), account.email),
        user=AccountOut.model_validate(account),
    )


def clean_name(s: str | None) -> str | None:
    if not s:
        return None
    s = " ".join(s.strip().split())  # collapse spaces
    return s[:255]


def name_from_google_userinfo(userinfo: dict, email: str) -> str:
    full = clean_name(userinfo.get("name"))
    if full:
        return full
    parts = [clean_name(userinfo.get("given_name")), clean_name(userinfo.get("family_name"))]
    joined = " ".join(p for p in parts if p)
    if joined:
        return joined
    # Fallback last resort: email local-part
    return email.split("@", 1)[0].capitalize()


def exchange_google_code(code: str) -> dict:
    """Exchange an authorization code for the Google userinfo document."""
    # Decode once to handle double-encoded codes (e.g., %252F → %2F)
    code = unquote(code)
    sess = OAuth2Session(
        settings.google_client_id,
        settings.google_client_secret,
        scope=GOOGLE_SCOPE,
        redirect_uri=settings.google_redirect_uri,
    )
    try:
        sess.fetch_token(
            GOOGLE_TOKEN_URL,
            code=code,
            grant_type="authorization_code",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
        )
    except Exception as e:
        msg = str(e)
        if "invalid_grant" in msg:
            raise OAuthExchangeError("Invalid or already-used authorization code. Start login again.")
        if "redirect_uri_mismatch" in msg:
            raise OAuthExchangeError("Redirect URI mismatch. Ensure GOOGLE_REDIRECT_URI matches Google Console exactly.")
        raise OAuthExchangeError(f"OAuth error: {msg}")

    try:
        return sess.get(GOOGLE_USERINFO_URL).json()
    except Exception:
        raise OAuthExchangeError("Failed to fetch Google profile.")
