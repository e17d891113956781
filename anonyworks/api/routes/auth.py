import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anonyworks.api.deps import get_db, get_otp
from anonyworks.api.deps_auth import current_account
from anonyworks.api.routes import auth_utils
from anonyworks.api.routes.auth_utils import (
    GOOGLE_AUTH_URL, GOOGLE_SCOPE, OAuthExchangeError, issue_token, name_from_google_userinfo,
)
from anonyworks.core.config import settings
from anonyworks.core.security import hash_password, verify_password, is_company_email, normalize_email
from anonyworks.models.auth_models import Account, AccountType
from anonyworks.schemas.auth import (
    SendOtpBody, SignupBody, VerifyOtpBody, LoginBody, ResendBody,
    PasswordForgotBody, PasswordResetBody, TokenResponse, MessageResponse, Me, GoogleStartOut,
    AccountTypeEnum,
)
from anonyworks.services.otp_service import OtpAuthenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CODE = "Invalid or expired code"
INVALID_CREDENTIALS = "Invalid credentials"
ALREADY_REGISTERED = "Email is already registered."
GENERIC_CODE_SENT = "If an account exists, a code has been sent."


def _find_account(db: Session, email: str) -> Account | None:
    return db.query(Account).filter(Account.email == email).first()


# ---------- SIGNUP: ISSUE CODE ----------
@router.post(
    "/send-otp",
    response_model=MessageResponse,
    summary="Email a signup code",
    description="""
Issues a 6-digit code valid for **5 minutes**. Any code previously sent to the
same address stops working.

Returns `409` if the email already belongs to an account.
""",
)
def send_otp(body: SendOtpBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)
    if _find_account(db, email):
        raise HTTPException(status_code=409, detail=ALREADY_REGISTERED)
    otp.issue(db, email)
    return MessageResponse(message="OTP sent to email")


# ---------- SIGNUP: VERIFY CODE + CREATE ACCOUNT ----------
@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Verify signup code and create account",
    description="""
Consumes the signup code and creates a **verified** account.

- Organization accounts must use a company email domain.
- Wrong, expired and already-used codes all return the same `400`.
""",
)
def signup(body: SignupBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)

    if body.account_type == AccountTypeEnum.ORGANIZATION and not is_company_email(email):
        raise HTTPException(status_code=400, detail="Please use a company email address for business accounts")

    if _find_account(db, email):
        raise HTTPException(status_code=409, detail=ALREADY_REGISTERED)

    if not otp.verify(db, email, body.otp):
        raise HTTPException(status_code=400, detail=INVALID_CODE)

    account = Account(
        email=email,
        name=body.name,
        account_type=AccountType(body.account_type.value),
        password_hash=hash_password(body.password),
        is_verified=True,
    )
    try:
        db.add(account)
        db.commit()
    except IntegrityError:
        # a concurrent signup for the same email won the race
        db.rollback()
        raise HTTPException(status_code=409, detail=ALREADY_REGISTERED)
    db.refresh(account)
    logger.info("Account %s created", account.id)
    return issue_token(account)


# ---------- VERIFY EXISTING ACCOUNT ----------
@router.post(
    "/verify/resend",
    response_model=MessageResponse,
    summary="Email a verification code to an existing account",
    description="Always returns a generic message to avoid account enumeration.",
)
def resend_verification(body: ResendBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)
    if _find_account(db, email):
        otp.issue(db, email)
    return MessageResponse(message=GENERIC_CODE_SENT)


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    summary="Verify a code and sign in",
    description="Marks the account verified and returns a bearer token.",
)
def verify_otp(body: VerifyOtpBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)
    account = _find_account(db, email)
    if not account or not otp.verify(db, email, body.otp):
        raise HTTPException(status_code=400, detail=INVALID_CODE)

    if not account.is_verified:
        account.is_verified = True
        db.commit()
    return issue_token(account)


# ---------- LOGIN ----------
@router.post("/login", response_model=TokenResponse)
def login(body: LoginBody, db: Session = Depends(get_db)):
    email = normalize_email(body.email)
    account = _find_account(db, email)
    if not account or not account.password_hash or not verify_password(body.password, account.password_hash):
        raise HTTPException(401, INVALID_CREDENTIALS)
    if not account.is_verified:
        raise HTTPException(403, "Email not verified")
    return issue_token(account)


# ---------- PASSWORD: REQUEST RECOVERY CODE ----------
@router.post(
    "/password/forgot",
    response_model=MessageResponse,
    summary="Email a password recovery code",
    description="""
Sends a 6-digit recovery code.

- Always returns a generic success message to avoid user enumeration.
""",
)
def password_forgot(body: PasswordForgotBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)
    if _find_account(db, email):
        otp.issue(db, email)
    return MessageResponse(message=GENERIC_CODE_SENT)


# ---------- PASSWORD: APPLY RECOVERY CODE ----------
@router.post(
    "/password/reset",
    response_model=MessageResponse,
    summary="Reset password using a recovery code",
    description="Works for Google-only accounts too (sets a password for the first time).",
)
def password_reset(body: PasswordResetBody, db: Session = Depends(get_db), otp: OtpAuthenticator = Depends(get_otp)):
    email = normalize_email(body.email)
    account = _find_account(db, email)
    if not account or not otp.verify(db, email, body.otp):
        raise HTTPException(status_code=400, detail=INVALID_CODE)

    account.password_hash = hash_password(body.new_password)
    db.commit()
    return MessageResponse(message="Password reset successful")


@router.get(
    "/me",
    response_model=Me,
    summary="Return the current authenticated account",
)
def me(account: Account = Depends(current_account)):
    return account


# ---- Google ----

@router.get("/google/start", response_model=GoogleStartOut)
def google_start():
    if not settings.google_client_id:
        raise HTTPException(400, "Google OAuth not configured")

    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": GOOGLE_SCOPE,
        "access_type": "online",
        "prompt": "select_account",
    }
    return {"auth_url": f"{GOOGLE_AUTH_URL}?{urlencode(params)}"}


@router.post(
    "/google/callback",
    response_model=TokenResponse,
    summary="Google OAuth callback → sign-in/sign-up",
    description="""
Exchanges a Google OAuth **authorization code** for the user's profile and signs them in.

An account is created on first sight (verified, individual). An existing
account with the same email is linked to the Google subject.
""",
)
def google_callback(
    code: str = Query(..., description="Authorization code returned by Google"),
    db: Session = Depends(get_db),
):
    if not settings.google_client_id:
        raise HTTPException(400, "Google OAuth not configured")

    try:
        userinfo = auth_utils.exchange_google_code(code)
    except OAuthExchangeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    email = normalize_email(str(userinfo.get("email", "")))
    sub = userinfo.get("sub")
    if not email or not sub:
        raise HTTPException(status_code=400, detail="Google profile missing email or subject.")
    if not userinfo.get("email_verified", False):
        raise HTTPException(status_code=400, detail="Google account email is not verified.")

    account = _find_account(db, email) or db.query(Account).filter(Account.google_sub == sub).first()
    if not account:
        account = Account(
            email=email,
            name=name_from_google_userinfo(userinfo, email),
            account_type=AccountType.INDIVIDUAL,
            google_sub=sub,
            is_verified=True,
        )
        try:
            db.add(account)
            db.commit()
        except IntegrityError:
            # concurrent first login for the same Google user
            db.rollback()
            account = db.query(Account).filter(Account.google_sub == sub).first()
            if not account:
                raise
        logger.info("Account %s created from Google login", account.id)
    else:
        # If the email exists but is linked to a different Google sub, block to avoid hijack
        if account.google_sub and account.google_sub != sub:
            raise HTTPException(status_code=400, detail="This email is already linked to a different Google account.")
        account.google_sub = sub
        account.is_verified = True
        db.commit()

    db.refresh(account)
    return issue_token(account)
