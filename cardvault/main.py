import logging
from datetime import datetime, timedelta
from typing import Optional

import psycopg2
import psycopg2.extras
from dotenv import load_dotenv
from fastapi import Cookie, Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from jose import JWTError, jwt
from pydantic import BaseModel

from . import app_context
from .app.entitlements import SubscriptionStatus, Tier
from .app.routes.billing import router as billing_router
from .app.routes.transfers import router as transfers_router
from .config import load_auth_config, load_billing_config, load_database_config
from .mail import EmailConfig, EmailProvider, create_email_provider, load_email_config

load_dotenv()

DB_CONFIG = load_database_config()
DB_CFG = DB_CONFIG.connect_kwargs()

AUTH_CONFIG = load_auth_config()
JWT_SECRET_KEY = AUTH_CONFIG.jwt_secret_key
JWT_ALGORITHM = AUTH_CONFIG.jwt_algorithm
JWT_EXP_MINUTES = AUTH_CONFIG.jwt_exp_minutes  # default: 7 days
SESSION_COOKIE_NAME = AUTH_CONFIG.session_cookie_name

logger = logging.getLogger("auth")

EMAIL_CONFIG: EmailConfig = load_email_config()

_email_provider: EmailProvider = create_email_provider(EMAIL_CONFIG)


def get_email_provider() -> EmailProvider:
    return _email_provider


def set_email_provider(provider: EmailProvider) -> None:
    global _email_provider
    _email_provider = provider


def get_conn():
    return psycopg2.connect(**DB_CFG)


class UserOut(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    tier: Tier = Tier.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE


def create_access_token(*, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    payload = {"sub": subject}
    if expires_delta is None:
        expires_delta = timedelta(minutes=JWT_EXP_MINUTES)
    expire = datetime.utcnow() + expires_delta
    payload["exp"] = expire
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_user_by_id(uid: str) -> Optional[UserOut]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.DictCursor) as cur:
        cur.execute(
            "SELECT id, email, full_name, subscription_tier, subscription_status FROM users WHERE id = %s",
            (uid,),
        )
        row = cur.fetchone()
    if not row:
        return None
    return UserOut(
        id=str(row["id"]),
        email=row["email"],
        full_name=row["full_name"],
        tier=Tier.parse(row["subscription_tier"]),
        subscription_status=SubscriptionStatus.parse(row["subscription_status"]),
    )


def resolve_user_from_session_token(session_token: str) -> Optional[UserOut]:
    try:
        payload = jwt.decode(session_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        user_id = str(subject)
    except (JWTError, ValueError):
        return None

    return get_user_by_id(user_id)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    authorization: Optional[str] = Header(None),
) -> UserOut:
    token = session_token or _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = resolve_user_from_session_token(token)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


app = FastAPI(title="SoleVault Card API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[load_billing_config().frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(billing_router)
app.include_router(transfers_router)

app_context.configure(
    get_conn=get_conn,
    get_current_user=get_current_user,
)


@app.get("/api/auth/me", response_model=UserOut)
def read_current_user(current_user: UserOut = Depends(get_current_user)):
    return current_user


@app.get("/api/healthz")
def healthz():
    return {"ok": True}
