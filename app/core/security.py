"""Bearer credential verification.

The services never see raw credentials. Requests carry a JWT in the
``Authorization`` header; it is verified here and turned into an
``Identity`` (stable user key plus optional wallet address) that the
service layer accepts as-is.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from app.core import config
from app.core.sanitization import normalize_wallet_address


@dataclass(frozen=True)
class Identity:
    primary_key: str
    wallet_address: Optional[str] = None
    username: Optional[str] = None


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    identity: Optional[Identity] = None
    error: Optional[str] = None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.settings.SECRET_KEY, algorithm=config.settings.ALGORITHM)


def verify_bearer_token(credential: Optional[str]) -> AuthResult:
    """Resolve a bearer credential into an identity.

    The user key comes from the ``fid`` claim (falling back to ``sub``); the
    wallet from ``address`` (falling back to ``custody_address``).
    """
    if not credential:
        return AuthResult(authenticated=False, error="No token provided")

    token = credential[7:] if credential.startswith("Bearer ") else credential

    try:
        payload = jwt.decode(token, config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return AuthResult(authenticated=False, error="Token expired")
    except jwt.PyJWTError:
        return AuthResult(authenticated=False, error="Invalid token")

    primary_key = payload.get("fid") or payload.get("sub")
    if not primary_key:
        return AuthResult(authenticated=False, error="Invalid token: missing user key")

    wallet = payload.get("address") or payload.get("custody_address")
    try:
        wallet = normalize_wallet_address(wallet) if wallet else None
    except ValueError:
        return AuthResult(authenticated=False, error="Invalid token: malformed wallet address")

    return AuthResult(
        authenticated=True,
        identity=Identity(
            primary_key=str(primary_key),
            wallet_address=wallet,
            username=payload.get("username"),
        ),
    )


def get_current_identity(request: Request) -> Identity:
    """FastAPI dependency: the verified identity of the caller, or 401."""
    result = verify_bearer_token(request.headers.get("Authorization"))
    if not result.authenticated or result.identity is None:
        raise HTTPException(status_code=401, detail=result.error or "Not authenticated")
    return result.identity


def get_wallet_identity(request: Request) -> Identity:
    """Like get_current_identity, but the token must carry a wallet address."""
    identity = get_current_identity(request)
    if not identity.wallet_address:
        raise HTTPException(status_code=401, detail="Wallet address required")
    return identity
