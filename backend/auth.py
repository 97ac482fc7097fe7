# auth.py — Request-boundary authorization for the task tracker
# Identity, organisation membership and billing live in an external provider.
# It hands us a signed bearer token; we only read:
# - the acting user's id, email, name and avatar (assignee snapshot)
# - the current organisation, if any (the tenant)
# - the list of entitlements (plan gate)

import os
import uuid
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List

from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

logger = logging.getLogger("kanban-sync.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY not set. Generated ephemeral key. "
        "Set JWT_SECRET_KEY in production!"
    )

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Entitlement that unlocks more than one project per organisation
PRO_ENTITLEMENT = "pro"

security = HTTPBearer()


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class ActingUser(BaseModel):
    """Identity snapshot used to upsert the assignee cache"""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    organisation_id: Optional[str] = None
    entitlements: List[str] = []

    def current_tenant(self) -> Optional[str]:
        return self.organisation_id

    def has_entitlement(self, name: str) -> bool:
        return name in self.entitlements

    def as_actor(self) -> ActingUser:
        return ActingUser(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            image_url=self.image_url,
        )


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Token handling for the identity provider's session tokens"""

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
            "iat": now,
            "type": "access",
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")

    @staticmethod
    def user_from_claims(payload: Dict[str, Any]) -> CurrentUser:
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token")

        entitlements = payload.get("entitlements") or []
        if isinstance(entitlements, str):
            entitlements = [e for e in entitlements.split(",") if e]

        return CurrentUser(
            id=user_id,
            email=payload.get("email"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            image_url=payload.get("image_url"),
            organisation_id=payload.get("org_id") or None,
            entitlements=list(entitlements),
        )


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    payload = AuthService.verify_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    return AuthService.user_from_claims(payload)
