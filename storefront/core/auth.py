"""
Authentication for the storefront API
Issues member JWTs, validates bearer tokens and provides user context
"""
from typing import Optional
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from storefront.core.config import settings


# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"


class TokenUser(BaseModel):
    """User data extracted from JWT token"""
    id: str
    email: str
    name: Optional[str] = None
    role: str = "viewer"
    user_type: Optional[str] = None


def create_access_token(
    subject: str,
    email: str,
    role: str,
    name: Optional[str] = None,
    user_type: Optional[str] = None,
    expires_minutes: Optional[int] = None
) -> str:
    """Sign a token for the given identity"""
    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else settings.MEMBER_TOKEN_TTL_MINUTES
    payload = {
        "sub": subject,
        "email": email,
        "name": name,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    if user_type:
        payload["user_type"] = user_type
    return jwt.encode(payload, settings.AUTH_SECRET, algorithm=JWT_ALGORITHM)


def create_member_token(member) -> str:
    """Token for a logged-in shopper; carries the member's pricing class"""
    return create_access_token(
        subject=str(member.id),
        email=member.email,
        role="member",
        name=member.username,
        user_type=member.user_type,
    )


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT.

    Expected payload:
    {
        "sub": "member or admin id",
        "email": "someone@example.com",
        "name": "display name",
        "role": "admin" | "member",
        "user_type": "end_user" | "reseller",   # members only
        "iat": 1234567890,
        "exp": 1234567890
    }
    """
    try:
        return jwt.decode(
            token,
            settings.AUTH_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"verify_aud": False}
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def _user_from_payload(payload: dict) -> Optional[TokenUser]:
    user_id = payload.get("sub") or payload.get("id")
    email = payload.get("email")
    if not user_id or not email:
        return None
    return TokenUser(
        id=str(user_id),
        email=email,
        name=payload.get("name"),
        role=payload.get("role", "viewer"),
        user_type=payload.get("user_type"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_token(credentials.credentials)
    user = _user_from_payload(payload)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id or email",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


async def get_current_member_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """
    Optional member authentication - returns None for anonymous shoppers
    or when the token is invalid or not a member token.
    """
    if not credentials:
        return None

    try:
        payload = decode_token(credentials.credentials)
    except HTTPException:
        return None

    user = _user_from_payload(payload)
    if user is None or user.role != "member":
        return None
    return user


async def get_current_member(
    user: TokenUser = Depends(get_current_user)
) -> TokenUser:
    """Require a member token"""
    if user.role != "member":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member account required"
        )
    return user


def require_role(required_role: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.patch("/orders/{order_id}/status")
        async def update_status(
            order_id: str,
            user: TokenUser = Depends(require_role("admin"))
        ):
            pass
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        # Role hierarchy: admin > member > viewer
        role_hierarchy = {
            "admin": 3,
            "member": 2,
            "viewer": 1
        }

        user_level = role_hierarchy.get(user.role, 0)
        required_level = role_hierarchy.get(required_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}, your role: {user.role}"
            )

        return user

    return role_checker


require_admin = require_role("admin")
