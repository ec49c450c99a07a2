"""
Bearer-token identity for the lending endpoints.
Resolves the acting user and role from a JWT; issuing credentials is handled
by the campus identity provider.
"""

from typing import Optional, Any, Dict, List
from dataclasses import dataclass
import jwt
from jwt.exceptions import PyJWTError, ExpiredSignatureError
from datetime import datetime, timedelta, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import config
from app.core.exceptions import ForbiddenError, UnauthorizedError
from .models import Role


# HTTP Bearer token security scheme
security = HTTPBearer()


@dataclass
class TokenData:
    """Token payload data structure with type safety"""
    user_id: int
    username: str
    role: str


class AuthService:
    """
    Token encoding/decoding.
    """

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token with user data and expiration.

        Args:
            data: Dictionary containing user data (sub, user_id, role)
            expires_delta: Optional custom expiration time, defaults to config value

        Returns:
            Encoded JWT token as string
        """
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        expire = now + (
            expires_delta or timedelta(minutes=config.access_token_expire_minutes)
        )
        to_encode.update({"exp": expire, "iat": now, "type": "access"})
        return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)

    @staticmethod
    def verify_token(token: str) -> Optional[TokenData]:
        """
        Verify and decode a JWT token.

        Returns:
            TokenData object if valid, None if invalid
        """
        try:
            payload: Dict[str, Any] = jwt.decode(
                token, config.secret_key, algorithms=[config.algorithm]
            )
            user_id: Optional[int] = payload.get("user_id")
            username: Optional[str] = payload.get("sub")
            role: Optional[str] = payload.get("role")

            if username is None or user_id is None or role is None:
                return None

            return TokenData(user_id=user_id, username=username, role=role)
        except ExpiredSignatureError:
            raise UnauthorizedError("Token has expired")
        except PyJWTError:
            return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenData:
    """
    Dependency to get the current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If token is invalid
    """
    token_data: Optional[TokenData] = AuthService.verify_token(credentials.credentials)

    if token_data is None:
        raise UnauthorizedError("Invalid authentication credentials")

    return token_data


class RoleChecker:
    """
    Dependency class for role-based access control.
    Checks if the current user has one of the required roles.
    """

    def __init__(self, allowed_roles: List[str]) -> None:
        self.allowed_roles: List[str] = allowed_roles

    async def __call__(self, current_user: TokenData = Depends(get_current_user)) -> TokenData:
        if current_user.role not in self.allowed_roles:
            raise ForbiddenError(
                f"Operation not permitted. Required roles: {', '.join(self.allowed_roles)}"
            )
        return current_user


require_approver: RoleChecker = RoleChecker([Role.ADMIN.value, Role.STAFF.value])
require_any_role: RoleChecker = RoleChecker([role.value for role in Role])
