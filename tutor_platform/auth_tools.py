from typing import Any, Optional
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from datetime import timedelta
from tutor_platform.logger import logger
from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import User, UserRole, get_db
from tutor_platform.repositories import user_repository
from tutor_platform.schemas.authentication_schema import DecodedAccessToken
from tutor_platform.exceptions import Forbidden, NotFound, ValidationFailed
from tutor_platform.utilities import utcnow

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__memory_cost=65536,
    argon2__time_cost=3,
    argon2__parallelism=4
)

# security schemes
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

###############################
### PASSWORDS AND TOKENS ###
###############################

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def create_access_token(user: User, settings: Settings) -> str:
    """Create a signed access token for the user."""
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.name,
        "exp": utcnow() + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.hash_algorithm)

def decode_access_token(token: str, settings: Settings) -> DecodedAccessToken:
    """
    Decode and validate an access token.

    Raises:
    - HTTPException(401): If the token is expired, malformed or missing the user ID
    """
    try:
        payload: dict[str, Any] = jwt.decode(token, settings.secret_key, algorithms=[settings.hash_algorithm])
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except JWTError as e:
        logger.error(f"Error decoding token: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token. Missing user ID.")

    return DecodedAccessToken(**payload)

##################################
### AUTHORIZATION DEPENDENCIES ###
##################################

def get_current_user(token: str = Depends(oauth2_scheme), settings: Settings = Depends(get_settings)) -> DecodedAccessToken:
    """
    Get the current user from the bearer token.

    Args:
    - token (str): The user's token

    Returns:
    - DecodedAccessToken: The user's token claims
    """
    return decode_access_token(token, settings)

def get_optional_user(token: Optional[str] = Depends(optional_oauth2_scheme), settings: Settings = Depends(get_settings)) -> Optional[DecodedAccessToken]:
    """
    Like get_current_user, but returns None instead of failing.

    Used by the onboarding endpoints, where a caller without a valid token may
    identify themselves by email instead.
    """
    if not token:
        return None
    try:
        return decode_access_token(token, settings)
    except HTTPException:
        return None

def verify_user_role(user: DecodedAccessToken, allowed_roles) -> DecodedAccessToken:
    """
    Verify that the user has the required role.

    Args:
    - user (DecodedAccessToken): The user's token claims
    - allowed_roles (list): List of allowed roles

    Returns:
    - DecodedAccessToken: The same claims, if allowed
    """
    if not user or user.role not in [role.value for role in allowed_roles]:
        raise HTTPException(status_code=403,
                            detail=f"User must have one of these roles: {[role.value for role in allowed_roles]}")

    return user

def get_current_account(current_user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
    """
    Load the User row behind the token.

    Raises:
    - HTTPException(401): the user no longer exists
    - HTTPException(403): the account is not ACTIVE
    """
    user = User.get_by_id(db, current_user.sub)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is not active")
    return user

def admin_only(current_user: DecodedAccessToken = Depends(get_current_user)) -> DecodedAccessToken:
    """Verify that the user is an admin"""
    return verify_user_role(current_user, [UserRole.ADMIN])

def resolve_acting_user(db: Session, current_user: Optional[DecodedAccessToken], email: Optional[str]) -> User:
    """
    Resolve who is acting on an onboarding endpoint.

    A valid token wins; otherwise the caller must supply the email they just
    verified. Both paths end at the same User row.

    Raises:
    - ValidationFailed: neither token nor email was given
    - NotFound: no user for the token subject or email
    - Forbidden: the user is not ACTIVE
    """
    if current_user is not None:
        user = User.get_by_id(db, current_user.sub)
    elif email:
        user = user_repository.get_by_email(db, email)
    else:
        raise ValidationFailed("Email or authentication token is required")

    if not user:
        raise NotFound("User not found")
    if not user.is_active:
        raise Forbidden("User account is not active")
    return user
