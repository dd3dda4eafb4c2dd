"""
Bearer-token authentication boundary.

Sessions and login live outside this service; it only verifies the signed
token it is handed and resolves the acting publisher from the database.
"""

from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from catalogue.core.config import get_settings
from catalogue.core.database import get_db
from catalogue.models.publisher import Publisher
from catalogue.models.user import User
from catalogue.services import publisher_service

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign a token; `sub` should hold the user id."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        user_id = int(subject)
    except (JWTError, ValueError):
        raise credentials_exception from None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception
    return user


def get_current_publisher(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Publisher:
    """The publisher profile of the authenticated user."""
    publisher = publisher_service.get_publisher_by_user_id(db, current_user.id)
    if not publisher:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Publisher profile not found",
        )
    return publisher


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
