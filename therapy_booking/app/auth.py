# auth.py
from asyncio import iscoroutinefunction
from datetime import datetime, timedelta, timezone
from functools import wraps

from jose import JWTError, jwt, ExpiredSignatureError
from passlib.context import CryptContext
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import or_
from sqlalchemy.orm import Session
from .config import JWT_SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES
from .errors import AppError
from .models import User
from .dependencies import get_db
import logging

SECRET_KEY = JWT_SECRET_KEY
ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

BEARER_HEADERS = {"WWW-Authenticate": "Bearer"}


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def find_user_by_login(db: Session, email: str = None, phone: str = None):
    clauses = []
    if email:
        clauses.append(User.email == email)
    if phone:
        clauses.append(User.phone == phone)
    if not clauses:
        return None
    return db.query(User).filter(or_(*clauses)).first()


def authenticate_user(db: Session, password: str, email: str = None, phone: str = None):
    user = find_user_by_login(db, email=email, phone=phone)
    if not user:
        logging.warning(f"Login attempt for unknown user: {email or phone}")
        return False
    if not verify_password(password, user.hashed_password):
        logging.warning(f"Password verification failed for user: {user.id}")
        return False
    return user


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_user_token(user: User):
    return create_access_token(data={"sub": str(user.id)})


def decode_access_token(token: str) -> int:
    """Return the user id carried by ``token``; expired and forged tokens raise distinct 401s."""
    invalid = AppError(status.HTTP_401_UNAUTHORIZED, "auth.invalid_token", "Invalid token", headers=BEARER_HEADERS)
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "auth.token_expired", "Token expired", headers=BEARER_HEADERS)
    except JWTError as e:
        logging.error(f"JWTError: {str(e)}")
        raise invalid
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise invalid


def load_token_user(db: Session, token: str) -> User:
    user = db.query(User).filter(User.id == decode_access_token(token)).first()
    if user is None:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "auth.user_not_found", "User not found", headers=BEARER_HEADERS)
    return user


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
        db: Session = Depends(get_db)
):
    if credentials is None or not credentials.credentials:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "auth.no_token", "Authentication required", headers=BEARER_HEADERS)
    return load_token_user(db, credentials.credentials)


def role_required(required_roles):
    def check(current_user):
        if current_user.role not in required_roles:
            raise AppError(status.HTTP_403_FORBIDDEN, "auth.forbidden", "Forbidden")

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, current_user: User = Depends(get_current_user), **kwargs):
            check(current_user)
            return await func(*args, current_user=current_user, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, current_user: User = Depends(get_current_user), **kwargs):
            check(current_user)
            return func(*args, current_user=current_user, **kwargs)

        if iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator
