# profiles.py
from fastapi import status
from sqlalchemy.orm import Session

from .errors import AppError
from .models import User


def clean(value):
    """Strip a string field; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def update_user_identity(db: Session, user: User, first_name=None, last_name=None, email=None, phone=None):
    """Apply name and contact changes to ``user``, refusing an email or phone owned by someone else.

    Blank values leave the current ones untouched. Nothing is committed here.
    """
    if clean(first_name):
        user.first_name = clean(first_name)
    if clean(last_name):
        user.last_name = clean(last_name)

    email = clean(email)
    if email and email != (user.email or ""):
        if db.query(User).filter(User.email == email, User.id != user.id).first():
            raise AppError(status.HTTP_400_BAD_REQUEST, "user.email_already_exists", "Email already exists")
        user.email = email

    phone = clean(phone)
    if phone and phone != (user.phone or ""):
        if db.query(User).filter(User.phone == phone, User.id != user.id).first():
            raise AppError(status.HTTP_400_BAD_REQUEST, "user.phone_already_exists", "Phone number already exists")
        user.phone = phone
