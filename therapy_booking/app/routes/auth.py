import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from .. import config
from ..auth import authenticate_user, create_user_token, find_user_by_login, get_current_user, get_password_hash
from ..dependencies import UserRole, get_db
from ..errors import AppError
from ..i18n import t
from ..mailer import deliver_logged, send_password_reset_email, send_verification_email
from ..models import ClientProfile, DoctorProfile, User, utcnow
from ..schemas import (
    ForgotPasswordRequest,
    LanguageUpdate,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
)
from ..utils import profile_photo, serialize_user, success_body

router = APIRouter()

RESET_TOKEN_LIFETIME = timedelta(hours=1)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
        request: Request,
        payload: RegisterRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    if find_user_by_login(db, email=payload.email, phone=payload.phone):
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.user_exists", "User already exists")

    verification_token = secrets.token_hex(32)
    user = User(
        email=payload.email,
        phone=payload.phone,
        hashed_password=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        preferred_language=payload.preferred_language.value,
        role=payload.role,
        is_verified=False,
        verification_token=verification_token,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    if user.role == UserRole.DOCTOR.value:
        db.add(DoctorProfile(
            user_id=user.id,
            hourly_rate=0,
            available_hours={},
            languages=[payload.preferred_language.value],
        ))
    else:
        db.add(ClientProfile(user_id=user.id))
    db.commit()
    logging.info(f"Registered {user.role} user {user.id}")

    if user.email:
        background_tasks.add_task(deliver_logged, send_verification_email, user.email, verification_token,
                                  user.first_name)
        message = t(request, "auth.register_success_verify",
                    "Registration successful! Please check your email to verify your account.")
    else:
        message = t(request, "auth.register_success", "Registration successful!")
    return success_body(message, {
        "user": serialize_user(user),
        "requires_verification": bool(user.email),
    })


@router.post("/login")
async def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.password, email=payload.email, phone=payload.phone)
    if not user:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "auth.invalid_credentials", "Invalid credentials")

    if user.email and not user.is_verified:
        raise AppError(
            status.HTTP_403_FORBIDDEN, "auth.email_not_verified",
            "Please verify your email address before logging in. Check your inbox for the verification link.",
            extra={"requires_verification": True},
        )

    access_token = create_user_token(user)
    return success_body(t(request, "auth.login_success", "Login successful"), {
        "user": serialize_user(user, photo=profile_photo(user)),
        "token": access_token,
    })


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return success_body(data={"user": serialize_user(current_user, photo=profile_photo(current_user))})


@router.patch("/language")
async def update_language(
        request: Request,
        payload: LanguageUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    current_user.preferred_language = payload.preferred_language.value
    db.commit()
    db.refresh(current_user)
    return success_body(t(request, "auth.language_updated", "Language preference updated"),
                        {"user": serialize_user(current_user)})


@router.post("/forgot-password")
async def forgot_password(
        request: Request,
        payload: ForgotPasswordRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    # Same answer whether or not the account exists
    message = t(request, "auth.forgot_password_sent", "If an account exists, a password reset link has been sent.")

    user = find_user_by_login(db, email=payload.email, phone=payload.phone)
    if not user:
        return success_body(message)

    reset_token = secrets.token_hex(32)
    user.reset_password_token = reset_token
    user.reset_password_expires = utcnow() + RESET_TOKEN_LIFETIME
    db.commit()

    if user.email:
        reset_url = f"{config.FRONTEND_URL}/reset-password?token={reset_token}"
        background_tasks.add_task(deliver_logged, send_password_reset_email, user.email, reset_url, user.first_name)

    return success_body(message)


@router.post("/reset-password")
async def reset_password(request: Request, payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(
        User.reset_password_token == payload.token,
        User.reset_password_expires > utcnow(),
    ).first()
    if not user:
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.invalid_or_expired_token", "Invalid or expired reset token")

    user.hashed_password = get_password_hash(payload.password)
    user.reset_password_token = None
    user.reset_password_expires = None
    db.commit()
    logging.info(f"Password reset for user {user.id}")
    return success_body(t(request, "auth.password_reset_success", "Password has been reset successfully"))


@router.get("/verify-email")
async def verify_email(request: Request, token: str = Query(None), db: Session = Depends(get_db)):
    if not token:
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.verification_token_required",
                       "Verification token is required")

    user = db.query(User).filter(User.verification_token == token).first()
    if not user:
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.invalid_verification_token", "Invalid verification token")
    if user.is_verified:
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.already_verified", "Email is already verified")

    user.is_verified = True
    user.verification_token = None
    db.commit()
    return success_body(t(request, "auth.email_verified", "Email verified successfully! You can now log in."))


@router.post("/resend-verification")
async def resend_verification(request: Request, payload: ResendVerificationRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        return success_body(t(request, "auth.verification_email_sent",
                              "If an account exists with this email, a verification link has been sent."))
    if user.is_verified:
        raise AppError(status.HTTP_400_BAD_REQUEST, "auth.already_verified", "Email is already verified")

    user.verification_token = secrets.token_hex(32)
    db.commit()

    try:
        await run_in_threadpool(send_verification_email, user.email, user.verification_token, user.first_name)
    except Exception as e:
        logging.error(f"Failed to send verification email to user {user.id}: {e}")
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "auth.failed_to_send_email",
                       "Failed to send verification email")

    return success_body(t(request, "auth.verification_email_sent", "Verification email sent. Please check your inbox."))
