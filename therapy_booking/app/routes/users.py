import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..dependencies import UserRole, get_db
from ..errors import AppError
from ..i18n import t
from ..models import User
from ..profiles import clean, update_user_identity
from ..schemas import UserProfileUpdate
from ..uploads import read_image_upload, store_upload
from ..utils import serialize_client_profile, serialize_doctor_profile, success_body
from ..workflow import get_doctor_profile, get_or_create_client_profile

router = APIRouter()


def serialize_own_profile(db: Session, user: User):
    if user.role == UserRole.CLIENT.value:
        return serialize_client_profile(get_or_create_client_profile(db, user))
    if user.role == UserRole.DOCTOR.value:
        return serialize_doctor_profile(get_doctor_profile(db, user))
    return None


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return success_body(data={"profile": serialize_own_profile(db, current_user)})


@router.patch("/profile")
async def update_profile(
        request: Request,
        payload: UserProfileUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    update_user_identity(
        db, current_user,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
    )

    if current_user.role == UserRole.CLIENT.value:
        profile = get_or_create_client_profile(db, current_user)
        fields = payload.model_fields_set
        if payload.date_of_birth is not None:
            profile.date_of_birth = payload.date_of_birth
        for field in ("address", "city", "country"):
            if field in fields:
                setattr(profile, field, clean(getattr(payload, field)))

    db.commit()
    logging.info(f"Profile updated for user {current_user.id}")
    return success_body(t(request, "user.profile_updated", "Profile updated successfully"),
                        {"profile": serialize_own_profile(db, current_user)})


@router.post("/profile/photo")
async def upload_profile_photo(
        request: Request,
        photo: UploadFile = File(None),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    if current_user.role == UserRole.CLIENT.value:
        profile = get_or_create_client_profile(db, current_user)
    elif current_user.role == UserRole.DOCTOR.value:
        profile = get_doctor_profile(db, current_user)
    else:
        profile = None
    if profile is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "doctor.profile_not_found", "Profile not found")
    if photo is None:
        raise AppError(status.HTTP_400_BAD_REQUEST, "upload.photo_required", "Photo is required")

    content = await read_image_upload(photo)
    profile.photo = store_upload(content, photo.filename, "photo")
    db.commit()
    return success_body(t(request, "user.profile_updated", "Profile updated successfully"),
                        {"photo": profile.photo})
