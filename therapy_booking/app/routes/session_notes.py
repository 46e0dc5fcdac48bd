from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, role_required
from ..dependencies import UserRole, get_db
from ..errors import AppError
from ..i18n import t
from ..models import Booking, SessionNote, User
from ..schemas import SessionNoteUpdate
from ..utils import serialize_session_note, success_body
from ..workflow import get_booking_or_404, get_doctor_profile

router = APIRouter()


def doctor_booking(db: Session, user: User, booking_id: int) -> Booking:
    """The booking, provided it belongs to the calling doctor."""
    booking = get_booking_or_404(db, booking_id, "sessionNote.booking_not_found")
    doctor = get_doctor_profile(db, user)
    if doctor is None or booking.doctor_id != doctor.id:
        raise AppError(status.HTTP_403_FORBIDDEN, "sessionNote.unauthorized", "Unauthorized")
    return booking


@router.put("/{booking_id}")
@role_required([UserRole.DOCTOR.value])
async def upsert_session_note(
        request: Request,
        booking_id: int,
        payload: SessionNoteUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    booking = doctor_booking(db, current_user, booking_id)

    note = db.query(SessionNote).filter(SessionNote.booking_id == booking.id).first()
    if note is None:
        note = SessionNote(booking_id=booking.id, doctor_id=booking.doctor_id, notes=payload.notes)
        db.add(note)
    else:
        note.notes = payload.notes
    db.commit()
    db.refresh(note)
    return success_body(t(request, "sessionNote.updated", "Session note updated"),
                        {"session_note": serialize_session_note(note)})


@router.get("/{booking_id}")
@role_required([UserRole.DOCTOR.value])
async def get_session_note(booking_id: int, current_user: User = Depends(get_current_user),
                           db: Session = Depends(get_db)):
    booking = doctor_booking(db, current_user, booking_id)
    note = db.query(SessionNote).filter(SessionNote.booking_id == booking.id).first()
    return success_body(data={"session_note": serialize_session_note(note)})
