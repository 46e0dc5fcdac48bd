"""
Direct messages between users, shared by the REST endpoints and the live channel.
"""
from fastapi import status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from .dependencies import BookingStatus, UserRole
from .errors import AppError
from .models import Booking, ClientProfile, DoctorProfile, Message, User
from .utils import isoformat, serialize_message, serialize_user_summary

# Booking states that make a doctor visible in a client's conversation list
CLIENT_VISIBLE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value]


def between(user_id: int, other_id: int):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


def create_message(db: Session, sender: User, receiver_id, content, message_type: str = "TEXT",
                   booking_id: int = None) -> Message:
    if not receiver_id or not isinstance(content, str) or not content.strip():
        raise AppError(status.HTTP_400_BAD_REQUEST, "message.missing_fields", "Missing required fields")

    receiver = db.query(User).filter(User.id == receiver_id).first()
    if receiver is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "message.receiver_not_found", "Receiver not found")

    if booking_id is not None and db.query(Booking.id).filter(Booking.id == booking_id).first() is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "booking.not_found", "Booking not found")

    message = Message(
        sender_id=sender.id,
        receiver_id=receiver.id,
        content=content.strip(),
        type=message_type or "TEXT",
        booking_id=booking_id,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def mark_conversation_read(db: Session, user: User, other_id: int) -> int:
    updated = db.query(Message).filter(
        Message.sender_id == other_id,
        Message.receiver_id == user.id,
        Message.is_read.is_(False),
    ).update({Message.is_read: True}, synchronize_session=False)
    db.commit()
    return updated


def conversation_messages(db: Session, user: User, other_id: int, page: int, limit: int):
    """One page of the thread, oldest first; opening it marks the counterpart's messages read."""
    messages = (
        db.query(Message)
        .filter(between(user.id, other_id))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    mark_conversation_read(db, user, other_id)
    return list(reversed(messages))


def unread_count(db: Session, user: User) -> int:
    return db.query(Message).filter(Message.receiver_id == user.id, Message.is_read.is_(False)).count()


def booking_counterpart_ids(db: Session, user: User):
    if user.role == UserRole.DOCTOR.value:
        rows = (
            db.query(ClientProfile.user_id)
            .join(Booking, Booking.client_id == ClientProfile.id)
            .join(DoctorProfile, Booking.doctor_id == DoctorProfile.id)
            .filter(DoctorProfile.user_id == user.id, Booking.status == BookingStatus.CONFIRMED.value)
            .distinct()
            .all()
        )
    elif user.role == UserRole.CLIENT.value:
        rows = (
            db.query(DoctorProfile.user_id)
            .join(Booking, Booking.doctor_id == DoctorProfile.id)
            .join(ClientProfile, Booking.client_id == ClientProfile.id)
            .filter(ClientProfile.user_id == user.id, Booking.status.in_(CLIENT_VISIBLE_STATUSES))
            .distinct()
            .all()
        )
    else:
        rows = []
    return [row[0] for row in rows]


def message_counterpart_ids(db: Session, user: User):
    sent = db.query(Message.receiver_id).filter(Message.sender_id == user.id).distinct().all()
    received = db.query(Message.sender_id).filter(Message.receiver_id == user.id).distinct().all()
    return [row[0] for row in sent] + [row[0] for row in received]


def latest_booking_between(db: Session, user: User, other: User):
    if user.role == UserRole.DOCTOR.value:
        doctor_user_id, client_user_id = user.id, other.id
    elif user.role == UserRole.CLIENT.value:
        doctor_user_id, client_user_id = other.id, user.id
    else:
        return None
    booking = (
        db.query(Booking)
        .join(DoctorProfile, Booking.doctor_id == DoctorProfile.id)
        .join(ClientProfile, Booking.client_id == ClientProfile.id)
        .filter(
            DoctorProfile.user_id == doctor_user_id,
            ClientProfile.user_id == client_user_id,
            Booking.status.in_(CLIENT_VISIBLE_STATUSES),
        )
        .order_by(Booking.session_date.desc())
        .first()
    )
    if booking is None:
        return None
    return {
        "id": booking.id,
        "session_date": isoformat(booking.session_date),
        "session_type": booking.session_type,
        "status": booking.status,
    }


def list_conversations(db: Session, user: User):
    """Everyone the user has messaged with, plus booking counterparts who may have no messages yet.

    Threads without messages come first, the rest by most recent message.
    """
    counterpart_ids = list(dict.fromkeys(message_counterpart_ids(db, user) + booking_counterpart_ids(db, user)))

    conversations = []
    for other_id in counterpart_ids:
        other = db.query(User).filter(User.id == other_id).first()
        if other is None:
            continue
        last_message = (
            db.query(Message)
            .filter(between(user.id, other_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )
        unread = db.query(Message).filter(
            Message.sender_id == other_id,
            Message.receiver_id == user.id,
            Message.is_read.is_(False),
        ).count()
        other_summary = serialize_user_summary(other, include_contact=True)
        other_summary["role"] = other.role
        conversations.append({
            "user": other_summary,
            "last_message": serialize_message(last_message) if last_message else None,
            "unread_count": unread,
            "latest_booking": latest_booking_between(db, user, other),
            "_last_at": last_message.created_at if last_message else None,
        })

    without_messages = [c for c in conversations if c["_last_at"] is None]
    with_messages = sorted((c for c in conversations if c["_last_at"] is not None),
                           key=lambda c: c["_last_at"], reverse=True)
    result = without_messages + with_messages
    for conversation in result:
        del conversation["_last_at"]
    return result
