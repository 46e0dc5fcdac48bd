from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..dependencies import get_db
from ..i18n import t
from ..messaging import (
    conversation_messages,
    create_message,
    list_conversations,
    mark_conversation_read,
    unread_count,
)
from ..models import User
from ..realtime import ConnectionManager, booking_group, get_connection_manager, user_group
from ..schemas import MessageCreate
from ..utils import serialize_message, success_body

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
        request: Request,
        payload: MessageCreate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
        manager: ConnectionManager = Depends(get_connection_manager)
):
    message = create_message(db, current_user, payload.receiver_id, payload.content, payload.type, payload.booking_id)
    serialized = serialize_message(message)

    groups = [user_group(message.receiver_id)]
    if message.booking_id:
        groups.append(booking_group(message.booking_id))
    await manager.emit(groups, "new-message", serialized)

    return success_body(t(request, "message.sent", "Message sent"), {"message": serialized})


@router.get("/conversations")
async def get_conversations(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return success_body(data={"conversations": list_conversations(db, current_user)})


@router.get("/conversation/{user_id}")
async def get_conversation(
        user_id: int,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=200),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    messages = conversation_messages(db, current_user, user_id, page, limit)
    return success_body(data={"messages": [serialize_message(message) for message in messages]})


@router.patch("/read/{user_id}")
async def mark_read(
        request: Request,
        user_id: int,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    updated = mark_conversation_read(db, current_user, user_id)
    return success_body(t(request, "message.marked_read", "Messages marked as read"), {"updated": updated})


@router.get("/unread-count")
async def get_unread_count(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return success_body(data={"count": unread_count(db, current_user)})
