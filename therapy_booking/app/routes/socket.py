import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..auth import load_token_user
from ..dependencies import get_db
from ..errors import AppError, field_errors
from ..i18n import get_locale, translate
from ..messaging import create_message
from ..realtime import ConnectionManager, booking_group, get_connection_manager, user_group
from ..schemas import JoinBookingEvent, MessageCreate, TypingEvent
from ..utils import serialize_message
from ..workflow import ensure_booking_access, get_booking_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


def socket_token(websocket: WebSocket):
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


@router.websocket("/ws")
async def chat_socket(
        websocket: WebSocket,
        db: Session = Depends(get_db),
        manager: ConnectionManager = Depends(get_connection_manager)
):
    token = socket_token(websocket)
    try:
        if not token:
            raise AppError(status.HTTP_401_UNAUTHORIZED, "auth.no_token", "Authentication required")
        user = load_token_user(db, token)
    except AppError as e:
        logger.warning(f"Socket authentication failed: {e.default}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    locale = get_locale(websocket)
    await manager.connect(websocket, user.id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
                event = frame["event"]
                data = frame.get("data") or {}
            except (ValueError, KeyError, TypeError, AttributeError):
                await manager.send(websocket, "error", {"message": "Malformed frame"})
                continue

            try:
                await handle_event(db, manager, websocket, user, event, data)
            except AppError as e:
                await manager.send(websocket, "error", {"message": translate(locale, e.key, e.default)})
            except ValidationError as e:
                await manager.send(websocket, "error", {
                    "message": translate(locale, "validation.error", "Validation error"),
                    "errors": field_errors(e.errors()),
                })
    except WebSocketDisconnect:
        logger.info(f"User {user.id} disconnected")
    finally:
        manager.disconnect(websocket)


async def handle_event(db: Session, manager: ConnectionManager, websocket: WebSocket, user, event: str, data):
    """Dispatch one frame; ``data`` is validated against the event's schema first."""
    if event == "join-booking":
        payload = JoinBookingEvent.model_validate(data)
        booking = get_booking_or_404(db, payload.booking_id)
        ensure_booking_access(db, user, booking)
        manager.join(booking_group(booking.id), websocket)

    elif event == "send-message":
        payload = MessageCreate.model_validate(data)
        message = create_message(
            db, user,
            payload.receiver_id,
            payload.content,
            payload.type or "TEXT",
            payload.booking_id,
        )
        serialized = serialize_message(message)
        groups = [user_group(message.receiver_id)]
        if message.booking_id:
            groups.append(booking_group(message.booking_id))
        await manager.emit(groups, "new-message", serialized, exclude=websocket)
        await manager.send(websocket, "message-sent", serialized)

    elif event == "typing":
        payload = TypingEvent.model_validate(data)
        await manager.emit(user_group(payload.receiver_id), "user-typing", {
            "user_id": user.id,
            "user_name": user.full_name,
        }, exclude=websocket)

    elif event == "stop-typing":
        payload = TypingEvent.model_validate(data)
        await manager.emit(user_group(payload.receiver_id), "user-stop-typing", {
            "user_id": user.id,
        }, exclude=websocket)

    else:
        await manager.send(websocket, "error", {"message": f"Unknown event: {event}"})
