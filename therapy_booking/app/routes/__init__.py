from fastapi import APIRouter

from . import admin, auth, bookings, doctors, messages, payments, reviews, session_notes, socket, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(session_notes.router, prefix="/session-notes", tags=["session-notes"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(socket.router)


@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "OK", "message": "Server is running"}
