import logging

from fastapi import FastAPI

from roombooking.api.v1.bookings import router as bookings_router
from roombooking.api.v1.rooms import router as rooms_router
from roombooking.core.config import settings


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "room_id", "calendar_id", "event_id", "status", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Room Booking Engine", version="1.0.0")

app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
app.include_router(rooms_router, prefix="/api/v1", tags=["rooms"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
