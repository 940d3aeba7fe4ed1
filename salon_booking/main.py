import logging

from fastapi import FastAPI

from . import models
from .database import engine
from .exceptions import SalonBookingError, salon_booking_error_handler
from .routers import appointments, calendar, cron, line, webhooks

logging.basicConfig(level=logging.INFO)

# Create tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="Salon Booking & LINE Notifications", version="1.0.0")

app.add_exception_handler(SalonBookingError, salon_booking_error_handler)

app.include_router(appointments.router)
app.include_router(calendar.router)
app.include_router(line.router)
app.include_router(webhooks.router)
app.include_router(cron.router)


@app.get("/health")
def health():
    return {"status": "ok"}
