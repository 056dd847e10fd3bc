# fms/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fms.core.config import get_settings
from fms.core.database import Base, SessionLocal, engine
from fms.core.logging import configure_logging
from fms.booking.routes import router as booking_router
from fms.directory.routes import router as directory_router
from fms.directory.seed import seed_reference_data
from fms.notification.routes import router as notification_router
from fms.notification.transport import close_push_transport
from fms.ticket.routes import router as ticket_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED_REFERENCE_DATA:
        db = SessionLocal()
        try:
            seed_reference_data(db)
        finally:
            db.close()
    yield
    close_push_transport()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(ticket_router)
app.include_router(notification_router)
app.include_router(booking_router)
app.include_router(directory_router)

@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
