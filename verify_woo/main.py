import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from verify_woo.config import settings
from verify_woo.database import init_db
from verify_woo.routers import auth, checkout, health, users
from verify_woo.services.otp import otp_service
from verify_woo.services.otp_store import DatabaseOtpStore

LOGGER = logging.getLogger(__name__)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Verify Woo")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(checkout.router)
app.include_router(auth.router, prefix="/api")  # Compatibility for clients calling /api/auth/*.


@app.on_event("startup")
def startup() -> None:
    init_db()
    store = otp_service.store
    if isinstance(store, DatabaseOtpStore):
        purged = store.purge_expired()
        if purged:
            LOGGER.info("Purged %s expired OTP records", purged)


@app.get("/")
def root():
    return {"status": "Verify Woo running"}
