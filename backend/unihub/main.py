import logging

import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api import (
    auth,
    calendar,
    club_requests,
    clubs,
    event_requests,
    events,
    notifications,
    personal_events,
    posters,
    posts,
    tickets,
    users,
)
from .config import (
    CORS_ORIGIN,
    ENVIRONMENT,
    LOG_LEVEL,
    PORT,
    UPLOAD_SWEEP_ENABLED,
    UPLOAD_SWEEP_INTERVAL_MINUTES,
    UPLOAD_URL_PREFIX,
)
from .db import Base, engine, get_session
from .errors import register_error_handlers
from .uploads import sweep_uploads, upload_dir

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="UniHub API")

# CORS for the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

for module in (
    auth,
    users,
    club_requests,
    clubs,
    event_requests,
    events,
    posters,
    tickets,
    posts,
    personal_events,
    calendar,
    notifications,
):
    app.include_router(module.router)

app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=upload_dir()), name="uploads")

scheduler = BackgroundScheduler()


def run_upload_sweep() -> None:
    with get_session() as session:
        sweep_uploads(session)


@app.get("/")
def root():
    return {"message": "UniHub API is running"}


@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(engine)
    with get_session() as session:
        auth.seed_super_admin(session)

    if UPLOAD_SWEEP_ENABLED and not scheduler.running:
        scheduler.add_job(
            run_upload_sweep,
            IntervalTrigger(minutes=UPLOAD_SWEEP_INTERVAL_MINUTES),
            id="upload_sweep",
            replace_existing=True,
        )
        scheduler.start()
        logger.info("Upload sweep scheduled every %s minute(s)", UPLOAD_SWEEP_INTERVAL_MINUTES)


@app.on_event("shutdown")
def shutdown() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)


if __name__ == "__main__":
    uvicorn.run("unihub.main:app", host="0.0.0.0", port=PORT, reload=ENVIRONMENT == "development")
