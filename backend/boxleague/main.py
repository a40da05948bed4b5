import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boxleague.database import init_db
from boxleague.routes import leagues, matches, players, weeks

logger = logging.getLogger(__name__)

APP_NAME = "Box League API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(leagues.router, prefix="/api", tags=["leagues"])
app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(weeks.router, prefix="/api", tags=["weeks"])
app.include_router(matches.router, prefix="/api", tags=["matches"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("%s started with %s routes", APP_NAME, len(app.routes))


@app.get("/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
