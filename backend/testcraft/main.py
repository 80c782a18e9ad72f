import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .db import Base, engine
from .cleanup import purge_stale_temp_files
from .errors import install_error_handlers
from .settings import settings
from .storage import PUBLIC_MOUNT
from . import models  # noqa: F401  (registers tables on Base)
from .routers import health
from .routers import auth
from .routers import tests
from .routers import questions
from .routers import upload
from .routers import ai
from .routers import learner

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api"

app = FastAPI(title="Testcraft AI API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=[settings.frontend_url],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
install_error_handlers(app)

app.include_router(health.router, prefix=API_PREFIX)
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(tests.router, prefix=API_PREFIX)
app.include_router(questions.router, prefix=API_PREFIX)
app.include_router(upload.router, prefix=API_PREFIX)
app.include_router(ai.router, prefix=API_PREFIX)
app.include_router(learner.router, prefix=API_PREFIX)

# Uploaded files are publicly readable, like a storage bucket
STORAGE_DIR = Path(settings.storage_dir)
STORAGE_DIR.mkdir(parents=True, exist_ok=True)
app.mount(PUBLIC_MOUNT, StaticFiles(directory=STORAGE_DIR), name="files")


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	# Scratch files from an analyze call that crashed mid-way
	purge_stale_temp_files()
	logger.info("Testcraft AI API started (environment: %s)", settings.environment)
