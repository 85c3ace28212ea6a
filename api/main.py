# api/main.py
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import get_settings
from core.errors import ShelfError, UnknownError
from core.sa.database import get_database
from api.routes import admin, books, home, reading_lists, users

logger = logging.getLogger(__name__)

# Error category -> HTTP status
STATUS_BY_CATEGORY = {
    "validation": 400,
    "unauthorized": 403,
    "not_found": 404,
    "conflict": 409,
    "partial": 207,
    "network": 502,
    "provider": 502,
    "not_configured": 503,
    "timeout": 504,
    "unknown": 500,
}

settings = get_settings()

app = FastAPI(title="Shelf Companion")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(books.router)
app.include_router(reading_lists.router)
app.include_router(home.router)
app.include_router(admin.router)

if settings.image_base_url.startswith("/"):
    app.mount(settings.image_base_url, StaticFiles(directory=settings.image_store_dir, check_dir=False), name="images")

@app.exception_handler(ShelfError)
async def shelf_error_handler(request: Request, exc: ShelfError):
    if isinstance(exc, UnknownError):
        logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=STATUS_BY_CATEGORY.get(exc.category, 500),
        content={"error": exc.to_dict()},
    )

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": UnknownError(str(exc)).to_dict()})

# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    get_database().init_db()

@app.get("/")
async def root():
    return {"message": "Shelf Companion API"}
