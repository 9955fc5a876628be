import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from .config import settings
from .upstream import init_client, close_client
from .routes import posts, favorites, comments

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

app.include_router(posts.router)
app.include_router(favorites.router)
app.include_router(comments.router)

@app.on_event("startup")
async def startup_event():
    """Run on startup"""
    init_client()
    if settings.E621_LOGIN and settings.E621_API_KEY:
        logger.info(f"{settings.APP_NAME} started, authenticating upstream as {settings.E621_LOGIN}")
    else:
        logger.info(f"{settings.APP_NAME} started without credentials, upstream requests are anonymous")

@app.on_event("shutdown")
async def shutdown_event():
    """Run on shutdown"""
    await close_client()

# Static front-end; mounted last so the /api routes take precedence
if settings.STATIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(settings.STATIC_DIR), html=True), name="static")
