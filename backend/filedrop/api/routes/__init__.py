"""API route registration."""

from fastapi import APIRouter

from filedrop.api.routes import files, health, pages

# Mounted under settings.api_prefix
api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])

# Mounted at the root, the paths the browser front end talks to
web_router = APIRouter()
web_router.include_router(pages.router, tags=["pages"])
web_router.include_router(files.router, tags=["files"])
