from fastapi import APIRouter

from app.api.routes import admin, affiliate, articles, feeds, utils
from app.core.config import settings

# JSON API under /api; redirect tracker and feeds at the site root
api_router = APIRouter(prefix=settings.API_V1_STR)
api_router.include_router(articles.router)
api_router.include_router(admin.router)
api_router.include_router(utils.router)

site_router = APIRouter()
site_router.include_router(affiliate.router)
site_router.include_router(feeds.router)
