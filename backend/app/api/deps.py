import secrets
from collections.abc import Callable, Coroutine, Generator
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, Response
from fastapi.routing import APIRoute
from sqlmodel import Session

from app.agent.llm_client import LLMClient
from app.cache import CacheStore
from app.core.config import settings
from app.core.db import engine

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache


def get_llm_client() -> LLMClient:
    return LLMClient()


def require_admin(x_admin_secret: str | None) -> None:
    if not x_admin_secret or not secrets.compare_digest(
        x_admin_secret.encode("utf-8"), settings.ADMIN_SECRET.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


class AdminRoute(APIRoute):
    """Route class that checks the admin secret before the request body is read."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def admin_route_handler(request: Request) -> Response:
            require_admin(request.headers.get(ADMIN_SECRET_HEADER))
            return await original_route_handler(request)

        return admin_route_handler


SessionDep = Annotated[Session, Depends(get_db)]
CacheDep = Annotated[CacheStore, Depends(get_cache)]
LLMDep = Annotated[LLMClient, Depends(get_llm_client)]
