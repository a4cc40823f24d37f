import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import RedirectResponse

from app.api.deps import CacheDep, SessionDep
from app.cache import CacheStore, record_click
from app.crud import get_affiliate_link

router = APIRouter(tags=["affiliate"])
logger = logging.getLogger(__name__)


def _track_click(cache: CacheStore, link_id: int) -> None:
    # Runs after the redirect has been sent; a failed write only loses one count
    try:
        record_click(cache, link_id)
    except Exception as exc:
        logger.warning("Failed to record click for link %s: %s", link_id, exc)


@router.get("/go/{id}")
def redirect_to_affiliate(
    id: int,
    session: SessionDep,
    cache: CacheDep,
    background_tasks: BackgroundTasks,
) -> RedirectResponse:
    link = get_affiliate_link(session=session, link_id=id)
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")

    background_tasks.add_task(_track_click, cache, link.id)
    return RedirectResponse(link.affiliate_url, status_code=302)
