from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from app.core.config import settings
from app.models import Category


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

DEFAULT_CATEGORIES = [
    ("Watches", "watches", "Haute horlogerie and everyday icons."),
    ("Leather Goods", "leather-goods", "Bags, wallets and small leather goods."),
    ("Travel", "travel", "Luggage and the art of moving well."),
    ("Home", "home", "Objects for a considered interior."),
    ("Grooming", "grooming", "Fragrance, shaving and skincare."),
]


def init_db(session: Session) -> None:
    # Tables are created directly from the models; there is no migration step
    SQLModel.metadata.create_all(session.get_bind())

    existing = session.exec(select(Category)).first()
    if existing:
        return
    for name, slug, description in DEFAULT_CATEGORIES:
        session.add(Category(name=name, slug=slug, description=description))
    session.commit()
