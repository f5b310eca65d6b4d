from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from erpia_core.core.config import settings


_connect_args = {'check_same_thread': False} if settings.database_url.startswith('sqlite') else {}

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args,
    future=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

class Base(DeclarativeBase):
    pass

def init_db() -> None:
    """Create every table known to the declarative base."""
    # Import model modules so their tables register on Base.metadata.
    from erpia_core.models import plugin, page, log_message, app_setting, business  # noqa: F401
    Base.metadata.create_all(bind=engine)
