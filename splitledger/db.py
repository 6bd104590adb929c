from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from splitledger.core.settings import settings
from splitledger.models import Base


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are handed across threads by the ASGI worker pool
        connect_args["check_same_thread"] = False
    # pool_pre_ping/pool_recycle guard against dropped/stale connections causing OperationalError
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args=connect_args,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Local development and tests; deployed databases are migrated with Alembic
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
