from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from config.settings import DATABASE_URL


# ---------------------------------------------------------------------
# Database Engine Configuration
# ---------------------------------------------------------------------
def build_engine(url: str):
    """
    SQLite (local dev, tests) gets a single shared connection so in-memory
    databases survive across sessions; anything else gets a real pool.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        echo=False,           # Set to True for SQL query debugging
        pool_size=10,         # Max number of DB connections in pool
        max_overflow=5,       # Allow 5 extra connections during peak load
        pool_recycle=300,     # Recycle connections every 5 min
        pool_pre_ping=True,   # Verify connection health before use
        pool_timeout=60       # Wait up to 60 seconds for a connection
    )


engine = build_engine(DATABASE_URL)


# ---------------------------------------------------------------------
# Database Initialization
# ---------------------------------------------------------------------
def create_db_and_tables():
    """
    Create all database tables defined in SQLModel models.
    Should be called once at app startup (e.g., in main.py).
    """
    import database.models  # noqa: F401  registers tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)


# ---------------------------------------------------------------------
# Dependency for FastAPI Routes (context-managed)
# ---------------------------------------------------------------------
def get_session():
    """
    Dependency for FastAPI endpoints - provides a scoped SQLModel session.
    Example:
        @router.get("/companies")
        def list_companies(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session

