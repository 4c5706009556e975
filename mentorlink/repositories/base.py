from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Holds the request-scoped session; services commit through it."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def insert_for_dialect(self, model):
        """INSERT construct that supports ON CONFLICT on the bound dialect."""
        if self.session.bind.dialect.name == "postgresql":
            return postgresql.insert(model.__table__)
        return sqlite.insert(model.__table__)
