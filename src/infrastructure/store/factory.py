from src.application.interfaces.item_store import ItemStore
from src.config import settings
from src.infrastructure.store.in_memory import InMemoryItemStore


def build_item_store(backend: str = settings.store_backend) -> ItemStore:
    if backend == "memory":
        return InMemoryItemStore()
    if backend == "sqlalchemy":
        # Deferred: importing the connection module builds the engine.
        from src.infrastructure.database.connection import AsyncSessionLocal
        from src.infrastructure.database.repositories.item_store import SqlAlchemyItemStore

        return SqlAlchemyItemStore(AsyncSessionLocal)
    raise ValueError(f"Unknown store backend: {backend!r}")
