"""
Store Factory
Centralizes the logic for selecting the card/history store and building the
review service from configuration.
"""

from cadence.application.config import AppConfig
from cadence.application.review_service import ReviewService
from cadence.infrastructure.adapters.memory_store import InMemoryStore
from cadence.infrastructure.adapters.sqlite_store import SqliteStore


def get_store(config: AppConfig) -> InMemoryStore | SqliteStore:
    """
    Returns the store implementation selected by `config.backend`.

    Both implementations serve as CardStore and ReviewHistoryStore.
    """
    if config.backend == "memory":
        return InMemoryStore()
    return SqliteStore(config.db_path)


def get_review_service(
    config: AppConfig, store: InMemoryStore | SqliteStore | None = None
) -> ReviewService:
    store = store or get_store(config)
    return ReviewService(
        cards=store,
        history=store,
        tz=config.tzinfo,
        due_limit=config.due_limit,
        history_limit=config.history_limit,
    )
