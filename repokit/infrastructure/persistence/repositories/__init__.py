"""Repository construction bound to a SQLAlchemy AsyncSession.

get_repository() is the wiring point used at the application boundary:

    async def handler(session: AsyncSession = Depends(get_session)) -> ...:
        widgets = get_repository(session, Widget, PydanticValidator(WidgetSchema))
        widget = await widgets.read(Widget.widget_id == widget_id)

Repositories built from the same AsyncSession share one SqlAlchemySession,
so their staged changes commit together.
"""

from __future__ import annotations

from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from repokit.domain.models.settings import RepositorySettings
from repokit.domain.repositories.generic import GenericRepository
from repokit.domain.services.conflicts import ConflictResolver
from repokit.domain.services.validation import Validator
from repokit.infrastructure import database
from repokit.infrastructure.persistence.session import SqlAlchemySession

T = TypeVar("T")

_SESSION_KEY = "repokit.persistence_session"


def persistence_session(session: AsyncSession) -> SqlAlchemySession:
    """Return the SqlAlchemySession attached to session, creating it on first use."""
    adapter = session.info.get(_SESSION_KEY)
    if adapter is None:
        adapter = SqlAlchemySession(session)
        session.info[_SESSION_KEY] = adapter
    return adapter


def get_repository(
    session: AsyncSession,
    entity_type: type[T],
    validator: Validator[T] | None = None,
    *,
    settings: RepositorySettings | None = None,
    resolver: ConflictResolver[T] | None = None,
) -> GenericRepository[T]:
    """Construct a GenericRepository for entity_type bound to session.

    Without explicit settings the repository takes its knobs from the
    environment-backed database.settings.
    """
    if settings is None:
        settings = database.settings.repository_settings()
    return GenericRepository(
        persistence_session(session),
        entity_type,
        validator,
        settings=settings,
        resolver=resolver,
    )


__all__ = [
    "get_repository",
    "persistence_session",
]
