from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Type

from sqlalchemy.orm import Session

from ..core.identity import IdentifierResolver, default_identity
from .base import PersistAdapter

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_logger = logging.getLogger("berrybuild")


class SQLAlchemyPersistAdapter(PersistAdapter):
    """Adapter saving entities through a synchronous SQLAlchemy ``Session``.

    New entities are added to the session, entities that already carry an
    identifier are merged. With ``flush=True`` (the default) the session is
    flushed after every save so generated keys are visible right away; the
    transaction itself is left to the caller.
    """
    name = 'sqlalchemy'

    def __init__(
        self,
        session: Session,
        *,
        flush: bool = True,
        providers: Optional[Mapping[type, Any]] = None,
        identity: Optional[IdentifierResolver] = None,
    ):
        self.session = session
        self.flush = flush
        self.providers: Dict[type, Any] = dict(providers or {})
        self.identity = identity or default_identity

    def save(self, entity: Any) -> Any:
        if self.identity.read_identifier(entity) is None:
            self.session.add(entity)
            managed = entity
        else:
            managed = self.session.merge(entity)
        if self.flush:
            self.session.flush()
        _logger.debug("berrybuild.sqlalchemy: saved %s id=%r", type(managed).__name__, self.identity.read_identifier(managed))
        return managed

    def find_by_id(self, entity_type: Type[Any], id: Any) -> Optional[Any]:
        return self.session.get(entity_type, id)

    def require(self, dependency_type: Type[Any]) -> Any:
        if dependency_type in self.providers:
            return self.providers[dependency_type]
        if isinstance(dependency_type, type) and isinstance(self.session, dependency_type):
            return self.session
        return super().require(dependency_type)


async def create_async(builder: Any, session: AsyncSession, **adapter_options: Any) -> Any:
    """Run ``builder.create()`` against an ``AsyncSession``.

    The synchronous build-and-persist step runs inside ``session.run_sync``
    with a :class:`SQLAlchemyPersistAdapter` bound to the underlying
    synchronous session. The builder gets its previous adapter back afterwards.

    Example:
        async with async_session() as s:
            user = await create_async(UserBuilder().persistent().with_name("A"), s)
    """
    def _run(sync_session: Session) -> Any:
        previous = builder.adapter
        builder.using(SQLAlchemyPersistAdapter(sync_session, **adapter_options))
        try:
            return builder.create()
        finally:
            builder.using(previous)

    return await session.run_sync(_run)
