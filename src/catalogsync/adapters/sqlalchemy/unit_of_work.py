"""SQLAlchemy-backed unit of work for the catalog replica."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from catalogsync.adapters.sqlalchemy.migrations import upgrade_head
from catalogsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCveRepository,
    SqlAlchemyImageCveRepository,
    SqlAlchemyImageRepository,
    SqlAlchemyRepositoryImageRepository,
    SqlAlchemyRepositoryRepository,
)
from catalogsync.config import get_database_config
from catalogsync.domain.ports.unit_of_work import CatalogRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the replica is used before ``startup()`` or outside a unit of work."""


@dataclass(slots=True)
class _ReplicaBinding:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


_REPLICA = _ReplicaBinding()


def startup(*, engine: Engine | None = None, force: bool = False) -> None:
    """Migrate the replica schema to head and bind new units of work to it.

    Without ``engine`` one is created from ``DATABASE_URI``.
    """

    if _REPLICA.engine is not None and not force:
        raise StartupError("Catalog replica already bound. Pass force=True to rebind.")

    replica_engine = engine or create_engine(get_database_config().uri)
    upgrade_head(engine=replica_engine)
    log.debug("Catalog replica ready: %s", replica_engine.url)

    _REPLICA.engine = replica_engine
    _REPLICA.sessions = sessionmaker(bind=replica_engine, expire_on_commit=False)


def bound_engine() -> Engine | None:
    return _REPLICA.engine


def shutdown() -> None:
    """Dispose the bound engine; later units of work need another ``startup()``."""

    if _REPLICA.engine is not None:
        _REPLICA.engine.dispose()
    _REPLICA.engine = None
    _REPLICA.sessions = None


class SqlAlchemyCatalogUnitOfWork:
    """One session, and one transaction, per repository reconciliation."""

    def __init__(self) -> None:
        if _REPLICA.sessions is None:
            raise StartupError("Catalog replica not bound. Call startup() first.")
        self._sessions = _REPLICA.sessions
        self._session: Session | None = None
        self._repositories: CatalogRepositories | None = None

    @property
    def repositories(self) -> CatalogRepositories:
        if self._repositories is None:
            raise StartupError("Repositories are only available inside the unit of work")
        return self._repositories

    def __enter__(self) -> SqlAlchemyCatalogUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work already entered")
        session = self._sessions()
        self._session = session
        self._repositories = CatalogRepositories(
            repositories=SqlAlchemyRepositoryRepository(session),
            images=SqlAlchemyImageRepository(session),
            cves=SqlAlchemyCveRepository(session),
            repository_images=SqlAlchemyRepositoryImageRepository(session),
            image_cves=SqlAlchemyImageCveRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self._active_session()
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self._active_session().commit()

    def rollback(self) -> None:
        self._active_session().rollback()

    def _active_session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work has no open session")
        return self._session


if TYPE_CHECKING:
    from catalogsync.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork()
