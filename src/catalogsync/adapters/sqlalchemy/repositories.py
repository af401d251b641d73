"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from catalogsync.adapters.sqlalchemy.mappings import (
    cve_table,
    image_cve_table,
    image_table,
    repository_image_table,
    repository_table,
)
from catalogsync.domain.model import Cve, Image, ImageCve, Repository, RepositoryImage

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from sqlalchemy import Column, Row, Table
    from sqlalchemy.orm import Session

log = getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _inserted_id(session: Session, table: Table, values: dict[str, Any]) -> int:
    result = session.execute(insert(table).values(**values))
    primary_key = result.inserted_primary_key
    if primary_key is None or primary_key[0] is None:
        raise RuntimeError(f"Insert into {table.name} returned no primary key")
    return int(primary_key[0])


def _require_stored(entity: Repository | Image) -> int:
    if entity.id is None:
        raise ValueError(f"Cannot update unsaved {type(entity).__name__}: {entity!r}")
    return entity.id


class SqlAlchemyRepositoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Repository]:
        rows = self.session.execute(select(repository_table)).all()
        return [_repository_from_row(row) for row in rows]

    def add(self, entity: Repository) -> Repository:
        new_id = _inserted_id(
            self.session,
            repository_table,
            {
                "external_id": entity.external_id,
                "registry": entity.registry,
                "name": entity.name,
                "modified_at": entity.modified_at,
            },
        )
        return replace(entity, id=new_id)

    def update(self, entity: Repository) -> None:
        stmt = (
            update(repository_table)
            .where(repository_table.c.id == _require_stored(entity))
            .values(
                registry=entity.registry,
                name=entity.name,
                modified_at=entity.modified_at,
            )
        )
        self.session.execute(stmt)


class SqlAlchemyImageRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Image]:
        rows = self.session.execute(select(image_table)).all()
        return [_image_from_row(row) for row in rows]

    def add(self, entity: Image) -> Image:
        new_id = _inserted_id(
            self.session,
            image_table,
            {
                "digest": entity.digest,
                "external_id": entity.external_id,
                "modified_at": entity.modified_at,
            },
        )
        return replace(entity, id=new_id)

    def update(self, entity: Image) -> None:
        stmt = (
            update(image_table)
            .where(image_table.c.id == _require_stored(entity))
            .values(external_id=entity.external_id, modified_at=entity.modified_at)
        )
        self.session.execute(stmt)


class SqlAlchemyCveRepository:
    """CVE rows are shared with other writers.

    Names that already exist are skipped without touching the stored row, so a
    concurrent insert of the same name is not an error.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Cve]:
        rows = self.session.execute(select(cve_table)).all()
        return [_cve_from_row(row) for row in rows]

    def create_if_absent(self, entities: Sequence[Cve]) -> list[str]:
        rows = [
            {"name": cve.name, "description": cve.description, "severity": cve.severity}
            for cve in sorted(entities, key=lambda cve: cve.name)
        ]
        if not rows:
            return []

        dialect_insert = _UPSERT_DIALECTS.get(self.session.get_bind().dialect.name)
        if dialect_insert is not None:
            stmt = (
                dialect_insert(cve_table)
                .on_conflict_do_nothing(index_elements=["name"])
                .returning(cve_table.c.name)
            )
            return sorted(self.session.execute(stmt, rows).scalars())

        inserted: list[str] = []
        for row in rows:
            try:
                with self.session.begin_nested():
                    self.session.execute(insert(cve_table).values(**row))
            except IntegrityError:
                log.debug("CVE already present, keeping stored row: %s", row["name"])
            else:
                inserted.append(str(row["name"]))
        return inserted

    def get_by_names(self, names: Iterable[str]) -> list[Cve]:
        wanted = sorted(set(names))
        if not wanted:
            return []
        stmt = select(cve_table).where(cve_table.c.name.in_(wanted)).order_by(cve_table.c.name)
        return [_cve_from_row(row) for row in self.session.execute(stmt).all()]


class _SqlAlchemyAssociationRepository[TPair]:
    """Set semantics over a two-column association table."""

    def __init__(
        self,
        session: Session,
        *,
        table: Table,
        owner: Column[int],
        member: Column[int],
        unpack: Callable[[TPair], tuple[int, int]],
    ) -> None:
        self.session = session
        self._table = table
        self._owner = owner
        self._member = member
        self._unpack = unpack

    def _member_ids(self, owner_id: int) -> set[int]:
        stmt = select(self._member).where(self._owner == owner_id)
        return set(self.session.execute(stmt).scalars())

    def add_all(self, pairs: Sequence[TPair]) -> None:
        if not pairs:
            return
        rows = [
            {self._owner.name: owner_id, self._member.name: member_id}
            for owner_id, member_id in sorted(self._unpack(pair) for pair in pairs)
        ]
        self.session.execute(insert(self._table), rows)

    def remove_all(self, pairs: Sequence[TPair]) -> None:
        by_owner: dict[int, set[int]] = {}
        for owner_id, member_id in (self._unpack(pair) for pair in pairs):
            by_owner.setdefault(owner_id, set()).add(member_id)
        for owner_id in sorted(by_owner):
            stmt = (
                delete(self._table)
                .where(self._owner == owner_id)
                .where(self._member.in_(sorted(by_owner[owner_id])))
            )
            self.session.execute(stmt)


class SqlAlchemyRepositoryImageRepository(_SqlAlchemyAssociationRepository[RepositoryImage]):
    def __init__(self, session: Session) -> None:
        super().__init__(
            session,
            table=repository_image_table,
            owner=repository_image_table.c.repository_id,
            member=repository_image_table.c.image_id,
            unpack=lambda pair: (pair.repository_id, pair.image_id),
        )

    def image_ids(self, repository_id: int) -> set[int]:
        return self._member_ids(repository_id)


class SqlAlchemyImageCveRepository(_SqlAlchemyAssociationRepository[ImageCve]):
    def __init__(self, session: Session) -> None:
        super().__init__(
            session,
            table=image_cve_table,
            owner=image_cve_table.c.image_id,
            member=image_cve_table.c.cve_id,
            unpack=lambda pair: (pair.image_id, pair.cve_id),
        )

    def cve_ids(self, image_id: int) -> set[int]:
        return self._member_ids(image_id)


def _repository_from_row(row: Row[Any]) -> Repository:
    return Repository(
        id=row.id,
        external_id=row.external_id,
        registry=row.registry,
        name=row.name,
        modified_at=row.modified_at,
    )


def _image_from_row(row: Row[Any]) -> Image:
    return Image(
        id=row.id,
        digest=row.digest,
        external_id=row.external_id,
        modified_at=row.modified_at,
    )


def _cve_from_row(row: Row[Any]) -> Cve:
    return Cve(id=row.id, name=row.name, description=row.description, severity=row.severity)


if TYPE_CHECKING:
    from sqlalchemy.orm import Session as _Session

    from catalogsync.domain.ports.persistence import (
        CveRepository,
        ImageCveRepository,
        ImageRepository,
        RepositoryImageRepository,
        RepositoryRepository,
    )

    def _protocol_checks(session: _Session) -> None:
        _repo_check: RepositoryRepository = SqlAlchemyRepositoryRepository(session)
        _image_check: ImageRepository = SqlAlchemyImageRepository(session)
        _cve_check: CveRepository = SqlAlchemyCveRepository(session)
        _ri_check: RepositoryImageRepository = SqlAlchemyRepositoryImageRepository(session)
        _ic_check: ImageCveRepository = SqlAlchemyImageCveRepository(session)
