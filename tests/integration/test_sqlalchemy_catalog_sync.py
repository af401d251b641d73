from __future__ import annotations

from collections.abc import Callable  # noqa: TC003
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from sqlalchemy import insert, select

from catalogsync.adapters.catalog import CatalogClient, HttpCatalogSource
from catalogsync.adapters.http_resilience import ResilientClient
from catalogsync.adapters.sqlalchemy.mappings import (
    cve_table,
    image_cve_table,
    image_table,
    metadata,
    repository_image_table,
    repository_table,
)
from catalogsync.adapters.sqlalchemy.repositories import SqlAlchemyRepositoryImageRepository
from catalogsync.config import CatalogConfig, ResilienceConfig, catalog_resilience
from catalogsync.domain.model import Severity
from catalogsync.domain.profiles import ProfileFilter
from catalogsync.domain.reconciliation import (
    ReconciliationContext,
    ReconciliationEngine,
    SyncCatalogResult,
    run_sync,
)
from tests.helpers.catalog import FakeCatalogSource, at, make_catalog_image, make_catalog_repository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Engine

    from catalogsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from catalogsync.domain.model import RepositoryImage
    from catalogsync.domain.ports.fetching import CatalogSource

pytestmark = pytest.mark.integration


def _run(
    source: CatalogSource,
    factory: Callable[[], SqlAlchemyCatalogUnitOfWork],
    profile: ProfileFilter | None = None,
) -> SyncCatalogResult:
    return run_sync(
        source=source,
        unit_of_work_factory=factory,
        profile=profile or ProfileFilter.unrestricted(),
    )


def _snapshot(engine: Engine) -> dict[str, set[tuple[Any, ...]]]:
    with engine.connect() as connection:
        return {
            table.name: {tuple(row) for row in connection.execute(select(table))}
            for table in metadata.sorted_tables
        }


def _linked_digests(engine: Engine, external_id: str) -> set[str]:
    stmt = (
        select(image_table.c.digest)
        .join(repository_image_table, repository_image_table.c.image_id == image_table.c.id)
        .join(repository_table, repository_table.c.id == repository_image_table.c.repository_id)
        .where(repository_table.c.external_id == external_id)
    )
    with engine.connect() as connection:
        return set(connection.execute(stmt).scalars())


def _cve_names(engine: Engine, digest: str) -> set[str]:
    stmt = (
        select(cve_table.c.name)
        .join(image_cve_table, image_cve_table.c.cve_id == cve_table.c.id)
        .join(image_table, image_table.c.id == image_cve_table.c.image_id)
        .where(image_table.c.digest == digest)
    )
    with engine.connect() as connection:
        return set(connection.execute(stmt).scalars())


def _all_digests(engine: Engine) -> set[str]:
    with engine.connect() as connection:
        return set(connection.execute(select(image_table.c.digest)).scalars())


def test_store_mirrors_catalog_after_changes(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    source = FakeCatalogSource()
    repository = make_catalog_repository("repoA", registry="reg1")
    source.publish(
        repository,
        {
            make_catalog_image("digestX"): {"CVE-1", "CVE-2"},
            make_catalog_image("digestY"): {"CVE-2"},
        },
    )
    _run(source, sqlite_unit_of_work)

    assert _linked_digests(sqlite_engine, "reg1/repoA") == {"digestX", "digestY"}
    assert _cve_names(sqlite_engine, "digestX") == {"CVE-1", "CVE-2"}

    source.publish(
        make_catalog_repository("repoA", registry="reg1", modified_at=at(1)),
        {
            make_catalog_image("digestX", modified_at=at(1)): {"CVE-1"},
            make_catalog_image("digestZ", modified_at=at(1)): {"CVE-3"},
        },
    )
    result = _run(source, sqlite_unit_of_work)

    assert result.synced == 1
    assert _linked_digests(sqlite_engine, "reg1/repoA") == {"digestX", "digestZ"}
    assert _cve_names(sqlite_engine, "digestX") == {"CVE-1"}
    assert _cve_names(sqlite_engine, "digestZ") == {"CVE-3"}
    assert _all_digests(sqlite_engine) == {"digestX", "digestY", "digestZ"}
    with sqlite_engine.connect() as connection:
        stored_modified = connection.execute(
            select(repository_table.c.modified_at).where(
                repository_table.c.external_id == "reg1/repoA"
            )
        ).scalar_one()
    assert stored_modified == at(1)


def test_second_run_is_a_no_op(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    source = FakeCatalogSource()
    source.publish(
        make_catalog_repository("repoA"),
        {make_catalog_image("digestX"): {"CVE-1"}, make_catalog_image("digestY"): set()},
    )
    source.publish(make_catalog_repository("repoB"), {make_catalog_image("digestX"): {"CVE-1"}})
    _run(source, sqlite_unit_of_work)
    before = _snapshot(sqlite_engine)

    result = _run(source, sqlite_unit_of_work)

    assert result.writes.total == 0
    assert _snapshot(sqlite_engine) == before


def test_existing_cve_rows_are_reused_untouched(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    with sqlite_engine.begin() as connection:
        connection.execute(
            insert(cve_table).values(
                name="CVE-1", description="curated", severity=Severity.CRITICAL
            )
        )
    source = FakeCatalogSource()
    source.publish(make_catalog_repository("repoA"), {make_catalog_image("digestX"): {"CVE-1"}})

    result = _run(source, sqlite_unit_of_work)

    assert result.failed == 0
    assert _cve_names(sqlite_engine, "digestX") == {"CVE-1"}
    with sqlite_engine.connect() as connection:
        rows = connection.execute(select(cve_table)).all()
    assert len(rows) == 1
    assert rows[0].severity is Severity.CRITICAL
    assert rows[0].description == "curated"


def test_cve_inserted_by_another_writer_after_cache_load(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    source = FakeCatalogSource()
    repository = make_catalog_repository("repoA")
    source.publish(repository, {make_catalog_image("digestX"): {"CVE-2024-0001", "CVE-NEW"}})
    with sqlite_unit_of_work() as uow:
        context = ReconciliationContext.load(uow.repositories)
    with sqlite_engine.begin() as connection:
        connection.execute(
            insert(cve_table).values(
                name="CVE-2024-0001", description="curated", severity=Severity.CRITICAL
            )
        )
    engine = ReconciliationEngine(source=source, unit_of_work_factory=sqlite_unit_of_work)

    report = engine.sync_repository(context, repository)

    assert report.writes.cves_registered == 1
    assert report.writes.image_cves_inserted == 2
    assert _cve_names(sqlite_engine, "digestX") == {"CVE-2024-0001", "CVE-NEW"}
    with sqlite_engine.connect() as connection:
        rows = {row.name: row for row in connection.execute(select(cve_table))}
    assert set(rows) == {"CVE-2024-0001", "CVE-NEW"}
    assert rows["CVE-2024-0001"].severity is Severity.CRITICAL
    assert rows["CVE-2024-0001"].description == "curated"
    assert rows["CVE-NEW"].severity is Severity.NOT_SET


def test_failing_repository_leaves_no_partial_rows(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    source = FakeCatalogSource()
    source.publish(make_catalog_repository("repoA"), {make_catalog_image("digestA"): {"CVE-A"}})
    source.publish(make_catalog_repository("repoB"), {make_catalog_image("digestB"): {"CVE-B"}})
    source.publish(make_catalog_repository("repoC"), {make_catalog_image("digestA"): {"CVE-A"}})

    original_add_all = SqlAlchemyRepositoryImageRepository.add_all
    monkeypatch.setattr(
        SqlAlchemyRepositoryImageRepository,
        "add_all",
        _fail_for_repository(original_add_all, "repoB"),
    )

    result = _run(source, sqlite_unit_of_work)

    assert result.synced == 2
    assert result.failed == 1
    assert _linked_digests(sqlite_engine, "reg1/repoB") == set()
    assert _all_digests(sqlite_engine) == {"digestA"}
    with sqlite_engine.connect() as connection:
        repository_names = set(connection.execute(select(repository_table.c.name)).scalars())
        cve_names = set(connection.execute(select(cve_table.c.name)).scalars())
    assert repository_names == {"repoA", "repoC"}
    assert cve_names == {"CVE-A"}
    assert _linked_digests(sqlite_engine, "reg1/repoC") == {"digestA"}


def _fail_for_repository(
    original: Callable[[SqlAlchemyRepositoryImageRepository, Sequence[RepositoryImage]], None],
    name: str,
) -> Callable[[SqlAlchemyRepositoryImageRepository, Sequence[RepositoryImage]], None]:
    def add_all(
        self: SqlAlchemyRepositoryImageRepository, pairs: Sequence[RepositoryImage]
    ) -> None:
        repository_ids = {pair.repository_id for pair in pairs}
        names = set(
            self.session.execute(
                select(repository_table.c.name).where(repository_table.c.id.in_(repository_ids))
            ).scalars()
        )
        if name in names:
            raise RuntimeError("link failure")
        original(self, pairs)

    return add_all


def test_http_catalog_end_to_end(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    base_url = "https://catalog.test/api/containers/v1/"

    def page(data: list[dict[str, Any]]) -> dict[str, Any]:
        return {"data": data, "page": 0, "page_size": 100, "total": len(data)}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/containers/v1/")
        if path == "repositories":
            return httpx.Response(
                200,
                json=page(
                    [
                        {
                            "_id": "repo-1",
                            "registry": "registry.access.redhat.com",
                            "repository": "ubi8/ubi",
                            "last_update_date": "2024-01-01T00:00:00Z",
                        }
                    ]
                ),
            )
        if path == "repositories/registry/registry.access.redhat.com/repository/ubi8/ubi/images":
            return httpx.Response(
                200,
                json=page(
                    [
                        {
                            "_id": "img-1",
                            "image_id": "sha256:abc",
                            "last_update_date": "2024-01-01T00:00:00Z",
                        }
                    ]
                ),
            )
        if path == "images/id/img-1/vulnerabilities":
            return httpx.Response(200, json=page([{"cve_id": "CVE-2024-0001"}]))
        return httpx.Response(404, json={"status": 404, "title": "Not Found"})

    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def client_factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, transport=httpx.MockTransport(async_handler))

    config = CatalogConfig(
        resilience=catalog_resilience(base_url, ratelimit=None),
        page_size=100,
    )
    source = HttpCatalogSource(client=CatalogClient(config=config, client_factory=client_factory))

    result = _run(source, sqlite_unit_of_work)

    assert result.synced == 1
    assert _linked_digests(sqlite_engine, "repo-1") == {"sha256:abc"}
    assert _cve_names(sqlite_engine, "sha256:abc") == {"CVE-2024-0001"}
