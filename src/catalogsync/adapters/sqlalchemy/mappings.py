"""SQLAlchemy table metadata for the catalog replica."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from catalogsync.domain.model import UNKNOWN_DESCRIPTION, Severity


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


SeverityType = Enum(
    Severity,
    name="severity",
    native_enum=False,
    length=16,
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

repository_table = Table(
    "repository",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String, nullable=False, unique=True),
    Column("registry", String, nullable=False),
    Column("name", String, nullable=False),
    Column("modified_at", UTCDateTime(), nullable=False),
)

image_table = Table(
    "image",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("digest", String, nullable=False, unique=True),
    Column("external_id", String, nullable=False),
    Column("modified_at", UTCDateTime(), nullable=False),
)

cve_table = Table(
    "cve",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, unique=True),
    Column("description", Text, nullable=False, default=UNKNOWN_DESCRIPTION),
    Column("severity", SeverityType, nullable=False, default=Severity.NOT_SET),
)

repository_image_table = Table(
    "repository_image",
    metadata,
    Column(
        "repository_id",
        Integer,
        ForeignKey("repository.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "image_id",
        Integer,
        ForeignKey("image.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)

image_cve_table = Table(
    "image_cve",
    metadata,
    Column("image_id", Integer, ForeignKey("image.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "cve_id",
        Integer,
        ForeignKey("cve.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)
