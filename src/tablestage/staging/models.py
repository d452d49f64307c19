"""Staging layer models.

Wire-facing models (columns, schemas, catalog entries, file metadata) use
camelCase aliases so they serialize to the JSON the ingestion API expects,
while Python code uses snake_case names.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# === Enums ===


class WriteMode(str, Enum):
    """How the storage backend writes a file into its target table."""

    APPEND = "Append"  # Add new rows to existing table
    MERGE = "Merge"  # Combine data intelligently
    OVERWRITE = "Overwrite"  # Replace current table


class SqlType(str, Enum):
    """Column types accepted by the storage backend."""

    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    BOOLEAN = "BOOLEAN"


class Sensitivity(str, Enum):
    """Data classification of a column."""

    PUBLIC = "Public"
    INTERNAL = "Internal"
    PII = "PII"
    SENSITIVE = "Sensitive"


class ColumnAction(str, Enum):
    """Privacy treatment applied to a column on write."""

    REDACT = "Redact"
    ANONYMIZE = "Anonymize"
    MASK = "Mask"
    DROP = "Drop"


class FileStatus(str, Enum):
    """Lifecycle status of a staged file."""

    STAGED = "staged"
    ENRICHING = "enriching"
    READY = "ready"
    UPLOADING = "uploading"
    COMMITTED = "committed"
    FAILED = "failed"


# === Wire models ===


class WireModel(BaseModel):
    """Base for models exchanged with the ingestion API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class Column(WireModel):
    """One column of a table schema."""

    name: str
    type: SqlType
    nullable: bool = True
    is_primary_key: bool = False
    is_sort_key: bool = False
    comments: str = ""
    sensitivity: Sensitivity = Sensitivity.PUBLIC
    actions: list[ColumnAction] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("actions")
    @classmethod
    def _dedupe_actions(cls, value: list[ColumnAction] | None) -> list[ColumnAction] | None:
        if value is None:
            return None
        return list(dict.fromkeys(value))


class Schema(WireModel):
    """Ordered column list of a table."""

    columns: list[Column]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


class Table(WireModel):
    """A table inside a catalog dataset."""

    id: str
    name: str
    table_schema: Schema | None = Field(default=None, alias="schema")


class Dataset(WireModel):
    """A catalog dataset and its tables."""

    id: str
    name: str
    tables: list[Table] = Field(default_factory=list)

    def get_table(self, name: str) -> Table | None:
        return next((t for t in self.tables if t.name == name), None)


class FileMetadata(WireModel):
    """Target description of a staged file.

    ``None`` means the field was never set, which is distinct from an empty
    string. When used as a partial update, only the fields explicitly passed
    to the constructor (``model_fields_set``) are applied.
    """

    dataset: str | None = None
    table: str | None = None
    write_mode: WriteMode | None = None
    table_schema: Schema | None = Field(default=None, alias="schema")

    def missing_required(self) -> list[str]:
        """Names of required fields that are unset or empty, in wire form."""
        missing = []
        if not self.dataset:
            missing.append("dataset")
        if not self.table:
            missing.append("table")
        if self.write_mode is None:
            missing.append("writeMode")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_required()

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready payload; unset fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# === Staging models ===


class IncomingFile(BaseModel):
    """A candidate file before admission."""

    model_config = ConfigDict(frozen=True)

    name: str
    byte_size: int = Field(ge=0)
    content: Path | bytes = Field(repr=False)

    @classmethod
    def from_path(cls, path: Path) -> IncomingFile:
        """Describe a local file without reading it."""
        return cls(name=path.name, byte_size=path.stat().st_size, content=path)

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> IncomingFile:
        return cls(name=name, byte_size=len(data), content=data)


class StagedFile(BaseModel):
    """A file held in the batch store.

    Immutable: every metadata edit, status move and progress tick produces a
    new instance via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    identity: str
    name: str
    byte_size: int
    content: Path | bytes = Field(repr=False)
    metadata: FileMetadata = Field(default_factory=FileMetadata)
    status: FileStatus = FileStatus.STAGED
    progress: float | None = None
    error: str | None = None
    generation: int = 0

    @property
    def size_mb(self) -> float:
        return self.byte_size / 1024 / 1024
