"""Tests for staging models and their wire format."""

import pytest
from pydantic import ValidationError

from tablestage.core.config import MEBIBYTE
from tablestage.staging.models import (
    Column,
    ColumnAction,
    Dataset,
    FileMetadata,
    IncomingFile,
    Schema,
    SqlType,
    StagedFile,
    WriteMode,
)


class TestColumn:
    """Tests for Column validation."""

    def test_from_wire(self):
        column = Column.model_validate(
            {"name": "id", "type": "INTEGER", "isPrimaryKey": True, "isSortKey": True}
        )
        assert column.type == SqlType.INTEGER
        assert column.is_primary_key
        assert column.is_sort_key
        assert column.nullable

    def test_type_is_normalized(self):
        assert Column(name="note", type=" varchar ").type == SqlType.VARCHAR

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Column(name="x", type="GEOMETRY")

    def test_actions_deduplicated(self):
        column = Column(name="email", type="TEXT", actions=["Mask", "Redact", "Mask"])
        assert column.actions == [ColumnAction.MASK, ColumnAction.REDACT]


class TestFileMetadata:
    """Tests for FileMetadata completeness and serialization."""

    def test_missing_required_on_empty(self):
        assert FileMetadata().missing_required() == ["dataset", "table", "writeMode"]

    def test_empty_string_counts_as_missing(self):
        metadata = FileMetadata(dataset="", table="orders", write_mode=WriteMode.MERGE)
        assert metadata.missing_required() == ["dataset"]
        assert not metadata.is_complete

    def test_complete(self):
        metadata = FileMetadata(dataset="finance", table="orders", write_mode=WriteMode.OVERWRITE)
        assert metadata.is_complete

    def test_to_wire_omits_unset_fields(self):
        metadata = FileMetadata(dataset="finance", table="orders", write_mode=WriteMode.APPEND)
        assert metadata.to_wire() == {
            "dataset": "finance",
            "table": "orders",
            "writeMode": "Append",
        }

    def test_to_wire_schema_uses_camel_case(self):
        schema = Schema(columns=[Column(name="id", type="INTEGER", is_primary_key=True)])
        wire = FileMetadata(dataset="finance", table_schema=schema).to_wire()

        column = wire["schema"]["columns"][0]
        assert column["isPrimaryKey"] is True
        assert column["type"] == "INTEGER"
        assert "actions" not in column

    def test_from_wire(self):
        metadata = FileMetadata.model_validate(
            {
                "dataset": "finance",
                "table": "orders",
                "writeMode": "Merge",
                "schema": {"columns": [{"name": "id", "type": "bigint"}]},
            }
        )
        assert metadata.write_mode == WriteMode.MERGE
        assert metadata.table_schema is not None
        assert metadata.table_schema.column_names == ["id"]

    def test_partial_update_tracks_set_fields(self):
        assert FileMetadata(dataset="finance").model_fields_set == {"dataset"}

    def test_frozen(self):
        metadata = FileMetadata(dataset="finance")
        with pytest.raises(ValidationError):
            metadata.dataset = "sales"


class TestCatalogModels:
    """Tests for Dataset and Table."""

    def test_numeric_ids_become_strings(self):
        dataset = Dataset.model_validate(
            {"id": 1, "name": "finance", "tables": [{"id": 7, "name": "orders"}]}
        )
        assert dataset.id == "1"
        assert dataset.tables[0].id == "7"

    def test_get_table(self):
        dataset = Dataset(id="1", name="finance", tables=[{"id": "t1", "name": "orders"}])
        assert dataset.get_table("orders").id == "t1"
        assert dataset.get_table("missing") is None


class TestIncomingFile:
    """Tests for IncomingFile constructors."""

    def test_from_path(self, tmp_path):
        path = tmp_path / "sales_2024.csv"
        path.write_bytes(b"id,amount\n1,10\n")

        incoming = IncomingFile.from_path(path)

        assert incoming.name == "sales_2024.csv"
        assert incoming.byte_size == 15
        assert incoming.content == path

    def test_from_bytes(self):
        incoming = IncomingFile.from_bytes("events.csv", b"abc")
        assert incoming.byte_size == 3
        assert incoming.content == b"abc"

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            IncomingFile(name="x.csv", byte_size=-1, content=b"")


class TestStagedFile:
    """Tests for StagedFile."""

    def test_size_mb(self):
        file = StagedFile(identity="a.csv", name="a.csv", byte_size=50 * MEBIBYTE, content=b"")
        assert file.size_mb == 50.0

    def test_defaults(self):
        file = StagedFile(identity="a.csv", name="a.csv", byte_size=1, content=b"x")
        assert file.progress is None
        assert file.error is None
        assert not file.metadata.is_complete
