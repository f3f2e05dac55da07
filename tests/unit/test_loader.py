"""Tests for loading export documents."""

import json
from datetime import datetime, timezone

import pytest

from tenantdb.exceptions import DocumentLoadError
from tenantdb.schema.exporter import write_document
from tenantdb.schema.loader import document_from_dict, load_document
from tenantdb.schema.models import ColumnDescriptor, ConstraintDescriptor


def document_data(**overrides) -> dict:
    data = {
        "database": "shop",
        "timestamp": "2024-05-01T10:20:30.123Z",
        "tables": [
            {
                "name": "users",
                "schema": [
                    {
                        "column_name": "id",
                        "data_type": "integer",
                        "character_maximum_length": None,
                        "is_nullable": "NO",
                        "column_default": None,
                    },
                    {
                        "column_name": "name",
                        "data_type": "character varying",
                        "character_maximum_length": 100,
                        "is_nullable": "YES",
                        "column_default": None,
                    },
                ],
                "data": [{"id": 1, "name": "Ann"}],
                "constraints": [
                    {"constraint_name": "users_pkey", "constraint_type": "PRIMARY KEY"}
                ],
            }
        ],
    }
    data.update(overrides)
    return data


class TestDocumentFromDict:
    def test_parses_full_document(self):
        document = document_from_dict(document_data())

        assert document.database == "shop"
        assert document.timestamp == datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)
        users = document.get_table("users")
        assert users.columns[1] == ColumnDescriptor("name", "character varying", 100, True, None)
        assert users.rows == [{"id": 1, "name": "Ann"}]
        assert users.constraints == [ConstraintDescriptor("users_pkey", "PRIMARY KEY")]

    def test_round_trips_to_dict(self):
        data = document_data()
        assert document_from_dict(data).to_dict() == data

    def test_tables_may_be_empty(self):
        assert document_from_dict(document_data(tables=[])).tables == []

    def test_not_an_object(self):
        with pytest.raises(DocumentLoadError, match="must be an object"):
            document_from_dict(["shop"])

    def test_unknown_document_field(self):
        with pytest.raises(DocumentLoadError, match="Unknown field"):
            document_from_dict(document_data(version=2))

    def test_missing_database(self):
        data = document_data()
        del data["database"]
        with pytest.raises(DocumentLoadError, match="database"):
            document_from_dict(data)

    def test_missing_timestamp(self):
        data = document_data()
        del data["timestamp"]
        with pytest.raises(DocumentLoadError, match="timestamp"):
            document_from_dict(data)

    def test_invalid_timestamp(self):
        with pytest.raises(DocumentLoadError, match="Invalid timestamp"):
            document_from_dict(document_data(timestamp="yesterday"))

    def test_datetime_timestamp_is_accepted(self):
        document = document_from_dict(document_data(timestamp=datetime(2024, 5, 1, 10, 0)))
        assert document.timestamp == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_unknown_table_field(self):
        data = document_data()
        data["tables"][0]["indexes"] = []
        with pytest.raises(DocumentLoadError, match="table definition"):
            document_from_dict(data)

    def test_unknown_column_field(self):
        data = document_data()
        data["tables"][0]["schema"][0]["ordinal_position"] = 1
        with pytest.raises(DocumentLoadError, match="column definition"):
            document_from_dict(data)

    def test_missing_table_name(self):
        data = document_data()
        del data["tables"][0]["name"]
        with pytest.raises(DocumentLoadError, match="'name'"):
            document_from_dict(data)

    def test_column_missing_data_type(self):
        data = document_data()
        del data["tables"][0]["schema"][0]["data_type"]
        with pytest.raises(DocumentLoadError, match="data_type"):
            document_from_dict(data)

    def test_duplicate_table_names(self):
        data = document_data()
        data["tables"].append(dict(data["tables"][0]))
        with pytest.raises(DocumentLoadError, match="Duplicate table name 'users'"):
            document_from_dict(data)

    def test_duplicate_column_names(self):
        data = document_data()
        data["tables"][0]["schema"].append(dict(data["tables"][0]["schema"][0]))
        with pytest.raises(DocumentLoadError, match="Duplicate column name 'id'"):
            document_from_dict(data)

    def test_row_must_be_object(self):
        data = document_data()
        data["tables"][0]["data"] = [[1, "Ann"]]
        with pytest.raises(DocumentLoadError, match="Row in table 'users'"):
            document_from_dict(data)

    def test_constraint_missing_type(self):
        data = document_data()
        data["tables"][0]["constraints"] = [{"constraint_name": "users_pkey"}]
        with pytest.raises(DocumentLoadError, match="missing name or type"):
            document_from_dict(data)

    def test_database_must_be_string(self):
        with pytest.raises(DocumentLoadError, match="'database' must be a string"):
            document_from_dict(document_data(database=5))

    def test_tables_must_be_list(self):
        with pytest.raises(DocumentLoadError, match="'tables' must be a list"):
            document_from_dict(document_data(tables={"users": {}}))

    def test_table_entry_must_be_object(self):
        with pytest.raises(DocumentLoadError, match="Table entry must be an object"):
            document_from_dict(document_data(tables=["users"]))

    def test_table_name_must_be_string(self):
        data = document_data()
        data["tables"][0]["name"] = ["users"]
        with pytest.raises(DocumentLoadError, match="Table name must be a string"):
            document_from_dict(data)

    @pytest.mark.parametrize("field", ["schema", "data", "constraints"])
    def test_table_sections_must_be_lists(self, field):
        data = document_data()
        data["tables"][0][field] = "x"
        with pytest.raises(DocumentLoadError, match=f"'{field}' of table 'users' must be a list"):
            document_from_dict(data)

    def test_null_sections_are_empty(self):
        data = document_data()
        data["tables"][0]["data"] = None
        data["tables"][0]["constraints"] = None
        users = document_from_dict(data).get_table("users")
        assert users.rows == []
        assert users.constraints == []

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("column_name", 5, "Column name in table 'users' must be a string"),
            ("data_type", 5, "data_type must be a string"),
            ("is_nullable", "maybe", "is_nullable must be 'YES' or 'NO'"),
            ("character_maximum_length", "100", "character_maximum_length must be an integer"),
            ("character_maximum_length", True, "character_maximum_length must be an integer"),
            ("column_default", 0, "column_default must be a string"),
        ],
    )
    def test_column_field_types(self, field, value, message):
        data = document_data()
        data["tables"][0]["schema"][0][field] = value
        with pytest.raises(DocumentLoadError, match=message):
            document_from_dict(data)

    def test_column_entry_must_be_object(self):
        data = document_data()
        data["tables"][0]["schema"] = ["id"]
        with pytest.raises(DocumentLoadError, match="Column entry in table 'users'"):
            document_from_dict(data)

    def test_constraint_fields_must_be_strings(self):
        data = document_data()
        data["tables"][0]["constraints"] = [
            {"constraint_name": "users_pkey", "constraint_type": 1}
        ]
        with pytest.raises(DocumentLoadError, match="must be strings"):
            document_from_dict(data)


class TestLoadDocument:
    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentLoadError, match="does not exist"):
            load_document(tmp_path / "nope.json")

    def test_load_json(self, tmp_path):
        path = tmp_path / "shop.json"
        path.write_text(json.dumps(document_data()))
        assert load_document(path).table_names() == ["users"]

    def test_load_yaml_written_by_exporter(self, tmp_path):
        original = document_from_dict(document_data())
        path = write_document(original, tmp_path / "shop.yaml")

        loaded = load_document(path)

        assert loaded.to_dict() == original.to_dict()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(DocumentLoadError, match="Cannot parse"):
            load_document(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("database: [unclosed")
        with pytest.raises(DocumentLoadError, match="Cannot parse"):
            load_document(path)

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        with pytest.raises(DocumentLoadError, match="Empty export file"):
            load_document(path)
