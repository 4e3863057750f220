"""Base Schema Infrastructure.

This module defines the base types, enums, and schema builder classes
used to describe the frames exported by the dashboard engine.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NotRequired, Type, TypedDict, Union

import polars as pl


class EnumLiteral(str, Enum):
    """
    A general base class for string-based enums that behave like literals.
    Ensures compatibility with str comparisons and retains enum benefits.
    """
    def __new__(cls, value, *args, **kwargs):
        obj = str.__new__(cls, value)
        obj._value_ = value
        return obj

    def __str__(self):
        # String representation directly returns the value
        return self.value

    def __eq__(self, other):
        # Allow direct comparison with strings
        if isinstance(other, str):
            return self.value == other
        return super().__eq__(other)

    def __hash__(self):
        # Use the hash of the value to behave like a string in hashable contexts
        return hash(self.value)

    def __repr__(self):
        return self.value


class ColumnSchema(TypedDict):
    """Schema definition for a single column."""
    name: str
    dtype: Union[Type[pl.DataType], pl.DataType]
    description: str
    unit: NotRequired[str]
    constraints: NotRequired[Dict[str, Any]]


class SeriesSchemaDefinition:
    """Schema definition builder for chart series frames.

    Columns are split the same way for every exported frame: service columns
    describe where a point came from, data columns are what a chart plots.
    """

    def __init__(
        self,
        service_columns: List[ColumnSchema],
        data_columns: List[ColumnSchema],
    ) -> None:
        """Initialize schema definition.

        Args:
            service_columns: Metadata columns (e.g., measurement_id, source)
            data_columns: Data columns (e.g., datetime, glucose, band)
        """
        self.service_columns = service_columns
        self.data_columns = data_columns

    def get_polars_schema(self, data_only: bool = False) -> Dict[str, pl.DataType]:
        """Get Polars dtype schema dictionary.

        Args:
            data_only: If True, return only data columns (excludes service columns)

        Returns:
            Dictionary mapping column names to Polars data types
        """
        columns = self.data_columns if data_only else self.service_columns + self.data_columns
        return {col["name"]: col["dtype"] for col in columns}

    def get_column_names(self, data_only: bool = False) -> List[str]:
        """Get list of all column names in schema order."""
        columns = self.data_columns if data_only else self.service_columns + self.data_columns
        return [col["name"] for col in columns]

    def get_cast_expressions(self, data_only: bool = False) -> List[pl.Expr]:
        """Get Polars expressions for casting columns.

        Args:
            data_only: If True, return only data column expressions

        Returns:
            List of pl.col().cast() expressions for use with df.with_columns()
        """
        columns = self.data_columns if data_only else self.service_columns + self.data_columns
        return [pl.col(col["name"]).cast(col["dtype"]) for col in columns]

    def to_table_schema(self) -> Dict[str, Any]:
        """Convert to a Frictionless-style Table Schema dictionary.

        Returns:
            Dictionary with the ``fields`` list
        """
        fields = []

        for col in self.service_columns + self.data_columns:
            entry = {
                "name": col["name"],
                "type": self._polars_to_table_type(col["dtype"]),
                "description": col["description"],
            }
            if col.get("unit"):
                entry["unit"] = col["unit"]
            if col.get("constraints"):
                entry["constraints"] = col["constraints"]
            fields.append(entry)

        return {"fields": fields}

    @staticmethod
    def _polars_to_table_type(dtype: pl.DataType) -> str:
        """Map Polars dtype to a Table Schema type name."""
        # Use isinstance for parameterized types (e.g., pl.Datetime['ms'])
        if isinstance(dtype, pl.Datetime) or dtype == pl.Datetime:
            return "datetime"
        elif isinstance(dtype, pl.Enum):
            return "string"
        elif dtype == pl.Int64 or dtype == pl.Int32:
            return "integer"
        elif dtype == pl.Float64 or dtype == pl.Float32:
            return "number"
        elif dtype == pl.Utf8 or dtype == pl.String:
            return "string"
        elif dtype == pl.Boolean:
            return "boolean"
        else:
            return "string"

    def export_to_json(self, output_path: Union[str, Path]) -> Path:
        """Write the Table Schema to a JSON file and return its path."""
        schema_file = Path(output_path)
        with open(schema_file, "w") as f:
            json.dump(self.to_table_schema(), f, indent=2)
            f.write("\n")
        return schema_file
