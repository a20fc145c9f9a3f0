"""
Relational access to the source tables.

Exports:
- DbAccess: Engine/connection owner
- TableSchema, Column: Column introspection
- TableData, QueryType: Row and aggregate queries
"""

from qtminer.database.db_access import DbAccess
from qtminer.database.table_schema import Column, TableSchema
from qtminer.database.table_data import QueryType, TableData

__all__ = [
    "DbAccess",
    "Column",
    "TableSchema",
    "QueryType",
    "TableData",
]
