"""Parsing module for the table definition DSL."""

from dataflow_bridge.parsing.table_parser import ColumnSpec, TableDefinition, TableDefinitionParser

__all__ = [
    "ColumnSpec",
    "TableDefinition",
    "TableDefinitionParser",
]
