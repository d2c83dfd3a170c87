"""Parser for the table definition DSL.

A definition names a table, its typed columns and optional index and limit
clauses, in either order::

    table trades (id: int64, sym: str, price: float64) index id limit 1000

Keywords are lower case and may also be used as column names.
Without an ``index`` clause the first column is the index; without a
``limit`` clause the configured default limit applies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from dataflow_bridge.errors import ConstructionError
from dataflow_bridge.parsing.table_lexer import TableLexer
from dataflow_bridge.types import DType


@dataclass
class ColumnSpec:
    """A column declaration before type resolution."""

    name: str
    type_name: str


@dataclass
class TableDefinition:
    """A parsed table definition, ready for ``Table.new``."""

    name: str
    column_names: list[str]
    types: list[DType]
    index: str
    limit: int | None = None


class TableDefinitionParser:
    """Parser for table definitions."""

    tokens = TableLexer.tokens
    start = "definition"

    def __init__(self) -> None:
        self.lexer = TableLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_definition(self, p: yacc.YaccProduction) -> None:
        """definition : TABLE IDENTIFIER LPAREN column_list RPAREN clauses
                      | TABLE IDENTIFIER LPAREN column_list COMMA RPAREN clauses"""
        p[0] = (p[2], p[4], p[len(p) - 1])

    def p_column_list_single(self, p: yacc.YaccProduction) -> None:
        """column_list : column"""
        p[0] = [p[1]]

    def p_column_list_multiple(self, p: yacc.YaccProduction) -> None:
        """column_list : column_list COMMA column"""
        p[0] = p[1] + [p[3]]

    def p_column(self, p: yacc.YaccProduction) -> None:
        """column : column_name COLON IDENTIFIER"""
        p[0] = ColumnSpec(name=p[1], type_name=p[3])

    def p_column_name(self, p: yacc.YaccProduction) -> None:
        """column_name : IDENTIFIER
                       | TABLE
                       | INDEX
                       | LIMIT"""
        p[0] = p[1]

    def p_clauses_empty(self, p: yacc.YaccProduction) -> None:
        """clauses : empty"""
        p[0] = {}

    def p_clauses_multiple(self, p: yacc.YaccProduction) -> None:
        """clauses : clauses clause"""
        key, value = p[2]
        if key in p[1]:
            raise SyntaxError(f"Duplicate '{key}' clause")
        p[0] = {**p[1], key: value}

    def p_clause_index(self, p: yacc.YaccProduction) -> None:
        """clause : INDEX column_name"""
        p[0] = ("index", p[2])

    def p_clause_limit(self, p: yacc.YaccProduction) -> None:
        """clause : LIMIT INTEGER"""
        p[0] = ("limit", p[2])

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> TableDefinition:
        """Parse one table definition.

        Raises:
            SyntaxError: If the text is not a well-formed definition.
            ConstructionError: If a column type name is unknown.
        """
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        name, column_specs, clauses = self.parser.parse(data, lexer=self.lexer.lexer)

        types = []
        for spec in column_specs:
            try:
                types.append(DType.from_label(spec.type_name))
            except KeyError:
                raise ConstructionError(
                    f"Unknown type '{spec.type_name}' for column '{spec.name}'"
                ) from None

        column_names = [spec.name for spec in column_specs]
        return TableDefinition(
            name=name,
            column_names=column_names,
            types=types,
            index=clauses.get("index", column_names[0]),
            limit=clauses.get("limit"),
        )
