"""Command line for running queries against JSON resource files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from record_query.catalog import QueryCatalog
from record_query.errors import QueryError
from record_query.metadata import load_type_registry
from record_query.parsing.query_lexer import QueryLexer
from record_query.query_executor import QueryExecutor
from record_query.registry import RegistryManager
from record_query.serializer import Serializer

logger = logging.getLogger(__name__)

_LITERAL_TOKENS = {"STRING", "INTEGER", "FLOAT", "TRUE", "FALSE"}


def _split_statements(content: str) -> list[str]:
    """Split content into statements on semicolons outside string literals."""
    statements = []
    current = []
    quote: str | None = None
    escape_next = False

    for ch in content:
        if escape_next:
            current.append(ch)
            escape_next = False
            continue

        if ch == "\\" and quote:
            current.append(ch)
            escape_next = True
            continue

        if quote:
            if ch == quote:
                quote = None
            current.append(ch)
        elif ch in ("'", '"'):
            quote = ch
            current.append(ch)
        elif ch == ";":
            stmt = "".join(current).strip()
            if stmt:
                statements.append(stmt)
            current = []
        else:
            current.append(ch)

    stmt = "".join(current).strip()
    if stmt:
        statements.append(stmt)

    return statements


def parse_param(text: str) -> tuple[str, Any]:
    """Parse a ``name=value`` command-line parameter.

    The value is read as a query literal (quoted string, number, true or
    false); anything else is taken as a plain string.
    """
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")

    lexer = QueryLexer()
    lexer.build()
    try:
        tokens = lexer.tokenize(raw)
    except SyntaxError:
        return name, raw
    if len(tokens) == 1 and tokens[0].type in _LITERAL_TOKENS:
        tok = tokens[0]
        if tok.type in ("TRUE", "FALSE"):
            return name, tok.type == "TRUE"
        return name, tok.value
    return name, raw


class Session:
    """An executor loaded with a model, resources and named queries."""

    def __init__(self, model_path: Path) -> None:
        type_registry = load_type_registry(model_path)
        self.serializer = Serializer(type_registry)
        self.registries = RegistryManager(type_registry)
        self.catalog = QueryCatalog()
        self.executor = QueryExecutor(self.registries, self.catalog)
        self._lexer = QueryLexer()
        self._lexer.build()

    def load_resources(self, path: Path) -> int:
        """Load a JSON file holding one resource object or a list of them."""
        with open(path) as f:
            data = json.load(f)
        items = data if isinstance(data, list) else [data]
        resources = [self.serializer.from_json(item) for item in items]
        self.registries.add_all(resources)
        logger.info("Loaded %d resources from %s", len(resources), path)
        return len(resources)

    def load_queries(self, path: Path) -> int:
        return len(self.catalog.load_file(path))

    def is_blank(self, statement: str) -> bool:
        """Return whether a statement holds only whitespace and comments."""
        try:
            return not self._lexer.tokenize(statement)
        except SyntaxError:
            return False

    def run(self, statement: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a SELECT statement, or a named query given by name.

        Comments may surround either form.
        """
        tokens = self._lexer.tokenize(statement)
        if not tokens:
            raise SyntaxError("Syntax error at end of input")
        if tokens[0].type == "SELECT":
            query: Any = self.executor.build_query(statement)
        elif len(tokens) == 1 and tokens[0].type == "IDENTIFIER":
            query = tokens[0].value
        else:
            tok = tokens[0] if tokens[0].type != "IDENTIFIER" else tokens[1]
            raise SyntaxError(f"Syntax error at '{tok.value}' (position {tok.lexpos}): expected SELECT or a query name")
        resources = self.executor.query(query, params)
        return [self.serializer.to_json(r) for r in resources]


def print_result(rows: list[dict[str, Any]]) -> None:
    """Print query results as a JSON array."""
    print(json.dumps(rows, indent=2))


def run_file(session: Session, file_path: Path, params: dict[str, Any], verbose: bool = False) -> int:
    """Execute statements from a file.

    Args:
        session: Loaded session to run against
        file_path: Path to the file containing ';'-separated statements
        params: Parameter values shared by all statements
        verbose: If True, print each statement before executing

    Returns:
        0 on success, 1 on error
    """
    try:
        content = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    statements = [s for s in _split_statements(content) if not session.is_blank(s)]
    if not statements:
        print("No statements found in file", file=sys.stderr)
        return 1

    for statement in statements:
        if verbose:
            for i, line in enumerate(statement.split("\n")):
                prefix = ">>> " if i == 0 else "... "
                print(f"{prefix}{line}")
        if not _run_and_print(session, statement, params):
            return 1
    return 0


def run_repl(session: Session, params: dict[str, Any]) -> int:
    """Read statements interactively until EOF or 'exit'."""
    import readline  # noqa: F401 - enables line editing in input()

    print("Record Query. Type 'help' for help, 'exit' to quit.")
    while True:
        try:
            line = input("rq> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not line:
            continue
        lower = line.rstrip(";").lower()
        if lower in ("exit", "quit"):
            return 0
        if lower == "help":
            print_help()
            continue
        if lower == "queries":
            for name in session.catalog.names():
                compiled = session.catalog.resolve(name)
                print(f"{name}  ({compiled.target_type}) {compiled.description}".rstrip())
            continue
        for statement in _split_statements(line):
            if session.is_blank(statement):
                continue
            _run_and_print(session, statement, params)


def print_help() -> None:
    print(
        """Statements:
  SELECT <Type> [WHERE <condition>] [LIMIT n] [SKIP n]
  <query name>              run a named query

Conditions:
  field == 'text'           also !=, <, <=, >, >=
  concept.field == 1.5      dotted paths reach into nested concepts
  field == _$name           parameter, supplied with -p name=value
  a AND (b OR NOT c)

Comments (// and /* */) may lead or follow any statement.

Commands:
  queries                   list named queries
  help                      show this help
  exit                      leave"""
    )


def _run_and_print(session: Session, statement: str, params: dict[str, Any]) -> bool:
    try:
        print_result(session.run(statement, params))
    except SyntaxError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        return False
    except (QueryError, KeyError, TypeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return False
    return True


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Run queries against typed resources loaded from JSON"
    )
    arg_parser.add_argument(
        "model",
        type=Path,
        help="Path to the JSON model metadata file",
    )
    arg_parser.add_argument(
        "data",
        type=Path,
        nargs="*",
        help="JSON files holding resources (an object or a list of objects)",
    )
    arg_parser.add_argument(
        "-q", "--queries",
        type=Path,
        action="append",
        default=[],
        help="Query file with named query definitions (repeatable)",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a single statement and exit",
    )
    arg_parser.add_argument(
        "-n", "--named",
        type=str,
        help="Execute a named query and exit",
    )
    arg_parser.add_argument(
        "-p", "--param",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Parameter value (repeatable)",
    )
    arg_parser.add_argument(
        "-f", "--file",
        type=Path,
        help="Execute ';'-separated statements from a file and exit",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print each statement before executing (for -f/--file)",
    )
    arg_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = arg_parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        params = dict(parse_param(p) for p in args.param)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for path in [args.model, *args.data, *args.queries]:
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    try:
        session = Session(args.model)
        for path in args.data:
            session.load_resources(path)
        for path in args.queries:
            session.load_queries(path)
    except SyntaxError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        return 1
    except (QueryError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1

    if args.file:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}", file=sys.stderr)
            return 1
        return run_file(session, args.file, params, args.verbose)

    statement = args.command or args.named
    if statement:
        return 0 if _run_and_print(session, statement, params) else 1

    return run_repl(session, params)


if __name__ == "__main__":
    sys.exit(main())
