"""Catalog of named, precompiled queries."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from record_query.compiler import CompiledQuery, QueryCompiler
from record_query.errors import DuplicateQueryError, UnknownQueryError

logger = logging.getLogger(__name__)


class QueryCatalog:
    """Maps query names to queries compiled once, at definition time.

    Populate the catalog while the model is being set up, then hand it to a
    :class:`~record_query.query_executor.QueryExecutor`. Defining a name a
    second time is an error.
    """

    def __init__(self, compiler: QueryCompiler | None = None) -> None:
        self.compiler = compiler or QueryCompiler()
        self._queries: dict[str, CompiledQuery] = {}
        self._lock = threading.Lock()

    def define(self, name: str, target_type: str, template: str, description: str = "") -> CompiledQuery:
        """Compile a template and store it under ``name``.

        Raises:
            DuplicateQueryError: If ``name`` is already defined.
            SyntaxError: If the template is malformed.
        """
        if name in self._queries:
            raise DuplicateQueryError(name)
        compiled = self.compiler.compile_template(name, target_type, template, description)
        self._store([compiled])
        return compiled

    def load(self, text: str) -> list[CompiledQuery]:
        """Define every query of a query file.

        The whole file is compiled before anything is stored, so a syntax
        error or a duplicate name leaves the catalog unchanged.
        """
        compiled = self.compiler.compile_file(text)
        self._store(compiled)
        return compiled

    def load_file(self, path: Path | str) -> list[CompiledQuery]:
        """Define every query of a query file on disk."""
        path = Path(path)
        compiled = self.load(path.read_text())
        logger.info("Loaded %d queries from %s", len(compiled), path)
        return compiled

    def _store(self, compiled: list[CompiledQuery]) -> None:
        with self._lock:
            seen: set[str] = set()
            for query in compiled:
                if query.name in self._queries or query.name in seen:
                    raise DuplicateQueryError(query.name)  # type: ignore[arg-type]
                seen.add(query.name)  # type: ignore[arg-type]
            for query in compiled:
                self._queries[query.name] = query  # type: ignore[index]
                logger.info("Defined query %s on %s", query.name, query.target_type)

    def resolve(self, name: str) -> CompiledQuery:
        """Get a compiled query by name.

        Raises:
            UnknownQueryError: If no query has this name.
        """
        query = self._queries.get(name)
        if query is None:
            raise UnknownQueryError(name)
        return query

    def names(self) -> list[str]:
        """List the defined query names in definition order."""
        return list(self._queries)

    def __contains__(self, name: object) -> bool:
        return name in self._queries

    def __len__(self) -> int:
        return len(self._queries)
