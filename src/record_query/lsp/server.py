"""Query file language server: diagnostics, completion and hover via pygls."""

from __future__ import annotations

import re

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from record_query.compiler import QueryCompiler

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "query": "Declare a named query: query <name> { description: ... statement: ... }",
    "select": "Choose the resource type to query",
    "where": "Filter clause that restricts resources by a condition",
    "and": "Logical AND in conditions",
    "or": "Logical OR in conditions",
    "not": "Logical negation in conditions",
    "limit": "Return at most N resources",
    "skip": "Skip the first N matching resources",
    "true": "Boolean literal",
    "false": "Boolean literal",
    "description": "Human-readable summary of a named query",
    "statement": "The SELECT statement of a named query",
}


# Regex to extract position from parser error messages
_POSITION_RE = re.compile(r"(?:at position|\(position) (\d+)")

# Regex to find resource type names after SELECT
_QUERY_TYPE_RE = re.compile(r"\bselect\s+([\w.]+)", re.IGNORECASE)

# Regex to find parameter references
_PARAMETER_RE = re.compile(r"_\$(\w+)")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def lexpos_to_position(source: str, lexpos: int) -> types.Position:
    """Convert a character offset into an LSP ``Position(line, character)``."""
    line = source.count("\n", 0, lexpos)
    last_nl = source.rfind("\n", 0, lexpos)
    character = lexpos if last_nl == -1 else lexpos - last_nl - 1
    return types.Position(line=line, character=character)


def _extract_position_from_error(message: str) -> int | None:
    """Return the integer position embedded in a SyntaxError message, or None."""
    m = _POSITION_RE.search(message)
    return int(m.group(1)) if m else None


def _find_query_types(source: str) -> list[str]:
    """Return the distinct resource type names queried in *source*."""
    return list(dict.fromkeys(m.group(1) for m in _QUERY_TYPE_RE.finditer(source)))


def _find_parameters(source: str) -> list[str]:
    """Return the distinct parameter names referenced in *source*."""
    return list(dict.fromkeys(m.group(1) for m in _PARAMETER_RE.finditer(source)))


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    ch = line_text[character]
    if not (ch.isalnum() or ch == "_"):
        return ""
    # Scan left
    left = character
    while left > 0 and (line_text[left - 1].isalnum() or line_text[left - 1] == "_"):
        left -= 1
    # Scan right
    right = character
    while right < len(line_text) and (line_text[right].isalnum() or line_text[right] == "_"):
        right += 1
    return line_text[left:right]


def validate_source(source: str, compiler: QueryCompiler) -> list[types.Diagnostic]:
    """Compile a query file and return a diagnostic for its first syntax error."""
    try:
        compiler.compile_file(source)
    except SyntaxError as exc:
        msg = str(exc)
        pos_int = _extract_position_from_error(msg)
        if pos_int is not None:
            start = lexpos_to_position(source, pos_int)
        else:
            # Fallback: end of document
            lines = source.split("\n")
            start = types.Position(line=max(len(lines) - 1, 0), character=0)
        end = types.Position(line=start.line, character=start.character + 1)
        return [
            types.Diagnostic(
                range=types.Range(start=start, end=end),
                severity=types.DiagnosticSeverity.Error,
                source="qry",
                message=msg,
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("qry-language-server", "0.1.0")
_compiler = QueryCompiler()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    diagnostics = validate_source(doc.source, _compiler)
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[" ", "$"]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line_text = doc.lines[params.position.line] if params.position.line < len(doc.lines) else ""
    prefix = line_text[: params.position.character]

    items: list[types.CompletionItem] = []

    if prefix.endswith("_$"):
        # Parameter context: offer parameters already used in the document
        for name in _find_parameters(doc.source):
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Variable,
                    detail="Query parameter",
                )
            )
    elif prefix.rstrip().lower().endswith("select"):
        for name in _find_query_types(doc.source):
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Class,
                    detail="Resource type",
                )
            )
    else:
        for name, desc in KEYWORDS.items():
            items.append(
                types.CompletionItem(
                    label=name.upper() if name not in ("description", "statement") else name,
                    kind=types.CompletionItemKind.Keyword,
                    detail=desc,
                )
            )

    return types.CompletionList(is_incomplete=False, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    line_text = doc.lines[params.position.line]
    word = _word_at_position(line_text, params.position.character)
    if not word:
        return None

    lower = word.lower()
    if lower not in KEYWORDS:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=f"**{lower}**: {KEYWORDS[lower]}",
        )
    )


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
