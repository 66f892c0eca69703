"""
Ablesense Core — configuration, symbol extraction, indexing, and completion.

Re-exports the primary classes for convenience::

    from ablesense.core import AblesenseConfig, WorkspaceIndex, CompletionResolver
"""

from ablesense.core.completion import (
    CompletionCandidate,
    CompletionKind,
    CompletionResolver,
    ResultFormatter,
    classify_context,
)
from ablesense.core.config import AblesenseConfig, LanguageCatalog
from ablesense.core.engine import (
    LineNormalizer,
    SymbolExtractor,
    SymbolTable,
    indent_level,
    parse_symbols,
)
from ablesense.core.indexer import (
    IndexResult,
    ModuleEntry,
    WorkspaceIndex,
    module_name_for,
    resolve_search_roots,
    scan_directory,
)

__all__ = [
    "AblesenseConfig",
    "LanguageCatalog",
    "LineNormalizer",
    "SymbolExtractor",
    "SymbolTable",
    "indent_level",
    "parse_symbols",
    "IndexResult",
    "ModuleEntry",
    "WorkspaceIndex",
    "module_name_for",
    "resolve_search_roots",
    "scan_directory",
    "CompletionCandidate",
    "CompletionKind",
    "CompletionResolver",
    "ResultFormatter",
    "classify_context",
]
