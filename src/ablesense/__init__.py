"""
Ablesense — static completion index for the Able language.

The ``ablesense`` package scans an Able workspace, its ``lib/`` directory
and any configured standard-library paths, extracts a symbol table for
every ``.abl`` module with a line-oriented scanner, and answers
completion requests from that index, either programmatically or through
a Language Server Protocol server.

Quick start (programmatic API)::

    from ablesense import Ablesense

    client = Ablesense()                                 # reads env vars
    client.index("./project")                            # build the index
    items = client.complete("import ma")                 # module names

Quick start (CLI)::

    ablesense index ./project
    ablesense serve

Configuration override::

    from ablesense import Ablesense, AblesenseConfig

    config = AblesenseConfig(stdlib_paths=("~/able/stdlib",), use_env_path=False)
    client = Ablesense(config=config)
"""

__version__ = "1.0.0"

# Primary public API: the Ablesense facade
from ablesense.client import Ablesense

# Configuration
from ablesense.core.config import AblesenseConfig, LanguageCatalog

# Core data types that callers interact with
from ablesense.core.completion import CompletionCandidate, CompletionKind
from ablesense.core.engine import SymbolTable
from ablesense.core.indexer import IndexResult

# Exception hierarchy
from ablesense.exceptions import (
    AblesenseError,
    ConfigError,
    IndexingError,
    UnknownModuleError,
    WorkspaceNotFoundError,
)


def health(config: AblesenseConfig | None = None) -> dict:
    """
    Return a small status dict for readiness checks (no disk access).

    When *config* is None, uses :meth:`AblesenseConfig.from_env()` for the snapshot.
    """
    cfg = config or AblesenseConfig.from_env()
    return {
        "version": __version__,
        "stdlib_paths": list(cfg.stdlib_paths),
        "use_env_path": cfg.use_env_path,
    }


__all__ = [
    "__version__",
    # Facade
    "Ablesense",
    # Config
    "AblesenseConfig",
    "LanguageCatalog",
    # Data types
    "CompletionCandidate",
    "CompletionKind",
    "IndexResult",
    "SymbolTable",
    # Exceptions
    "AblesenseError",
    "ConfigError",
    "IndexingError",
    "UnknownModuleError",
    "WorkspaceNotFoundError",
    # Status
    "health",
]
