"""
Ablesense Client Facade

Single entry point for programmatic use.  One client owns one workspace
index and one completion resolver; nothing is shared between clients.

Usage::

    from ablesense import Ablesense

    client = Ablesense()                       # config from env vars
    result = client.index("./myproject")
    print(f"Indexed {result.modules} modules")

    # Completion for the text left of the cursor
    for c in client.complete("user.", path="./myproject/app.abl"):
        print(c.label, c.kind.value)

    # Async variant (for callers already running an event loop)
    result = await client.aindex("./myproject")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from ablesense.core.completion import CompletionCandidate, CompletionResolver
from ablesense.core.config import AblesenseConfig
from ablesense.core.engine import SymbolTable, parse_symbols
from ablesense.core.indexer import IndexResult, PathLike, WorkspaceIndex
from ablesense.exceptions import IndexingError, UnknownModuleError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)


class Ablesense:
    """
    High-level Ablesense client.

    Args:
        config: Explicit configuration object.  When *None*, a config is
            built from environment variables plus keyword overrides.
        validate_on_init: If True, call :meth:`AblesenseConfig.validate`
            right away so bad settings surface before the first scan.
        **kwargs: Forwarded to :class:`AblesenseConfig` when *config* is
            ``None`` (e.g. ``use_env_path=False``).
    """

    def __init__(
        self,
        config: AblesenseConfig | None = None,
        *,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            base = AblesenseConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = AblesenseConfig(**merged)
        else:
            self._config = AblesenseConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._index = WorkspaceIndex(self._config)
        self._resolver = CompletionResolver(self._index)

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> AblesenseConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def index_(self) -> WorkspaceIndex:
        """The workspace index owned by this client."""
        return self._index

    @property
    def resolver(self) -> CompletionResolver:
        return self._resolver

    # ── Indexing ──────────────────────────────────────────────────

    def _set_workspace(self, workspace: PathLike | None) -> None:
        if workspace is None:
            return
        root = Path(workspace)
        if not root.is_dir():
            raise WorkspaceNotFoundError(f"Workspace directory not found: {root}")
        self._index.configure(workspace_root=root)

    def index(self, workspace: PathLike | None = None, *,
              show_progress: bool = False) -> IndexResult:
        """
        Scan every search root of *workspace* and rebuild the index.

        Args:
            workspace: Workspace root.  When omitted the previously
                configured root (if any) is rescanned.
            show_progress: Show a tqdm progress bar.

        Raises:
            WorkspaceNotFoundError: If *workspace* is not a directory.
        """
        import asyncio

        self._set_workspace(workspace)
        try:
            return asyncio.run(self._index.full_scan(show_progress=show_progress))
        except RuntimeError as e:
            raise IndexingError(f"Workspace scan failed: {e}") from e

    async def aindex(self, workspace: PathLike | None = None, *,
                     show_progress: bool = False) -> IndexResult:
        """Async variant of :meth:`index`. Raises same exceptions as sync."""
        self._set_workspace(workspace)
        return await self._index.full_scan(show_progress=show_progress)

    def reindex(self) -> IndexResult:
        """Rescan the current search roots."""
        return self.index()

    def update(self, path: PathLike, text: str | None = None) -> Optional[str]:
        """
        Re-parse one file into the index (unsaved *text* wins over disk).

        Returns the module name, or ``None`` if the file is outside every
        search root.
        """
        if text is None:
            text = Path(path).read_text(encoding="utf-8")
        return self._index.update_one(path, text)

    # ── Lookups ───────────────────────────────────────────────────

    def symbols(self, path: PathLike) -> SymbolTable:
        """Parse *path* directly, without touching the index."""
        return parse_symbols(Path(path).read_text(encoding="utf-8"))

    def exports(self, module_name: str) -> SymbolTable:
        """
        Symbol table of an indexed module.

        Raises:
            UnknownModuleError: If *module_name* is not indexed.
        """
        entry = self._index.get(module_name)
        if entry is None:
            raise UnknownModuleError(f"Module not indexed: {module_name}")
        return entry.symbols

    # ── Completion ────────────────────────────────────────────────

    def complete(self, line_text: str, *,
                 path: PathLike | None = None) -> List[CompletionCandidate]:
        """Candidates for a cursor whose line reads *line_text* so far."""
        return self._resolver.resolve(line_text, path)

    def complete_at(self, path: PathLike, line: int, column: int, *,
                    text: str | None = None) -> List[CompletionCandidate]:
        """
        Candidates at a zero-based ``(line, column)`` in *path*.

        The document is first re-parsed into the index (from *text* when
        given, else from disk), as an editor would on open.
        """
        if text is None:
            text = Path(path).read_text(encoding="utf-8")
        self._index.update_one(path, text)

        lines = text.splitlines()
        current = lines[line] if 0 <= line < len(lines) else ""
        return self.complete(current[:column], path=os.path.abspath(path))

    # ── Health ────────────────────────────────────────────────────

    def health(self) -> dict:
        """Small status dict for status endpoints (no disk access)."""
        from ablesense import __version__

        return {
            "version": __version__,
            "workspace_root": str(self._index.workspace_root or ""),
            "search_roots": [str(r) for r in self._index.search_roots],
            "modules": len(self._index),
        }
