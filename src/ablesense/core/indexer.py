"""
Ablesense Workspace Indexer

Maps Able source files to dotted module names across an ordered list of
search roots and keeps one :class:`SymbolTable` per module for the life
of the owning service (client facade or language server).

- Search roots: workspace root, ``lib/``, configured stdlib paths, ``ABLEPATH``
- Full scans: directory walks off the event loop, concurrent file reads
- Single-document updates: synchronous, so edits apply in arrival order
- Failures degrade to an incomplete index, never to an exception
"""

import asyncio
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from tqdm import tqdm

from ablesense.core.config import AblesenseConfig
from ablesense.core.engine import SymbolTable, merge_symbols, parse_symbols

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


# =============================================================================
# Data Models
# =============================================================================

@dataclass
class ModuleEntry:
    """One indexed module: its dotted name, symbols, and source file."""
    module_name: str
    symbols: SymbolTable
    file_path: str = ""


@dataclass
class IndexResult:
    """Statistics returned by :meth:`WorkspaceIndex.full_scan`."""
    files_scanned: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    """Files with no module name under any search root."""
    errors: int = 0
    modules: int = 0
    roots: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        return asdict(self)


# =============================================================================
# Search Roots
# =============================================================================

def _normalize_path(raw: str, workspace_root: Optional[str]) -> str:
    """Expand ``~`` and resolve relative paths against the workspace root."""
    expanded = os.path.expanduser(raw)
    if not os.path.isabs(expanded) and workspace_root:
        expanded = os.path.join(workspace_root, expanded)
    return os.path.abspath(expanded)


def env_search_paths(config: AblesenseConfig,
                     environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Entries of the ``ABLEPATH``-style variable, or ``[]`` when disabled."""
    if not config.use_env_path:
        return []
    env = os.environ if environ is None else environ
    raw = env.get(config.env_path_var, "")
    return [p for p in raw.split(os.pathsep) if p]


def resolve_search_roots(workspace_root: Optional[PathLike],
                         config: AblesenseConfig,
                         environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """
    Build the ordered, de-duplicated list of search roots.

    Priority: workspace root, its ``lib`` subdirectory, configured stdlib
    paths, then the environment path list.  Everything after the
    workspace root is included only if it exists on disk.
    """
    roots: Dict[str, None] = {}
    root = os.path.abspath(os.fspath(workspace_root)) if workspace_root else None

    if root:
        roots[root] = None
        lib_root = os.path.join(root, config.lib_dir_name)
        if os.path.isdir(lib_root):
            roots[lib_root] = None

    for raw in (*config.stdlib_paths, *env_search_paths(config, environ)):
        resolved = _normalize_path(raw, root)
        if os.path.isdir(resolved):
            roots[resolved] = None
        else:
            logger.debug(f"Ignoring missing search path: {resolved}")

    return [Path(r) for r in roots]


def module_name_for(file_path: PathLike, search_roots: List[Path],
                    config: AblesenseConfig) -> Optional[str]:
    """
    Dotted module name of *file_path*, or ``None`` if it is not indexable.

    The first search root that contains the file decides the name.
    ``pkg/__init__.abl`` names ``pkg``; ``pkg/util.abl`` names ``pkg.util``.
    """
    path = Path(os.path.abspath(os.fspath(file_path)))
    for root in search_roots:
        try:
            relative = path.relative_to(root)
        except ValueError:
            continue

        parts = list(relative.parts)
        if not parts or not parts[-1].endswith(config.source_extension):
            return None

        if parts[-1] == config.package_init:
            parts.pop()
        else:
            parts[-1] = parts[-1][: -len(config.source_extension)]

        if not parts:
            return None
        return ".".join(parts)
    return None


def scan_directory(root_path: PathLike, config: Optional[AblesenseConfig] = None) -> List[Path]:
    """
    Recursively collect Able source files under *root_path*.

    Uses :func:`os.walk` with early pruning so hidden entries and
    housekeeping directories (``.git``, ``node_modules``, ``dist`` ...)
    are never entered.  Directory errors are logged, not raised.
    """
    cfg = config or AblesenseConfig()
    exclude = cfg.exclude_dirs
    max_bytes = cfg.max_file_bytes
    source_files: List[Path] = []

    def _on_error(err: OSError) -> None:
        logger.warning(f"Failed to scan {err.filename}: {err}")

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
        dirnames[:] = [
            d for d in dirnames
            if not d.startswith(".") and d not in exclude
        ]

        for fname in filenames:
            if fname.startswith(".") or not fname.endswith(cfg.source_extension):
                continue

            full = os.path.join(dirpath, fname)
            if max_bytes is None:
                source_files.append(Path(full))
                continue

            try:
                size = os.path.getsize(full)
            except OSError as e:
                logger.warning(f"Failed to stat {full}: {e}")
                continue

            if size <= max_bytes:
                source_files.append(Path(full))
            else:
                logger.warning(
                    f"Skipping large file: {full} ({size / (1024 * 1024):.1f}MB)"
                )

    source_files.sort()
    return source_files


# =============================================================================
# Workspace Index
# =============================================================================

class WorkspaceIndex:
    """
    Module name -> :class:`ModuleEntry` map for one workspace session.

    Owned by whoever constructs it and handed to the completion
    resolver by reference.  When two files resolve to the same module
    name the last one parsed keeps the slot.
    """

    def __init__(self, config: Optional[AblesenseConfig] = None,
                 workspace_root: Optional[PathLike] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config: Configuration snapshot.  Defaults to ``AblesenseConfig()``.
            workspace_root: Root directory of the open workspace, if any.
            environ: Environment used for the search path variable.
                     Defaults to :data:`os.environ` at resolution time.
        """
        self._config = config or AblesenseConfig()
        self._environ = environ
        self._workspace_root: Optional[Path] = None
        self._search_roots: List[Path] = []
        self._modules: Dict[str, ModuleEntry] = {}
        self._module_by_file: Dict[str, str] = {}
        self.configure(workspace_root=workspace_root)

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> AblesenseConfig:
        return self._config

    @property
    def workspace_root(self) -> Optional[Path]:
        return self._workspace_root

    @property
    def search_roots(self) -> List[Path]:
        return list(self._search_roots)

    def configure(self, *, workspace_root: Optional[PathLike] = None,
                  config: Optional[AblesenseConfig] = None) -> List[Path]:
        """Update the workspace root and/or config and recompute search roots."""
        if workspace_root is not None:
            self._workspace_root = Path(os.path.abspath(os.fspath(workspace_root)))
        if config is not None:
            self._config = config
        self._search_roots = resolve_search_roots(
            self._workspace_root, self._config, self._environ,
        )
        logger.debug(f"Search roots: {[str(r) for r in self._search_roots]}")
        return self.search_roots

    def compute_module_name(self, file_path: PathLike) -> Optional[str]:
        """Dotted module name for *file_path* under the current search roots."""
        return module_name_for(file_path, self._search_roots, self._config)

    # ── Queries ───────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, module_name: object) -> bool:
        return module_name in self._modules

    def get(self, module_name: str) -> Optional[ModuleEntry]:
        return self._modules.get(module_name)

    def entry_for_path(self, file_path: PathLike) -> Optional[ModuleEntry]:
        """The entry of the module *file_path* resolves to, if indexed."""
        module_name = self.compute_module_name(file_path)
        if not module_name:
            return None
        return self._modules.get(module_name)

    def module_names(self) -> List[str]:
        return list(self._modules)

    def entries(self) -> List[ModuleEntry]:
        return list(self._modules.values())

    def module_for_file(self, file_path: PathLike) -> Optional[str]:
        """Module name last stored for *file_path* (by scan or update)."""
        return self._module_by_file.get(os.path.abspath(os.fspath(file_path)))

    def merged_symbols(self) -> SymbolTable:
        """Functions, classes, variables and methods across every module."""
        combined = SymbolTable()
        for entry in self._modules.values():
            merge_symbols(combined, entry.symbols)
        return combined

    # ── Mutation ──────────────────────────────────────────────────

    def clear(self) -> None:
        self._modules.clear()
        self._module_by_file.clear()

    def _store(self, module_name: str, file_path: str, symbols: SymbolTable) -> None:
        self._modules[module_name] = ModuleEntry(module_name, symbols, file_path)
        self._module_by_file[file_path] = module_name

    def update_one(self, file_path: PathLike, text: str) -> Optional[str]:
        """
        Re-parse one document and replace its module entry.

        Returns the module name, or ``None`` when the file is outside
        every search root (nothing is stored in that case).
        """
        module_name = self.compute_module_name(file_path)
        if not module_name:
            return None
        full = os.path.abspath(os.fspath(file_path))
        self._store(module_name, full, parse_symbols(text))
        logger.debug(f"Updated {module_name} from {full}")
        return module_name

    async def full_scan(self, show_progress: bool = False) -> IndexResult:
        """
        Rebuild the index from disk.

        Steps:
          1. Clear the index
          2. Walk every search root (in a worker thread)
          3. Read and parse every discovered file as concurrent tasks

        A file that cannot be read or decoded is logged and left out.
        """
        self.clear()
        result = IndexResult(roots=[str(r) for r in self._search_roots])
        if not self._search_roots:
            return result

        files: Dict[Path, None] = {}
        for root in self._search_roots:
            try:
                found = await asyncio.to_thread(scan_directory, root, self._config)
            except OSError as e:
                logger.warning(f"Failed to scan {root}: {e}")
                result.errors += 1
                continue
            files.update(dict.fromkeys(found))

        result.files_scanned = len(files)
        semaphore = asyncio.Semaphore(self._config.max_concurrent_reads)

        with tqdm(total=len(files), desc="Indexing modules", unit="file",
                  disable=not show_progress) as pbar:

            async def _index(path: Path) -> None:
                try:
                    await self._index_file(path, semaphore, result)
                finally:
                    pbar.update(1)

            await asyncio.gather(*(_index(path) for path in files))

        result.modules = len(self._modules)
        logger.info(
            f"Indexed {result.files_indexed} files into {result.modules} modules "
            f"({result.files_skipped} skipped, {result.errors} errors)"
        )
        return result

    async def _index_file(self, path: Path, semaphore: asyncio.Semaphore,
                          result: IndexResult) -> None:
        module_name = self.compute_module_name(path)
        if not module_name:
            result.files_skipped += 1
            return

        try:
            async with semaphore:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            result.errors += 1
            return

        self._store(module_name, os.path.abspath(path), parse_symbols(text))
        result.files_indexed += 1
