"""
Ablesense Configuration Module

Centralized configuration for the Able workspace indexer and completion
engine, plus the static language catalog (keywords, built-in types,
functions, modules and decorators) that completion draws from.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Tuple

from ablesense.exceptions import ConfigError

_TRUTHY = ("1", "true", "yes", "on")


# =============================================================================
# Instance-Based Configuration
# =============================================================================

@dataclass(frozen=True)
class AblesenseConfig:
    """
    Instance-based configuration for Ablesense.

    Each instance is self-contained and is passed to the objects that
    need it (index, resolver, server), so tests and embedders can run
    several configurations side by side.

    Create from environment variables::

        config = AblesenseConfig.from_env()

    Or with explicit values::

        config = AblesenseConfig(stdlib_paths=("~/able/stdlib",), use_env_path=False)

    Editor settings (the ``able`` section) are layered on top with
    :meth:`with_settings`, which returns a new instance.
    """

    # ── Source Files ──────────────────────────────────────────────
    source_extension: str = ".abl"
    package_init: str = "__init__.abl"
    exclude_dirs: frozenset = frozenset((
        ".git", ".vscode", "build", "coverage",
        "dist", "node_modules", "out", "vendor",
    ))
    max_file_size_mb: Optional[int] = None
    """Skip files larger than this; ``None`` indexes every file."""

    # ── Search Roots ──────────────────────────────────────────────
    lib_dir_name: str = "lib"
    stdlib_paths: Tuple[str, ...] = ()
    use_env_path: bool = True
    env_path_var: str = "ABLEPATH"

    # ── Editor Settings ───────────────────────────────────────────
    settings_section: str = "able"

    # ── Scanning ──────────────────────────────────────────────────
    max_concurrent_reads: int = 32

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AblesenseConfig":
        """Build a config snapshot from environment variables.

        Reads :envvar:`ABLESENSE_STDLIB_PATHS` (``os.pathsep`` separated),
        :envvar:`ABLESENSE_USE_ENV_PATH` (1/true/yes/on) and
        :envvar:`ABLESENSE_LOG_LEVEL`.
        """
        env = os.environ if environ is None else environ
        raw_paths = env.get("ABLESENSE_STDLIB_PATHS", "")
        stdlib_paths = tuple(p for p in raw_paths.split(os.pathsep) if p)
        use_env_raw = env.get("ABLESENSE_USE_ENV_PATH")
        use_env_path = True if use_env_raw is None else use_env_raw.lower() in _TRUTHY
        return cls(
            stdlib_paths=stdlib_paths,
            use_env_path=use_env_path,
            log_level=env.get("ABLESENSE_LOG_LEVEL", "INFO").upper(),
        )

    def with_settings(self, settings: Optional[Mapping[str, Any]]) -> "AblesenseConfig":
        """Apply the editor's ``able`` settings section.

        ``stdlibPaths`` is honoured only when it is a list; otherwise no
        extra directories are used.  ``useEnvAblePath`` stays enabled
        unless the client sends an explicit ``false``.
        """
        settings = settings or {}
        raw_paths = settings.get("stdlibPaths")
        paths = tuple(str(p) for p in raw_paths) if isinstance(raw_paths, list) else ()
        return replace(
            self,
            stdlib_paths=paths,
            use_env_path=settings.get("useEnvAblePath") is not False,
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Validate the file-matching and scanning settings.

        Raises :class:`~ablesense.exceptions.ConfigError` on failure.
        """
        if not self.source_extension.startswith("."):
            raise ConfigError(
                f"source_extension must start with '.', got '{self.source_extension}'"
            )
        if not self.package_init.endswith(self.source_extension):
            raise ConfigError(
                f"package_init '{self.package_init}' must end with "
                f"'{self.source_extension}'"
            )
        if self.max_concurrent_reads <= 0:
            raise ConfigError("max_concurrent_reads must be positive")
        if self.max_file_size_mb is not None and self.max_file_size_mb <= 0:
            raise ConfigError("max_file_size_mb must be positive")
        return True

    @property
    def max_file_bytes(self) -> Optional[int]:
        if self.max_file_size_mb is None:
            return None
        return self.max_file_size_mb * 1024 * 1024


# =============================================================================
# Language Catalog (built-in names offered by completion)
# =============================================================================

class LanguageCatalog:
    """
    Static tables of names the Able runtime provides without an import.
    """

    KEYWORDS: Tuple[str, ...] = (
        "if", "elif", "else", "for", "of", "while", "break", "continue",
        "return", "async", "await", "class", "fun", "import", "from", "as",
        "true", "false", "null", "and", "or", "not", "is",
    )

    TYPES: Tuple[str, ...] = (
        "Number", "String", "Boolean", "List", "Object", "Function",
        "BoundMethod", "Type", "Instance", "Null", "Undefined", "Promise",
    )

    FUNCTIONS: Tuple[str, ...] = (
        "pr", "input", "type", "type_name", "len", "bool", "int", "float",
        "str", "list", "dict", "range",
        "register_modifier", "register_decorator",
        "server_listen",
        "json_stringify", "json_parse",
        "read_text_file",
        "string_trim", "string_split", "string_join", "string_replace",
        "string_contains", "string_starts_with", "string_ends_with",
        "string_lower", "string_upper",
    )

    MODULES: Tuple[str, ...] = (
        "api", "builtins", "math", "path", "random", "server", "string", "time",
    )

    DECORATORS: Tuple[str, ...] = (
        "Route", "Get", "Post", "Put", "Patch", "Delete", "Head", "Options", "Use",
    )

    @classmethod
    def get_all(cls) -> dict:
        """Return every table keyed by category name."""
        return {
            "keywords": list(cls.KEYWORDS),
            "types": list(cls.TYPES),
            "functions": list(cls.FUNCTIONS),
            "modules": list(cls.MODULES),
            "decorators": list(cls.DECORATORS),
        }
