"""
Ablesense Completion Resolver

Turns the text of the current line up to the cursor into a list of
completion candidates drawn from the language catalog, the current
document's module, and the whole workspace index.

Contexts, in priority order:

1. Member access   ``user.``              methods / object keys of ``user``
2. Decorator       ``@Ro``                built-in decorators
3. Import          ``import ma``          built-in + indexed module names
4. From-import     ``from m import a, b`` exports of module ``m``
5. General         anything else          keywords, built-ins, workspace names

A member-access context that yields nothing falls through to the next
matching context instead of returning an empty list.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Type

from ablesense.core.config import LanguageCatalog
from ablesense.core.engine import IDENTIFIER, SymbolTable, member_candidates
from ablesense.core.indexer import PathLike, WorkspaceIndex

logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================

class CompletionKind(str, Enum):
    """Category tag attached to every candidate."""
    KEYWORD = "keyword"
    TYPE = "type"
    FUNCTION = "function"
    CLASS = "class"
    VARIABLE = "variable"
    METHOD = "method"
    PROPERTY = "property"
    MODULE = "module"


@dataclass(frozen=True)
class CompletionCandidate:
    """A single completion suggestion."""
    label: str
    kind: CompletionKind

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class ContextKind(Enum):
    MEMBER = "member"
    DECORATOR = "decorator"
    IMPORT = "import"
    FROM_IMPORT = "from-import"
    GENERAL = "general"


@dataclass(frozen=True)
class CompletionContext:
    """Where the cursor is, as far as completion cares."""
    kind: ContextKind
    target: str = ""
    """Member-access receiver, or the module of a from-import."""
    prefix: str = ""


def to_candidates(labels: Iterable[str], kind: CompletionKind) -> List[CompletionCandidate]:
    """Wrap *labels* as candidates, dropping empties and duplicates."""
    seen = set()
    candidates: List[CompletionCandidate] = []
    for label in labels:
        if not label or label in seen:
            continue
        seen.add(label)
        candidates.append(CompletionCandidate(label, kind))
    return candidates


# =============================================================================
# Context Classification
# =============================================================================

_MEMBER_RE = re.compile(rf"({IDENTIFIER})\.$")
_DECORATOR_RE = re.compile(r"^\s*@([A-Za-z0-9_]*)$")
_IMPORT_RE = re.compile(r"^\s*import\s+([A-Za-z0-9_.]*)$")
_FROM_IMPORT_RE = re.compile(r"^\s*from\s+([A-Za-z0-9_.]+)\s+import\s+([A-Za-z0-9_,\s]*)$")


def iter_contexts(line_text: str) -> Iterator[CompletionContext]:
    """
    Yield candidate contexts for *line_text* in priority order.

    At most two are produced: a member-access context (if the line ends
    in ``identifier.``) followed by the first of decorator, import,
    from-import or general that applies.
    """
    member = _MEMBER_RE.search(line_text)
    if member:
        yield CompletionContext(ContextKind.MEMBER, target=member.group(1))

    decorator = _DECORATOR_RE.match(line_text)
    if decorator:
        yield CompletionContext(ContextKind.DECORATOR, prefix=decorator.group(1))
        return

    imported = _IMPORT_RE.match(line_text)
    if imported:
        yield CompletionContext(ContextKind.IMPORT, prefix=imported.group(1))
        return

    from_import = _FROM_IMPORT_RE.match(line_text)
    if from_import:
        last_item = from_import.group(2).split(",")[-1].strip()
        yield CompletionContext(
            ContextKind.FROM_IMPORT, target=from_import.group(1), prefix=last_item,
        )
        return

    yield CompletionContext(ContextKind.GENERAL)


def classify_context(line_text: str) -> CompletionContext:
    """The highest-priority context for *line_text*."""
    return next(iter_contexts(line_text))


# =============================================================================
# Resolver
# =============================================================================

class CompletionResolver:
    """
    Read-only view over a :class:`WorkspaceIndex` that answers completion
    requests.  Never mutates the index.
    """

    def __init__(self, index: WorkspaceIndex,
                 catalog: Type[LanguageCatalog] = LanguageCatalog):
        self.index = index
        self.catalog = catalog

    def resolve(self, line_text: str, path: Optional[PathLike] = None) -> List[CompletionCandidate]:
        """
        Candidates for a cursor whose line reads *line_text* up to the cursor.

        Args:
            line_text: Current line from column 0 up to the cursor.
            path: File of the document being edited; needed for member
                  access, which only looks at that document's module.
        """
        for context in iter_contexts(line_text):
            candidates = self.candidates_for(context, path)
            if context.kind is ContextKind.MEMBER and not candidates:
                continue
            logger.debug(f"{context.kind.value} context -> {len(candidates)} candidates")
            return candidates
        return []

    def candidates_for(self, context: CompletionContext,
                       path: Optional[PathLike] = None) -> List[CompletionCandidate]:
        if context.kind is ContextKind.MEMBER:
            return self.member_completions(context.target, path)
        if context.kind is ContextKind.DECORATOR:
            return self.decorator_completions(context.prefix)
        if context.kind is ContextKind.IMPORT:
            return self.import_completions(context.prefix)
        if context.kind is ContextKind.FROM_IMPORT:
            return self.from_import_completions(context.target, context.prefix)
        return self.general_completions()

    # ── Per-context builders ──────────────────────────────────────

    def member_completions(self, target: str,
                           path: Optional[PathLike]) -> List[CompletionCandidate]:
        if path is None:
            return []
        entry = self.index.entry_for_path(path)
        if entry is None:
            return []
        methods, properties = member_candidates(entry.symbols, target)
        return (
            to_candidates(methods, CompletionKind.METHOD)
            + to_candidates(properties, CompletionKind.PROPERTY)
        )

    def decorator_completions(self, prefix: str) -> List[CompletionCandidate]:
        names = [d for d in self.catalog.DECORATORS if d.startswith(prefix)]
        return to_candidates(names, CompletionKind.FUNCTION)

    def import_completions(self, prefix: str) -> List[CompletionCandidate]:
        modules = dict.fromkeys(self.catalog.MODULES)
        modules.update(dict.fromkeys(sorted(self.index.module_names())))
        return to_candidates(
            [m for m in modules if m.startswith(prefix)], CompletionKind.MODULE,
        )

    def module_exports(self, module_name: str) -> List[CompletionCandidate]:
        entry = self.index.get(module_name)
        if entry is None:
            return []
        return _symbol_candidates(entry.symbols)

    def from_import_completions(self, module_name: str,
                                prefix: str) -> List[CompletionCandidate]:
        exports = self.module_exports(module_name)
        if not prefix:
            return exports
        return [c for c in exports if c.label.startswith(prefix)]

    def general_completions(self) -> List[CompletionCandidate]:
        return (
            to_candidates(self.catalog.KEYWORDS, CompletionKind.KEYWORD)
            + to_candidates(self.catalog.TYPES, CompletionKind.TYPE)
            + to_candidates(self.catalog.FUNCTIONS, CompletionKind.FUNCTION)
            + _symbol_candidates(self.index.merged_symbols())
        )


def _symbol_candidates(symbols: SymbolTable) -> List[CompletionCandidate]:
    return (
        to_candidates(sorted(symbols.functions), CompletionKind.FUNCTION)
        + to_candidates(sorted(symbols.classes), CompletionKind.CLASS)
        + to_candidates(sorted(symbols.variables), CompletionKind.VARIABLE)
    )


# =============================================================================
# Output Formatting
# =============================================================================

class ResultFormatter:
    """Format completion candidates and symbol tables for the CLI."""

    @staticmethod
    def format_console(candidates: List[CompletionCandidate],
                       elapsed_time: Optional[float] = None) -> str:
        """Two-column listing: label and kind."""
        if not candidates:
            return "\n  No completions.\n"

        import shutil
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        count = len(candidates)
        header = f"  ABLESENSE — {count} completion{'s' if count != 1 else ''}"
        if elapsed_time is not None:
            header += f" in {elapsed_time:.4f} seconds"

        label_width = max(len(c.label) for c in candidates)
        out: List[str] = [f"\n{thin}", header, thin]
        for c in candidates:
            out.append(f"  {c.label:<{label_width}}  {c.kind.value}")
        out.append(thin)
        return "\n".join(out)

    @staticmethod
    def format_json(candidates: List[CompletionCandidate]) -> str:
        return json.dumps([c.to_dict() for c in candidates], indent=2)

    @staticmethod
    def format_symbols(symbols: SymbolTable, module_name: Optional[str] = None,
                       fmt: str = "console") -> str:
        """Render one module's symbol table."""
        data = symbols.to_dict()
        if fmt == "json":
            if module_name:
                data = {"module": module_name, **data}
            return json.dumps(data, indent=2)

        out: List[str] = []
        out.append(f"  Module     : {module_name or '(not under a search root)'}")
        out.append(f"  Functions  : {', '.join(data['functions']) or '-'}")
        out.append(f"  Classes    : {', '.join(data['classes']) or '-'}")
        for cls, methods in data["class_methods"].items():
            out.append(f"    {cls}: {', '.join(methods)}")
        out.append(f"  Variables  : {', '.join(data['variables']) or '-'}")
        for var, cls in data["variable_types"].items():
            out.append(f"    {var} = {cls}(...)")
        for var, keys in data["object_properties"].items():
            out.append(f"    {var} = {{{', '.join(keys)}}}")
        return "\n".join(out)
