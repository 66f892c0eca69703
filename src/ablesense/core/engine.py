"""
Ablesense Core Engine

Line-oriented symbol extraction for Able source files.  There is no
parser here: each line is normalized (comments stripped, strings kept),
measured for indentation, and matched against a short list of
recognition rules.  Lines that match nothing contribute nothing.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

# Column width of one indentation level; a tab counts as one full level.
INDENT_UNIT = 4
TAB_WIDTH = 4

BLOCK_COMMENT = "##"
LINE_COMMENT = "#"
ESCAPE = "\\"
QUOTE = '"'

IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"


# =============================================================================
# Data Models
# =============================================================================

@dataclass
class SymbolTable:
    """Names extracted from one Able module."""
    functions: Set[str] = field(default_factory=set)
    classes: Set[str] = field(default_factory=set)
    variables: Set[str] = field(default_factory=set)
    """Top-level names bound by a plain assignment."""
    class_methods: Dict[str, Set[str]] = field(default_factory=dict)
    variable_types: Dict[str, str] = field(default_factory=dict)
    """Top-level variable -> class named in its constructing call."""
    object_properties: Dict[str, Set[str]] = field(default_factory=dict)
    """Variable -> keys of the object literal assigned to it."""

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict with sorted members."""
        return {
            "functions": sorted(self.functions),
            "classes": sorted(self.classes),
            "variables": sorted(self.variables),
            "class_methods": {k: sorted(v) for k, v in sorted(self.class_methods.items())},
            "variable_types": dict(sorted(self.variable_types.items())),
            "object_properties": {k: sorted(v) for k, v in sorted(self.object_properties.items())},
        }


@dataclass
class ScopeFrame:
    """An open class body on the extractor's scope stack."""
    name: str
    indent: int


@dataclass
class ActiveObject:
    """An object literal whose keys are still being collected."""
    name: str
    indent: int


def _add_member(mapping: Dict[str, Set[str]], key: str, value: str) -> None:
    mapping.setdefault(key, set()).add(value)


# =============================================================================
# Line Normalizer
# =============================================================================

def strip_comments(line: str, in_block_comment: bool) -> Tuple[str, bool]:
    """
    Remove comments from one line, keeping string contents intact.

    ``##`` toggles block-comment mode (outside strings, not after a pending
    escape); ``#`` outside a string drops the rest of the line; ``"``
    toggles string mode unless escaped.  Returns the stripped text and the
    block-comment state to carry into the next line.
    """
    output: List[str] = []
    in_string = False
    escaped = False
    i = 0
    length = len(line)

    while i < length:
        if not in_string and not escaped and line.startswith(BLOCK_COMMENT, i):
            in_block_comment = not in_block_comment
            i += 2
            continue

        if in_block_comment:
            i += 1
            continue

        ch = line[i]
        if not in_string and ch == LINE_COMMENT:
            break

        if ch == ESCAPE and not escaped:
            escaped = True
            output.append(ch)
            i += 1
            continue

        if ch == QUOTE and not escaped:
            in_string = not in_string

        escaped = False
        output.append(ch)
        i += 1

    return "".join(output), in_block_comment


class LineNormalizer:
    """
    Carries block-comment state across an ordered sequence of lines.

    Lines must be fed in file order; skipping one desynchronizes the
    block-comment flag for everything after it.
    """

    def __init__(self) -> None:
        self.in_block_comment = False

    def feed(self, line: str) -> str:
        text, self.in_block_comment = strip_comments(line, self.in_block_comment)
        return text

    def normalize(self, lines: Iterable[str]) -> Iterator[str]:
        for line in lines:
            yield self.feed(line)


def indent_level(line: str) -> int:
    """Indentation of *line* in whole levels, rounding half a level up."""
    width = 0
    for ch in line:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += TAB_WIDTH
        else:
            break
    return (width + INDENT_UNIT // 2) // INDENT_UNIT


# =============================================================================
# Recognition Rules
# =============================================================================
#
# Precedence, evaluated top to bottom for every non-blank line:
#
#   1. class declaration          -> stops the line
#   2. function declaration       -> stops the line
#   3. constructor assignment     (indent 0 only)
#   4. object-literal start       (any indent)
#   5. object-literal keys        (while an object is active)
#   6. plain assignment           (indent 0 only)
#
# Rules 3-6 may all fire on the same line.

_CLASS_RE = re.compile(rf"^\s*class\s+({IDENTIFIER})")
_FUN_RE = re.compile(rf"^\s*(?:async\s+)?fun\s+({IDENTIFIER})")
_CONSTRUCTOR_ASSIGN_RE = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*({IDENTIFIER})\s*\(")
_OBJECT_START_RE = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*\{{")
_ASSIGN_RE = re.compile(rf"^\s*({IDENTIFIER})\s*=")
_IDENT_KEY_RE = re.compile(rf"({IDENTIFIER})\s*:")
_STRING_KEY_RE = re.compile(r'"([^"]+)"\s*:')

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def match_class(content: str) -> Optional[str]:
    """``class Name`` -> ``Name``."""
    m = _CLASS_RE.match(content)
    return m.group(1) if m else None


def match_function(content: str) -> Optional[str]:
    """``fun name`` or ``async fun name`` -> ``name``."""
    m = _FUN_RE.match(content)
    return m.group(1) if m else None


def match_constructor_assignment(content: str) -> Optional[Tuple[str, str]]:
    """``x = ClassName(`` -> ``("x", "ClassName")``."""
    m = _CONSTRUCTOR_ASSIGN_RE.match(content)
    return (m.group(1), m.group(2)) if m else None


def match_object_start(content: str) -> Optional[str]:
    """``x = {`` -> ``x``."""
    m = _OBJECT_START_RE.match(content)
    return m.group(1) if m else None


def match_assignment(content: str) -> Optional[str]:
    """``x =`` -> ``x``."""
    m = _ASSIGN_RE.match(content)
    return m.group(1) if m else None


def extract_object_keys(content: str) -> List[str]:
    """Bare ``key:`` names followed by quoted ``"key":`` names on one line."""
    keys = _IDENT_KEY_RE.findall(content)
    keys.extend(_STRING_KEY_RE.findall(content))
    return keys


# =============================================================================
# Symbol Extractor
# =============================================================================

class SymbolExtractor:
    """
    Single-use extractor: feed it one file's text and read the table.

    Tracks the class scope stack and the active object literal while
    walking the file line by line.
    """

    def __init__(self) -> None:
        self.symbols = SymbolTable()
        self._normalizer = LineNormalizer()
        self._scopes: List[ScopeFrame] = []
        self._active_object: Optional[ActiveObject] = None

    def parse(self, text: str) -> SymbolTable:
        for line in _LINE_SPLIT_RE.split(text):
            content = self._normalizer.feed(line)
            if not content.strip():
                continue
            self._process_line(content, indent_level(content))
        return self.symbols

    def _process_line(self, content: str, indent: int) -> None:
        while self._scopes and indent <= self._scopes[-1].indent:
            self._scopes.pop()

        class_name = match_class(content)
        if class_name:
            self.symbols.functions.discard(class_name)
            self.symbols.classes.add(class_name)
            self._scopes.append(ScopeFrame(class_name, indent))
            return

        fun_name = match_function(content)
        if fun_name:
            if self._scopes:
                _add_member(self.symbols.class_methods, self._scopes[-1].name, fun_name)
            else:
                self.symbols.classes.discard(fun_name)
                self.symbols.functions.add(fun_name)
            return

        if indent == 0:
            constructed = match_constructor_assignment(content)
            if constructed:
                variable, class_ref = constructed
                self.symbols.variable_types[variable] = class_ref

        object_name = match_object_start(content)
        if object_name:
            self._active_object = ActiveObject(object_name, indent)

        if self._active_object:
            self._collect_object_keys(content, indent, starts_object=bool(object_name))

        if indent == 0:
            variable = match_assignment(content)
            if variable:
                self.symbols.variables.add(variable)

    def _collect_object_keys(self, content: str, indent: int, starts_object: bool) -> None:
        active = self._active_object
        for key in extract_object_keys(content):
            _add_member(self.symbols.object_properties, active.name, key)

        if "}" in content:
            self._active_object = None
        elif indent <= active.indent and not starts_object:
            self._active_object = None


def parse_symbols(text: str) -> SymbolTable:
    """Extract a fresh :class:`SymbolTable` from one file's text."""
    return SymbolExtractor().parse(text)


# =============================================================================
# Table Helpers
# =============================================================================

def merge_symbols(target: SymbolTable, source: SymbolTable) -> None:
    """Union the module-level names and class methods of *source* into *target*."""
    target.functions.update(source.functions)
    target.classes.update(source.classes)
    target.variables.update(source.variables)
    for owner, methods in source.class_methods.items():
        target.class_methods.setdefault(owner, set()).update(methods)


def member_candidates(symbols: SymbolTable, target: str) -> Tuple[List[str], List[str]]:
    """
    Names reachable with ``target.`` inside one module.

    Returns ``(methods, properties)``, each sorted.  Methods come from the
    class *target* was constructed from, or from *target* itself when it
    names a class.  Properties come from an object literal assigned to it.
    """
    class_name = symbols.variable_types.get(target)
    if not class_name and target in symbols.classes:
        class_name = target

    methods: List[str] = []
    if class_name:
        methods = sorted(symbols.class_methods.get(class_name, ()))

    properties = sorted(symbols.object_properties.get(target, ()))
    return methods, properties
