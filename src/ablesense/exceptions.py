"""
Ablesense Exception Hierarchy

Structured exceptions for the programmatic client and the CLI.  The
indexing core never raises these for bad input: unreadable files,
unresolvable module names and malformed source all degrade to an
incomplete index instead.  They surface only where a caller asked for
something specific that cannot be provided.

Usage::

    from ablesense.exceptions import AblesenseError, UnknownModuleError

    try:
        table = client.exports("mapper.utils")
    except UnknownModuleError:
        print("Module is not indexed yet.")
    except AblesenseError as exc:
        print(f"Ablesense error: {exc}")
"""


class AblesenseError(Exception):
    """Base exception for all Ablesense errors."""


class ConfigError(AblesenseError, ValueError):
    """Configuration is invalid (e.g. an extension without a leading dot).

    Inherits from ``ValueError`` so callers validating plain values can
    catch it without importing this module.
    """


class WorkspaceNotFoundError(AblesenseError, FileNotFoundError):
    """The workspace directory to index does not exist or is not a directory."""


class UnknownModuleError(AblesenseError, KeyError):
    """A module name was requested that is not present in the index."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class IndexingError(AblesenseError):
    """A full workspace scan failed as a whole (not a single file)."""
