"""
Ablesense Language Server

Editor-protocol glue around the workspace index and completion
resolver.  The server owns exactly one :class:`WorkspaceIndex`; every
handler reaches it through the server instance, never through module
state.

Start with::

    ablesense serve                      # stdio transport (editors)
    ablesense serve --tcp --port 2087    # TCP, handy for debugging

Or programmatically::

    from ablesense.lsp.server import create_server
    server = create_server()
    server.start_io()

Index maintenance:

- full rescan: after ``initialized``, on configuration change, on
  watched-file change, and on document close
- single-document update: on open and on every change
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from lsprotocol import types
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path
from pygls.workspace import TextDocument

import ablesense
from ablesense.core.completion import CompletionCandidate, CompletionKind, CompletionResolver
from ablesense.core.config import AblesenseConfig
from ablesense.core.indexer import WorkspaceIndex

logger = logging.getLogger(__name__)

KIND_MAP = {
    CompletionKind.KEYWORD: types.CompletionItemKind.Keyword,
    CompletionKind.TYPE: types.CompletionItemKind.Class,
    CompletionKind.FUNCTION: types.CompletionItemKind.Function,
    CompletionKind.CLASS: types.CompletionItemKind.Class,
    CompletionKind.VARIABLE: types.CompletionItemKind.Variable,
    CompletionKind.METHOD: types.CompletionItemKind.Method,
    CompletionKind.PROPERTY: types.CompletionItemKind.Property,
    CompletionKind.MODULE: types.CompletionItemKind.Module,
}


def uri_to_path(uri: str) -> Optional[str]:
    """File-system path for a ``file://`` URI, else ``None``."""
    if not uri.startswith("file://"):
        return None
    try:
        return to_fs_path(uri)
    except ValueError:
        return None


def to_completion_items(candidates: List[CompletionCandidate]) -> List[types.CompletionItem]:
    return [
        types.CompletionItem(label=c.label, kind=KIND_MAP[c.kind])
        for c in candidates
    ]


def line_prefix(document: TextDocument, position: types.Position) -> str:
    """Text of the cursor line up to *position* (a client UTF-16 column)."""
    lines = document.lines
    if position.line >= len(lines):
        return ""
    position = document.position_codec.position_from_client_units(lines, position)
    return lines[position.line].rstrip("\r\n")[: position.character]


def workspace_root_from(params: types.InitializeParams) -> Optional[str]:
    """First workspace folder, else ``rootUri``, else ``rootPath``."""
    if params.workspace_folders:
        return uri_to_path(params.workspace_folders[0].uri)
    if params.root_uri:
        return uri_to_path(params.root_uri)
    return params.root_path or None


class AbleLanguageServer(LanguageServer):
    """pygls server carrying one workspace index and its resolver."""

    def __init__(self, config: AblesenseConfig | None = None, **kwargs: Any):
        super().__init__("ablesense", ablesense.__version__, **kwargs)
        self.base_config = config or AblesenseConfig.from_env()
        self.index = WorkspaceIndex(self.base_config)
        self.resolver = CompletionResolver(self.index)
        self.has_configuration_capability = False

    # ── Index maintenance ─────────────────────────────────────────

    async def load_config(self) -> AblesenseConfig:
        """Fetch the ``able`` settings section and recompute search roots."""
        settings: Any = None
        if self.has_configuration_capability:
            section = self.base_config.settings_section
            try:
                response = await self.workspace_configuration_async(
                    types.ConfigurationParams(
                        items=[types.ConfigurationItem(section=section)]
                    )
                )
                settings = response[0] if response else None
            except Exception as e:
                logger.warning(f"Failed to load '{section}' settings: {e}")
        config = self.base_config.with_settings(settings if isinstance(settings, dict) else None)
        self.index.configure(config=config)
        return config

    async def rescan(self) -> None:
        result = await self.index.full_scan()
        logger.info(
            f"Workspace scan: {result.modules} modules from {len(result.roots)} root(s)"
        )

    def update_document(self, uri: str) -> Optional[str]:
        path = uri_to_path(uri)
        if not path:
            return None
        document = self.workspace.get_text_document(uri)
        return self.index.update_one(path, document.source)

    # ── Completion ────────────────────────────────────────────────

    def completion_items(self, line_text: str, path: Optional[str]) -> List[types.CompletionItem]:
        return to_completion_items(self.resolver.resolve(line_text, path))


def create_server(config: AblesenseConfig | None = None) -> AbleLanguageServer:
    """
    Build and return a configured language server.

    Args:
        config: Base configuration.  Editor settings are layered on top
            of it whenever the client reports a configuration change.
    """
    server = AbleLanguageServer(config)

    @server.feature(types.INITIALIZE)
    def on_initialize(ls: AbleLanguageServer, params: types.InitializeParams) -> None:
        workspace_caps = params.capabilities.workspace
        ls.has_configuration_capability = bool(workspace_caps and workspace_caps.configuration)
        root = workspace_root_from(params)
        if root:
            ls.index.configure(workspace_root=root)
        logger.info(f"Initialized for workspace {root or '(none)'}")

    @server.feature(types.INITIALIZED)
    async def on_initialized(ls: AbleLanguageServer, params: types.InitializedParams) -> None:
        if ls.has_configuration_capability:
            try:
                await ls.client_register_capability_async(
                    types.RegistrationParams(registrations=[
                        types.Registration(
                            id="ablesense-configuration",
                            method=types.WORKSPACE_DID_CHANGE_CONFIGURATION,
                        )
                    ])
                )
            except Exception as e:
                logger.warning(f"Configuration registration failed: {e}")
        await ls.load_config()
        await ls.rescan()

    @server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
    async def on_configuration_change(ls: AbleLanguageServer,
                                      params: types.DidChangeConfigurationParams) -> None:
        await ls.load_config()
        await ls.rescan()

    @server.feature(types.WORKSPACE_DID_CHANGE_WATCHED_FILES)
    async def on_watched_files(ls: AbleLanguageServer,
                               params: types.DidChangeWatchedFilesParams) -> None:
        await ls.rescan()

    @server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    def on_open(ls: AbleLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
        ls.update_document(params.text_document.uri)

    @server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
    def on_change(ls: AbleLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
        ls.update_document(params.text_document.uri)

    @server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
    async def on_close(ls: AbleLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
        await ls.rescan()

    @server.feature(
        types.TEXT_DOCUMENT_COMPLETION,
        types.CompletionOptions(resolve_provider=False),
    )
    def on_completion(ls: AbleLanguageServer,
                      params: types.CompletionParams) -> List[types.CompletionItem]:
        uri = params.text_document.uri
        document = ls.workspace.text_documents.get(uri)
        if document is None:
            logger.debug(f"Completion for unknown document {uri}")
            return []

        return ls.completion_items(line_prefix(document, params.position), uri_to_path(uri))

    return server
