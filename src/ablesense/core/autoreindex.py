"""
Ablesense Auto-Reindex Module

Keeps a standalone (non-editor) index fresh:
- watchdog observers on every search root
- debounced full rescans after Able source files change
- a minimum interval between consecutive rescans
"""

import logging
import time
from pathlib import Path
from threading import Event, Thread
from typing import List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class SourceChangeHandler(FileSystemEventHandler):
    """Flags the reindexer whenever an Able source file changes."""

    def __init__(self, reindexer: "AutoReindexer", extension: str):
        self.reindexer = reindexer
        self.extension = extension

    def _is_source(self, path) -> bool:
        return str(path).endswith(self.extension)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return
        dest = getattr(event, "dest_path", "")
        if self._is_source(event.src_path) or (dest and self._is_source(dest)):
            logger.debug(f"Source change: {event.event_type} {event.src_path}")
            self.reindexer.mark_pending()


class AutoReindexer:
    """Automatic full rescans driven by file-system events."""

    def __init__(self, client, interval_seconds: float = 30, debounce_seconds: float = 1):
        """
        Initialize auto-reindexer.

        Args:
            client: Ablesense client whose index to rebuild.
            interval_seconds: Minimum seconds between rescans (default: 30)
            debounce_seconds: Seconds to wait after the last change before
                rescanning (default: 1)
        """
        self.client = client
        self.interval_seconds = interval_seconds
        self.debounce_seconds = debounce_seconds
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._last_reindex_time = 0.0
        self._pending_reindex = False

    @property
    def roots(self) -> List[Path]:
        return self.client.index_.search_roots

    def mark_pending(self) -> None:
        self._pending_reindex = True

    def start_watch(self) -> None:
        """Start the file watcher in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("AutoReindexer already running")
            return

        self._stop_event.clear()
        self._thread = Thread(target=self._watch_loop, daemon=True)
        self._thread.start()
        logger.info(
            f"AutoReindexer started (interval: {self.interval_seconds}s, "
            f"debounce: {self.debounce_seconds}s)"
        )

    def stop(self) -> None:
        """Stop the file watcher."""
        if self._thread:
            self._stop_event.set()
            self._thread.join(timeout=5)
            logger.info("AutoReindexer stopped")

    def _watch_loop(self) -> None:
        """Main watch loop (runs in background thread)."""
        handler = SourceChangeHandler(self, self.client.config.source_extension)
        observer = Observer()
        for root in self.roots:
            observer.schedule(handler, str(root), recursive=True)
        observer.start()
        logger.info(f"Watching {len(self.roots)} search root(s)")

        try:
            while not self._stop_event.is_set():
                if self._pending_reindex:
                    self._stop_event.wait(self.debounce_seconds)
                    self._process_pending()
                self._stop_event.wait(0.5)
        finally:
            observer.stop()
            observer.join()

    def _process_pending(self) -> None:
        """Run one pending rescan; changes seen during it stay pending."""
        self._pending_reindex = False
        if not self._try_reindex():
            self._pending_reindex = True

    def _try_reindex(self) -> bool:
        """Rescan if enough time has passed.  Returns True when a rescan ran."""
        now = time.monotonic()
        elapsed = now - self._last_reindex_time

        if self._last_reindex_time and elapsed < self.interval_seconds:
            logger.debug(
                f"Skipping reindex (last: {elapsed:.1f}s ago, "
                f"min interval: {self.interval_seconds}s)"
            )
            return False

        self._last_reindex_time = now
        try:
            result = self.client.reindex()
        except Exception as e:
            logger.error(f"Re-index failed: {e}")
            return True
        logger.info(
            f"Re-index complete: {result.files_indexed} files, {result.modules} modules"
        )
        return True


def start_auto_reindex(client, interval_seconds: float = 30,
                       debounce_seconds: float = 1) -> AutoReindexer:
    """
    Start automatic re-indexing for *client*'s search roots.

    Returns:
        AutoReindexer instance (call .stop() to terminate)

    Example:
        ```python
        from ablesense import Ablesense
        from ablesense.core.autoreindex import start_auto_reindex

        client = Ablesense()
        client.index("./project")
        reindexer = start_auto_reindex(client)

        # ... edit files ...

        reindexer.stop()
        ```
    """
    reindexer = AutoReindexer(client, interval_seconds, debounce_seconds)
    reindexer.start_watch()
    return reindexer
