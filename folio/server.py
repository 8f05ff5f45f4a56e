"""Preview server for Folio.

``folio server`` builds the blog, serves it from the public directory and
reloads open browser tabs whenever a post, theme file, scaffold or config
file changes.

- Pages are built into a staging folder and swapped in once the build
  succeeds; a failed build leaves the previous site in place.
- HTML responses carry a small script that listens on a websocket for
  ``{"type": "reload"}``.
- Missing paths and folders without an ``index.html`` answer 404, using the
  theme's ``404.html`` when one was built.

Key classes:
- DevServer: Builds, serves, watches and broadcasts reloads.
- _PreviewHandler: HTTP handler for the built site.
- _ChangeHandler: watchdog handler forwarding source changes to DevServer.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from string import Template
from typing import Any

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import CONFIG_FILENAME, load_config
from .deploy import DEPLOY_DIR
from .errors import FolioError

_RELOAD_SNIPPET = Template(
    """<script>
(function () {
  var socket = new WebSocket("ws://" + location.hostname + ":$ws_port/");
  socket.addEventListener("message", function (event) {
    var data = JSON.parse(event.data || "{}");
    if (data.type === "reload") { window.location.reload(); }
  });
})();
</script>
"""
)

RELOAD_MESSAGE = json.dumps({"type": "reload"})


def reload_snippet(ws_port: int) -> str:
    """Return the live reload ``<script>`` for a websocket port."""
    return _RELOAD_SNIPPET.substitute(ws_port=ws_port)


def resolve_ports(
    config: dict[str, Any], http_port: int | None, ws_port: int | None
) -> tuple[int, int]:
    """Pick the HTTP and websocket ports.

    Command line values win over ``port`` / ``ws_port`` in the config. When
    only the HTTP port is given on the command line the websocket port is
    the next one up.
    """
    http = int(http_port or config.get("port", 4000))
    if ws_port is not None:
        return http, int(ws_port)
    if http_port is not None:
        return http, http + 1
    return http, int(config.get("ws_port", http + 1))


class _PreviewHandler(SimpleHTTPRequestHandler):
    """Serves the built site with live reload and strict 404s."""

    reload_snippet = reload_snippet(4001)

    def end_headers(self):
        # Always refetch while writing
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):  # pragma: no cover - keep the console quiet
        return

    def list_directory(self, path):  # pragma: no cover - send_head never lists
        return self._not_found()

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._send_page(target, 200)
            return None
        return super().send_head()

    def _send_page(self, page: Path, status: int) -> None:
        html = page.read_text(encoding="utf-8")
        head, marker, tail = html.rpartition("</body>")
        if marker:
            html = f"{head}{self.reload_snippet}{marker}{tail}"
        else:
            html += self.reload_snippet
        body = html.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._send_page(page, 404)
        else:
            self.send_error(404, "File not found")
        return None


class DevServer:
    """Preview server with live reload.

    Attributes:
        project_root: Root directory of the blog project.
        config: Site configuration.
        output_dir: Directory the site is served from.
        staging_dir: Directory each build is written to before it is swapped in.
        http_port: Port for the HTTP server.
        ws_port: Port for the reload websocket.
        root_url: Base URL the preview build uses for links.
    """

    debounce_seconds = 0.05
    settle_seconds = 0.05

    def __init__(self, project_root: Path, http_port: int | None = None, ws_port: int | None = None):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config["public_dir"]
        self.staging_dir = self.output_dir.parent / f"{self.output_dir.name}.staging"
        self.http_port, self.ws_port = resolve_ports(self.config, http_port, ws_port)
        self.root_url = f"http://localhost:{self.http_port}"
        self._clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._observer: Any = None
        self._build_lock = threading.Lock()
        self._last_build_at = 0.0
        self._snapshot_at_build: tuple | None = None

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self.build(include_drafts)
        self._snapshot_at_build = self.snapshot()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self._serve_websockets, daemon=True).start()
        self.watch(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    # Building

    def build(self, include_drafts: bool) -> None:
        """Build into the staging folder, then swap it in as the public folder."""
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            root_url=self.root_url,
            clean_output=True,
            output_dir_override=self.staging_dir,
        )
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def rebuild(self, include_drafts: bool) -> None:
        """Rebuild after a change unless a build is running or nothing changed."""
        if time.time() - self._last_build_at < self.debounce_seconds:
            return
        if not self._build_lock.acquire(blocking=False):
            return
        try:
            snapshot = self.snapshot()
            if snapshot is not None and snapshot == self._snapshot_at_build:
                return
            print("Change detected; rebuilding...")
            try:
                self.build(include_drafts)
            except FolioError as exc:
                print(f"Build failed: {exc}")
                return
            self._snapshot_at_build = snapshot
            if self.settle_seconds:
                time.sleep(self.settle_seconds)
            self.broadcast_reload()
        finally:
            self._last_build_at = time.time()
            self._build_lock.release()

    # Watching

    def watched_dirs(self) -> list[Path]:
        return [
            self.project_root / self.config["source_dir"],
            self.project_root / "themes",
            self.project_root / "scaffolds",
        ]

    def config_files(self) -> list[Path]:
        overrides = sorted(self.project_root.glob("_config.*.yml"))
        return [self.project_root / CONFIG_FILENAME, *overrides]

    def is_ignored(self, path: Path) -> bool:
        """Whether a change at ``path`` comes from Folio's own output."""
        if ".git" in path.parts:
            return True
        generated = (self.output_dir, self.staging_dir, self.project_root / DEPLOY_DIR)
        return any(path.is_relative_to(folder) for folder in generated)

    def snapshot(self) -> tuple | None:
        """(path, mtime, size) of every watched file, or None when there are none."""
        files = self.config_files()
        for folder in self.watched_dirs():
            if folder.is_dir():
                files.extend(sorted(folder.rglob("*")))
        entries = []
        for path in files:
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
            except OSError:
                continue
            rel = str(path.relative_to(self.project_root))
            entries.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(entries) or None

    def watch(self, include_drafts: bool) -> None:
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for folder in self.watched_dirs():
            if folder.is_dir():
                observer.schedule(handler, str(folder), recursive=True)
        # _config.yml and _config.<theme>.yml
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    # Serving

    def _serve_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_PortPreviewHandler", (_PreviewHandler,), {"reload_snippet": reload_snippet(self.ws_port)}
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at {self.root_url}")
        httpd.serve_forever()

    def _serve_websockets(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._websocket_server())
        except OSError as exc:
            print(f"Live reload unavailable, websocket port {self.ws_port}: {exc}")

    async def _websocket_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._track_client, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _track_client(self, websocket):
        self._clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._clients.discard(websocket)

    def broadcast_reload(self) -> None:
        asyncio.run_coroutine_threadsafe(self._send_to_clients(RELOAD_MESSAGE), self._loop)

    async def _send_to_clients(self, message: str) -> None:
        for client in list(self._clients):
            try:
                await client.send(message)
            except Exception:
                # Closed tab or dropped connection
                self._clients.discard(client)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory or self.server.is_ignored(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)
