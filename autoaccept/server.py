"""HTTP front end: control page, event socket and static resources."""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

from aiohttp import WSMsgType, web

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8081

_BROWSER_COMMANDS = {
    "linux": ("xdg-open",),
    "windows": ("rundll32", "url.dll,FileProtocolHandler"),
    "darwin": ("open",),
}

_PAGE = """<!doctype html>
<html lang="ja">
<head>
<meta charset="utf-8">
<title>LoL Auto Accept</title>
<style>
  :root { --ok: #2e7d32; --bad: #c62828; --ink: #263238; }
  body { margin: 0; padding: 24px; font: 14px/1.45 system-ui, sans-serif;
         color: var(--ink); background: #eceff1; }
  main { max-width: 640px; margin: auto; padding: 24px; background: #fff;
         border-radius: 10px; box-shadow: 0 1px 6px rgba(0, 0, 0, .15); }
  h1 { font-size: 20px; text-align: center; }
  .note { padding: 8px 12px; font-size: 12px; background: #e1f5fe; border-radius: 6px; }
  #status { margin: 12px 0; padding: 8px; text-align: center; font-weight: 600; border-radius: 6px; }
  #status.stopped { color: var(--bad); background: #ffebee; }
  #status.running { color: var(--ok); background: #e8f5e9; }
  nav { display: flex; gap: 8px; justify-content: center; margin: 16px 0; }
  nav button { padding: 8px 16px; color: #fff; border: 0; border-radius: 6px; cursor: pointer; }
  nav button:hover { filter: brightness(.9); }
  [data-action=start] { background: #43a047; }
  [data-action=stop] { background: #e53935; }
  [data-action=test] { background: #1e88e5; }
  #clear { background: #fb8c00; }
  #log { height: 320px; overflow-y: auto; padding: 8px; font: 12px monospace;
         background: #fafafa; border: 1px solid #cfd8dc; }
  #log time { color: #78909c; margin-right: 4px; }
</style>
</head>
<body>
<main>
  <h1>LoL Auto Accept</h1>
  <p class="note">「対戦を検出中」画面を自動で監視し、承認ボタンが出たらクリックします。
    クリック後5秒で画面が変わっていれば監視を終了します。</p>
  <div id="status" class="stopped">ステータス: 停止中</div>
  <nav>
    <button data-action="start">監視開始</button>
    <button data-action="stop">監視停止</button>
    <button data-action="test">パフォーマンステスト</button>
    <button id="clear">ログクリア</button>
  </nav>
  <h3>ログ</h3>
  <div id="log"><div>自動監視が起動しています。</div></div>
</main>
<script>
  const socket = new WebSocket(
    (location.protocol === 'https:' ? 'wss://' : 'ws://') + location.host + '/ws');
  const logBox = document.getElementById('log');
  const statusBox = document.getElementById('status');

  socket.addEventListener('message', (event) => {
    const data = JSON.parse(event.data);
    if (data.type === 'log') {
      const row = document.createElement('div');
      const stamp = document.createElement('time');
      stamp.textContent = '[' + data.timestamp + ']';
      row.append(stamp, document.createTextNode(data.message));
      logBox.append(row);
      logBox.scrollTop = logBox.scrollHeight;
    } else if (data.type === 'status') {
      statusBox.textContent = 'ステータス: ' + data.status;
      statusBox.className = data.status === '監視中...' ? 'running' : 'stopped';
    }
  });

  document.querySelectorAll('[data-action]').forEach((button) => {
    button.addEventListener('click', () => {
      socket.send(JSON.stringify({ action: button.dataset.action }));
    });
  });

  document.getElementById('clear').addEventListener('click', () => {
    logBox.replaceChildren();
    const row = document.createElement('div');
    row.textContent = 'ログをクリアしました';
    logBox.append(row);
  });
</script>
</body>
</html>
"""


def _platform() -> str:
    platform = sys.platform
    if platform.startswith("win"):
        return "windows"
    if platform.startswith("linux"):
        return "linux"
    return platform


def _swallow(future: "asyncio.Future[Any]") -> None:
    if not future.cancelled():
        future.exception()


class _SocketClient:
    """Lets the broadcaster, which may run on any thread, write to a web socket."""

    def __init__(self, ws: web.WebSocketResponse, loop: asyncio.AbstractEventLoop) -> None:
        self._ws = ws
        self._loop = loop
        self._pending: Set["asyncio.Task[Any]"] = set()

    def _submit(self, coro: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            task = self._loop.create_task(coro)
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            task.add_done_callback(_swallow)
        else:
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
            future.add_done_callback(lambda f: f.cancelled() or f.exception())

    def send(self, text: str) -> None:
        if self._ws.closed or self._loop.is_closed():
            raise ConnectionError("socket closed")
        self._submit(self._ws.send_str(text))

    def close(self) -> None:
        if not self._ws.closed and not self._loop.is_closed():
            self._submit(self._ws.close())


class Server:
    """Serves the control page and relays browser actions to the application."""

    def __init__(
        self,
        app: Any,
        host: Optional[str] = None,
        port: int = DEFAULT_PORT,
        resource_dir: str | Path = "resources",
    ) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.resource_dir = Path(resource_dir)
        self.launch_browser = True

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    def _actions(self) -> Dict[str, Callable[[], Any]]:
        return {
            "start": self.app.start_monitoring,
            "stop": self.app.stop_monitoring,
            "test": self.app.test_environment,
        }

    def _current_status(self) -> str:
        if self.app.running:
            return "監視中..."
        if self.app.auto_watching:
            return "自動監視中..."
        return "停止中"

    async def _serve_page(self, request: web.Request) -> web.Response:
        return web.Response(text=_PAGE, content_type="text/html")

    async def _handle_socket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        loop = asyncio.get_running_loop()
        client = _SocketClient(ws, loop)
        broadcaster = self.app.broadcaster
        broadcaster.add(client)
        actions = self._actions()
        try:
            broadcaster.update_status(self._current_status())
            async for msg in ws:
                if msg.type not in (WSMsgType.TEXT, WSMsgType.BINARY):
                    break
                try:
                    data = json.loads(msg.data)
                except ValueError:
                    break
                action = data.get("action") if isinstance(data, dict) else None
                if not isinstance(action, str):
                    break
                handler = actions.get(action)
                if handler is not None:
                    await loop.run_in_executor(None, handler)
        finally:
            broadcaster.remove(client)
            await ws.close()
        return ws

    def create_app(self) -> web.Application:
        """Build the web application with its routes."""
        application = web.Application()
        application.router.add_get("/", self._serve_page)
        application.router.add_get("/ws", self._handle_socket)
        static_dir = self.resource_dir.resolve()
        if static_dir.is_dir():
            application.router.add_static("/resources/", static_dir, show_index=True)
        return application

    def open_browser(self, url: str) -> bool:
        """Open url in the desktop browser; return whether a launcher was started."""
        command = _BROWSER_COMMANDS.get(_platform())
        if command is None:
            return False
        try:
            subprocess.Popen(
                [*command, url],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            return False
        return True

    def run(self) -> None:
        """Start the auto watcher, open the browser shortly after, and serve forever."""
        self.app.start_auto_watcher()
        if self.launch_browser:
            timer = threading.Timer(1.0, self.open_browser, args=(self.url,))
            timer.daemon = True
            timer.start()
        web.run_app(self.create_app(), host=self.host, port=self.port, print=None)