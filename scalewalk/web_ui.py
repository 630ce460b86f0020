"""Browser dashboard for a practice session.

Serves the static page in ``assets/web`` over HTTP from a background thread
and pushes :meth:`~scalewalk.session.PracticeSession.snapshot` JSON to every
connected WebSocket client ten times a second.  Clients may send simple
control messages back:

```json
{"command": "start"}     // also "stop", "reset", "next_key"
```
"""

import asyncio
import http.server
import json
import logging
import os
import socketserver
import threading
import typing
import weakref

import websockets.asyncio.server
import websockets.exceptions

if typing.TYPE_CHECKING:
	from scalewalk.session import PracticeSession


logger = logging.getLogger(__name__)


class WebUI:

	"""
	Background Web UI server.

	Delivers session state to connected web clients via WebSockets without
	blocking the tick loop, and serves the static frontend via HTTP.
	"""

	def __init__ (self, session: "PracticeSession", http_port: int = 8080, ws_port: int = 8765) -> None:

		self.session_ref = weakref.ref(session)
		self.http_port = http_port
		self.ws_port = ws_port
		self._http_thread: typing.Optional[threading.Thread] = None
		self._ws_server: typing.Optional[websockets.asyncio.server.Server] = None
		self._broadcast_task: typing.Optional[asyncio.Task] = None
		self._clients: typing.Set[websockets.asyncio.server.ServerConnection] = set()

	def start (self) -> None:

		"""Start both servers.  Must be called from inside the running event loop."""

		self._start_http_server()
		asyncio.create_task(self._start_ws_server())

	def _start_http_server (self) -> None:

		if self._http_thread and self._http_thread.is_alive():
			return

		web_dir = os.path.join(os.path.dirname(__file__), "assets", "web")

		class Handler (http.server.SimpleHTTPRequestHandler):

			def __init__ (self, *args: typing.Any, **kwargs: typing.Any) -> None:
				super().__init__(*args, directory=web_dir, **kwargs)

			def log_message (self, format: str, *args: typing.Any) -> None:
				pass

		def run_server () -> None:
			socketserver.TCPServer.allow_reuse_address = True
			try:
				with socketserver.TCPServer(("", self.http_port), Handler) as httpd:
					httpd.serve_forever()
			except OSError as e:
				logger.error(f"HTTP server error: {e}")

		self._http_thread = threading.Thread(target=run_server, name="scalewalk-http", daemon=True)
		self._http_thread.start()
		logger.info(f"Web dashboard available at http://localhost:{self.http_port}")

	async def _handle_client (self, websocket: websockets.asyncio.server.ServerConnection) -> None:

		self._clients.add(websocket)

		try:
			async for message in websocket:
				self.handle_message(message)
		except websockets.exceptions.ConnectionClosed:
			pass
		finally:
			self._clients.discard(websocket)

	def handle_message (self, message: typing.Union[str, bytes]) -> None:

		"""Apply one control message from a client.  Malformed messages are logged and ignored."""

		session = self.session_ref()

		if session is None:
			return

		try:
			command = json.loads(message).get("command")
		except (ValueError, AttributeError):
			logger.warning(f"Ignoring malformed web UI message: {message!r}")
			return

		if command == "start":
			session.start()
		elif command == "stop":
			session.stop()
		elif command == "reset":
			session.reset()
		elif command == "next_key":
			if session.tonic is None:
				logger.warning("Ignoring next_key: no tonic locked yet")
			else:
				session.advance_to_next_key()
		else:
			logger.warning(f"Ignoring unknown web UI command: {command!r}")

	async def _start_ws_server (self) -> None:

		try:
			self._ws_server = await websockets.asyncio.server.serve(self._handle_client, "0.0.0.0", self.ws_port)
			self._broadcast_task = asyncio.create_task(self._broadcast_loop())
		except OSError as e:
			logger.error(f"WebSocket server error: {e}")

	async def _broadcast_loop (self) -> None:

		while True:

			await asyncio.sleep(0.1)

			if not self._clients:
				continue

			session = self.session_ref()

			if session is None:
				break

			try:
				websockets.asyncio.server.broadcast(self._clients, json.dumps(session.snapshot()))
			except Exception:
				logger.exception("Error broadcasting session state")

	def stop (self) -> None:

		if self._broadcast_task:
			self._broadcast_task.cancel()

		if self._ws_server:
			self._ws_server.close()
			try:
				loop = asyncio.get_running_loop()
				loop.create_task(self._ws_server.wait_closed())
			except RuntimeError:
				pass
