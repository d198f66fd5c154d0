import asyncio
import ssl
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, NamedTuple, Protocol

from .config import HOST
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .utils.limits import LimitType, unlimit
from .utils.logging import debug, error, event, exception, info, logged, warning


class Application(Protocol):
	async def process(self, request: HTTPRequest) -> HTTPResponse: ...


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = 80
	backlog: int = 10_000
	# This is the polling timeout for the stop condition, every second is
	# good
	polling: float = 1.0
	readsize: int = 4_096
	# Idle connections are closed after that many seconds
	keepalive: float = 60.0
	sslContext: ssl.SSLContext | None = None
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True
	# Tries the next ports when the given one is taken
	alternatePorts: int = 0


OPTIONS: ServerOptions = ServerOptions()

SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal Server Error"
)

SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)

# Errors raised when the client went away
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
	BrokenPipeError,
	ConnectionResetError,
	ConnectionAbortedError,
)


class AIOStreamBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with asyncio streams."""

	__slots__ = ["writer"]

	def __init__(self, writer: asyncio.StreamWriter) -> None:
		super().__init__()
		self.writer: asyncio.StreamWriter = writer

	async def _writeBytes(self, chunk: bytes) -> None:
		if self.writer.is_closing():
			raise ConnectionResetError("Connection closed by peer")
		self.writer.write(chunk)
		await self.writer.drain()


class AIOStreamServer:
	"""AsyncIO backend using streams, which gives us TLS."""

	def __init__(self, app: Application, options: ServerOptions = OPTIONS):
		self.app: Application = app
		self.options: ServerOptions = options
		self.server: asyncio.Server | None = None
		self.tasks: set[asyncio.Task[Any]] = set()

	@property
	def port(self) -> int | None:
		if not self.server or not self.server.sockets:
			return None
		return int(self.server.sockets[0].getsockname()[1])

	async def start(self) -> "AIOStreamServer":
		options = self.options
		port: int = options.port
		for attempt in range(options.alternatePorts + 1):
			try:
				self.server = await asyncio.start_server(
					self.onConnection,
					options.host,
					port + attempt if port else 0,
					backlog=options.backlog,
					ssl=options.sslContext,
					reuse_address=True,
				)
				break
			except OSError as e:
				if attempt >= options.alternatePorts:
					error(
						f"Unable to bind to {options.host}:{port + attempt}, aborting.",
						"HOSTPORTERR",
					)
					raise e from e
				warning(
					f"Could not bind to {options.host}:{port + attempt}, trying next port."
				)
		info(
			"Server listening",
			icon="🚀",
			Host=options.host,
			Port=self.port,
			TLS=options.sslContext is not None,
		)
		return self

	async def stop(self) -> None:
		if self.server:
			self.server.close()
		for task in self.tasks:
			task.cancel()
		await asyncio.gather(*self.tasks, return_exceptions=True)
		if self.server:
			await self.server.wait_closed()
			self.server = None

	async def serve(self) -> None:
		"""Main server coroutine, runs until stopped by a signal or the
		options' condition."""
		options = self.options
		await self.start()
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be registered from the main thread
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				await asyncio.sleep(options.polling or 1.0)
		finally:
			await self.stop()

	async def onConnection(
		self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
	) -> None:
		task = asyncio.current_task()
		if task:
			self.tasks.add(task)
		try:
			await self.OnRequest(self.app, reader, writer, options=self.options)
		finally:
			if task:
				self.tasks.discard(task)

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		reader: asyncio.StreamReader,
		writer: asyncio.StreamWriter,
		*,
		options: ServerOptions,
	) -> None:
		"""Processes the requests sent on a connection until it is closed,
		times out or asks not to be kept alive."""
		client: str = str(writer.get_extra_info("peername"))
		parser: HTTPParser = HTTPParser()
		body: AIOStreamBodyWriter = AIOStreamBodyWriter(writer)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		try:
			while keep_alive and not body.shouldClose:
				try:
					chunk = await asyncio.wait_for(
						reader.read(options.readsize), timeout=options.keepalive
					)
				except TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				except CONNECTION_ERRORS:
					status = HTTPProcessingStatus.NoData
					break
				if not chunk:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# NOTE: With HTTP pipelining, we may receive more than one
				# request in the same chunk.
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=client)
						writer.write(SERVER_BAD_REQUEST)
						await writer.drain()
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req = atom
						req_count += 1
						if (
							req.protocol == "HTTP/1.0"
							or (req.header("Connection") or "").lower() == "close"
						):
							keep_alive = False
						res = await cls.SendResponse(req, app, body)
						if res:
							res_count += 1
							if res.shouldClose:
								keep_alive = False
						if body.shouldClose or not keep_alive:
							break
			if res_count != req_count:
				warning(
					"Incomplete responses",
					Client=client,
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
		except Exception as e:
			exception(e)
		finally:
			# The loop above takes care of keep alive, so we always close
			# the connection on exit.
			writer.close()
			try:
				await writer.wait_closed()
			except (OSError, ssl.SSLError):
				pass

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request within the application and sends the
		response using the given writer. This triggers the response `finish`
		or `error` hook, and always closes the request."""
		req: HTTPRequest = request
		res: HTTPResponse | None = None
		sent: bool = False
		try:
			try:
				res = await app.process(req)
			except Exception as e:
				exception(e, f"Could not process {req.method} {req.url}")
			if res is None:
				warning("Application did not return a response", Path=req.path)
				await writer.write(SERVER_ERROR)
				writer.shouldClose = True
				return None
			try:
				await writer.write(res.head())
				sent = True
				if await writer.write(res.body):
					res.finish()
				else:
					res.abort(EOFError("Body shorter than announced"))
			except CONNECTION_ERRORS as e:
				# The client did an early close
				logged(debug) and debug("Client closed connection", Path=req.path)
				req.abort(e)
				res.abort(e)
				writer.shouldClose = True
			except Exception as e:
				exception(e, f"Could not send response to {req.method} {req.url}")
				res.abort(e)
				writer.shouldClose = True
				if not sent:
					try:
						await writer.write(SERVER_ERROR)
					except CONNECTION_ERRORS:
						pass
			return res
		finally:
			req.close()


def run(
	app: Application,
	*,
	host: str = HOST,
	port: int = 80,
	sslContext: ssl.SSLContext | None = None,
	backlog: int = OPTIONS.backlog,
	keepalive: float = OPTIONS.keepalive,
	condition: Callable[[], bool] | None = None,
) -> None:
	"""High level function to run the server."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		keepalive=keepalive,
		sslContext=sslContext,
		condition=condition,
	)
	try:
		asyncio.run(AIOStreamServer(app, options).serve())
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
