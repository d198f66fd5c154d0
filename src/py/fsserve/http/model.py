import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import (
	Any,
	BinaryIO,
	Callable,
	Generic,
	NamedTuple,
	TypeAlias,
	TypeVar,
	Union,
)

from ..utils.io import DEFAULT_ENCODING
from ..utils.logging import exception
from .api import ResponseFactory
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Timeout = 10
	NoData = 11
	BadFormat = 12


# -----------------------------------------------------------------------------
#
# HOOKS
#
# -----------------------------------------------------------------------------


class Hooks(Generic[T]):
	"""Callbacks bound to named lifecycle events. An event triggers at most
	once, callbacks registered after that are not called."""

	__slots__ = ["callbacks", "triggered"]

	def __init__(self) -> None:
		self.callbacks: dict[str, list[Callable[[T], None]]] = {}
		self.triggered: set[str] = set()

	def on(self, name: str, callback: Callable[[T], None]) -> "Hooks[T]":
		self.callbacks.setdefault(name, []).append(callback)
		return self

	def trigger(self, name: str, value: T) -> bool:
		if name in self.triggered:
			return False
		self.triggered.add(name)
		for callback in self.callbacks.pop(name, ()):
			try:
				callback(value)
			except Exception as e:
				# NOTE: A failing hook must not prevent the others from running
				exception(e, f"Hook '{name}' failed")
		return True

	def has(self, name: str) -> bool:
		return name in self.triggered


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a body as bytes."""

	payload: bytes = b""
	length: int = 0


class HTTPBodyFileStream(NamedTuple):
	"""An HTTP body streamed from an open binary file handle. The handle is
	owned by whoever opened it, the writer only reads from it."""

	handle: BinaryIO
	length: int | None = None
	chunkSize: int = 64_000


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFileStream


class HTTPBodyWriter(ABC):
	"""A generic writer for bodies, which knows how to stream an open file."""

	__slots__ = ["shouldClose", "written"]

	def __init__(self) -> None:
		self.shouldClose: bool = False
		self.written: int = 0

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._write(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._write(body.payload)
		elif isinstance(body, HTTPBodyFileStream):
			return await self._writeFileStream(body)
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFileStream(self, body: HTTPBodyFileStream) -> bool:
		handle = body.handle
		sent: int = 0
		while not handle.closed:
			# NOTE: Reads happen in a worker thread so that a slow disk
			# does not stall the other connections.
			try:
				chunk = await asyncio.to_thread(handle.read, body.chunkSize)
			except ValueError:
				# The handle was closed by a cleanup hook while reading
				if handle.closed:
					break
				raise
			if not chunk:
				break
			await self._write(chunk)
			sent += len(chunk)
		if body.length is not None and sent != body.length:
			# The head announced a different length, so the connection
			# can't be reused.
			self.shouldClose = True
			return False
		return True

	async def _write(self, chunk: bytes) -> bool:
		if chunk:
			self.written += len(chunk)
			await self._writeBytes(chunk)
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> None: ...


class MemoryBodyWriter(HTTPBodyWriter):
	"""Writes into memory, which is what in-process bridges use."""

	__slots__ = ["data"]

	def __init__(self) -> None:
		super().__init__()
		self.data: bytearray = bytearray()

	async def _writeBytes(self, chunk: bytes) -> None:
		self.data += chunk


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP request, which also acts as a factory for
	responses. Requests trigger an `error` hook when the client connection
	fails while the request is being answered, and a `close` hook when
	the request is done with."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"failure",
		"_headers",
		"_hooks",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: str | None,
		headers: HTTPHeaders,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: str | None = query
		self.protocol: str = protocol
		self.failure: BaseException | None = None
		self._headers: HTTPHeaders = headers
		self._hooks: Hooks[HTTPRequest] = Hooks()

	@property
	def url(self) -> str:
		"""The request target, as it was sent by the client."""
		return f"{self.path}?{self.query}" if self.query else self.path

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def isClosed(self) -> bool:
		return self._hooks.has("close")

	def onError(self, callback: Callable[["HTTPRequest"], None]) -> "HTTPRequest":
		self._hooks.on("error", callback)
		return self

	def onClose(self, callback: Callable[["HTTPRequest"], None]) -> "HTTPRequest":
		self._hooks.on("close", callback)
		return self

	def abort(self, error: BaseException) -> bool:
		"""Signals that the underlying connection failed."""
		self.failure = error
		return self._hooks.trigger("error", self)

	def close(self) -> bool:
		return self._hooks.trigger("close", self)

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.url} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response. Responses trigger `finish` once their body was
	fully handed to the transport, and `error` when sending failed."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		payload: bytes | None = None
		updated_headers: dict[str, str] = {}
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			payload = content.encode(DEFAULT_ENCODING)
		elif isinstance(content, bytes):
			payload = content
		elif isinstance(content, HTTPBodyFileStream):
			body = content
			if contentLength is None:
				contentLength = content.length
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		# If we have a payload then it's a Blob response
		if payload is not None:
			contentLength = len(payload)
			body = HTTPBodyBlob(payload, contentLength)
		if contentType is not None:
			updated_headers["Content-Type"] = contentType
		if contentLength is not None:
			updated_headers["Content-Length"] = str(contentLength)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				(headers | updated_headers) if headers else updated_headers,
				contentType=contentType,
				contentLength=contentLength,
			),
			body=body,
			protocol=protocol,
			# Without a length, the end of the body is the end of the connection
			shouldClose=body is not None and contentLength is None,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
		"failure",
		"_hooks",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose
		self.failure: BaseException | None = None
		self._hooks: Hooks[HTTPResponse] = Hooks()

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str]) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	@property
	def contentType(self) -> str | None:
		return self.getHeader("Content-Type")

	@property
	def isDone(self) -> bool:
		return self._hooks.has("finish") or self._hooks.has("error")

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		headers = self.headers.headers
		lines: list[str] = [f"{self.protocol} {self.status} {message}"]
		lines += [f"{headername(k)}: {v}" for k, v in headers.items()]
		if "Content-Length" not in headers and self.body is None:
			lines.append("Content-Length: 0")
		if self.shouldClose:
			lines.append("Connection: close")
		lines.append("")
		lines.append("")
		return "\r\n".join(lines).encode("latin-1")

	def onError(self, callback: Callable[["HTTPResponse"], None]) -> "HTTPResponse":
		self._hooks.on("error", callback)
		return self

	def onFinish(self, callback: Callable[["HTTPResponse"], None]) -> "HTTPResponse":
		self._hooks.on("finish", callback)
		return self

	def abort(self, error: BaseException) -> bool:
		"""Signals that the response could not be sent."""
		self.failure = error
		return self._hooks.trigger("error", self)

	def finish(self) -> bool:
		"""Signals that the response was fully sent. A failed response
		never finishes."""
		if self._hooks.has("error"):
			return False
		return self._hooks.trigger("finish", self)

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers.headers})"


# What the parser yields
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
]

# EOF
