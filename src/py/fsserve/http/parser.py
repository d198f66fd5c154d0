from typing import Iterator, Literal
from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPAtom,
	HTTPProcessingStatus,
	headername,
)


class RequestLineParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "RequestLineParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		line, read = self.line.feed(chunk, start)
		if not line:
			# NOTE: Empty lines between pipelined requests are skipped
			return None, read
		ln = line.decode("latin-1")
		i = ln.find(" ")
		j = ln.rfind(" ")
		if i == -1 or i == j:
			# Not a request line, `HTTPParser` reports it as a bad format
			self.value = HTTPRequestLine("", "", "", "")
			return False, read
		p: list[str] = ln[i + 1 : j].split("?", 1)
		self.value = HTTPRequestLine(
			ln[0:i], p[0], p[1] if len(p) > 1 else "", ln[j + 1 :]
		)
		return True, read

	def __str__(self) -> str:
		return f"RequestLineParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line that ends the headers, otherwise it's the name of the header
		that was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None, read
		h = ln[:i].lower().strip()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError:
				self.contentLength = None
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodySkipParser:
	"""Skips a body of known length. We only serve retrieval requests, so
	bodies are never read, but they need to be consumed to keep the
	connection usable."""

	__slots__ = ["remaining"]

	def __init__(self) -> None:
		self.remaining: int = 0

	def reset(self, length: int = 0) -> "BodySkipParser":
		self.remaining = length
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		read = min(len(chunk) - start, self.remaining)
		self.remaining -= read
		return (True if self.remaining == 0 else None), read


class HTTPParser:
	"""A stateful HTTP request parser, yielding atoms as chunks are fed."""

	def __init__(self) -> None:
		self.line: RequestLineParser = RequestLineParser()
		self.headers: HeadersParser = HeadersParser()
		self.body: BodySkipParser = BodySkipParser()
		self.parser: RequestLineParser | HeadersParser | BodySkipParser = self.line
		self.requestLine: HTTPRequestLine | None = None
		self.pending: HTTPRequest | None = None

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# The underlying parsers keep a buffer up until they are
			# flushed, so a partially read chunk is never fed twice.
			ln, read = self.parser.feed(chunk, offset)
			offset += read
			if ln is None:
				continue
			elif self.parser is self.line:
				line = self.line.flush()
				if ln is False or line is None:
					yield HTTPProcessingStatus.BadFormat
					return
				self.requestLine = line
				yield line
				self.parser = self.headers
			elif self.parser is self.headers:
				if ln is not False:
					# `ln` is the header name, we wait for the empty line
					continue
				headers = self.headers.flush()
				yield headers
				line = self.requestLine or HTTPRequestLine("GET", "/", "", "HTTP/1.1")
				request = HTTPRequest(
					method=line.method,
					path=line.path,
					query=line.query or None,
					headers=headers,
					protocol=line.protocol,
				)
				if headers.contentLength:
					self.pending = request
					self.parser = self.body.reset(headers.contentLength)
					yield HTTPProcessingStatus.Body
				else:
					self.parser = self.line.reset()
					yield request
			elif self.parser is self.body:
				request = self.pending
				self.pending = None
				self.parser = self.line.reset()
				if request:
					yield request


# EOF
