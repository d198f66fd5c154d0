from typing import NamedTuple

from .http.model import (
	HTTPHeaders,
	HTTPRequest,
	HTTPResponse,
	MemoryBodyWriter,
	headername,
)
from .server import AIOStreamServer, Application


class Exchange(NamedTuple):
	"""A request and what was sent back for it, as produced by `request`."""

	request: HTTPRequest
	response: HTTPResponse | None
	data: bytes

	@property
	def status(self) -> int:
		return self.response.status if self.response else 500

	@property
	def body(self) -> bytes:
		"""The payload, without the head."""
		_, _, body = self.data.partition(b"\r\n\r\n")
		return body


async def request(
	app: Application,
	method: str,
	url: str,
	headers: dict[str, str] | None = None,
	protocol: str = "HTTP/1.1",
) -> Exchange:
	"""Sends a request to the application in-process, going through the same
	response path as the server but writing the response to memory."""
	path, _, query = url.partition("?")
	req = HTTPRequest(
		method,
		path,
		query or None,
		HTTPHeaders({headername(k): v for k, v in (headers or {}).items()}),
		protocol,
	)
	writer = MemoryBodyWriter()
	res = await AIOStreamServer.SendResponse(req, app, writer)
	return Exchange(req, res, bytes(writer.data))


# EOF
