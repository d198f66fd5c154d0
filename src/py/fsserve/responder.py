import asyncio
import os
import stat
import time
from pathlib import Path
from typing import BinaryIO

from .events import FileResolved, Observer, ResponseSent
from .http.model import HTTPBodyFileStream, HTTPRequest, HTTPResponse
from .listing import DirectoryLister
from .mime import MimeRegistry
from .paths import PathResolver
from .utils.logging import debug, logged, warning

# -----------------------------------------------------------------------------
#
# REQUEST CONTEXT
#
# -----------------------------------------------------------------------------


class RequestContext:
	"""The state of one request being answered. The context owns the file
	handle opened for the response, and closes it on the first of the
	request's `error`/`close` or the response's `error`/`finish`."""

	__slots__ = ["requestId", "request", "started", "handle", "response", "closed"]

	def __init__(self, requestId: int, request: HTTPRequest):
		self.requestId: int = requestId
		self.request: HTTPRequest = request
		self.started: float = time.monotonic()
		self.handle: BinaryIO | None = None
		self.response: HTTPResponse | None = None
		self.closed: bool = False

	@property
	def elapsed(self) -> float:
		"""Milliseconds elapsed since the context started."""
		return (time.monotonic() - self.started) * 1000.0

	def attach(self, handle: BinaryIO) -> BinaryIO:
		"""Gives ownership of the handle to the context. A context that is
		already closed closes the handle right away."""
		self.handle = handle
		if self.closed:
			self.release()
		return handle

	def release(self) -> None:
		handle, self.handle = self.handle, None
		if handle is not None and not handle.closed:
			handle.close()

	def close(self, *_: object) -> None:
		"""Closes the context, this can safely be called more than once."""
		self.closed = True
		self.release()

	def respond(self, response: HTTPResponse) -> HTTPResponse:
		"""Registers `response` as the one and only response for the
		request."""
		if self.response is not None:
			raise RuntimeError(
				f"Request #{self.requestId} already has a response: {self.response}"
			)
		self.response = response
		response.onError(self.close).onFinish(self.close)
		return response


def closeOpened(opening: "asyncio.Future[BinaryIO]") -> None:
	if not opening.cancelled() and opening.exception() is None:
		opening.result().close()


# -----------------------------------------------------------------------------
#
# FILE RESPONDER
#
# -----------------------------------------------------------------------------


class FileResponder:
	"""Resolves request URLs to files, directory listings or default
	documents, and responds with the file streamed from disk."""

	def __init__(
		self,
		resolver: PathResolver,
		mime: MimeRegistry,
		lister: DirectoryLister,
		observer: Observer,
		*,
		defaultDocument: str = "",
		directoryListing: bool = False,
		notFound: str | None = None,
	):
		self.resolver: PathResolver = resolver
		self.mime: MimeRegistry = mime
		self.lister: DirectoryLister = lister
		self.observer: Observer = observer
		self.defaultDocument: str = defaultDocument
		self.directoryListing: bool = directoryListing
		self.notFound: str | None = notFound

	async def serve(self, url: str, context: RequestContext) -> HTTPResponse:
		"""Responds to `url` within the given context. This always returns
		a response, which is registered in the context."""
		request = context.request
		request.onError(context.close).onClose(context.close)
		context.started = time.monotonic()
		response = await self.resolve(url, context)
		context.respond(response)
		response.onFinish(
			lambda _: self.observer.notify(
				ResponseSent(context.requestId, request.url, context.elapsed)
			)
		)
		return response

	async def resolve(
		self, url: str, context: RequestContext, *, fallback: bool = True
	) -> HTTPResponse:
		request = context.request
		path: Path | None = self.resolver.resolve(url)
		if path is None:
			return await self.respondNotFound(context, fallback)
		try:
			mode = (await asyncio.to_thread(os.stat, path)).st_mode
		except (OSError, ValueError):
			return await self.respondNotFound(context, fallback)
		if stat.S_ISDIR(mode):
			if self.directoryListing:
				try:
					listing = await asyncio.to_thread(self.lister.list, path)
				except OSError as e:
					warning("Could not list directory", Path=str(path), Error=str(e))
					return request.fail()
				return request.respondHTML(listing)
			elif not self.defaultDocument:
				return await self.respondNotFound(context, fallback)
			else:
				# NOTE: The default document is a server-side name, so the
				# rewritten path does not go through the safety checks again.
				path = path / self.defaultDocument
		elif not stat.S_ISREG(mode):
			# Devices, sockets and pipes are not served
			return await self.respondNotFound(context, fallback)
		content_type = self.mime.forPath(path)
		if not content_type:
			# The extension is disabled in the MIME map
			return await self.respondNotFound(context, fallback)
		self.observer.notify(FileResolved(context.requestId, str(path), content_type))
		return await self.respondFile(path, content_type, context, fallback)

	async def respondFile(
		self,
		path: Path,
		contentType: str,
		context: RequestContext,
		fallback: bool = True,
	) -> HTTPResponse:
		request = context.request
		try:
			handle: BinaryIO = await self.openFile(path)
		except FileNotFoundError:
			# The file existed at stat time but is gone, or the default
			# document does not exist in the directory.
			return await self.respondNotFound(context, fallback)
		except OSError as e:
			warning("Could not open file", Path=str(path), Error=str(e))
			return request.fail()
		context.attach(handle)
		try:
			length: int | None = os.fstat(handle.fileno()).st_size
		except OSError:
			length = None
		logged(debug) and debug(
			"Streaming file", Request=context.requestId, Path=str(path), Size=length
		)
		return request.respond(
			HTTPBodyFileStream(handle, length), contentType=contentType
		)

	async def openFile(self, path: Path) -> BinaryIO:
		"""Opens the file in a worker thread. When the request is cancelled
		while the thread is opening the file, the handle is closed as soon as
		the thread returns it."""
		opening: asyncio.Future[BinaryIO] = asyncio.ensure_future(
			asyncio.to_thread(open, path, "rb")
		)
		try:
			return await asyncio.shield(opening)
		except asyncio.CancelledError:
			opening.add_done_callback(closeOpened)
			raise

	async def respondNotFound(
		self, context: RequestContext, fallback: bool = True
	) -> HTTPResponse:
		"""Serves the not found page when there is one, going once more
		through `resolve`, or responds with a plain 404."""
		if fallback and self.notFound:
			path = self.resolver.resolve(self.notFound)
			if path is not None and await asyncio.to_thread(path.exists):
				return await self.resolve(self.notFound, context, fallback=False)
		return context.request.notFound()


# EOF
