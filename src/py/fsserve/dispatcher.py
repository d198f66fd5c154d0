import itertools
from typing import Iterator

from .config import ServerConfig
from .events import NullObserver, Observer, RequestArrived
from .http.model import HTTPRequest, HTTPResponse
from .listing import DirectoryLister
from .mime import MimeRegistry
from .paths import PathResolver
from .responder import FileResponder, RequestContext
from .utils.logging import exception

SUPPORTED_METHODS: frozenset[str] = frozenset(("GET",))


class RequestDispatcher:
	"""The entry point for every request: numbers the request, notifies the
	observer of its arrival, rejects what can't be served and hands the rest
	to the `FileResponder`.

	Request identifiers start at 1 and increase for the lifetime of the
	dispatcher. The dispatcher is meant to be used from a single event loop,
	which is what makes the counter safe without locks."""

	def __init__(self, config: ServerConfig, observer: Observer | None = None):
		self.config: ServerConfig = config
		self.observer: Observer = observer or NullObserver()
		self.mime: MimeRegistry = MimeRegistry(config.mimeTypes)
		self.resolver: PathResolver = PathResolver(config.root)
		self.lister: DirectoryLister = DirectoryLister(self.resolver)
		self.responder: FileResponder = FileResponder(
			self.resolver,
			self.mime,
			self.lister,
			self.observer,
			defaultDocument=config.defaultDocument,
			directoryListing=config.directoryListing,
			notFound=config.notFound,
		)
		self.headers: dict[str, str] = dict(config.headers)
		self._ids: Iterator[int] = itertools.count(1)

	def nextRequestId(self) -> int:
		return next(self._ids)

	async def process(self, request: HTTPRequest) -> HTTPResponse:
		request_id = self.nextRequestId()
		self.observer.notify(RequestArrived(request_id, request.method, request.url))
		if request.method not in SUPPORTED_METHODS:
			response = request.notAllowed()
		elif not self.resolver.isSafe(request.url):
			# NOTE: Traversal attempts get a plain 404, without going
			# through the not found page.
			response = request.notFound()
		else:
			context = RequestContext(request_id, request)
			try:
				response = await self.responder.serve(request.url, context)
			except OSError as e:
				exception(e, f"Request #{request_id} failed")
				context.close()
				response = request.fail()
		return self.decorate(response)

	def decorate(self, response: HTTPResponse) -> HTTPResponse:
		"""Adds the configured static headers, except to 404s."""
		if self.headers and response.status != 404:
			response.setHeaders(self.headers)
		return response


# EOF
