from abc import ABC, abstractmethod
from typing import NamedTuple, TypeAlias, Iterable

from .utils.logging import event, exception

# -----------------------------------------------------------------------------
#
# EVENTS
#
# -----------------------------------------------------------------------------


class RequestArrived(NamedTuple):
	NAME = "request-arrived"

	requestId: int
	method: str
	url: str


class FileResolved(NamedTuple):
	NAME = "file-resolved"

	requestId: int
	path: str
	contentType: str


class ResponseSent(NamedTuple):
	NAME = "response-sent"

	requestId: int
	url: str
	durationMs: float


TLifecycleEvent: TypeAlias = RequestArrived | FileResolved | ResponseSent

# -----------------------------------------------------------------------------
#
# OBSERVERS
#
# -----------------------------------------------------------------------------


class Observer(ABC):
	"""Receives the lifecycle events of the requests processed by a
	dispatcher. Observers are given to the dispatcher at construction, there
	is no process-wide bus."""

	@abstractmethod
	def notify(self, event: TLifecycleEvent) -> None: ...


class NullObserver(Observer):
	def notify(self, event: TLifecycleEvent) -> None:
		pass


class LogObserver(Observer):
	"""Logs lifecycle events to the console."""

	def notify(self, item: TLifecycleEvent) -> None:
		if isinstance(item, RequestArrived):
			event(item.NAME, item.requestId, Method=item.method, URL=item.url)
		elif isinstance(item, FileResolved):
			event(
				item.NAME,
				item.requestId,
				Path=item.path,
				ContentType=item.contentType,
			)
		elif isinstance(item, ResponseSent):
			event(
				item.NAME,
				item.requestId,
				URL=item.url,
				Duration=f"{item.durationMs:0.1f}ms",
			)


class Observers(Observer):
	"""Dispatches events to many observers. An observer that fails is logged
	and does not prevent the others from being notified."""

	def __init__(self, observers: Iterable[Observer] = ()):
		self.observers: list[Observer] = list(observers)

	def add(self, observer: Observer) -> "Observers":
		self.observers.append(observer)
		return self

	def notify(self, event: TLifecycleEvent) -> None:
		for observer in self.observers:
			try:
				observer.notify(event)
			except Exception as e:
				exception(e, f"Observer {observer.__class__.__name__} failed")


# EOF
