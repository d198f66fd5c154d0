"""Shared fixtures: a small site on disk and dispatchers serving it."""

import os
from pathlib import Path
from typing import Callable

import pytest

from fsserve.config import ServerConfig
from fsserve.dispatcher import RequestDispatcher
from fsserve.events import Observer, TLifecycleEvent

# Spans several read chunks
BIG_FILE_SIZE: int = 200_001


class RecordingObserver(Observer):
	"""Keeps the lifecycle events it was notified of."""

	def __init__(self) -> None:
		self.events: list[TLifecycleEvent] = []

	def notify(self, event: TLifecycleEvent) -> None:
		self.events.append(event)

	def names(self) -> list[str]:
		return [_.NAME for _ in self.events]


@pytest.fixture()
def site(tmp_path: Path) -> Path:
	root = tmp_path / "site"
	root.mkdir()
	(root / "index.html").write_text("<h1>Home</h1>")
	(root / "hello.txt").write_text("Hello, World!")
	(root / "style.css").write_text("body{color:red}")
	(root / "font.ttf").write_bytes(b"\x00\x01\x00\x00font")
	(root / "data.bin").write_bytes(b"\x00\x01\x02")
	(root / "README").write_text("read me")
	(root / "404.html").write_text("<h1>Missing</h1>")
	(root / "big.bin").write_bytes(os.urandom(BIG_FILE_SIZE))
	(root / "docs").mkdir()
	(root / "docs" / "index.html").write_text("<h1>Docs</h1>")
	(root / "docs" / "guide.txt").write_text("guide")
	(root / "empty").mkdir()
	return root


@pytest.fixture()
def observer() -> RecordingObserver:
	return RecordingObserver()


@pytest.fixture()
def makeDispatcher(
	site: Path, observer: RecordingObserver
) -> Callable[..., RequestDispatcher]:
	"""Creates a dispatcher for the site, keyword arguments override the
	configuration."""

	def factory(**options) -> RequestDispatcher:
		return RequestDispatcher(
			ServerConfig(root=str(site), port=None)._replace(**options), observer
		)

	return factory


@pytest.fixture()
def dispatcher(makeDispatcher: Callable[..., RequestDispatcher]) -> RequestDispatcher:
	return makeDispatcher()


# EOF
