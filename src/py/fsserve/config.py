import json
import re
from os import environ, getenv
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
	from .tls import TLSMaterial

# If we're starting the server for local development, we only want it to be
# accessible from this machine.
HOST: str = getenv("HOST", "127.0.0.1")

# Parsed by `parsePort` when the configuration is built, so that a bad
# value is reported like any other configuration error.
PORT: str | None = getenv("PORT")

LOG_REQUESTS: bool = getenv("FSSERVE_LOG_REQUESTS", "1") == "1"

DEFAULT_DOCUMENT: str = "index.html"

RE_ENVIRONMENT_VARIABLE = re.compile(r"%([^%]+)%")


class ConfigurationError(Exception):
	"""Raised when the configuration can't be used to start the server."""


class ServerConfig(NamedTuple):
	"""What the server serves and how. An empty `defaultDocument` disables
	default documents, `notFound` is the URL path (relative to the root) of
	the page served instead of a plain 404, and `headers` are added to every
	response that isn't a 404."""

	root: str = "."
	defaultDocument: str = DEFAULT_DOCUMENT
	directoryListing: bool = False
	notFound: str | None = None
	mimeTypes: dict[str, str] | None = None
	host: str = HOST
	port: int | None = None
	tls: "TLSMaterial | None" = None
	headers: tuple[tuple[str, str], ...] = ()

	@property
	def listenPort(self) -> int:
		if self.port is not None:
			return self.port
		return 443 if self.tls else 80


def interpolate(value: str | None) -> str | None:
	"""Replaces `%NAME%` occurrences with the value of the `NAME`
	environment variable, which is empty when not defined."""
	if not value:
		return value
	return RE_ENVIRONMENT_VARIABLE.sub(lambda m: environ.get(m.group(1), ""), value)


def parseMimeTypes(text: str, origin: str = "inline") -> dict[str, str]:
	try:
		data = json.loads(text)
	except ValueError as e:
		raise ConfigurationError(f"Malformed MIME map ({origin}): {e}") from e
	if not isinstance(data, dict) or not all(
		isinstance(k, str) and isinstance(v, str) for k, v in data.items()
	):
		raise ConfigurationError(
			f"MIME map ({origin}) must be a JSON object of strings, got: {text!r}"
		)
	return data


def loadMimeTypes(
	inline: str | None = None, path: str | Path | None = None
) -> dict[str, str] | None:
	"""Loads MIME overrides given inline as JSON and/or from a JSON file,
	the inline overrides winning over the file ones."""
	res: dict[str, str] | None = None
	if path:
		try:
			text = Path(path).read_text("utf8")
		except OSError as e:
			raise ConfigurationError(f"Could not read MIME map file {path}: {e}") from e
		res = parseMimeTypes(text, str(path))
	if inline:
		res = (res or {}) | parseMimeTypes(inline)
	return res


def parsePort(text: str | int | None) -> int | None:
	"""Parses a TCP port, `None` or an empty value meaning the default."""
	if text is None or text == "":
		return None
	try:
		port = int(text)
	except ValueError as e:
		raise ConfigurationError(f"Expected a port number, got: {text!r}") from e
	if not 0 <= port <= 65535:
		raise ConfigurationError(f"Port out of range: {port}")
	return port


def parseHeader(text: str) -> tuple[str, str]:
	"""Parses a `Name: value` header."""
	name, sep, value = text.partition(":")
	if not sep or not name.strip():
		raise ConfigurationError(f"Expected header as 'Name: value', got: {text!r}")
	return name.strip(), value.strip()


# EOF
