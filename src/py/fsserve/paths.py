import os
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlsplit

TRAVERSAL: str = ".."


class PathResolver:
	"""Maps request URLs to paths within the served root."""

	__slots__ = ["root", "base"]

	def __init__(self, root: Path | str):
		self.root: Path = root if isinstance(root, Path) else Path(root or ".")
		# The canonical root, used for containment checks only. Resolved
		# paths keep the root as it was given.
		self.base: Path = Path(os.path.normpath(self.root.absolute()))

	@staticmethod
	def IsSafe(url: str | None) -> bool:
		"""A URL is unsafe when it contains `..`, either as it was sent or
		once percent-decoded. An empty URL is safe."""
		if not url:
			return True
		return TRAVERSAL not in url and TRAVERSAL not in unquote(url)

	def isSafe(self, url: str | None) -> bool:
		return self.IsSafe(url)

	def resolve(self, url: str | None) -> Path | None:
		"""Returns the filesystem path for the given URL, discarding its
		query and fragment, or `None` when it would fall outside of the
		root."""
		target = (url or "").split("#", 1)[0].split("?", 1)[0]
		# NOTE: `urlsplit` would read `//name/…` as a host, so it's only
		# used for absolute-form targets.
		# Percent-encoded bytes are decoded the way the filesystem encodes
		# names, so that names that are not UTF-8 can still be requested.
		path = os.fsdecode(
			unquote_to_bytes(urlsplit(target).path if "://" in target else target)
		)
		if "\x00" in path:
			return None
		# Leading slashes would make the path absolute, replacing the root.
		local_path = self.root.joinpath(path.lstrip("/"))
		return local_path if self.contains(local_path) else None

	def contains(self, path: Path) -> bool:
		"""Tells if the path is the root or one of its descendants."""
		parts = Path(os.path.normpath(path.absolute())).parts
		return parts[: len(self.base.parts)] == self.base.parts

	def relative(self, path: Path) -> str:
		"""Returns the URL path of a path within the root, starting with `/`."""
		rel = Path(os.path.normpath(path.absolute())).relative_to(self.base)
		return "/" if rel == Path(".") else f"/{rel.as_posix()}"


# EOF
