from pathlib import Path
from types import MappingProxyType
from typing import Mapping

# --
# The `.` key is used for files without an extension, and `*` for any
# extension that is not in the map. An empty content type disables the
# serving of the extension, which is how extensions get blacklisted.
MIME_TYPES: Mapping[str, str] = MappingProxyType(
	{
		"css": "text/css",
		"gif": "image/gif",
		"html": "text/html",
		"ico": "image/x-icon",
		"jpeg": "image/jpeg",
		"jpg": "image/jpeg",
		"js": "application/javascript",
		"json": "application/json",
		"otf": "font/otf",
		"png": "image/png",
		"ttf": "font/ttf",
		"txt": "text/plain",
		"woff": "font/woff",
		"woff2": "font/woff2",
		".": "application/octet-stream",
		"*": "application/octet-stream",
	}
)

NO_EXTENSION: str = "."
ANY_EXTENSION: str = "*"


class MimeRegistry:
	"""Maps file extensions to content types. The registry is built once
	from the defaults and the given overrides, and can't be changed
	afterwards."""

	__slots__ = ["types"]

	def __init__(self, overrides: Mapping[str, str] | None = None):
		types: dict[str, str] = dict(MIME_TYPES)
		if overrides:
			# Keys are looked up normalized, so `.TTF` overrides `ttf`
			types.update((self.Normalize(k), v) for k, v in overrides.items())
		self.types: Mapping[str, str] = MappingProxyType(types)

	@staticmethod
	def Normalize(extension: str | None) -> str:
		ext = (extension or "").lower()
		ext = ext[1:] if ext.startswith(".") else ext
		return ext or NO_EXTENSION

	def resolve(self, extension: str | None) -> str | None:
		"""Returns the content type for the given extension (with or without
		its leading dot), or `None` when serving it is disabled."""
		key = self.Normalize(extension)
		content_type = (
			self.types[key] if key in self.types else self.types.get(ANY_EXTENSION)
		)
		return content_type or None

	def forPath(self, path: Path | str) -> str | None:
		return self.resolve(Path(path).suffix)

	def __contains__(self, extension: str) -> bool:
		return self.Normalize(extension) in self.types

	def __repr__(self) -> str:
		return f"MimeRegistry({len(self.types)} types)"


# EOF
