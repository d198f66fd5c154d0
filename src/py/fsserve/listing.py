import os
import stat
from pathlib import Path
from typing import NamedTuple
from urllib.parse import quote

from .paths import PathResolver
from .utils.htmpl import H, Node, html, raw
from .utils.logging import debug, logged

LISTING_CSS: str = """
:root {
	font-family: sans-serif;
	font-size: 14px;
	line-height: 1.35em;
	padding: 20px;
	background: #F0F0F0;
}
h2 {
	margin-top: 1.25em;
}
ul {
	padding: 0px 20px;
	margin: 1.25em 0em;
}
li {
	padding: 0px 10px;
	margin: 0.5em 0em;
}
hr {
	border: none;
	border-top: 1px solid #D0D0D0;
}
"""


def displayName(path: Path) -> str:
	"""The path as text that can be encoded, bytes that are not UTF-8 are
	shown as escapes."""
	return os.fsencode(path).decode("utf8", "backslashreplace")


class DirectoryEntry(NamedTuple):
	path: Path
	isDirectory: bool


class DirectoryLister:
	"""Renders the immediate children of a directory as an HTML page,
	folders first then files, each sorted by name."""

	def __init__(self, resolver: PathResolver):
		self.resolver: PathResolver = resolver

	def entries(self, directory: Path) -> list[DirectoryEntry]:
		"""Lists the children of `directory`, raising an `OSError` when it
		can't be enumerated. Children that can't be stat'ed, like broken
		links, are left out."""
		res: list[DirectoryEntry] = []
		with os.scandir(directory) as children:
			for child in children:
				path = directory / child.name
				try:
					mode = os.stat(path).st_mode
				except OSError as e:
					logged(debug) and debug(
						"Skipping listing entry", Path=str(path), Error=str(e)
					)
					continue
				res.append(DirectoryEntry(path, stat.S_ISDIR(mode)))
		return sorted(res, key=lambda _: _.path.name)

	def href(self, entry: DirectoryEntry) -> str:
		# The page has `<base href="/">`, so links are relative to the root
		url = self.resolver.relative(entry.path).lstrip("/")
		# Quoting the filesystem bytes keeps names that are not UTF-8 reachable
		return quote(os.fsencode(f"{url}/" if entry.isDirectory else url))

	def item(self, entry: DirectoryEntry) -> Node:
		path = displayName(entry.path)
		label = f"{path}/" if entry.isDirectory else path
		return H.li(H.a(label, href=self.href(entry)))

	def render(self, directory: Path, entries: list[DirectoryEntry]) -> str:
		dirs = [self.item(_) for _ in entries if _.isDirectory]
		files = [self.item(_) for _ in entries if not _.isDirectory]
		return "".join(
			html(
				H.html(
					H.head(
						H.meta(charset="utf-8"),
						H.meta(
							name="viewport",
							content="width=device-width, initial-scale=1.0",
						),
						H.base(href="/"),
						H.title(displayName(directory)),
						H.style(raw(LISTING_CSS)),
					),
					H.body(
						H.section(H.h2("Folders"), H.ul(dirs)),
						H.hr(),
						H.section(H.h2("Files"), H.ul(files)),
					),
				),
				doctype="html",
			)
		)

	def list(self, directory: Path) -> str:
		return self.render(directory, self.entries(directory))


# EOF
