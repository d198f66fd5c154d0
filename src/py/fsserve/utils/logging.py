import os
import sys
import time
import traceback
from contextvars import ContextVar
from enum import Enum
from typing import Any, NamedTuple, TextIO, TypeAlias

from .term import Term

# --
# Console logging for the server. Entries are written to `ERR` as one
# line each, like `12:00:01 [fsserve] Message Key=value`, and filtered by
# the level given in `FSSERVE_LOG_LEVEL`.

ERR: TextIO = sys.stderr

TPrimitive: TypeAlias = (
	None | bool | int | float | str | bytes | list[Any] | tuple[Any, ...] | dict[str, Any]
)

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="fsserve")


class LogType(Enum):
	Message = 0
	Event = 20


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR: dict[LogLevel, int] = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


def parseLevel(name: str | None, default: LogLevel = LogLevel.Info) -> LogLevel:
	"""Parses a level name like `debug` or `Warning`, returning `default`
	when the name is not known."""
	if not name:
		return default
	key = name.strip().capitalize()
	return LogLevel[key] if key in LogLevel.__members__ else default


LOG_LEVEL: LogLevel = parseLevel(os.getenv("FSSERVE_LOG_LEVEL"))


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: Any = None
	context: dict[str, TPrimitive] | None = None
	icon: str | None = None


def setLevel(level: LogLevel | str) -> LogLevel:
	global LOG_LEVEL
	LOG_LEVEL = parseLevel(level) if isinstance(level, str) else level
	return LOG_LEVEL


def setErrorStream(stream: TextIO) -> TextIO:
	global ERR
	ERR = stream
	return ERR


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.NORMAL}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, (list, tuple)):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def formatEntry(entry: LogEntry) -> str:
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	stamp: str = time.strftime("%H:%M:%S", time.localtime(entry.time))
	prefix: str = f"{Term.DIM}{stamp}{Term.RESET} {clr}{Term.BOLD}[{entry.origin}]"
	context: str = formatData(entry.context) if entry.context else ""
	if entry.type is LogType.Event:
		head = f"{prefix} {entry.name}{Term.RESET} {formatData(entry.value)}"
	else:
		icon: str = f" {entry.icon}" if entry.icon else ""
		code: str = f" ({entry.value})" if entry.value is not None else ""
		head = f"{prefix}{Term.RESET}{icon} {entry.message}{code}"
	return f"{head} {context}{Term.RESET}" if context else f"{head}{Term.RESET}"


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value >= LOG_LEVEL.value:
		ERR.write(f"{formatEntry(entry)}\n")
		ERR.flush()
	return entry


def entry(
	*,
	origin: str | None = None,
	type: LogType = LogType.Message,
	level: LogLevel = LogLevel.Info,
	message: str | None = None,
	name: str | None = None,
	value: Any = None,
	context: dict[str, TPrimitive],
	icon: str | None = None,
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		type=type,
		level=level,
		message=message,
		name=name,
		value=value,
		context=context,
		icon=icon,
	)


def log(
	level: LogLevel,
	message: str,
	*,
	value: Any = None,
	origin: str | None = None,
	icon: str | None = None,
	context: dict[str, TPrimitive],
) -> LogEntry:
	return send(
		entry(
			message=message,
			value=value,
			level=level,
			origin=origin,
			context=context,
			icon=icon,
		)
	)


def debug(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return log(LogLevel.Debug, message, origin=origin, icon=icon, context=context)


def info(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return log(LogLevel.Info, message, origin=origin, icon=icon, context=context)


def warning(
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return log(LogLevel.Warning, message, origin=origin, icon=icon, context=context)


def error(
	message: str,
	code: int | str | None = None,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	"""Logs a managed error, `code` identifies the error for operators."""
	return log(
		LogLevel.Error, message, value=code, origin=origin, icon=icon, context=context
	)


def event(
	event: str,
	value: Any = None,
	*,
	origin: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			name=event,
			value=value,
			type=LogType.Event,
			origin=origin,
			context=context,
		)
	)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	"""Writes the exception and its traceback, and returns it so that this
	can be used as `raise exception(e)`. This never raises, as it's called
	from exception handlers and hooks."""
	try:
		name = exception.__class__.__name__
		stream = ERR
		stream.write(
			f"{Term.Color(LOG_LEVEL_COLOR[LogLevel.Exception])}!!! EXCP "
			f"{f'{message}: ' if message else ''}[{name}] {exception}{Term.RESET}\n"
		)
		for frame in traceback.extract_tb(exception.__traceback__):
			stream.write(
				f"... in {frame.name:15s} at {frame.lineno or 0:4d} in {frame.filename}\n"
			)
		stream.flush()
	except Exception:  # nosec: B110
		pass
	return exception


LOGGER_LEVEL: dict[Any, LogLevel] = {
	debug: LogLevel.Debug,
	info: LogLevel.Info,
	warning: LogLevel.Warning,
	error: LogLevel.Error,
	event: LogLevel.Info,
}


def logged(item: Any) -> bool:
	"""Tells if the given logging function currently outputs anything, so
	that callers can skip building costly context."""
	level = LOGGER_LEVEL.get(item)
	return level is None or level.value >= LOG_LEVEL.value


# EOF
