from typing import NamedTuple
from enum import Enum
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


# Every in-flight request holds a socket and, while streaming, an open
# file, so a busy server needs twice the files of its connection count.
REASONABLE_LIMITS: dict[LimitType, int] = {
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit for `scope` towards the hard limit, capped
	at a reasonable maximum. Returns the new limit, or `False` when the
	system refused the change."""
	lm = limit(scope)
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	try:
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if lm.hard == resource.RLIM_INFINITY:
			target = maximum or lm.soft
		else:
			target = int(lm.soft + ratio * (lm.hard - lm.soft))
		# Darwin reports huge hard limits that overflow `setrlimit`.
		if maximum:
			target = min(maximum, target)
		if target <= lm.soft:
			return lm.soft
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except (ValueError, OSError):
		return False


# EOF
