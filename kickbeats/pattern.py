import collections
import dataclasses
import datetime
import enum
import typing
import uuid

import kickbeats.constants
import kickbeats.grid


class Complexity (enum.Enum):

	"""
	How busy and syncopated a generated pattern should be.
	"""

	SIMPLE = "simple"
	MEDIUM = "medium"
	COMPLEX = "complex"


	@classmethod
	def parse (cls, text: str) -> "Complexity":

		"""
		Accept a level name, its initial, or its number (1-3), in any case.
		"""

		aliases = {
			"simple": cls.SIMPLE, "s": cls.SIMPLE, "1": cls.SIMPLE,
			"medium": cls.MEDIUM, "m": cls.MEDIUM, "2": cls.MEDIUM,
			"complex": cls.COMPLEX, "c": cls.COMPLEX, "3": cls.COMPLEX,
		}

		key = str(text).strip().lower()

		if key not in aliases:
			raise ValueError(f"Invalid complexity {text!r}. Use: simple, medium, or complex")

		return aliases[key]


	@property
	def kick_range (self) -> typing.Tuple[int, int]:

		"""
		Inclusive (min, max) number of kicks a pattern at this level aims for.
		"""

		return _KICK_RANGES[self]


	@property
	def beat_multipliers (self) -> typing.Tuple[float, float]:

		"""
		(on-beat, off-beat) factors applied to the metrical weights.
		"""

		return _BEAT_MULTIPLIERS[self]


_KICK_RANGES = {
	Complexity.SIMPLE: (2, 4),
	Complexity.MEDIUM: (4, 6),
	Complexity.COMPLEX: (6, 8),
}

_BEAT_MULTIPLIERS = {
	Complexity.SIMPLE: (2.0, 0.5),
	Complexity.MEDIUM: (1.0, 1.0),
	Complexity.COMPLEX: (1.0, 1.5),
}


MIN_DENSITY = 0.125
MAX_DENSITY = 0.5
MAX_CONSECUTIVE_KICKS = 2
MIN_LONGEST_REST = 2
MAX_CONSECUTIVE_RESTS = 8


class Rule (enum.IntEnum):

	"""
	The checks a playable pattern must pass, in the order they are applied.
	"""

	HAS_KICK = 1
	DOWNBEAT_KICK = 2
	DENSITY = 3
	KICK_RUN = 4
	REST_PRESENT = 5
	REST_RUN = 6


class ValidationFailure (ValueError):

	"""
	Raised when a step sequence breaks one of the :class:`Rule` checks.
	"""

	def __init__ (self, rule: Rule, message: str) -> None:

		super().__init__(message)
		self.rule = rule


def _runs (steps: typing.Sequence[bool], value: bool) -> typing.List[int]:

	"""
	Lengths of every maximal run of ``value`` in ``steps``.
	"""

	runs: typing.List[int] = []
	current = 0

	for step in steps:

		if step == value:
			current += 1

		elif current:
			runs.append(current)
			current = 0

	if current:
		runs.append(current)

	return runs


def find_violation (steps: typing.Sequence[bool]) -> typing.Optional[ValidationFailure]:

	"""
	Return the first rule ``steps`` breaks, or ``None`` when it passes them all.
	"""

	kicks = sum(1 for step in steps if step)

	if kicks == 0:
		return ValidationFailure(Rule.HAS_KICK, "Pattern must have at least one kick")

	if not steps[0]:
		return ValidationFailure(Rule.DOWNBEAT_KICK, "Pattern must have a kick on the downbeat (position 0)")

	density = kicks / len(steps)

	if density < MIN_DENSITY or density > MAX_DENSITY:
		return ValidationFailure(Rule.DENSITY, f"Pattern density {density:.3f} out of range [{MIN_DENSITY}, {MAX_DENSITY}]")

	if max(_runs(steps, True)) > MAX_CONSECUTIVE_KICKS:
		return ValidationFailure(Rule.KICK_RUN, f"Pattern must not have more than {MAX_CONSECUTIVE_KICKS} consecutive kicks")

	rest_runs = _runs(steps, False)

	if not rest_runs or max(rest_runs) < MIN_LONGEST_REST:
		return ValidationFailure(Rule.REST_PRESENT, f"Pattern must have at least one rest of {MIN_LONGEST_REST}+ positions")

	if max(rest_runs) > MAX_CONSECUTIVE_RESTS:
		return ValidationFailure(Rule.REST_RUN, f"Pattern must not have more than {MAX_CONSECUTIVE_RESTS} consecutive rests")

	return None


def validate (steps: typing.Sequence[bool]) -> None:

	"""
	Raise the first :class:`ValidationFailure` found in ``steps``.
	"""

	failure = find_violation(steps)

	if failure is not None:
		raise failure


def hamming_distance (a: typing.Sequence[bool], b: typing.Sequence[bool]) -> int:

	"""
	Count the index-aligned positions where two equal-length step sequences differ.
	"""

	if len(a) != len(b):
		raise ValueError(f"Cannot compare step sequences of different lengths ({len(a)} and {len(b)})")

	return sum(1 for x, y in zip(a, b) if x != y)


@dataclasses.dataclass(frozen=True)
class Pattern:

	"""
	One kick-drum rhythm: a kick or a rest at every position of a beat grid.

	Patterns never change after construction. ``steps`` is stored as a tuple
	of booleans whatever sequence type it was built from.
	"""

	steps: typing.Tuple[bool, ...]
	time_signature: kickbeats.grid.TimeSignature = dataclasses.field(default_factory=kickbeats.grid.TimeSignature)
	complexity: Complexity = Complexity.MEDIUM
	subdivision: int = kickbeats.constants.DEFAULT_SUBDIVISION
	measure_count: int = kickbeats.constants.DEFAULT_MEASURE_COUNT
	id: str = dataclasses.field(default_factory=lambda: str(uuid.uuid4()), compare=False)
	created_at: datetime.datetime = dataclasses.field(default_factory=datetime.datetime.now, compare=False)


	def __post_init__ (self) -> None:

		# Frozen dataclass, so normalise through object.__setattr__.
		object.__setattr__(self, "steps", tuple(bool(step) for step in self.steps))

		expected = self.grid.total_positions()

		if len(self.steps) != expected:
			raise ValueError(f"Pattern needs {expected} steps for {self.time_signature} at 1/{self.subdivision}, got {len(self.steps)}")


	@property
	def grid (self) -> kickbeats.grid.BeatGrid:

		return kickbeats.grid.BeatGrid(self.time_signature, self.subdivision, self.measure_count)


	@property
	def length (self) -> int:

		return len(self.steps)


	@property
	def kick_count (self) -> int:

		return sum(1 for step in self.steps if step)


	def note_positions (self) -> typing.List[int]:

		"""
		Indices of every kick.
		"""

		return [i for i, step in enumerate(self.steps) if step]


	def density (self) -> float:

		"""
		Ratio of kicks to grid positions.
		"""

		return self.kick_count / len(self.steps)


	def hamming_distance (self, other: "Pattern") -> int:

		return hamming_distance(self.steps, other.steps)


	def find_violation (self) -> typing.Optional[ValidationFailure]:

		return find_violation(self.steps)


	def validate (self) -> None:

		validate(self.steps)


	def is_valid (self) -> bool:

		return find_violation(self.steps) is None


class PatternHistory:

	"""
	The most recently accepted patterns, oldest first.

	Holds at most ``capacity`` patterns; adding one more drops the oldest.
	"""

	def __init__ (self, capacity: int = kickbeats.constants.HISTORY_CAPACITY, patterns: typing.Iterable[Pattern] = ()) -> None:

		if capacity <= 0:
			raise ValueError("History capacity must be positive")

		self.capacity = capacity
		self._patterns: typing.Deque[Pattern] = collections.deque(maxlen=capacity)

		for pattern in patterns:
			self.add(pattern)


	def add (self, pattern: Pattern) -> None:

		self._patterns.append(pattern)


	def latest (self) -> typing.Optional[Pattern]:

		"""
		Return the most recently added pattern, if any.
		"""

		return self._patterns[-1] if self._patterns else None


	def clear (self) -> None:

		self._patterns.clear()


	def __iter__ (self) -> typing.Iterator[Pattern]:

		return iter(self._patterns)


	def __len__ (self) -> int:

		return len(self._patterns)
