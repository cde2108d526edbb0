"""Weighted random kick-pattern generation.

Candidates are drawn from the beat grid with probabilities shaped by
metrical strength, so downbeats and strong beats attract kicks more often
than the sixteenths between them.  The complexity level tilts those
weights towards or away from the beat and sets how many kicks to aim for.

Every candidate must pass :func:`kickbeats.pattern.validate` and differ
from each recent pattern by a minimum Hamming distance.  When that proves
too strict the distance is relaxed tier by tier; the tier that was finally
satisfied is returned with the pattern so callers can tell the user.
"""

import logging
import random
import typing

import kickbeats.constants
import kickbeats.grid
import kickbeats.pattern


logger = logging.getLogger(__name__)

T = typing.TypeVar("T")

# (minimum Hamming distance, candidate-generation cycles), strictest first.
DistanceTiers = typing.Iterable[typing.Tuple[int, int]]

DEFAULT_TIERS: typing.Tuple[typing.Tuple[int, int], ...] = ((3, 10), (2, 10), (1, 10))

SUPPORTED_SIGNATURES = frozenset({(4, 4)})


class UnsupportedSignature (ValueError):

	"""
	Raised when generation is requested for a time signature the generator does not handle yet.
	"""


class GenerationExhausted (RuntimeError):

	"""
	Raised when no valid candidate met any distance tier within its attempt budget.
	"""


def position_weights (grid: kickbeats.grid.BeatGrid, complexity: kickbeats.pattern.Complexity) -> typing.List[float]:

	"""
	Per-position sampling weights: metrical strength scaled for the complexity level.
	"""

	on_beat, off_beat = complexity.beat_multipliers
	beats = set(grid.beat_positions())

	return [
		grid.position_strength(i) * (on_beat if i in beats else off_beat)
		for i in range(grid.total_positions())
	]


def choose_index (weights: typing.Sequence[float], rng: random.Random) -> int:

	"""
	Pick an index with probability proportional to its weight.
	"""

	total_weight = sum(weights)

	if total_weight <= 0:
		raise ValueError("Total weight must be positive")

	roll = rng.uniform(0, total_weight)
	accum = 0.0

	for i, weight in enumerate(weights):
		accum += weight
		if roll <= accum:
			return i

	return len(weights) - 1


def is_pattern_unique (pattern: kickbeats.pattern.Pattern, history: typing.Iterable[kickbeats.pattern.Pattern], min_distance: int) -> bool:

	"""
	True when ``pattern`` differs from every pattern in ``history`` by at least ``min_distance`` steps.

	An empty history accepts anything.
	"""

	return all(pattern.hamming_distance(previous) >= min_distance for previous in history)


def escalate (tiers: DistanceTiers, attempt: typing.Callable[[int], typing.Optional[T]]) -> typing.Tuple[T, int]:

	"""
	Drive ``attempt`` through each distance tier in turn.

	``attempt`` receives the tier's minimum distance and returns a result,
	or ``None`` to use up one of that tier's cycles. The first result is
	returned together with the distance it was found at.
	"""

	tried: typing.List[str] = []

	for min_distance, cycles in tiers:

		for _ in range(cycles):

			result = attempt(min_distance)

			if result is not None:
				return result, min_distance

		logger.debug(f"No acceptable pattern at distance >= {min_distance} after {cycles} cycles")
		tried.append(f">= {min_distance} x {cycles}")

	raise GenerationExhausted(f"Failed to generate a unique pattern (tried distance {', '.join(tried) or 'none'})")


class WeightedGenerator:

	"""
	Proposes, validates and de-duplicates kick patterns.

	Pass a seeded ``random.Random`` to make generation repeatable.
	"""

	def __init__ (
		self,
		rng: typing.Optional[random.Random] = None,
		tiers: DistanceTiers = DEFAULT_TIERS,
		subdivision: int = kickbeats.constants.DEFAULT_SUBDIVISION,
		measure_count: int = kickbeats.constants.DEFAULT_MEASURE_COUNT
	) -> None:

		self.rng = rng or random.Random()
		self.tiers = tuple(tiers)
		self.subdivision = subdivision
		self.measure_count = measure_count


	def _check_signature (self, time_signature: kickbeats.grid.TimeSignature) -> None:

		if (time_signature.numerator, time_signature.denominator) not in SUPPORTED_SIGNATURES:
			raise UnsupportedSignature(f"Time signature {time_signature} is not supported for generation yet (only 4/4)")


	def propose (self, time_signature: kickbeats.grid.TimeSignature, complexity: kickbeats.pattern.Complexity) -> kickbeats.pattern.Pattern:

		"""
		Draw one candidate pattern. The result is not validated.
		"""

		grid = kickbeats.grid.BeatGrid(time_signature, self.subdivision, self.measure_count)
		weights = position_weights(grid, complexity)

		min_kicks, max_kicks = complexity.kick_range
		target_kicks = self.rng.randint(min_kicks, max_kicks)

		steps = [False] * grid.total_positions()
		steps[0] = True
		kicks = 1
		draws = 0

		while kicks < target_kicks and draws < kickbeats.constants.MAX_DRAWS_PER_CANDIDATE:

			idx = choose_index(weights, self.rng)
			draws += 1

			if not steps[idx]:
				steps[idx] = True
				kicks += 1

		return kickbeats.pattern.Pattern(
			steps = tuple(steps),
			time_signature = time_signature,
			complexity = complexity,
			subdivision = self.subdivision,
			measure_count = self.measure_count
		)


	def _run_cycle (
		self,
		time_signature: kickbeats.grid.TimeSignature,
		complexity: kickbeats.pattern.Complexity,
		history: typing.Sequence[kickbeats.pattern.Pattern],
		min_distance: int
	) -> typing.Optional[kickbeats.pattern.Pattern]:

		"""
		Draw candidates until one is valid and far enough from history, or the cycle's budget runs out.
		"""

		for _ in range(kickbeats.constants.MAX_CANDIDATES_PER_CYCLE):

			candidate = self.propose(time_signature, complexity)

			if candidate.find_violation() is not None:
				continue

			if is_pattern_unique(candidate, history, min_distance):
				return candidate

		return None


	def generate (self, time_signature: kickbeats.grid.TimeSignature, complexity: kickbeats.pattern.Complexity) -> kickbeats.pattern.Pattern:

		"""
		Return one valid pattern without any uniqueness requirement.
		"""

		self._check_signature(time_signature)

		pattern = self._run_cycle(time_signature, complexity, (), 0)

		if pattern is None:
			raise GenerationExhausted(f"Failed to generate a valid pattern after {kickbeats.constants.MAX_CANDIDATES_PER_CYCLE} candidates")

		return pattern


	def generate_unique (
		self,
		time_signature: kickbeats.grid.TimeSignature,
		complexity: kickbeats.pattern.Complexity,
		history: typing.Iterable[kickbeats.pattern.Pattern]
	) -> typing.Tuple[kickbeats.pattern.Pattern, int]:

		"""
		Return a valid pattern unlike the recent ones, and the distance tier it satisfied.

		Raises:
			UnsupportedSignature: for anything other than 4/4.
			GenerationExhausted: when every tier ran out of cycles.
		"""

		self._check_signature(time_signature)

		previous = list(history)

		pattern, min_distance = escalate(
			self.tiers,
			lambda distance: self._run_cycle(time_signature, complexity, previous, distance)
		)

		if self.tiers and min_distance < self.tiers[0][0]:
			logger.warning(f"Relaxed uniqueness constraint to distance >= {min_distance} against {len(previous)} recent patterns")

		return pattern, min_distance
