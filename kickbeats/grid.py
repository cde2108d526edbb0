"""Beat-grid timing math.

Everything here is derived from a time signature, a subdivision and a
measure count.  Nothing holds state, so a :class:`BeatGrid` can be rebuilt
freely from a pattern whenever its geometry is needed.

The subdivision is expressed relative to a whole note in the usual way
(``16`` means sixteenth notes), which gives ``subdivision / 4`` grid
positions per quarter note regardless of the signature's denominator.
"""

import dataclasses
import typing

import kickbeats.constants


VALID_DENOMINATORS = (1, 2, 4, 8, 16)

# Metrical strength of any grid position that is not on a beat.
OFF_BEAT_STRENGTH = 0.2


@dataclasses.dataclass(frozen=True)
class TimeSignature:

	"""
	Beats per measure over the note value of one beat.
	"""

	numerator: int = 4
	denominator: int = 4


	def __post_init__ (self) -> None:

		if self.numerator <= 0:
			raise ValueError(f"Time signature numerator must be positive, got {self.numerator}")

		if self.denominator not in VALID_DENOMINATORS:
			raise ValueError(f"Time signature denominator must be one of {VALID_DENOMINATORS}, got {self.denominator}")


	def __str__ (self) -> str:

		return f"{self.numerator}/{self.denominator}"


	@classmethod
	def parse (cls, text: str) -> "TimeSignature":

		"""
		Build a time signature from text such as ``"4/4"`` or ``"6/8"``.
		"""

		parts = text.strip().split("/")

		if len(parts) != 2:
			raise ValueError(f"Time signature must look like '4/4', got {text!r}")

		try:
			numerator, denominator = int(parts[0]), int(parts[1])
		except ValueError:
			raise ValueError(f"Time signature must look like '4/4', got {text!r}") from None

		return cls(numerator, denominator)


	@classmethod
	def four_four (cls) -> "TimeSignature":
		return cls(4, 4)

	@classmethod
	def three_four (cls) -> "TimeSignature":
		return cls(3, 4)

	@classmethod
	def six_eight (cls) -> "TimeSignature":
		return cls(6, 8)

	@classmethod
	def two_four (cls) -> "TimeSignature":
		return cls(2, 4)

	@classmethod
	def five_four (cls) -> "TimeSignature":
		return cls(5, 4)

	@classmethod
	def seven_eight (cls) -> "TimeSignature":
		return cls(7, 8)


@dataclasses.dataclass(frozen=True)
class MetricalHierarchy:

	"""
	Accent pattern of the beats within one measure.

	``accents`` lists ``(beat_index, strength)`` pairs; any beat not listed
	takes ``default_strength``.
	"""

	beats_per_measure: int
	accents: typing.Tuple[typing.Tuple[int, float], ...]
	default_strength: float


	def beat_strength (self, beat_index: int) -> float:

		"""
		Return the strength of a beat, counted from zero within the measure.
		"""

		for index, strength in self.accents:
			if index == beat_index:
				return strength

		return self.default_strength


# Keyed by (numerator, denominator). 6/8 is compound duple, so it has two
# dotted-quarter beats rather than six eighth-note beats.
METRICAL_HIERARCHIES: typing.Dict[typing.Tuple[int, int], MetricalHierarchy] = {
	(4, 4): MetricalHierarchy(beats_per_measure=4, accents=((0, 1.0), (2, 0.7)), default_strength=0.4),
	(3, 4): MetricalHierarchy(beats_per_measure=3, accents=((0, 1.0),), default_strength=0.4),
	(2, 4): MetricalHierarchy(beats_per_measure=2, accents=((0, 1.0),), default_strength=0.4),
	(6, 8): MetricalHierarchy(beats_per_measure=2, accents=((0, 1.0), (1, 0.6)), default_strength=0.3),
	(5, 4): MetricalHierarchy(beats_per_measure=5, accents=((0, 1.0), (2, 0.6)), default_strength=0.3),
}


def metrical_hierarchy (time_signature: TimeSignature) -> MetricalHierarchy:

	"""
	Look up the accent hierarchy for a signature.

	Signatures missing from :data:`METRICAL_HIERARCHIES` get a generic one:
	downbeat 1.0, the middle beat 0.6 and every other beat 0.4.
	"""

	key = (time_signature.numerator, time_signature.denominator)

	if key in METRICAL_HIERARCHIES:
		return METRICAL_HIERARCHIES[key]

	accents: typing.List[typing.Tuple[int, float]] = [(0, 1.0)]
	middle = time_signature.numerator // 2

	if middle > 0:
		accents.append((middle, 0.6))

	return MetricalHierarchy(
		beats_per_measure = time_signature.numerator,
		accents = tuple(accents),
		default_strength = 0.4
	)


@dataclasses.dataclass(frozen=True)
class BeatGrid:

	"""
	The rhythmic framework a pattern's steps are laid out on.
	"""

	time_signature: TimeSignature = dataclasses.field(default_factory=TimeSignature)
	subdivision: int = kickbeats.constants.DEFAULT_SUBDIVISION
	measure_count: int = kickbeats.constants.DEFAULT_MEASURE_COUNT


	def total_positions (self) -> int:

		"""
		Number of grid positions across every measure.

		Equal to ``(subdivision / 4) * (numerator * 4 / denominator) * measure_count``.
		"""

		return (self.subdivision * self.time_signature.numerator * self.measure_count) // self.time_signature.denominator


	def positions_per_measure (self) -> int:

		return self.total_positions() // self.measure_count


	def _measure_beat_positions (self) -> typing.List[int]:

		"""
		Beat indices within a single measure.
		"""

		beats = metrical_hierarchy(self.time_signature).beats_per_measure
		positions_per_beat = self.positions_per_measure() / beats

		return [int(round(beat * positions_per_beat)) for beat in range(beats)]


	def beat_positions (self) -> typing.List[int]:

		"""
		Grid indices that fall on a beat, one per beat, across every measure.

		For one measure of 4/4 in sixteenths this is ``[0, 4, 8, 12]``.
		"""

		per_measure = self.positions_per_measure()
		measure_beats = self._measure_beat_positions()

		return [measure * per_measure + position for measure in range(self.measure_count) for position in measure_beats]


	def position_strength (self, idx: int) -> float:

		"""
		Metrical weight of a grid position in ``[0, 1]``.

		Each measure's downbeat is 1.0, other beats follow the signature's
		hierarchy and positions between beats are weakest.
		"""

		local = idx % self.positions_per_measure()
		measure_beats = self._measure_beat_positions()

		if local in measure_beats:
			return metrical_hierarchy(self.time_signature).beat_strength(measure_beats.index(local))

		return OFF_BEAT_STRENGTH


	def seconds_per_position (self, tempo_bpm: float) -> float:

		"""
		Duration of one grid position at a tempo given in quarter notes per minute.
		"""

		return (60.0 / tempo_bpm) / (self.subdivision / 4)


	def duration (self, tempo_bpm: float) -> float:

		"""
		Duration of the whole grid in seconds.
		"""

		return self.total_positions() * self.seconds_per_position(tempo_bpm)
