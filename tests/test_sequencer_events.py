import pytest

import conftest
import kickbeats.constants
import kickbeats.sequencer

from kickbeats.sequencer import EventKind, NoteEvent


def test_count_in_is_four_quarter_clicks () -> None:

	"""At 120 BPM the count-in clicks every half second and lasts two seconds."""

	events = kickbeats.sequencer.count_in_events(120)
	triggers = [event for event in events if event.kind is EventKind.TRIGGER]
	releases = [event for event in events if event.kind is EventKind.RELEASE]

	assert [event.time_offset for event in triggers] == pytest.approx([0.0, 0.5, 1.0, 1.5])
	assert [event.time_offset for event in releases] == pytest.approx([0.05, 0.55, 1.05, 1.55])
	assert all(event.note == kickbeats.constants.CLICK_NOTE for event in events)
	assert all(event.velocity == kickbeats.constants.CLICK_VELOCITY for event in triggers)
	assert kickbeats.sequencer.count_in_duration(120) == pytest.approx(2.0)


def test_pattern_events_with_click () -> None:

	"""Kicks get a 100 ms release and clicks sound on every beat."""

	pattern = conftest.make_pattern([0, 6, 8])
	events = kickbeats.sequencer.pattern_events(pattern, 120, include_click=True)

	kicks = [event for event in events if event.note == kickbeats.constants.KICK_NOTE]
	clicks = [event for event in events if event.note == kickbeats.constants.CLICK_NOTE]

	assert len(kicks) == 6
	assert len(clicks) == 8

	assert kicks[0] == NoteEvent(0.0, kickbeats.constants.KICK_NOTE, kickbeats.constants.KICK_VELOCITY, EventKind.TRIGGER)
	assert [event.time_offset for event in kicks if event.kind is EventKind.TRIGGER] == pytest.approx([0.0, 0.75, 1.0])
	assert [event.time_offset for event in kicks if event.kind is EventKind.RELEASE] == pytest.approx([0.1, 0.85, 1.1])
	assert [event.time_offset for event in clicks if event.kind is EventKind.TRIGGER] == pytest.approx([0.0, 0.5, 1.0, 1.5])


def test_pattern_events_without_click () -> None:

	pattern = conftest.make_pattern([0, 8])
	events = kickbeats.sequencer.pattern_events(pattern, 120, include_click=False)

	assert {event.note for event in events} == {kickbeats.constants.KICK_NOTE}
	assert len(events) == 4


def test_events_are_time_ordered () -> None:

	"""Offsets never decrease, and a click precedes a kick at the same offset."""

	pattern = conftest.make_pattern([0, 4, 10, 14])
	events = kickbeats.sequencer.pattern_events(pattern, 120, include_click=True)
	offsets = [event.time_offset for event in events]

	assert offsets == sorted(offsets)
	assert events[0].note == kickbeats.constants.CLICK_NOTE
	assert events[1].note == kickbeats.constants.KICK_NOTE


def test_click_release_precedes_kick_trigger_on_tie () -> None:

	"""At 300 BPM a sixteenth lasts 50 ms, so the first click release and the second kick coincide."""

	pattern = conftest.make_pattern([0, 1])
	events = kickbeats.sequencer.pattern_events(pattern, 300, include_click=True)

	at_tie = [event for event in events if event.time_offset == pytest.approx(0.05)]

	assert [(event.note, event.kind) for event in at_tie] == [
		(kickbeats.constants.CLICK_NOTE, EventKind.RELEASE),
		(kickbeats.constants.KICK_NOTE, EventKind.TRIGGER),
	]


def test_pattern_duration () -> None:

	"""One 4/4 measure lasts two seconds at 120 BPM and one second at 240."""

	pattern = conftest.make_pattern([0, 8])

	assert kickbeats.sequencer.pattern_duration(pattern, 120) == pytest.approx(2.0)
	assert kickbeats.sequencer.pattern_duration(pattern, 240) == pytest.approx(1.0)


def test_releases_stay_inside_the_pass () -> None:

	"""At 300 BPM a kick on the last step would release 50 ms after the pass ends; it is clamped to the end."""

	pattern = conftest.make_pattern([0, 4, 10, 15])
	events = kickbeats.sequencer.pattern_events(pattern, 300, include_click=True)
	duration = kickbeats.sequencer.pattern_duration(pattern, 300)

	last_kick_release = [event for event in events if event.note == kickbeats.constants.KICK_NOTE and event.kind is EventKind.RELEASE][-1]

	assert duration == pytest.approx(0.8)
	assert last_kick_release.time_offset == pytest.approx(0.8)
	assert all(event.time_offset <= duration for event in events)
	assert events[-1] is last_kick_release
