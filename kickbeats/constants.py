"""Fixed numbers shared by the generator and the playback loop.

Note numbers follow the General MIDI percussion map so that any GM drum
module or software instrument plays the kick and the click without extra
mapping:

- `KICK_NOTE = 36` - bass drum 1
- `CLICK_NOTE = 37` - side stick, used for the click track and count-in

`MIDI_CHANNEL` is zero-indexed, so `9` is GM percussion channel 10.
"""

# MIDI

KICK_NOTE = 36
CLICK_NOTE = 37

KICK_VELOCITY = 100
CLICK_VELOCITY = 80

MIDI_CHANNEL = 9

# Seconds between a trigger and its release

KICK_RELEASE_SECONDS = 0.1
CLICK_RELEASE_SECONDS = 0.05

# Playback

COUNT_IN_BEATS = 4
DRIFT_WARNING_SECONDS = 0.010

# Grid defaults - one measure of sixteenth notes

DEFAULT_SUBDIVISION = 16
DEFAULT_MEASURE_COUNT = 1

# Generation

HISTORY_CAPACITY = 20
MAX_DRAWS_PER_CANDIDATE = 100
MAX_CANDIDATES_PER_CYCLE = 100
