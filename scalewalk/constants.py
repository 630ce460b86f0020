"""Listening engine constants.

Thresholds shared by the pitch estimator, tonic acquisition, onset detector and
scale stepper.  Frequencies are in Hz, pitch distances in cents (100 cents = one
equal-tempered semitone), times in milliseconds.

- `MIN_FREQUENCY_HZ` / `MAX_FREQUENCY_HZ`: the musical range accepted from the
  pitch estimator.  Below is usually room hum, above is usually an artefact.
- `TONIC_STABILITY_CENTS`: how far a new estimate may drift from the rolling
  median and still count as "the same note" while acquiring the tonic.
- `TONIC_CHECKPOINT_CENTS`: the looser tolerance applied when the expected
  degree is a tonic checkpoint (start, apex, end of the run).
- `INACTIVITY_RESET_MS`: silence after which the cursor returns to the start.
"""

# Pitch estimator

MIN_FREQUENCY_HZ = 60.0
MAX_FREQUENCY_HZ = 2000.0
GOOD_CORRELATION = 0.9
MIN_FALLBACK_CORRELATION = 0.01

# Audio capture

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_BUFFER_SIZE = 2048
DEFAULT_TICK_HZ = 60.0

# Tonic acquisition

TONIC_RMS_FLOOR = 0.01
TONIC_BUFFER_SIZE = 5
TONIC_MIN_SAMPLES = 3
TONIC_STABILITY_CENTS = 15.0
TONIC_MIN_STABLE_TICKS = 2

# Scale sequence and territory

TREBLE_BASE_OCTAVE = 4
BASS_BASE_OCTAVE = 2
TERRITORY_FRACTION = 0.8
EDGE_TERRITORY_CENTS = 600.0
OCTAVE_SEARCH_RANGE = 3

# Onset detection

FOLLOW_BUFFER_SIZE = 7
FOLLOW_MAX_SPREAD_CENTS = 150.0
ATTACK_DELTA_FACTOR = 0.25
MIN_DEGREE_STABLE_TICKS = 2
DEBUG_MIN_ONSET_GAP_MS = 130.0

# Scale stepper

IN_TUNE_FRACTION = 0.7
TONIC_CHECKPOINT_CENTS = 50.0
INACTIVITY_RESET_MS = 5000.0

# Timing slots: beat units per slot of the up-and-down run.

LISTEN_PATTERN = [2, 1, 1, 1, 1, 1, 1, 2, 1, 1, 1, 1, 1, 1, 2]
LISTEN_DEFAULT_BPM = 72.0
