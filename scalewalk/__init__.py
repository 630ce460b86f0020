"""
Scalewalk - a listening scale-practice engine for Python.

Play a note and hold it: scalewalk locks onto it as the tonic, builds the
up-and-down scale run in the key your instrument reads, and follows you
through it from the microphone, one note at a time.  Finish the run and it
moves on to the same scale a semitone higher.

What it does:

- **Monophonic pitch tracking.** Normalised autocorrelation with parabolic
  peak refinement, 60-2000 Hz, on ``numpy`` buffers from ``sounddevice``.
- **Tonic lock.** A held note is accepted once the median of recent
  estimates is steady to within 15 cents.
- **Transposing instruments.** C (treble and bass clef), B-flat, E-flat and
  F instruments.  Runs are spelled and displayed in written pitch and
  graded in concert pitch.
- **Ten scale types.** Major, natural, jazz and harmonic minor, dorian,
  mixolydian, minor pentatonic, blues, whole tone and half-whole
  diminished, in all twelve keys.  ``register_scale()`` adds your own.
- **Note-by-note grading.** Each degree owns a territory of cents between
  its neighbours; notes are marked in tune, sharp, flat or wrong.  Tonic
  checkpoints at the start, the top and the end of the run must be within
  50 cents before the cursor moves on.
- **Onsets for any articulation.** Tongued notes are caught by loudness
  attacks, slurred notes by a held change of degree.
- **Profiles.** ``instrument`` and ``voice`` listening thresholds.
- **Dashboards.** A live terminal display and an optional browser
  dashboard over WebSockets.

Minimal example:

	```python
	import asyncio
	import scalewalk

	session = scalewalk.PracticeSession(transposition_id="bb", scale_type_id="major")
	listener = scalewalk.Listener(session, scalewalk.MicrophoneInput())
	asyncio.run(scalewalk.run_until_stopped(listener))
	```

Or from the command line: ``python -m scalewalk --transposition bb``.

Package-level exports: ``PracticeSession``, ``Listener``, ``MicrophoneInput``,
``run_until_stopped``, ``load_config``, ``register_scale``.
"""

import scalewalk.audio_input
import scalewalk.config
import scalewalk.listener
import scalewalk.scale_tables
import scalewalk.session


PracticeSession = scalewalk.session.PracticeSession
Listener = scalewalk.listener.Listener
MicrophoneInput = scalewalk.audio_input.MicrophoneInput
run_until_stopped = scalewalk.listener.run_until_stopped
load_config = scalewalk.config.load_config
register_scale = scalewalk.scale_tables.register_scale
