"""Profiles, session state and the YAML configuration file.

A config file is optional.  Every key has a default, and a file may set only
the keys it cares about:

```yaml
audio:
  device: null          # sounddevice device index or name substring
  sample_rate: 44100
  buffer_size: 2048
  tick_hz: 60

session:
  transposition: bb     # c_treble, c_bass, bb, eb, f
  scale: major          # see scalewalk.scale_tables.SCALE_TYPES
  profile: instrument   # instrument or voice
  debug: false
  bpm: 72

display:
  enabled: true

web_ui:
  enabled: false
  http_port: 8080
  ws_port: 8765
```
"""

import dataclasses
import logging
import os
import typing

import yaml

import scalewalk.constants
import scalewalk.scale_tables


logger = logging.getLogger(__name__)


# Session modes
MODE_IDLE = "idle"
MODE_ACQUIRING_TONIC = "acquiring_tonic"
MODE_TONIC_LOCKED = "tonic_locked"
MODE_FOLLOWING = "following"

# Run progress
PROGRESS_IDLE = "idle"
PROGRESS_RUNNING = "running"
PROGRESS_DONE = "done"

# Debug modes
DEBUG_OFF = "off"
DEBUG_ACCEPT_ANY_ONSET = "accept_any_onset"

DEFAULT_CONFIG_PATH = "scalewalk.yaml"


@dataclasses.dataclass(frozen=True)
class Profile:

	"""
	Listening profile.

	``rms_floor`` is the loudness below which a follow-mode tick counts as
	silence.  ``smoothing_factor`` is the weight kept from the previous tuner
	readout on each update (0 = no smoothing).
	"""

	name: str
	smoothing_factor: float
	rms_floor: float


PROFILES: typing.Dict[str, Profile] = {
	"instrument": Profile(name="instrument", smoothing_factor=0.8, rms_floor=0.01),
	"voice": Profile(name="voice", smoothing_factor=0.9, rms_floor=0.0005),
}

DEFAULT_PROFILE = "instrument"


def get_profile (name: str) -> Profile:

	"""Return a preset profile, falling back to ``instrument`` for unknown names."""

	if name not in PROFILES:
		logger.warning(f"Unknown profile {name!r}, using {DEFAULT_PROFILE!r}")
		return PROFILES[DEFAULT_PROFILE]

	return PROFILES[name]


@dataclasses.dataclass
class SessionState:

	"""Mutable listening state shared by the onset detector and the stepper."""

	mode: str = MODE_IDLE
	current_index: int = 0
	progress: str = PROGRESS_IDLE
	last_onset_degree: typing.Optional[int] = None
	last_onset_time_ms: typing.Optional[float] = None
	last_active_time_ms: typing.Optional[float] = None
	debug_mode: str = DEBUG_OFF

	def reset_cursor (self) -> None:

		"""Return to the first degree of the run and forget onset history."""

		self.current_index = 0
		self.progress = PROGRESS_IDLE
		self.last_onset_degree = None
		self.last_onset_time_ms = None
		self.last_active_time_ms = None


@dataclasses.dataclass
class AudioConfig:

	device: typing.Optional[typing.Union[int, str]] = None
	sample_rate: int = scalewalk.constants.DEFAULT_SAMPLE_RATE
	buffer_size: int = scalewalk.constants.DEFAULT_BUFFER_SIZE
	tick_hz: float = scalewalk.constants.DEFAULT_TICK_HZ


@dataclasses.dataclass
class SessionConfig:

	transposition: str = scalewalk.scale_tables.DEFAULT_TRANSPOSITION
	scale: str = scalewalk.scale_tables.DEFAULT_SCALE_TYPE
	profile: str = DEFAULT_PROFILE
	debug: bool = False
	bpm: float = scalewalk.constants.LISTEN_DEFAULT_BPM


@dataclasses.dataclass
class DisplayConfig:

	enabled: bool = True


@dataclasses.dataclass
class WebUIConfig:

	enabled: bool = False
	http_port: int = 8080
	ws_port: int = 8765


@dataclasses.dataclass
class ListenConfig:

	"""Complete application configuration."""

	audio: AudioConfig = dataclasses.field(default_factory=AudioConfig)
	session: SessionConfig = dataclasses.field(default_factory=SessionConfig)
	display: DisplayConfig = dataclasses.field(default_factory=DisplayConfig)
	web_ui: WebUIConfig = dataclasses.field(default_factory=WebUIConfig)


def _section (raw: typing.Dict[str, typing.Any], name: str, cls: typing.Type[typing.Any]) -> typing.Any:

	"""Build one config section, rejecting unknown keys."""

	values = raw.get(name) or {}

	if not isinstance(values, dict):
		raise ValueError(f"Config section {name!r} must be a mapping")

	known = {field.name for field in dataclasses.fields(cls)}
	unknown = set(values) - known

	if unknown:
		raise ValueError(f"Unknown key(s) in config section {name!r}: {sorted(unknown)}")

	return cls(**values)


def config_from_dict (raw: typing.Optional[typing.Dict[str, typing.Any]]) -> ListenConfig:

	"""
	Build a :class:`ListenConfig` from parsed YAML.

	Raises:
		ValueError: On unknown sections or keys, or a malformed section.
	"""

	raw = raw or {}

	if not isinstance(raw, dict):
		raise ValueError("Config file must contain a mapping at the top level")

	sections = {
		"audio": AudioConfig,
		"session": SessionConfig,
		"display": DisplayConfig,
		"web_ui": WebUIConfig,
	}

	unknown = set(raw) - set(sections)

	if unknown:
		raise ValueError(f"Unknown config section(s): {sorted(unknown)}")

	return ListenConfig(**{name: _section(raw, name, cls) for name, cls in sections.items()})


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> ListenConfig:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return ListenConfig()

	with open(config_path, 'r') as f:
		return config_from_dict(yaml.safe_load(f))
