import argparse
import asyncio
import logging
import sys
import typing

import scalewalk.audio_input
import scalewalk.config
import scalewalk.display
import scalewalk.keystroke
import scalewalk.listener
import scalewalk.scale_tables
import scalewalk.session
import scalewalk.web_ui


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(
		prog = "scalewalk",
		description = "Listen to a scale being practised and grade it note by note.",
	)

	parser.add_argument("--config", default=scalewalk.config.DEFAULT_CONFIG_PATH, help="YAML config file")
	parser.add_argument("--transposition", choices=sorted(scalewalk.scale_tables.TRANSPOSITIONS), help="instrument transposition")
	parser.add_argument("--scale", choices=[s.id for s in scalewalk.scale_tables.SCALE_TYPES], help="scale type")
	parser.add_argument("--profile", choices=sorted(scalewalk.config.PROFILES), help="listening profile")
	parser.add_argument("--debug", action="store_true", help="accept any onset with a resolvable degree")
	parser.add_argument("--web", action="store_true", help="serve the browser dashboard")
	parser.add_argument("--no-display", action="store_true", help="disable the terminal dashboard")
	parser.add_argument("--list-devices", action="store_true", help="list audio devices and exit")

	return parser


def apply_arguments (config: scalewalk.config.ListenConfig, args: argparse.Namespace) -> scalewalk.config.ListenConfig:

	"""
	Overlay command-line flags on the loaded configuration.
	"""

	if args.transposition:
		config.session.transposition = args.transposition

	if args.scale:
		config.session.scale = args.scale

	if args.profile:
		config.session.profile = args.profile

	if args.debug:
		config.session.debug = True

	if args.web:
		config.web_ui.enabled = True

	if args.no_display:
		config.display.enabled = False

	return config


async def run (config: scalewalk.config.ListenConfig) -> None:

	"""
	Build the session, its sinks and the listener, then run until stopped.
	"""

	session = scalewalk.session.PracticeSession(
		profile = config.session.profile,
		transposition_id = config.session.transposition,
		scale_type_id = config.session.scale,
		debug_mode = scalewalk.config.DEBUG_ACCEPT_ANY_ONSET if config.session.debug else scalewalk.config.DEBUG_OFF,
		bpm = config.session.bpm,
	)

	microphone = scalewalk.audio_input.MicrophoneInput(
		sample_rate = config.audio.sample_rate,
		buffer_size = config.audio.buffer_size,
		device = config.audio.device,
	)

	keystrokes = scalewalk.keystroke.KeystrokeListener()

	listener = scalewalk.listener.Listener(
		session,
		microphone,
		tick_hz = config.audio.tick_hz,
		keystrokes = keystrokes,
	)

	display: typing.Optional[scalewalk.display.Display] = None
	web: typing.Optional[scalewalk.web_ui.WebUI] = None

	if config.display.enabled:
		display = scalewalk.display.Display(session)
		display.start()
		listener.add_tick_callback(display.update)

	if config.web_ui.enabled:
		web = scalewalk.web_ui.WebUI(session, http_port=config.web_ui.http_port, ws_port=config.web_ui.ws_port)
		web.start()

	keystrokes.start()

	try:
		await scalewalk.listener.run_until_stopped(listener)
	finally:
		keystrokes.stop()

		if web is not None:
			web.stop()

		if display is not None:
			display.stop()


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the scalewalk application.
	"""

	args = build_parser().parse_args(argv)

	if args.list_devices:
		try:
			print(scalewalk.audio_input.list_devices())
		except scalewalk.audio_input.AudioCaptureError as e:
			logger.error(str(e))
			return 1
		return 0

	try:
		config = apply_arguments(scalewalk.config.load_config(args.config), args)
	except (ValueError, TypeError) as e:
		logger.error(f"Invalid configuration: {e}")
		return 2

	logger.info(
		f"Scalewalk starting: {config.session.scale} for {config.session.transposition} "
		f"({config.session.profile} profile)"
	)

	try:
		asyncio.run(run(config))
	except ValueError as e:
		logger.error(str(e))
		return 2
	except KeyboardInterrupt:
		logger.info("Stopping...")

	return 0


if __name__ == "__main__":
	sys.exit(main())
