import locale
import logging
import sys

from device_agent.config import CONFIG
from device_agent.timing import now_utc_iso, process_start_utc_iso, uptime_seconds

RESULT_LEVEL = 35

# The genai SDK and its HTTP stack log every request at INFO
QUIET_LOGGERS = (
	'httpx',
	'httpcore',
	'google_genai',
	'google_genai.models',
	'urllib3',
	'asyncio',
	'PIL.PngImagePlugin',
)

_LEVELS = {
	'result': RESULT_LEVEL,
	'debug': logging.DEBUG,
	'info': logging.INFO,
}

_VERBOSE_FORMAT = '%(levelname)-8s [%(name)s] %(utc)s (+%(uptime)s) %(message)s'


def register_result_level():
	"""Expose RESULT (between WARNING and ERROR) as `logging.RESULT` and `Logger.result()`.

	Final task outcomes are logged at this level so that `result` mode shows
	only them. Safe to call more than once.
	"""
	if getattr(logging, 'RESULT', None) == RESULT_LEVEL:
		return

	def result(self, message, *args, **kwargs):
		if self.isEnabledFor(RESULT_LEVEL):
			self._log(RESULT_LEVEL, message, args, **kwargs)

	logging.addLevelName(RESULT_LEVEL, 'RESULT')
	logging.RESULT = RESULT_LEVEL  # type: ignore[attr-defined]
	logging.getLoggerClass().result = result  # type: ignore[attr-defined]


class SafeStreamHandler(logging.StreamHandler):
	"""StreamHandler for consoles that cannot encode every character.

	Progress lines echo model replies verbatim; when the stream rejects a
	character it is replaced instead of dropping the whole record.
	"""

	def emit(self, record):  # type: ignore[override]
		try:
			line = self.format(record) + self.terminator
			try:
				self.stream.write(line)
			except UnicodeEncodeError:
				encoding = getattr(self.stream, 'encoding', None) or locale.getpreferredencoding(False) or 'utf-8'
				self.stream.write(line.encode(encoding, errors='replace').decode(encoding))
			self.flush()
		except Exception:
			self.handleError(record)


class DeviceAgentFormatter(logging.Formatter):
	def format(self, record):
		record.utc = now_utc_iso()
		record.uptime = f'{uptime_seconds():.3f}s'
		return super().format(record)


def setup_logging(stream=None, log_level=None, force_setup=False):
	"""Configure console logging for device_agent.

	Args:
		stream: Output stream for logs (default: sys.stdout).
		log_level: 'result', 'debug' or 'info'
			(default: CONFIG.DEVICE_AGENT_LOGGING_LEVEL).
		force_setup: Reconfigure even if the root logger already has handlers.

	Returns the `device_agent` package logger.
	"""
	register_result_level()
	package_logger = logging.getLogger('device_agent')

	root = logging.getLogger()
	if root.hasHandlers() and not force_setup:
		return package_logger

	mode = (log_level or CONFIG.DEVICE_AGENT_LOGGING_LEVEL).lower()
	level = _LEVELS.get(mode, logging.INFO)

	console = SafeStreamHandler(stream or sys.stdout)
	console.setFormatter(DeviceAgentFormatter('%(message)s' if mode == 'result' else _VERBOSE_FORMAT))
	console.setLevel(level)

	root.handlers = [console]
	root.setLevel(level)

	package_logger.handlers = [console]
	package_logger.setLevel(level)
	package_logger.propagate = False

	for name in QUIET_LOGGERS:
		quiet = logging.getLogger(name)
		quiet.setLevel(logging.ERROR)
		quiet.propagate = False

	package_logger.debug(f'Logging initialized at {now_utc_iso()} (process_start={process_start_utc_iso()})')
	return package_logger
