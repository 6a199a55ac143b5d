import functools
import logging
from asyncio import base_subprocess

from device_agent.config import CONFIG
from device_agent.logging_config import setup_logging

if CONFIG.DEVICE_AGENT_SETUP_LOGGING:
	logger = setup_logging()
else:
	logger = logging.getLogger('device_agent')


def _install_transport_finalizer():
	"""adb subprocess transports collected after asyncio.run() returns must not touch the dead loop."""
	finalize = base_subprocess.BaseSubprocessTransport.__del__

	@functools.wraps(finalize)
	def __del__(transport):
		loop = getattr(transport, '_loop', None)
		if loop is not None and loop.is_closed():
			return
		finalize(transport)

	base_subprocess.BaseSubprocessTransport.__del__ = __del__


_install_transport_finalizer()


# Lazy re-exports keep `import device_agent` free of the google-genai import cost.
_LAZY_EXPORTS = {
	'Agent': ('device_agent.agent.service', 'Agent'),
	'AgentSettings': ('device_agent.agent.settings', 'AgentSettings'),
	'AgentRunResult': ('device_agent.agent.views', 'AgentRunResult'),
	'TaskOutcome': ('device_agent.agent.views', 'TaskOutcome'),
	'ActionExecutor': ('device_agent.agent.actuator', 'ActionExecutor'),
	'DecisionClient': ('device_agent.agent.decision_maker', 'DecisionClient'),
	'DeviceController': ('device_agent.device.base', 'DeviceController'),
	'AdbDevice': ('device_agent.device.adb', 'AdbDevice'),
	'EnvCredentialStore': ('device_agent.credentials', 'EnvCredentialStore'),
	'FileCredentialStore': ('device_agent.credentials', 'FileCredentialStore'),
}


def __getattr__(name: str):
	entry = _LAZY_EXPORTS.get(name)
	if not entry:
		raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
	module_path, attr_name = entry
	from importlib import import_module

	module = import_module(module_path)
	attr = getattr(module, attr_name)
	globals()[name] = attr
	return attr


__all__ = ['setup_logging', *_LAZY_EXPORTS.keys()]
