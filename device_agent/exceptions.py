class DeviceAgentError(Exception):
    """Base class for all device_agent errors."""


class AgentConfigurationError(DeviceAgentError):
    """Raised when agent settings are invalid."""


class CaptureError(DeviceAgentError):
    """The current screen image could not be obtained."""


class TransportError(DeviceAgentError):
    """The decision endpoint could not be reached or answered with an error status."""


class ProtocolError(DeviceAgentError):
    """A decision reply was received but its shape could not be understood."""


class ExecutionError(DeviceAgentError):
    """An action could not be carried out on the device."""


class DeviceError(DeviceAgentError):
    """A device-automation command failed."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
