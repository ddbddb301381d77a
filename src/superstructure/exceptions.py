class SuperstructureError(Exception):
    """Base exception for the superstructure package."""
    pass

class DeviceNotFoundError(SuperstructureError):
    """Raised when the motor-controller board cannot be found or connected to."""
    pass

class CommandTimeoutError(SuperstructureError):
    """Raised when a command to the board times out."""
    pass

class CommandError(SuperstructureError):
    """Raised when the board returns an error for a command."""
    pass

class ConfigError(SuperstructureError):
    """Raised when a configuration value is missing or invalid."""
    pass

class UnknownStateError(SuperstructureError):
    """Raised when a mechanism state name does not match any known state."""
    pass
