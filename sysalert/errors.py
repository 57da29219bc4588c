"""Exception hierarchy for the agent"""


class SysalertError(Exception):
    """Base class for all agent errors"""


class ConfigurationError(SysalertError, ValueError):
    """Malformed configuration, rule or channel definition (fatal at startup)"""


class CollectionError(SysalertError):
    """A metric probe is unavailable for this cycle"""


class DispatchError(SysalertError):
    """A notification channel failed to deliver an event"""

    def __init__(self, channel: str, reason: str):
        super().__init__(f"{channel}: {reason}")
        self.channel = channel
        self.reason = reason
