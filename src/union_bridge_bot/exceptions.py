"""Exception types shared across the bridge bot."""


class BridgeBotError(Exception):
    """Base class for errors raised by the bridge bot."""


class ConfigurationError(BridgeBotError, ValueError):
    """Startup configuration or credential input is unusable."""


class PreconditionError(BridgeBotError):
    """A funding identity cannot transfer (zero balance, no gas funds)."""


class ShutdownRequested(BridgeBotError):
    """Raised at a suspension point once shutdown has been requested."""
