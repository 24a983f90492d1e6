class GreenGuardianError(Exception):
    """Base class for errors raised by this package."""


class StoreError(GreenGuardianError):
    """The realtime store could not be read or reached."""


class StoreWriteError(StoreError):
    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"write to {key!r} failed: {message}")
        self.key = key


class GenerationError(GreenGuardianError):
    """The text-generation service returned nothing usable."""
