"""Custom exception hierarchy for the registry.

Only programming errors, rejected input and infrastructure failures are
raised.  Anticipated business-rule failures travel as
:class:`people_registry.domain.result.FailureReason` values instead.
"""


class RegistryError(Exception):
    """Base exception for all registry errors."""


# --- Configuration ---
class ConfigError(RegistryError):
    """Invalid or missing configuration."""


# --- Input ---
class ValidationError(RegistryError, ValueError):
    """A raw value failed the format predicate of a value type."""


# --- Storage ---
class PersistenceError(RegistryError):
    """The persistence collaborator failed to read or write."""


# --- Events ---
class EventDispatchError(RegistryError):
    """Event publication was used incorrectly."""


class ReentrantPublishError(EventDispatchError):
    """A synchronous subscriber tried to publish during its own dispatch."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Cannot publish {event_type!r} from inside a synchronous "
            "subscriber; register the handler as ASYNC instead"
        )
