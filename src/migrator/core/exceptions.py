# src/migrator/core/exceptions.py


class MigratorError(Exception):
    """Base class for all errors raised by the migration pipeline."""


class ResourceMissingError(MigratorError):
    """A required upstream blob or stored row does not exist."""


class BlobNotFoundError(ResourceMissingError):
    """The raw HTML or the style document could not be fetched."""


class ConfigurationError(MigratorError):
    """Configuration is incomplete, e.g. a missing API key."""


class ShrinkError(MigratorError):
    """The shrink collaborator failed for a single fragment."""


class StageError(MigratorError):
    """
    A failure inside one pipeline stage, wrapped once with the stage name.
    The original exception stays available as `__cause__`.
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"Failed to {stage}: {message}")


class WidgetExtractionError(StageError):
    def __init__(self, message: str):
        super().__init__("extract widgets", message)


class ComponentExtractionError(StageError):
    def __init__(self, message: str):
        super().__init__("extract components", message)
