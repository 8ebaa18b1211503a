class GenerationError(Exception):
    """Base class for errors raised by the synthetic data generator."""
    pass


class ConfigurationError(GenerationError):
    """A job cannot start because its inputs are unusable.

    This exception is raised before any work is scheduled, for example when
    the text corpus or the font set is empty, or when the requested image
    count or thread count is not positive. Nothing is written to the output
    directory when it is raised.
    """
    pass


class SettingsLoadError(GenerationError):
    """A settings or batch configuration file could not be read or validated."""
    pass
