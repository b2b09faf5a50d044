class FatalError(Exception):
    """Raised for conditions that must stop the whole process."""


class JobEncodeError(FatalError):
    pass


class StatePersistError(FatalError):
    pass


class PublishError(Exception):
    """The message bus rejected or could not deliver a job."""


class ConfigError(Exception):
    pass
