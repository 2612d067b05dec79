from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a model call cannot be made with the current settings."""


class ConferenceNotFoundError(ValueError):
    pass


class ConferenceExistsError(ValueError):
    pass


class SubmissionNotFoundError(KeyError):
    pass


class InvalidTransitionError(RuntimeError):
    pass


class GatewayResponseError(RuntimeError):
    """The model replied, but the reply could not be parsed or validated."""


class ExtractionError(RuntimeError):
    pass
