"""
Exceptions raised while reading and writing form data.
"""

from typing import Any, Dict, Optional


class FormHelperError(Exception):
    """
    Base class for all errors raised by repeatforms.
    """


class ConfigurationError(FormHelperError):
    """
    The project or the form could not be resolved.
    """


class MissingEventError(FormHelperError):
    """
    An event is required but was not supplied (longitudinal project).
    """


class FormNotEnabledError(FormHelperError):
    """
    The form is not enabled in the requested event.
    """


class NotFoundError(FormHelperError):
    """
    The requested record / event has no data.
    """


class InstanceNotFoundError(NotFoundError):
    """
    The requested instance does not exist.
    """


class WrongClassificationError(FormHelperError):
    """
    The operation does not apply to the repeat type of the form in the event.
    """


class InvalidInputError(FormHelperError, ValueError):
    """
    Malformed instance id or data shape.
    """


class NotASurveyError(FormHelperError):
    """
    The form is not enabled as a survey.
    """


class SaveError(FormHelperError):
    """
    The record store reported errors or wrote nothing.

    Attributes:
        result (Dict[str, Any]): The raw result returned by the record store.
    """

    def __init__(self, message: str, result: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.result = result if result is not None else {}


class RedcapApiError(FormHelperError):
    """
    The REDCap API responded with an error.

    Attributes:
        status_code (int): HTTP status code of the response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
