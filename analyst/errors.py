"""Error kinds raised across the analyst layers.

Every error carries a short machine-readable ``kind`` used for logging and
for the failure outcome of a query. The message text is for operators only
and is never shown to the end user.
"""

from __future__ import annotations


class AnalystError(Exception):
    """Base class for all analyst errors."""

    kind = "internal_error"


class CatalogError(AnalystError):
    """Function catalog configuration is invalid."""

    kind = "invalid_catalog"


class DuplicateNameError(AnalystError):
    """A function with the same name is already registered."""

    kind = "duplicate_name"

    def __init__(self, name: str) -> None:
        super().__init__(f"Function already registered: {name}")
        self.name = name


class UnknownFunctionError(AnalystError):
    """The model asked for a function that is not registered."""

    kind = "unknown_function"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}")
        self.name = name


class InvalidArgumentError(AnalystError):
    """A call is missing a required argument or has one of the wrong type."""

    kind = "invalid_argument"

    def __init__(self, function_name: str, parameter: str, reason: str) -> None:
        super().__init__(f"Invalid argument '{parameter}' for {function_name}: {reason}")
        self.function_name = function_name
        self.parameter = parameter
        self.reason = reason


class DataAccessError(AnalystError):
    """The data store is unreachable or returned a malformed record."""

    kind = "data_access"


class ModelUnavailableError(AnalystError):
    """The language model timed out, errored, or returned an unusable reply."""

    kind = "model_unavailable"
