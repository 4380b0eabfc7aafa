"""
Exceptions raised by the eligibility wizard.

Configuration problems are raised to the caller. Runtime misuse of the
wizard (answering a finished run, going back from the first question) is
not an error: those transitions return the state unchanged.
"""

from typing import List


class ConfigurationError(Exception):
    """Base class for rule document configuration problems."""


class NoQuestionsError(ConfigurationError):
    """Raised when a rule document has no first question to start from."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(f"No questions defined for country: {country_code}")


class ConfigLoadError(ConfigurationError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        message = f"Failed to load '{file_path}': {reason}"
        super().__init__(message)


class ConfigValidationError(ConfigurationError):
    """Raised when a loaded rule document fails validation."""

    def __init__(self, errors: List[str], source: str = ""):
        self.errors = errors
        self.source = source
        message = f"Configuration validation failed with {len(errors)} error(s)"
        if source:
            message += f" in '{source}'"
        message += ":\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


class CountryNotAvailableError(Exception):
    """Raised when a country is unknown or not active for eligibility checks."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(
            f"Country '{country_code}' is not available for eligibility checks"
        )


class RulesNotFoundError(Exception):
    """Raised when an active country has no rule document registered."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(f"Rules not found for country '{country_code}'")
