# pynemo/errors.py

"""
Exception hierarchy for scenario calculations.

Empty index domains and non-optimal solver outcomes are not errors; they
degrade to zero-instance families and to a returned status respectively.
"""


class NemoError(Exception):
    """Base class for all pynemo errors."""
    pass


class ScenarioInputError(NemoError):
    """Raised when the scenario database or run-time arguments are invalid."""
    pass


class QueryError(NemoError):
    """Raised when a catalogued query fails against the scenario database."""

    def __init__(self, name: str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"Query '{name}' failed: {message}")

    def __reduce__(self):
        # Raised in worker processes and re-raised by the pool
        return (self.__class__, (self.name, self.message))


class PersistenceError(NemoError):
    """Raised when a result table could not be written; the table is rolled back."""

    def __init__(self, family: str, message: str):
        self.family = family
        self.message = message
        super().__init__(f"Could not save results for {family}: {message}")

    def __reduce__(self):
        return (self.__class__, (self.family, self.message))
