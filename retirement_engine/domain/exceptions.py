"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidWorkPeriodError(DomainException):
    """Work periods overlap, leave gaps, or fall outside the working span"""

    pass


class UnknownScenarioError(DomainException):
    """Stress scenario key is not in the catalog"""

    pass

