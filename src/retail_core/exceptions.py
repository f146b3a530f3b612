"""Domain-specific exceptions for Retail Core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from RetailCoreError for easy catching.

Data problems (bad numbers, missing dates, duplicates) are never raised.
They are reported as audit findings instead. These exceptions cover caller
mistakes only.
"""


class RetailCoreError(Exception):
    """Base exception for all Retail Core errors.

    Users can catch this exception to handle any Retail Core error.
    """

    pass


class ConfigError(RetailCoreError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - An unknown period filter is requested
    - An unknown ranking metric, direction or aggregate kind is passed
    - Engine configuration contains unknown keys or invalid values
    """

    pass
