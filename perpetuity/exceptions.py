"""
Custom exceptions for Perpetuity.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all Perpetuity modules. All exceptions inherit from PerpetuityError,
enabling catch-all handling when needed.

Recoverable simulation outcomes (extinction, fund depletion, degenerate
inputs) are never raised: they are returned as data. Exceptions are reserved
for malformed input and service misuse.

Exception Hierarchy
-------------------
PerpetuityError (base)
├── ConfigurationError - Invalid model configuration or parameters
├── ValidationError - Malformed caller input (NaN, negative horizons, ...)
└── ServiceError - Simulation service misuse or failure
    ├── ServiceStoppedError - Service not running or stopped mid-request
    └── DuplicateRequestError - Request id already in flight

Usage
-----
>>> from perpetuity.exceptions import ValidationError
>>>
>>> raise ValidationError("cap_years must be non-negative, got -10")
>>>
>>> try:
...     outcome = run_legacy(legacy_input)
... except PerpetuityError as e:
...     print(f"Perpetuity error: {e}")
"""


class PerpetuityError(Exception):
    """
    Base exception for all Perpetuity errors.

    Examples
    --------
    >>> try:
    ...     service.submit(request).result()
    ... except PerpetuityError as e:
    ...     logger.error(f"Legacy run failed: {e}")
    """
    pass


class ConfigurationError(PerpetuityError):
    """
    Invalid model configuration or parameters.

    Raised when a parameter combination cannot define a model, such as:
    - generation_length <= 0 (population growth is undefined)
    - Fertility window with start after end

    Examples
    --------
    >>> raise ConfigurationError(
    ...     "generation_length must be positive, got 0. "
    ...     "Population growth is measured per generation."
    ... )
    """
    pass


class ValidationError(PerpetuityError):
    """
    Malformed caller input.

    Raised when input data fails validation checks, such as:
    - NaN or infinite rates and balances
    - Negative cap_years or ages
    - Empty estate batches

    A plausible wrong financial answer is worse than a loud failure, so
    these are never silently coerced.

    Examples
    --------
    >>> raise ValidationError(
    ...     f"return_rate must be finite, got {rate}."
    ... )
    """
    pass


class ServiceError(PerpetuityError):
    """Simulation service misuse or failure."""
    pass


class ServiceStoppedError(ServiceError):
    """
    The simulation service is not running.

    Raised when submitting to a service that was never started or has been
    stopped, and set on futures still outstanding when the service stops.
    """
    pass


class DuplicateRequestError(ServiceError):
    """
    A request with the same id is already in flight.

    Request ids correlate responses with callers; reusing one while the
    first request is pending would let two callers read the same response.
    """
    pass
