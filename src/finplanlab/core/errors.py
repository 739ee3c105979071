"""
Error and warning classes for FinPlanLab.

This module defines the exception and warning categories raised while scenario
documents are loaded, validated and compiled into projection inputs.
"""


class ConfigError(Exception):
    """
    Structural error in a scenario document or event library.

    Raised when a record is missing a required field, carries a value of the
    wrong shape, or references something that cannot exist (for example a
    schedule entry without a month).

    **Common Causes:**
    - Rule records that declare an unknown ``mode``
    - Budget rules whose age band is inverted (``from_years > to_years``)
    - Positions given as something other than a list of mappings

    **Example Usage:**
        ```python
        from finplanlab.core.errors import ConfigError
        from finplanlab.core.scenario import AgeBand

        try:
            AgeBand(from_years=6, to_years=3)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```

    **When to Use:**
    - In record constructors (``__post_init__``) for shape validation
    - In the document loader, wrapped by ``CatalogError`` for file context
    """

    pass


class FinPlanWarning(UserWarning):
    """Warning for FinPlanLab input issues that do not stop compilation."""


class FinPlanDeprecationWarning(DeprecationWarning):
    """Deprecation warning for legacy scenario shapes."""
