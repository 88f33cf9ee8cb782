"""Exceptions raised by the price-level learner."""


class PriceLevelError(Exception):
    """Base class for all price-level learner errors."""


class InvalidConfiguration(PriceLevelError, ValueError):
    """Bad component count, degenerate price range, empty data or bad settings.

    Raised before any inference work starts.
    """


class NumericInstability(PriceLevelError, ArithmeticError):
    """NaN or Inf produced by the responsibility or ELBO computation."""


class PriceFileError(PriceLevelError, ValueError):
    """A price file could not be parsed."""
