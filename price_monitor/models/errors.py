# price_monitor/models/errors.py

"""Exception hierarchy for the price monitoring pipeline."""


class PriceMonitorError(Exception):
    """Base class for every error raised by price_monitor."""


class PriceParseError(PriceMonitorError, ValueError):
    """A price fragment did not contain a recognisable amount."""


class FetchError(PriceMonitorError):
    """A category page could not be downloaded."""


class PersistenceCorruptionError(PriceMonitorError):
    """A state file exists but cannot be decoded."""


class ArithmeticPreconditionError(PriceMonitorError, ArithmeticError):
    """A stored price cannot be used as a percentage divisor."""


class ConfigurationError(PriceMonitorError):
    """Required runtime configuration is missing."""
