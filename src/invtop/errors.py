"""Exceptions raised by the invtop engine."""


class InventoryError(Exception):
    """Base class for all invtop errors."""


class RecordParseError(InventoryError, ValueError):
    """A kernel text record had a missing or malformed numeric field."""


class InvalidPatternError(InventoryError, ValueError):
    """A search pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid search pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class UnitQueryError(InventoryError):
    """A unit inventory refresh failed; no partial results are kept."""


class TransportError(UnitQueryError):
    """The bus connection, a proxy, or a remote call failed."""


class FormatError(UnitQueryError):
    """The introspection document could not be parsed."""
