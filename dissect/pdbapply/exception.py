class Error(Exception):
    """Base exception for this module."""


class EndOfStream(Error, EOFError):
    """Exception that occurs when reading past the last record of a symbol stream."""


class ApplyFault(Error):
    """Base exception for the faults an applier can report for a single record."""


class UnsupportedKind(ApplyFault):
    """Exception that occurs if no applier is registered for a symbol kind."""


class DispatchMismatch(ApplyFault):
    """Exception that occurs if an applier is invoked on a record of a kind it was not built for."""


class MalformedField(ApplyFault):
    """Exception that occurs if a field of a symbol record is outside of its valid range."""


class ScopeImbalance(ApplyFault):
    """Exception that occurs if a scope end record does not match the open scopes."""
