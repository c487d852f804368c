from dissect.pdbapply.applicator import CancellationToken, SymbolApplicator, apply_symbols
from dissect.pdbapply.dispatcher import Dispatcher
from dissect.pdbapply.exception import (
    ApplyFault,
    DispatchMismatch,
    EndOfStream,
    Error,
    MalformedField,
    ScopeImbalance,
    UnsupportedKind,
)
from dissect.pdbapply.helpers.context import (
    ApplicatorContext,
    ApplicatorOptions,
    ImageBaseLayout,
    Scope,
    ScopeKind,
    SectionDescriptor,
)
from dissect.pdbapply.helpers.record import SYM, SymbolRecord
from dissect.pdbapply.helpers.stream import SymbolStream
from dissect.pdbapply.result import ApplyResult, Fault, FaultCategory, RunStatus

__all__ = [
    "SYM",
    "ApplicatorContext",
    "ApplicatorOptions",
    "ApplyFault",
    "ApplyResult",
    "CancellationToken",
    "DispatchMismatch",
    "Dispatcher",
    "EndOfStream",
    "Error",
    "Fault",
    "FaultCategory",
    "ImageBaseLayout",
    "MalformedField",
    "RunStatus",
    "Scope",
    "ScopeImbalance",
    "ScopeKind",
    "SectionDescriptor",
    "SymbolApplicator",
    "SymbolRecord",
    "SymbolStream",
    "UnsupportedKind",
    "apply_symbols",
]
