from dissect.pdbapply.appliers.base import (
    APPLIERS,
    DirectSymbolApplier,
    NestableSymbolApplier,
    ScopeEndApplier,
    SymbolApplier,
    register,
)

# Importing the applier modules registers their appliers
from dissect.pdbapply.appliers import data, scopes, sections, units  # noqa: F401, E402

__all__ = [
    "APPLIERS",
    "DirectSymbolApplier",
    "NestableSymbolApplier",
    "ScopeEndApplier",
    "SymbolApplier",
    "register",
]
