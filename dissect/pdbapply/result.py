from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from dissect.pdbapply.exception import (
    ApplyFault,
    DispatchMismatch,
    MalformedField,
    ScopeImbalance,
    UnsupportedKind,
)
from dissect.pdbapply.helpers.context import ApplicatorContext
from dissect.pdbapply.helpers.utils import kind_name


class FaultCategory(enum.Enum):
    UNSUPPORTED_KIND = "unsupported kind"
    DISPATCH_MISMATCH = "dispatch mismatch"
    MALFORMED_FIELD = "malformed field"
    SCOPE_IMBALANCE = "scope imbalance"

    @classmethod
    def from_exception(cls, exc: ApplyFault) -> FaultCategory:
        categories = {
            UnsupportedKind: cls.UNSUPPORTED_KIND,
            DispatchMismatch: cls.DISPATCH_MISMATCH,
            MalformedField: cls.MALFORMED_FIELD,
            ScopeImbalance: cls.SCOPE_IMBALANCE,
        }
        for exc_type, category in categories.items():
            if isinstance(exc, exc_type):
                return category
        raise TypeError(f"No fault category for {type(exc).__name__}")

    @property
    def programming_fault(self) -> bool:
        """Whether the fault points at a bug in the dispatching rather than at the input data."""
        return self is FaultCategory.DISPATCH_MISMATCH


class RunStatus(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Fault:
    """A fault or skip reported for a single record.

    Attributes:
        position: The stream position of the offending record.
        kind: The symbol kind of the offending record, ``None`` for faults not tied to a record.
        category: The `FaultCategory` of the fault.
        message: A description of the fault.
    """

    position: int
    kind: Optional[int]
    category: FaultCategory
    message: str = ""

    @property
    def programming_fault(self) -> bool:
        return self.category.programming_fault

    def __str__(self) -> str:
        kind = kind_name(self.kind) if self.kind is not None else "-"
        return f"[{self.position}] {kind}: {self.category.value}: {self.message}"


@dataclass
class ApplyResult:
    """The outcome of a symbol application run.

    Attributes:
        context: The finished context, or the partial context of a cancelled run.
        status: Whether the run completed or was cancelled.
        processed: The amount of records that were applied without a fault.
        skipped: The amount of records without a registered applier.
        faulted: The amount of records for which a fault was reported.
        faults: The faults, in the order they were reported.
        skips: The `UnsupportedKind` reports of the skipped records.
    """

    context: ApplicatorContext
    status: RunStatus = RunStatus.COMPLETED
    processed: int = 0
    skipped: int = 0
    faulted: int = 0
    faults: list[Fault] = field(default_factory=list)
    skips: list[Fault] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED

    def faults_of(self, category: FaultCategory) -> list[Fault]:
        return [fault for fault in self.faults if fault.category is category]
