from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional

from dissect.pdbapply.appliers import APPLIERS
from dissect.pdbapply.exception import ApplyFault
from dissect.pdbapply.result import ApplyResult, Fault, FaultCategory

if TYPE_CHECKING:
    from dissect.pdbapply.appliers.base import SymbolApplier
    from dissect.pdbapply.helpers.context import ApplicatorContext
    from dissect.pdbapply.helpers.stream import SymbolStream

log = logging.getLogger(__name__)


class Dispatcher:
    """Dispatch the record at the current stream position to the applier registered for its kind.

    Records without an applier are skipped. Faults raised by an applier are recorded in the `ApplyResult` and never
    stop the run.

    Args:
        context: The `ApplicatorContext` the appliers work on.
        appliers: Symbol kind to applier class mapping, the registered appliers by default.
    """

    def __init__(self, context: ApplicatorContext, appliers: Optional[Mapping[int, type[SymbolApplier]]] = None):
        self.context = context
        self.appliers = APPLIERS if appliers is None else appliers
        self._instances: dict[type[SymbolApplier], SymbolApplier] = {}

    def applier_for(self, kind: int) -> Optional[SymbolApplier]:
        """Return the applier instance for a symbol kind, ``None`` if the kind is not supported."""

        applier_cls = self.appliers.get(int(kind))
        if applier_cls is None:
            return None

        if applier_cls not in self._instances:
            self._instances[applier_cls] = applier_cls(self.context)
        return self._instances[applier_cls]

    def dispatch(self, stream: SymbolStream, result: ApplyResult) -> None:
        """Apply the record at the current stream position.

        Args:
            stream: The symbol stream, advanced past the record (or its scope) afterwards.
            result: The `ApplyResult` the outcome is counted in.

        Raises:
            `EndOfStream` if the stream is exhausted.
        """

        position = stream.position
        record = stream.peek()

        applier = self.applier_for(record.kind)
        if applier is None:
            stream.next()
            skip = Fault(position, record.kind, FaultCategory.UNSUPPORTED_KIND, "no applier registered")
            result.skipped += 1
            result.skips.append(skip)
            log.debug("Skipped %s", skip)
            return

        fault = None
        try:
            applier.apply(stream)
        except ApplyFault as exc:
            fault = Fault(position, record.kind, FaultCategory.from_exception(exc), str(exc))

        if stream.position == position:
            # Guarantee forward progress when an applier did not consume its record
            stream.next()
            if fault is None:
                fault = Fault(
                    position,
                    record.kind,
                    FaultCategory.DISPATCH_MISMATCH,
                    f"{type(applier).__name__} did not consume the record",
                )

        if fault is None:
            result.processed += 1
        else:
            self.report(result, fault)

    def report(self, result: ApplyResult, fault: Fault) -> None:
        result.faulted += 1
        result.faults.append(fault)

        if fault.programming_fault:
            log.error("Internal consistency fault %s", fault)
        else:
            log.debug("Fault %s", fault)
