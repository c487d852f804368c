from __future__ import annotations

import argparse
import logging
import signal
import threading
from typing import Mapping, Optional

from dissect.pdbapply.dispatcher import Dispatcher
from dissect.pdbapply.exception import EndOfStream
from dissect.pdbapply.helpers.context import ApplicatorContext, ApplicatorOptions, ImageBaseLayout
from dissect.pdbapply.helpers.stream import SymbolStream
from dissect.pdbapply.result import ApplyResult, Fault, FaultCategory, RunStatus

log = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation signal, checked by the applicator once before every record.

    The token may be cancelled from another thread or a signal handler.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SymbolApplicator:
    """Apply the records of a symbol stream to an `ApplicatorContext`.

    The records are applied one at a time, in stream order. A run ends when the stream is exhausted or when the
    cancellation token is cancelled. A cancelled run leaves the context as it was after the last applied record.

    Args:
        context: The context to apply to, a new context with default options if not given.
        appliers: Symbol kind to applier class mapping, the registered appliers by default.
    """

    def __init__(self, context: Optional[ApplicatorContext] = None, appliers: Optional[Mapping] = None):
        self.context = ApplicatorContext() if context is None else context
        self.dispatcher = Dispatcher(self.context, appliers)

    def apply(self, stream: SymbolStream, token: Optional[CancellationToken] = None) -> ApplyResult:
        """Run the dispatch loop over ``stream``.

        Args:
            stream: The symbol stream to apply, consumed from its current position.
            token: An optional `CancellationToken`.

        Returns:
            An `ApplyResult` with the record counts, the reported faults and the context.
        """

        result = ApplyResult(context=self.context)
        log.debug("Applying %d symbol records from position %d", len(stream), stream.position)

        while True:
            if token is not None and token.cancelled:
                result.status = RunStatus.CANCELLED
                log.info("Symbol application cancelled at position %d of %d", stream.position, len(stream))
                return result

            try:
                self.dispatcher.dispatch(stream, result)
            except EndOfStream:
                break

        if self.context.options.report_unclosed_scopes and self.context.stack:
            self._report_unclosed(stream, result)

        log.debug("Applied %d records, skipped %d, %d faulted", result.processed, result.skipped, result.faulted)
        return result

    def _report_unclosed(self, stream: SymbolStream, result: ApplyResult) -> None:
        frames = reversed(self.context.stack.frames)
        open_scopes = ", ".join(f"{frame.kind.value} {frame.scope.name!r}" for frame in frames)
        fault = Fault(
            stream.position,
            None,
            FaultCategory.SCOPE_IMBALANCE,
            f"end of stream with {len(self.context.stack)} open scope(s): {open_scopes}",
        )
        result.faults.append(fault)
        log.debug("Fault %s", fault)


def apply_symbols(
    stream: SymbolStream,
    context: Optional[ApplicatorContext] = None,
    token: Optional[CancellationToken] = None,
    appliers: Optional[Mapping] = None,
) -> ApplyResult:
    """Apply all records of ``stream`` to ``context``, see `SymbolApplicator`."""

    return SymbolApplicator(context=context, appliers=appliers).apply(stream, token=token)


def main():
    parser = argparse.ArgumentParser(description="Apply the CodeView symbol records of a PDB symbol stream.")
    parser.add_argument("-s", "--symbols", required=True, help="File containing the raw symbol records.")
    parser.add_argument(
        "-m",
        "--module",
        required=False,
        action="store_true",
        help="The symbol records are a module stream, starting with a CodeView signature.",
    )
    parser.add_argument(
        "-b",
        "--image-base",
        required=False,
        type=lambda value: int(value, 0),
        help="Image base to resolve the section addresses with.",
    )
    parser.add_argument(
        "--skip-scopes", required=False, action="store_true", help="Do not apply the records inside of scopes."
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase the logging verbosity.")

    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING - 10 * min(args.verbose, 2))
    print(f"Applying symbols: {args.symbols}")

    with open(args.symbols, "rb") as fh:
        stream = SymbolStream.from_file(fh, signature=args.module)

    context = ApplicatorContext(
        layout=ImageBaseLayout(args.image_base) if args.image_base is not None else None,
        options=ApplicatorOptions(descend_scopes=not args.skip_scopes),
    )

    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        result = apply_symbols(stream, context=context, token=token)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print(f"Found {len(stream)} symbol records, {result.status.value}")
    print(f"Applied {result.processed} records, skipped {result.skipped}, {result.faulted} faulted")

    for section in context.sections.values():
        base = f"{section.base:#x}" if section.resolved else "pending"
        print(f"Section {section.index} {section.name}: rva={section.rva:#x} length={section.length:#x} base={base}")

    print(f"Found {len(context.groups)} COFF groups")
    print(f"Found {sum(1 for _ in context.walk_scopes())} scopes in {len(context.compile_units)} compile units")
    print(f"Found {len(context.symbols)} symbols, {len(context.unresolved)} unresolved")

    for fault in result.faults:
        print(f"Fault {fault}")


if __name__ == "__main__":
    main()
