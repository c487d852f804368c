from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, ClassVar, Iterable, Optional

from dissect.pdbapply.exception import DispatchMismatch, MalformedField, ScopeImbalance
from dissect.pdbapply.helpers.context import Scope, ScopeFrame, ScopeKind
from dissect.pdbapply.helpers.utils import kind_name

if TYPE_CHECKING:
    from dissect.pdbapply.helpers.context import ApplicatorContext
    from dissect.pdbapply.helpers.record import SymbolRecord
    from dissect.pdbapply.helpers.stream import SymbolStream

log = logging.getLogger(__name__)

# Symbol kind -> applier class, filled by the `register` decorator
APPLIERS: dict[int, type[SymbolApplier]] = {}


def register(*kinds: int) -> Callable[[type[SymbolApplier]], type[SymbolApplier]]:
    """Class decorator that registers an applier for one or more symbol kinds.

    The kinds are also set as the ``KINDS`` the applier validates its records against.
    """

    def decorator(cls: type[SymbolApplier]) -> type[SymbolApplier]:
        for kind in kinds:
            kind = int(kind)
            if kind in APPLIERS:
                raise ValueError(f"Duplicate applier for {kind_name(kind)}: {APPLIERS[kind].__name__}")
            APPLIERS[kind] = cls
        cls.KINDS = frozenset(cls.KINDS) | frozenset(int(kind) for kind in kinds)
        return cls

    return decorator


class SymbolApplier:
    """Base class for the appliers of a kind of symbol record.

    An applier is created once per run for the context it applies to. Every call to `apply` consumes the record at
    the current stream position.

    Args:
        context: The `ApplicatorContext` of the run.
    """

    KINDS: ClassVar[frozenset[int]] = frozenset()

    def __init__(self, context: ApplicatorContext):
        self.context = context

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kinds={sorted(kind_name(kind) for kind in self.KINDS)}>"

    def apply(self, stream: SymbolStream) -> None:
        raise NotImplementedError()

    def validated_record(self, stream: SymbolStream, iterate: bool = True) -> SymbolRecord:
        """Return the record at the stream position after checking it is of a kind this applier handles.

        Args:
            stream: The symbol stream.
            iterate: Whether to consume the record or only peek at it.

        Raises:
            `DispatchMismatch` if the record is of another kind.
            `MalformedField` if the payload of the record was truncated.
        """

        record = stream.next() if iterate else stream.peek()
        if record.kind not in self.KINDS:
            raise DispatchMismatch(f"{type(self).__name__} invoked on a {kind_name(record.kind)} record")
        if record.truncated:
            raise MalformedField(f"{record.kind_name} payload is truncated")
        return record


class DirectSymbolApplier(SymbolApplier):
    """Applier for a self-contained record."""


class NestableSymbolApplier(SymbolApplier):
    """Applier for a record that opens a scope, closed later on by one of ``END_KINDS``."""

    SCOPE_KIND: ClassVar[ScopeKind]
    END_KINDS: ClassVar[frozenset[int]] = frozenset()

    def apply(self, stream: SymbolStream) -> None:
        position = stream.position
        record = stream.peek()

        try:
            record = self.validated_record(stream)
            scope = self.create_scope(record, position)
        except MalformedField:
            # The end record of a malformed scope still needs a frame to close, the scope itself is not kept
            self.context.stack.push(Scope(kind=self.SCOPE_KIND, name=record.name, position=position), self.END_KINDS)
            raise

        self.begin(stream, record, scope)

    def create_scope(self, record: SymbolRecord, position: int) -> Scope:
        raise NotImplementedError()

    def begin(self, stream: SymbolStream, record: SymbolRecord, scope: Scope) -> ScopeFrame:
        """Open ``scope`` and decide where the stream continues.

        When the options do not descend into scopes, the stream jumps to the end record of the scope, provided that
        the begin record points at a record further down the stream that closes the scope. The end record itself is
        still applied.
        """

        frame = self.context.open_scope(scope, self.END_KINDS, end_offset=record.end or None)

        if not self.context.options.descend_scopes and frame.end_offset is not None:
            position = stream.index_of(frame.end_offset)
            if position is None or position < stream.position:
                log.debug("%s %r: end offset %#x not ahead in stream", record.kind_name, scope.name, record.end)
            elif not frame.closed_by(stream.records[position].kind):
                log.debug(
                    "%s %r: end offset %#x points at a %s record",
                    record.kind_name,
                    scope.name,
                    record.end,
                    stream.records[position].kind_name,
                )
            else:
                stream.jump(position)

        return frame


class ScopeEndApplier(SymbolApplier):
    """Applier for the records closing a scope.

    The most recent scope closed by the record kind is popped. Scopes opened above it are discarded and reported.
    """

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)
        closed, discarded = self.context.stack.close(record.kind)

        if discarded or closed is None:
            self._report(record, closed, discarded)

    def _report(self, record: SymbolRecord, closed: Optional[ScopeFrame], discarded: Iterable[ScopeFrame]) -> None:
        open_scopes = ", ".join(f"{frame.kind.value} {frame.scope.name!r}" for frame in discarded)
        if closed is None:
            if open_scopes:
                raise ScopeImbalance(f"{record.kind_name} matches no open scope, discarded {open_scopes}")
            raise ScopeImbalance(f"{record.kind_name} without an open scope")

        raise ScopeImbalance(
            f"{record.kind_name} closes {closed.kind.value} {closed.scope.name!r}, discarded {open_scopes}"
        )
