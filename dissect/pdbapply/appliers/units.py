from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.pdbapply.appliers.base import DirectSymbolApplier, register
from dissect.pdbapply.helpers.context import CompileUnit
from dissect.pdbapply.helpers.record import SYM

if TYPE_CHECKING:
    from dissect.pdbapply.helpers.stream import SymbolStream


@register(SYM.S_OBJNAME)
class ObjectNameApplier(DirectSymbolApplier):
    """Applier for ``S_OBJNAME`` records, which start the symbols of a new object file."""

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)
        unit = CompileUnit(name=record.name, signature=record.signature, position=stream.position - 1)
        self.context.add_compile_unit(unit)


@register(SYM.S_COMPILE3)
class CompileApplier(DirectSymbolApplier):
    """Applier for ``S_COMPILE3`` records.

    The compiler information is added to the current compile unit. An unnamed unit is created when the record is
    not preceded by an ``S_OBJNAME`` record.
    """

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)

        unit = self.context.current_unit
        if unit is None:
            unit = CompileUnit(name="", position=stream.position - 1)
            self.context.add_compile_unit(unit)

        # The low byte of the flags holds the CV_CFL_LANG source language
        unit.language = record.flags & 0xFF
        unit.machine = record.machine
        unit.version = record.version
