from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.pdbapply.appliers.base import DirectSymbolApplier, register
from dissect.pdbapply.helpers.context import GroupContribution, SectionDescriptor
from dissect.pdbapply.helpers.record import SYM
from dissect.pdbapply.helpers.utils import check_alignment, check_range, check_section

if TYPE_CHECKING:
    from dissect.pdbapply.helpers.stream import SymbolStream


@register(SYM.S_SECTION)
class SectionApplier(DirectSymbolApplier):
    """Applier for ``S_SECTION`` records, the PE/COFF sections emitted by the linker.

    The section is registered in the section table of the context. Its absolute base address is resolved right away
    when the section layout is known, otherwise the section stays pending.
    """

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)

        section = SectionDescriptor(
            index=check_section(record.section, allow_zero=False),
            rva=check_range(record.address, "rva"),
            length=check_range(record.length, "length"),
            characteristics=record.characteristics,
            alignment=check_alignment(record.alignment),
            name=record.name,
        )
        self.context.add_section(section)


@register(SYM.S_COFFGROUP)
class CoffGroupApplier(DirectSymbolApplier):
    """Applier for ``S_COFFGROUP`` records.

    A COFF group such as ``.text$mn`` or ``.CRT$XCA`` covers a range of a section. Every record adds one range to the
    group with the same name.
    """

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)

        contribution = GroupContribution(
            section=check_section(record.section, allow_zero=False),
            offset=check_range(record.address, "offset"),
            length=check_range(record.length, "length"),
        )
        self.context.add_group_contribution(record.name, record.characteristics, contribution)
