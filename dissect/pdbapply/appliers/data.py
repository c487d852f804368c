from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.pdbapply.appliers.base import DirectSymbolApplier, register
from dissect.pdbapply.helpers.context import RecoveredSymbol
from dissect.pdbapply.helpers.record import SYM
from dissect.pdbapply.helpers.utils import check_range, check_section

if TYPE_CHECKING:
    from dissect.pdbapply.helpers.stream import SymbolStream


class AddressSymbolApplier(DirectSymbolApplier):
    """Base applier for the records describing a single address: data, public and label symbols.

    The symbol is recorded in the context and attached to the open scope, if any. Symbols in a section that is not
    registered or not resolved yet are kept as unresolved.
    """

    def apply(self, stream: SymbolStream) -> None:
        record = self.validated_record(stream)

        symbol = RecoveredSymbol(
            kind=record.kind,
            name=record.name,
            section=check_section(record.section),
            offset=check_range(record.address, "offset"),
            type_index=record.type_index,
            flags=record.flags,
            position=stream.position - 1,
        )
        self.context.locate(symbol)
        self.context.add_symbol(symbol)


@register(SYM.S_GDATA32, SYM.S_LDATA32, SYM.S_GTHREAD32, SYM.S_LTHREAD32)
class DataApplier(AddressSymbolApplier):
    pass


@register(SYM.S_PUB32)
class PublicApplier(AddressSymbolApplier):
    pass


@register(SYM.S_LABEL32)
class LabelApplier(AddressSymbolApplier):
    pass
