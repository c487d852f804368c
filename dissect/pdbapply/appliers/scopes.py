from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.pdbapply.appliers.base import NestableSymbolApplier, ScopeEndApplier, register
from dissect.pdbapply.helpers.context import Scope, ScopeKind
from dissect.pdbapply.helpers.record import SYM
from dissect.pdbapply.helpers.utils import check_range, check_section

if TYPE_CHECKING:
    from dissect.pdbapply.helpers.record import SymbolRecord


class AddressedScopeApplier(NestableSymbolApplier):
    """Base applier for the begin records of a scope with a code address."""

    def create_scope(self, record: SymbolRecord, position: int) -> Scope:
        scope = Scope(
            kind=self.SCOPE_KIND,
            name=record.name,
            section=check_section(record.section),
            offset=check_range(record.address, "offset"),
            length=check_range(record.length, "length"),
            type_index=record.type_index,
            flags=record.flags,
            position=position,
        )
        self.context.locate(scope)
        return scope


@register(
    SYM.S_GPROC32,
    SYM.S_LPROC32,
    SYM.S_GPROC32_ID,
    SYM.S_LPROC32_ID,
    SYM.S_LPROC32_DPC,
    SYM.S_LPROC32_DPC_ID,
)
class ProcedureApplier(AddressedScopeApplier):
    SCOPE_KIND = ScopeKind.PROCEDURE
    END_KINDS = frozenset({SYM.S_END, SYM.S_PROC_ID_END})


@register(SYM.S_BLOCK32)
class BlockApplier(AddressedScopeApplier):
    SCOPE_KIND = ScopeKind.BLOCK
    END_KINDS = frozenset({SYM.S_END})


@register(SYM.S_THUNK32)
class ThunkApplier(AddressedScopeApplier):
    # The thunk ordinal is kept in the flags of the scope
    SCOPE_KIND = ScopeKind.THUNK
    END_KINDS = frozenset({SYM.S_END})


@register(SYM.S_INLINESITE)
class InlineSiteApplier(NestableSymbolApplier):
    """Applier for ``S_INLINESITE`` records.

    The code ranges of an inline site are encoded in binary annotations, which are not decoded. The scope is opened
    without an address, its ``type_index`` refers to the inlined function.
    """

    SCOPE_KIND = ScopeKind.INLINE_SITE
    END_KINDS = frozenset({SYM.S_INLINESITE_END})

    def create_scope(self, record: SymbolRecord, position: int) -> Scope:
        return Scope(kind=self.SCOPE_KIND, name=record.name, type_index=record.type_index, position=position)


@register(SYM.S_END, SYM.S_PROC_ID_END, SYM.S_INLINESITE_END)
class EndApplier(ScopeEndApplier):
    pass
