import logging

import pytest

from dissect.pdbapply import (
    SYM,
    ApplicatorContext,
    FaultCategory,
    ImageBaseLayout,
    SectionDescriptor,
    SymbolRecord,
    SymbolStream,
    apply_symbols,
)

from .util import coffgroup_bytes, module_stream, section_bytes


def _section(section: int, rva: int, length: int, **kwargs) -> SymbolRecord:
    return SymbolRecord(kind=SYM.S_SECTION, section=section, address=rva, length=length, **kwargs)


def test_section_resolved_with_layout():
    context = ApplicatorContext(layout={3: 0x400000}.get)
    result = apply_symbols(SymbolStream([_section(3, 0x1000, 0x200)]), context)

    section = context.sections[3]
    assert (section.index, section.base, section.length) == (3, 0x401000, 0x200)
    assert context.addresses == {3: 0x401000}
    assert context.translate(3, 0x10) == 0x401010
    assert result.processed == 1
    assert result.faults == []


def test_section_from_raw_records():
    context = ApplicatorContext(layout=ImageBaseLayout(0x140000000))
    stream = module_stream(
        section_bytes(1, 0x1000, 0x3000, characteristics=0x60000020, name=".text"),
        section_bytes(2, 0x4000, 0x800, characteristics=0x40000040, alignment=4, name=".rdata"),
    )
    apply_symbols(stream, context)

    assert list(context.sections) == [1, 2]
    assert context.sections[1].base == 0x140001000
    assert context.sections[2].name == ".rdata"
    assert context.sections[2].alignment_bytes == 16
    assert context.sections[2].characteristics == 0x40000040


def test_section_without_translation_table():
    context = ApplicatorContext()
    apply_symbols(SymbolStream([_section(1, 0x1000, 0x100)]), context)

    assert not context.translation_enabled
    assert context.sections[1].base is None
    assert context.addresses == {}


def test_section_resolution_deferred():
    layout = {}
    context = ApplicatorContext(layout=layout.get)
    result = apply_symbols(SymbolStream([_section(1, 0x1000, 0x100), _section(2, 0x2000, 0x100)]), context)

    assert result.faults == []
    assert [section.index for section in context.pending_sections] == [1, 2]

    layout[1] = 0x10000000
    assert context.resolve_sections() == 1
    assert context.sections[1].base == 0x10001000
    assert [section.index for section in context.pending_sections] == [2]


def test_section_updated():
    context = ApplicatorContext(layout=ImageBaseLayout(0x400000))
    stream = SymbolStream([_section(1, 0x1000, 0x100, name=".text"), _section(1, 0x2000, 0x300, name=".text")])
    apply_symbols(stream, context)

    assert len(context.sections) == 1
    assert context.sections[1].length == 0x300
    assert context.addresses[1] == 0x402000


@pytest.mark.parametrize(
    "record",
    [
        _section(0, 0x1000, 0x100),
        _section(0x10000, 0x1000, 0x100),
        _section(1, 0x1000, -1),
        _section(1, -0x1000, 0x100),
        _section(1, 0x1000, 0x100, alignment=14),
    ],
)
def test_section_malformed(record):
    context = ApplicatorContext(layout=ImageBaseLayout(0x400000))
    result = apply_symbols(SymbolStream([record, _section(2, 0x2000, 0x100)]), context)

    assert list(context.sections) == [2]
    assert result.processed == 1
    assert result.faulted == 1
    assert result.faults[0].category is FaultCategory.MALFORMED_FIELD
    assert result.faults[0].position == 0
    assert not result.faults[0].programming_fault


def test_coffgroup_aggregates_sections():
    context = ApplicatorContext(layout=ImageBaseLayout(0x400000))
    stream = module_stream(
        section_bytes(1, 0x1000, 0x3000, name=".text"),
        section_bytes(2, 0x4000, 0x1000, name=".rdata"),
        coffgroup_bytes(".text$mn", 1, 0x0, 0x2000, characteristics=0x60000020),
        coffgroup_bytes(".CRT$XCA", 2, 0x100, 0x8),
        coffgroup_bytes(".text$mn", 1, 0x2000, 0x800),
    )
    result = apply_symbols(stream, context)

    assert result.processed == 5
    assert list(context.groups) == [".text$mn", ".CRT$XCA"]

    group = context.groups[".text$mn"]
    assert group.characteristics == 0x60000020
    assert group.sections == [1]
    assert [contribution.address for contribution in group.contributions] == [0x401000, 0x403000]
    assert context.groups[".CRT$XCA"].contributions[0].address == 0x404100


def test_coffgroup_forward_reference():
    context = ApplicatorContext(layout=ImageBaseLayout(0x400000))
    stream = SymbolStream(
        [
            SymbolRecord(kind=SYM.S_COFFGROUP, name=".bss", section=3, address=0x10, length=0x20),
            _section(3, 0x6000, 0x100, name=".bss"),
        ]
    )
    result = apply_symbols(stream, context)

    contribution = context.groups[".bss"].contributions[0]
    assert result.faults == []
    assert contribution.address is None
    assert context.unresolved == [contribution]

    assert context.retry_unresolved() == 1
    assert contribution.address == 0x406010
    assert context.unresolved == []


def test_coffgroup_malformed():
    context = ApplicatorContext()
    record = SymbolRecord(kind=SYM.S_COFFGROUP, name=".data", section=0, address=0, length=0x10)
    result = apply_symbols(SymbolStream([record]), context)

    assert context.groups == {}
    assert result.faults[0].category is FaultCategory.MALFORMED_FIELD


def test_section_contains():
    section = SectionDescriptor(index=1, rva=0x1000, length=0x200)
    assert section.contains(0)
    assert section.contains(0x1FF)
    assert not section.contains(0x200)
    assert not section.contains(-1)


def test_symbol_outside_section_logged(caplog):
    context = ApplicatorContext(layout=ImageBaseLayout(0x400000))
    stream = SymbolStream(
        [
            _section(1, 0x1000, 0x200),
            SymbolRecord(kind=SYM.S_PUB32, name="inside", section=1, address=0x10),
            SymbolRecord(kind=SYM.S_PUB32, name="outside", section=1, address=0x300),
        ]
    )

    with caplog.at_level(logging.DEBUG, logger="dissect.pdbapply.helpers.context"):
        result = apply_symbols(stream, context)

    assert result.faults == []
    assert [symbol.address for symbol in context.symbols] == [0x401010, 0x401300]
    assert caplog.text.count("lies outside section 1") == 1
