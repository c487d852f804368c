from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Callable, Generator, Optional

# External imports
from dissect.cstruct import cstruct
from dissect.util.stream import RangeStream

# Local imports
from dissect.pdbapply.helpers.c_sym import CV_SIGNATURE_C13, c_sym
from dissect.pdbapply.helpers.utils import kind_name, retain_file_offset

SYM = c_sym.SYM_ENUM_e


@dataclass(frozen=True)
class SymbolRecord:
    """An already decoded symbol record.

    Only the fields relevant for the kind are filled in, the others keep their defaults. ``address`` holds the
    section relative offset of a symbol, or the RVA for ``S_SECTION`` records. ``parent`` and ``end`` are the byte
    offsets stored by nestable records, ``offset`` is the byte offset of the record itself within its stream.
    ``truncated`` is set when the payload of the record was shorter than the structure of its kind.
    """

    kind: int
    name: str = ""
    address: int = 0
    length: int = 0
    characteristics: int = 0
    alignment: int = 0
    section: int = 0
    flags: int = 0
    type_index: int = 0
    parent: int = 0
    end: int = 0
    signature: int = 0
    machine: int = 0
    version: str = ""
    offset: Optional[int] = None
    truncated: bool = False

    def __post_init__(self):
        # cstruct enum members do not hash like their value, kinds are kept as plain integers
        object.__setattr__(self, "kind", int(self.kind))

    @property
    def kind_name(self) -> str:
        return kind_name(self.kind)

    def __repr__(self) -> str:
        return f"<SymbolRecord {self.kind_name} name={self.name!r} offset={self.offset}>"


def _name(value: bytes) -> str:
    return value.decode("utf-8", "replace")


def _section_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "alignment": symbol.alignment,
        "address": symbol.rva,
        "length": symbol.length,
        "characteristics": symbol.characteristics,
    }


def _coffgroup_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "length": symbol.length,
        "characteristics": symbol.characteristics,
    }


def _procedure_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "length": symbol.length,
        "flags": symbol.flags,
        "type_index": symbol.type_index,
        "parent": symbol.parent,
        "end": symbol.end,
    }


def _block_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "length": symbol.length,
        "parent": symbol.parent,
        "end": symbol.end,
    }


def _thunk_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "length": symbol.length,
        "flags": symbol.ordinal,
        "parent": symbol.parent,
        "end": symbol.end,
    }


def _inlinesite_record(kind: int, symbol: cstruct) -> dict:
    return {
        "type_index": symbol.inlinee,
        "parent": symbol.parent,
        "end": symbol.end,
    }


def _data_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "type_index": symbol.type_index,
    }


def _public_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "flags": symbol.flags,
    }


def _label_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "section": symbol.section,
        "address": symbol.offset,
        "flags": symbol.flags,
    }


def _objname_record(kind: int, symbol: cstruct) -> dict:
    return {
        "name": _name(symbol.name),
        "signature": symbol.signature,
    }


def _compile_record(kind: int, symbol: cstruct) -> dict:
    return {
        "flags": symbol.flags,
        "machine": symbol.machine,
        "version": _name(symbol.version),
    }


# Symbol kind -> (payload structure, field extraction)
SYMBOL_STRUCTS: dict[int, tuple[cstruct, Callable[[int, cstruct], dict]]] = {
    int(SYM.S_SECTION): (c_sym.SectionSymbol, _section_record),
    int(SYM.S_COFFGROUP): (c_sym.CoffGroupSymbol, _coffgroup_record),
    int(SYM.S_GPROC32): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_LPROC32): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_GPROC32_ID): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_LPROC32_ID): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_LPROC32_DPC): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_LPROC32_DPC_ID): (c_sym.ProcedureSymbol, _procedure_record),
    int(SYM.S_BLOCK32): (c_sym.BlockSymbol, _block_record),
    int(SYM.S_THUNK32): (c_sym.ThunkSymbol, _thunk_record),
    int(SYM.S_INLINESITE): (c_sym.InlineSiteSymbol, _inlinesite_record),
    int(SYM.S_GDATA32): (c_sym.DataSymbol, _data_record),
    int(SYM.S_LDATA32): (c_sym.DataSymbol, _data_record),
    int(SYM.S_GTHREAD32): (c_sym.DataSymbol, _data_record),
    int(SYM.S_LTHREAD32): (c_sym.DataSymbol, _data_record),
    int(SYM.S_PUB32): (c_sym.PublicSymbol, _public_record),
    int(SYM.S_LABEL32): (c_sym.LabelSymbol, _label_record),
    int(SYM.S_OBJNAME): (c_sym.ObjectNameSymbol, _objname_record),
    int(SYM.S_COMPILE3): (c_sym.CompileSymbol, _compile_record),
}


def decode_records(fh: BinaryIO, signature: bool = False) -> Generator[SymbolRecord, None, None]:
    """Decode the CodeView symbol records of a symbol stream.

    Records of a kind without a known payload layout are still yielded, carrying only their kind and offset. Decoding
    stops at the end of the data, on a truncated record header or on a record with a zero length.

    Args:
        fh: A file-like object positioned at the start of the symbol records.
        signature: Whether the stream starts with a CodeView signature, as module symbol streams do.

    Yields:
        The decoded symbols as `SymbolRecord` objects.
    """

    with retain_file_offset(fobj=fh):
        start = fh.tell()
        if signature:
            # Offsets stored in the records are relative to the start of the stream, signature included
            cv_signature = c_sym.uint32(fh)
            if cv_signature != CV_SIGNATURE_C13:
                raise NotImplementedError(f"Unsupported CodeView signature: {cv_signature}")

        while True:
            offset = fh.tell()
            try:
                header = c_sym.SymbolRecordHeader(fh)
            except EOFError:
                break

            if header.length < 2:
                break

            # Compensate for the kind field, which is included in the record length
            payload_size = header.length - 2
            kind = int(header.type)
            fields = {}

            if kind in SYMBOL_STRUCTS:
                structure, extract = SYMBOL_STRUCTS[kind]
                try:
                    fields = extract(kind, structure(RangeStream(fh, offset + 4, payload_size)))
                except EOFError:
                    # A payload shorter than its structure is kept as a bare record
                    fields = {"truncated": True}

            yield SymbolRecord(kind=kind, offset=offset - start, **fields)

            fh.seek(offset + 2 + header.length)
