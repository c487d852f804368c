import struct
from io import BytesIO

from dissect.pdbapply import SYM, SymbolStream

CV_SIGNATURE = struct.pack("<I", 4)


def cstring(name: str) -> bytes:
    return name.encode() + b"\x00"


def symbol_bytes(kind: int, payload: bytes) -> bytes:
    """Build a raw CodeView symbol record, padded to a multiple of 4 bytes."""
    data = struct.pack("<H", kind) + payload
    data += b"\x00" * (-(len(data) + 2) % 4)
    return struct.pack("<H", len(data)) + data


def section_bytes(
    section: int, rva: int, length: int, characteristics: int = 0, alignment: int = 12, name: str = ".text"
) -> bytes:
    payload = struct.pack("<HBBIII", section, alignment, 0, rva, length, characteristics)
    return symbol_bytes(SYM.S_SECTION, payload + cstring(name))


def coffgroup_bytes(name: str, section: int, offset: int, length: int, characteristics: int = 0) -> bytes:
    payload = struct.pack("<IIIH", length, characteristics, offset, section)
    return symbol_bytes(SYM.S_COFFGROUP, payload + cstring(name))


def procedure_bytes(
    name: str,
    section: int,
    offset: int,
    length: int,
    end: int = 0,
    parent: int = 0,
    type_index: int = 0x1000,
    kind: int = SYM.S_GPROC32,
) -> bytes:
    payload = struct.pack("<IIIIIIIIHB", parent, end, 0, length, 0, length, type_index, offset, section, 0)
    return symbol_bytes(kind, payload + cstring(name))


def block_bytes(section: int, offset: int, length: int, end: int = 0, parent: int = 0, name: str = "") -> bytes:
    payload = struct.pack("<IIIIH", parent, end, length, offset, section)
    return symbol_bytes(SYM.S_BLOCK32, payload + cstring(name))


def data_bytes(name: str, section: int, offset: int, type_index: int = 0x74, kind: int = SYM.S_GDATA32) -> bytes:
    payload = struct.pack("<IIH", type_index, offset, section)
    return symbol_bytes(kind, payload + cstring(name))


def public_bytes(name: str, section: int, offset: int, flags: int = 2) -> bytes:
    payload = struct.pack("<IIH", flags, offset, section)
    return symbol_bytes(SYM.S_PUB32, payload + cstring(name))


def objname_bytes(name: str, signature: int = 0) -> bytes:
    return symbol_bytes(SYM.S_OBJNAME, struct.pack("<I", signature) + cstring(name))


def compile3_bytes(language: int, machine: int, version: str) -> bytes:
    payload = struct.pack("<IH8H", language, machine, 19, 36, 32532, 0, 19, 36, 32532, 0)
    return symbol_bytes(SYM.S_COMPILE3, payload + cstring(version))


def end_bytes(kind: int = SYM.S_END) -> bytes:
    return symbol_bytes(kind, b"")


def record_offsets(records: list, signature: bool = True) -> list:
    """Return the byte offsets the raw records will have within their stream."""
    offsets = []
    offset = len(CV_SIGNATURE) if signature else 0
    for record in records:
        offsets.append(offset)
        offset += len(record)
    return offsets


def module_stream(*records: bytes) -> SymbolStream:
    return SymbolStream.from_file(BytesIO(CV_SIGNATURE + b"".join(records)), signature=True)
