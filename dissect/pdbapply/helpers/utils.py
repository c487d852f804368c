from __future__ import annotations

import io
from contextlib import contextmanager
from typing import BinaryIO, Generator

from dissect.pdbapply.exception import MalformedField
from dissect.pdbapply.helpers.c_sym import c_sym

# Section numbers are stored as 16-bit values in every symbol that references one
SECTION_INDEX_MAX = 0xFFFF
# Offsets, RVAs and lengths are stored as 32-bit values
ADDRESS_FIELD_MAX = 0xFFFFFFFF
# Largest COFF section alignment is IMAGE_SCN_ALIGN_8192BYTES, stored as a power of 2
ALIGNMENT_MAX = 13


@contextmanager
def retain_file_offset(
    fobj: BinaryIO, offset: int = None, whence: int = io.SEEK_SET
) -> Generator[BinaryIO, None, None]:
    """Retain the file offset of a file-like object while it is being read by the caller.

    Args:
        fobj: The file-like object we're reading from.
        offset: The offset to seek to before yielding, if any.
        whence: The type of action we perform the seek operation with.

    Yields:
        The file-like object.
    """

    pos = fobj.tell()
    try:
        if offset is not None:
            fobj.seek(offset, whence)
        yield fobj
    finally:
        fobj.seek(pos)


def kind_name(kind: int) -> str:
    """Return a printable name for a symbol kind, the hexadecimal value for kinds without a known name."""

    try:
        name = c_sym.SYM_ENUM_e(kind).name
    except ValueError:
        name = None

    return name or f"0x{kind:04x}"


def check_section(value: int, field: str = "section", allow_zero: bool = True) -> int:
    """Validate a section index.

    Args:
        value: The section index to validate.
        field: The name of the field, used in the fault message.
        allow_zero: Whether section ``0`` (absolute symbols) is acceptable.

    Returns:
        The validated section index.

    Raises:
        `MalformedField` if the section index is not representable.
    """

    minimum = 0 if allow_zero else 1
    if not minimum <= value <= SECTION_INDEX_MAX:
        raise MalformedField(f"{field} {value} outside of range {minimum}-{SECTION_INDEX_MAX:#x}")
    return value


def check_range(value: int, field: str) -> int:
    """Validate an unsigned 32-bit offset, RVA or length field."""

    if not 0 <= value <= ADDRESS_FIELD_MAX:
        raise MalformedField(f"{field} {value:#x} outside of range 0-{ADDRESS_FIELD_MAX:#x}")
    return value


def check_alignment(value: int) -> int:
    if not 0 <= value <= ALIGNMENT_MAX:
        raise MalformedField(f"alignment 2**{value} exceeds 2**{ALIGNMENT_MAX}")
    return value
