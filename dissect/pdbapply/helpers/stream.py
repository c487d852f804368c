from __future__ import annotations

from typing import BinaryIO, Iterable, Optional

from dissect.pdbapply.exception import EndOfStream
from dissect.pdbapply.helpers.record import SymbolRecord, decode_records


class SymbolStream:
    """Replayable cursor over a sequence of symbol records.

    Positions are indices into the record sequence. Records that carry the byte offset they were decoded from can
    also be reached through `jump_to_offset`, which is how nestable records refer to their end record. The cursor
    only moves forward.

    Args:
        records: The decoded symbol records, in stream order.
    """

    def __init__(self, records: Iterable[SymbolRecord]):
        self.records = list(records)
        self.position = 0
        self._offsets = {
            record.offset: index for index, record in enumerate(self.records) if record.offset is not None
        }

    @classmethod
    def from_file(cls, fh: BinaryIO, signature: bool = False) -> SymbolStream:
        """Create a symbol stream from the raw CodeView symbol records in a file-like object.

        Args:
            fh: A file-like object positioned at the start of the symbol records.
            signature: Whether the data starts with a CodeView signature, as module symbol streams do.

        Returns:
            A `SymbolStream` over the decoded records.
        """

        return cls(decode_records(fh, signature=signature))

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return f"<SymbolStream position={self.position} length={len(self.records)}>"

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.records)

    def peek(self) -> SymbolRecord:
        """Return the record at the current position without advancing.

        Raises:
            `EndOfStream` if all records have been consumed.
        """

        if self.exhausted:
            raise EndOfStream(f"No record at position {self.position}")
        return self.records[self.position]

    def next(self) -> SymbolRecord:
        """Return the record at the current position and advance past it.

        Raises:
            `EndOfStream` if all records have been consumed.
        """

        record = self.peek()
        self.position += 1
        return record

    def jump(self, position: int) -> None:
        """Move the cursor to an absolute record position.

        Args:
            position: The record index to continue from, ``len(stream)`` positions the cursor at the end.

        Raises:
            `ValueError` if the position lies before the current position or past the end of the stream.
        """

        if position < self.position:
            raise ValueError(f"Cannot move backwards from position {self.position} to {position}")
        if position > len(self.records):
            raise ValueError(f"Position {position} is past the end of the stream ({len(self.records)})")
        self.position = position

    def index_of(self, offset: int) -> Optional[int]:
        """Return the position of the record decoded from byte ``offset``, ``None`` if there is no such record."""
        return self._offsets.get(offset)

    def jump_to_offset(self, offset: int) -> None:
        """Move the cursor to the record that was decoded from byte ``offset``.

        Raises:
            `ValueError` if no record starts at the offset or if it lies behind the current position.
        """

        position = self.index_of(offset)
        if position is None:
            raise ValueError(f"No record at offset {offset:#x}")
        self.jump(position)
