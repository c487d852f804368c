import pytest

from dissect.pdbapply import SYM, EndOfStream, SymbolRecord, SymbolStream


def _stream() -> SymbolStream:
    return SymbolStream(
        [
            SymbolRecord(kind=SYM.S_GPROC32, name="main", end=0x40, offset=0x4),
            SymbolRecord(kind=SYM.S_BLOCK32, end=0x30, offset=0x10),
            SymbolRecord(kind=SYM.S_END, offset=0x30),
            SymbolRecord(kind=SYM.S_END, offset=0x40),
        ]
    )


def test_stream_next_and_peek():
    stream = _stream()

    assert stream.peek().name == "main"
    assert stream.position == 0
    assert stream.next().name == "main"
    assert stream.position == 1
    assert stream.peek().kind == SYM.S_BLOCK32


def test_stream_end_of_stream():
    stream = SymbolStream([SymbolRecord(kind=SYM.S_END)])
    stream.next()

    assert stream.exhausted
    with pytest.raises(EndOfStream):
        stream.peek()
    with pytest.raises(EndOfStream):
        stream.next()
    # EndOfStream is an EOFError, like the structure readers raise
    with pytest.raises(EOFError):
        stream.next()


def test_stream_jump_forward_only():
    stream = _stream()
    stream.jump(2)
    assert stream.peek().offset == 0x30

    with pytest.raises(ValueError):
        stream.jump(1)
    with pytest.raises(ValueError):
        stream.jump(5)

    stream.jump(len(stream))
    assert stream.exhausted


def test_stream_jump_to_offset():
    stream = _stream()
    assert stream.index_of(0x40) == 3
    assert stream.index_of(0x41) is None

    stream.jump_to_offset(0x40)
    assert stream.position == 3

    with pytest.raises(ValueError):
        stream.jump_to_offset(0x10)
    with pytest.raises(ValueError):
        stream.jump_to_offset(0x41)


def test_stream_without_offsets():
    stream = SymbolStream([SymbolRecord(kind=SYM.S_END), SymbolRecord(kind=SYM.S_END)])
    assert stream.index_of(0) is None
    assert len(stream) == 2
