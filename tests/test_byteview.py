import pytest

from mycache.byteview import ByteView


def test_len_matches_data():
    assert len(ByteView(b"630")) == 3
    assert len(ByteView()) == 0


def test_str_decodes_text():
    assert str(ByteView("1589".encode())) == "1589"


def test_byte_slice_returns_equal_copy():
    view = ByteView(b"12567")
    copy = view.byte_slice()
    assert copy == b"12567"
    assert copy == view.data


def test_equality_compares_bytes():
    assert ByteView(b"abc") == ByteView(b"abc")
    assert not (ByteView(b"abc") == ByteView(b"abd"))


def test_bytearray_input_is_frozen():
    source = bytearray(b"Tom")
    view = ByteView(source)
    source[0] = ord("X")
    assert view.byte_slice() == b"Tom"


def test_view_is_immutable():
    view = ByteView(b"abc")
    with pytest.raises(AttributeError):
        view.data = b"xyz"
    assert view.byte_slice() == b"abc"
    assert str(view) == "abc"