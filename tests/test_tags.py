from __future__ import annotations

import struct

import pytest

from floatdng.errors import TagLayoutError, TagOrderError, TagValueError
from floatdng.write.tags import (
    TagRegistry,
    TagType,
    bits_to_float32,
    decode_values,
    encode_entry,
    float32_bits,
    make_tag,
    parse_directory,
)


def test_short_value_is_left_justified() -> None:
    tag = make_tag(256, TagType.SHORT, [100])
    assert tag.count == 1
    assert tag.value == 100 << 16
    assert tag.offset is None


def test_two_shorts_share_the_value_field() -> None:
    tag = make_tag(33421, TagType.SHORT, [6, 6])
    assert tag.count == 2
    assert tag.value == (6 << 16) | 6


def test_four_bytes_inline() -> None:
    tag = make_tag(50706, TagType.BYTE, [1, 2, 0, 0])
    assert tag.value == 0x01020000


def test_encode_entry_layout() -> None:
    buf = bytearray(16)
    cursor = encode_entry(buf, 2, make_tag(273, TagType.LONG, [584]))
    assert cursor == 14
    assert bytes(buf[2:14]) == struct.pack(">HHII", 273, 4, 1, 584)


def test_large_payload_needs_offset() -> None:
    with pytest.raises(TagLayoutError):
        make_tag(50728, TagType.RATIONAL, [1, 2, 3, 4])
    tag = make_tag(50728, TagType.RATIONAL, [1, 2, 3, 4], offset=100)
    assert tag.count == 2
    assert tag.offset == 100
    assert tag.data == struct.pack(">4I", 1, 2, 3, 4)


def test_rational_values_must_pair_up() -> None:
    with pytest.raises(TagValueError):
        make_tag(50728, TagType.RATIONAL, [1, 2, 3], offset=100)


def test_unsigned_rational_rejects_negative() -> None:
    with pytest.raises(TagValueError):
        make_tag(50728, TagType.RATIONAL, [-1, 2], offset=100)
    tag = make_tag(50721, TagType.SRATIONAL, [-1, 2], offset=100)
    assert decode_values(tag) == (-1, 2)


def test_ascii_value() -> None:
    tag = make_tag(271, TagType.ASCII, "abc")
    assert tag.count == 4
    assert decode_values(tag) == (97, 98, 99, 0)


def test_registry_rejects_descending_and_duplicate_ids() -> None:
    registry = TagRegistry(header_size=128)
    registry.add(make_tag(257, TagType.SHORT, [1]))
    with pytest.raises(TagOrderError):
        registry.add(make_tag(256, TagType.SHORT, [1]))
    with pytest.raises(TagOrderError):
        registry.add(make_tag(257, TagType.SHORT, [2]))
    assert len(registry) == 1


def test_registry_render_header_and_count() -> None:
    registry = TagRegistry(header_size=128)
    registry.add(make_tag(256, TagType.SHORT, [3]))
    registry.add(make_tag(257, TagType.SHORT, [2]))
    registry.add(make_tag(50728, TagType.RATIONAL, [1, 1, 2, 1], offset=64))
    out = registry.render()

    assert len(out) == 128
    assert out[:8] == b"MM\x00\x2a\x00\x00\x00\x0a"
    assert struct.unpack_from(">H", out, 10)[0] == 3
    assert struct.unpack_from(">I", out, registry.directory_end - 4)[0] == 0
    assert out[64:80] == struct.pack(">4I", 1, 1, 2, 1)


def test_registry_rejects_overlapping_blocks() -> None:
    registry = TagRegistry(header_size=128)
    registry.add(make_tag(50721, TagType.SRATIONAL, [1, 1], offset=20))
    with pytest.raises(TagLayoutError):
        registry.render()

    registry = TagRegistry(header_size=128)
    registry.add(make_tag(50721, TagType.SRATIONAL, [1, 1, 2, 1], offset=60))
    registry.add(make_tag(50728, TagType.RATIONAL, [1, 1], offset=70))
    with pytest.raises(TagLayoutError):
        registry.render()


def test_registry_rejects_block_past_header() -> None:
    registry = TagRegistry(header_size=128)
    registry.add(make_tag(50728, TagType.RATIONAL, [1, 1, 2, 1], offset=120))
    with pytest.raises(TagLayoutError):
        registry.render()


def test_parse_directory_reads_rendered_entries() -> None:
    registry = TagRegistry(header_size=128)
    registry.add(make_tag(256, TagType.SHORT, [3]))
    registry.add(make_tag(33422, TagType.BYTE, [0, 1, 1, 2]))
    registry.add(make_tag(50728, TagType.RATIONAL, [1, 1, 2, 1], offset=64))
    endian, tags = parse_directory(registry.render())

    assert endian == ">"
    assert [t.tag_id for t in tags] == [256, 33422, 50728]
    assert decode_values(tags[0], endian) == (3,)
    assert decode_values(tags[1], endian) == (0, 1, 1, 2)
    assert decode_values(tags[2], endian) == (1, 1, 2, 1)


def test_parse_directory_little_endian() -> None:
    data = bytearray(64)
    struct.pack_into("<2sHI", data, 0, b"II", 42, 8)
    struct.pack_into("<H", data, 8, 1)
    struct.pack_into("<HHIHH", data, 10, 256, 3, 1, 640, 0)
    endian, tags = parse_directory(bytes(data))
    assert endian == "<"
    assert decode_values(tags[0], endian) == (640,)


def test_parse_directory_rejects_bad_marker() -> None:
    with pytest.raises(TagLayoutError):
        parse_directory(b"XX\x00\x2a\x00\x00\x00\x08")


def test_float32_bits() -> None:
    assert float32_bits(1.0) == 0x3F800000
    assert float32_bits(0.5) == 0x3F000000
    assert bits_to_float32(float32_bits(0.25)) == 0.25


def test_float32_bits_rejects_out_of_range_value() -> None:
    with pytest.raises(TagValueError):
        float32_bits(1e39)
