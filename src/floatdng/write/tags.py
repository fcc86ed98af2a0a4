from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
import logging
import struct
from typing import Iterable

from floatdng.errors import TagLayoutError, TagOrderError, TagValueError


logger = logging.getLogger(__name__)

ENTRY_SIZE = 12
BYTE_ORDER_MM = b"MM"
BYTE_ORDER_II = b"II"
TIFF_MAGIC = 42


class TagType(IntEnum):
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    SRATIONAL = 10


class Tag(IntEnum):
    NEW_SUBFILE_TYPE = 254
    IMAGE_WIDTH = 256
    IMAGE_LENGTH = 257
    BITS_PER_SAMPLE = 258
    COMPRESSION = 259
    PHOTOMETRIC_INTERPRETATION = 262
    STRIP_OFFSETS = 273
    ORIENTATION = 274
    SAMPLES_PER_PIXEL = 277
    ROWS_PER_STRIP = 278
    STRIP_BYTE_COUNTS = 279
    PLANAR_CONFIGURATION = 284
    SAMPLE_FORMAT = 339
    CFA_REPEAT_PATTERN_DIM = 33421
    CFA_PATTERN = 33422
    EXPOSURE_TIME = 33434
    F_NUMBER = 33437
    ISO_SPEED_RATINGS = 34855
    FOCAL_LENGTH = 37386
    DNG_VERSION = 50706
    DNG_BACKWARD_VERSION = 50707
    WHITE_LEVEL = 50717
    COLOR_MATRIX_1 = 50721
    AS_SHOT_NEUTRAL = 50728
    CALIBRATION_ILLUMINANT_1 = 50778


# struct code of one element; rationals are stored as two elements per value.
_ELEMENT_FORMAT: dict[TagType, str] = {
    TagType.BYTE: "B",
    TagType.ASCII: "B",
    TagType.SHORT: "H",
    TagType.LONG: "I",
    TagType.RATIONAL: "I",
    TagType.SRATIONAL: "i",
}
_RATIONAL_TYPES = {TagType.RATIONAL, TagType.SRATIONAL}


def _elements_per_value(tag_type: TagType) -> int:
    return 2 if tag_type in _RATIONAL_TYPES else 1


def value_size(tag_type: TagType) -> int:
    return struct.calcsize(">" + _ELEMENT_FORMAT[tag_type]) * _elements_per_value(tag_type)


def float32_bits(value: float) -> int:
    """Reinterpret a single-precision float as its raw 32-bit pattern.

    WhiteLevel is declared LONG but carries the float bit pattern, which is
    how floating-point DNG white levels are read back by raw decoders.
    """
    try:
        packed = struct.pack(">f", value)
    except OverflowError as exc:
        raise TagValueError(f"{value!r} does not fit a single-precision float") from exc
    return struct.unpack(">I", packed)[0]


def bits_to_float32(bits: int) -> float:
    return struct.unpack(">f", struct.pack(">I", bits))[0]


@dataclass(frozen=True)
class DirectoryTag:
    tag_id: int
    tag_type: TagType
    count: int
    value: int
    data: bytes | None = None

    @property
    def offset(self) -> int | None:
        if self.data is None or len(self.data) <= 4:
            return None
        return self.value


def make_tag(
    tag_id: int,
    tag_type: TagType,
    values: Iterable[int] | str,
    offset: int | None = None,
) -> DirectoryTag:
    """Build a directory entry; rationals take flattened ``num, den`` pairs.

    Payloads of up to four bytes are stored left-justified in the value field,
    larger ones need a fixed ``offset`` inside the header.
    """
    tag_type = TagType(tag_type)
    if isinstance(values, str):
        if tag_type is not TagType.ASCII:
            raise TagValueError(f"string value given for non-ASCII tag {tag_id}")
        elements = tuple(values.encode("ascii") + b"\x00")
    else:
        elements = tuple(int(v) for v in values)

    per_value = _elements_per_value(tag_type)
    if not elements or len(elements) % per_value:
        raise TagValueError(f"tag {tag_id}: {len(elements)} elements do not form whole {tag_type.name} values")

    try:
        payload = struct.pack(">" + _ELEMENT_FORMAT[tag_type] * len(elements), *elements)
    except struct.error as exc:
        raise TagValueError(f"tag {tag_id}: value out of range for {tag_type.name}: {exc}") from exc

    count = len(elements) // per_value
    if len(payload) <= 4:
        word = int.from_bytes(payload.ljust(4, b"\x00"), "big")
        return DirectoryTag(tag_id=tag_id, tag_type=tag_type, count=count, value=word)

    if offset is None:
        raise TagLayoutError(f"tag {tag_id}: {len(payload)} byte payload needs a data offset")
    return DirectoryTag(tag_id=tag_id, tag_type=tag_type, count=count, value=offset, data=payload)


def encode_entry(buffer: bytearray, cursor: int, tag: DirectoryTag) -> int:
    struct.pack_into(">HHII", buffer, cursor, tag.tag_id, int(tag.tag_type), tag.count, tag.value)
    return cursor + ENTRY_SIZE


def decode_values(tag: DirectoryTag, endian: str = ">") -> tuple[int, ...]:
    raw = tag.data if tag.data is not None else tag.value.to_bytes(4, "big")
    n = tag.count * _elements_per_value(tag.tag_type)
    fmt = endian + _ELEMENT_FORMAT[tag.tag_type] * n
    return struct.unpack(fmt, raw[: struct.calcsize(fmt)])


class TagRegistry:
    """Ordered first-IFD builder for a fixed-size header.

    Entries must be added in strictly ascending tag order. Payloads that do
    not fit the value field live in pre-reserved slots of the header and are
    checked against the directory and against each other on render.
    """

    def __init__(self, header_size: int, ifd_offset: int = 10) -> None:
        if ifd_offset < 8 or ifd_offset % 2:
            raise TagLayoutError(f"invalid IFD offset {ifd_offset}")
        self.header_size = header_size
        self.ifd_offset = ifd_offset
        self._tags: list[DirectoryTag] = []

    def __len__(self) -> int:
        return len(self._tags)

    @property
    def tags(self) -> tuple[DirectoryTag, ...]:
        return tuple(self._tags)

    @property
    def directory_end(self) -> int:
        # count field, entries, next-IFD offset
        return self.ifd_offset + 2 + ENTRY_SIZE * len(self._tags) + 4

    def add(self, tag: DirectoryTag) -> None:
        if not 0 < tag.tag_id <= 0xFFFF:
            raise TagValueError(f"tag id {tag.tag_id} outside 1..65535")
        if self._tags and tag.tag_id <= self._tags[-1].tag_id:
            raise TagOrderError(
                f"tag {tag.tag_id} added after {self._tags[-1].tag_id}; directory entries must ascend"
            )
        self._tags.append(tag)

    def render(self) -> bytes:
        if self.directory_end > self.header_size:
            raise TagLayoutError(f"{len(self._tags)} entries overflow the {self.header_size} byte header")

        buf = bytearray(self.header_size)
        struct.pack_into(">2sHI", buf, 0, BYTE_ORDER_MM, TIFF_MAGIC, self.ifd_offset)
        struct.pack_into(">H", buf, self.ifd_offset, len(self._tags))

        cursor = self.ifd_offset + 2
        for tag in self._tags:
            cursor = encode_entry(buf, cursor, tag)
        struct.pack_into(">I", buf, cursor, 0)

        used_until = self.directory_end
        blocks = sorted((t for t in self._tags if t.offset is not None), key=lambda t: t.value)
        for tag in blocks:
            assert tag.data is not None
            start, end = tag.value, tag.value + len(tag.data)
            if start < used_until:
                raise TagLayoutError(f"tag {tag.tag_id} data at {start} overlaps bytes below {used_until}")
            if end > self.header_size:
                raise TagLayoutError(f"tag {tag.tag_id} data ends at {end}, past header size {self.header_size}")
            buf[start:end] = tag.data
            used_until = end

        logger.debug("rendered %d directory entries, directory ends at %d", len(self._tags), self.directory_end)
        return bytes(buf)


def parse_directory(data: bytes) -> tuple[str, list[DirectoryTag]]:
    """Read the first IFD of a TIFF byte stream.

    Returns the struct byte-order prefix and the entries in file order.
    Entries of types outside :class:`TagType` are skipped.
    """
    if len(data) < 8:
        raise TagLayoutError("file too short for a TIFF header")
    order = data[:2]
    if order == BYTE_ORDER_MM:
        endian = ">"
    elif order == BYTE_ORDER_II:
        endian = "<"
    else:
        raise TagLayoutError(f"unknown byte-order marker {order!r}")

    magic, ifd_offset = struct.unpack_from(endian + "HI", data, 2)
    if magic != TIFF_MAGIC:
        raise TagLayoutError(f"bad TIFF magic {magic}")
    (count,) = struct.unpack_from(endian + "H", data, ifd_offset)

    tags: list[DirectoryTag] = []
    for i in range(count):
        pos = ifd_offset + 2 + i * ENTRY_SIZE
        tag_id, type_code, n, word = struct.unpack_from(endian + "HHII", data, pos)
        try:
            tag_type = TagType(type_code)
        except ValueError:
            logger.debug("skipping tag %d with unsupported type %d", tag_id, type_code)
            continue
        size = value_size(tag_type) * n
        if size <= 4:
            payload = data[pos + 8 : pos + 8 + size]
        else:
            payload = data[word : word + size]
        tags.append(DirectoryTag(tag_id=tag_id, tag_type=tag_type, count=n, value=word, data=payload))
    return endian, tags
