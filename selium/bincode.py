"""Compact binary serialization compatible with the default bincode layout.

Values are written little endian. Unsigned integers use eight bytes.
Strings, byte strings, lists and dicts carry an eight byte length prefix.
Enum members are written as a four byte variant index in declaration order.
Options are written as a one byte tag followed by the value.
Tuples and dataclass fields are written in order with no prefix.

Python integers have no width of their own, so every ``int`` is written as
an unsigned 64-bit value. Dataclass field annotations tell the decoder what
to read, so they must be real types rather than postponed string
annotations (plain builtin names such as ``"int"`` are accepted). On the
writing side they are needed only to mark ``Optional`` fields.
"""

import dataclasses
import enum
import struct
import types
import typing
from typing import Any, get_args, get_origin

__all__ = ["serialize", "deserialize", "serialized_size"]

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F64 = struct.Struct("<d")
_U64_MAX = 2**64 - 1
_NONE_TYPE = type(None)
_UNION_ORIGINS = (typing.Union, types.UnionType)
_BUILTIN_NAMES = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "bytearray": bytearray,
}


def _field_hint(field: dataclasses.Field) -> Any:
    """Return the annotation of ``field``, resolving plain builtin names."""
    hint = field.type
    if isinstance(hint, str):
        return _BUILTIN_NAMES.get(hint.strip(), hint)
    return hint


def _optional_inner(hint: Any) -> Any:
    """Return ``T`` when ``hint`` is ``Optional[T]``, otherwise ``None``."""
    if hint is None or get_origin(hint) not in _UNION_ORIGINS:
        return None
    args = get_args(hint)
    rest = [arg for arg in args if arg is not _NONE_TYPE]
    if len(args) == 2 and len(rest) == 1:
        return rest[0]
    return None


def serialize(value: Any) -> bytes:
    """Serialize ``value`` into bytes."""
    out = bytearray()
    _write(out, value)
    return bytes(out)


def serialized_size(value: Any) -> int:
    """Return the number of bytes ``serialize(value)`` produces."""
    return len(serialize(value))


def _write_len_prefixed(out: bytearray, data: bytes) -> None:
    out += _U64.pack(len(data))
    out += data


def _write(out: bytearray, value: Any, hint: Any = None) -> None:
    inner = _optional_inner(hint)
    if inner is not None:
        if value is None:
            out.append(0)
        else:
            out.append(1)
            _write(out, value, inner)
        return

    origin, args = get_origin(hint), get_args(hint)

    if isinstance(value, enum.Enum):
        out += _U32.pack(list(type(value)).index(value))
    elif isinstance(value, bool):
        out.append(int(value))
    elif isinstance(value, int):
        if not 0 <= value <= _U64_MAX:
            raise ValueError(f"integer {value} does not fit in an unsigned 64-bit value")
        out += _U64.pack(value)
    elif isinstance(value, float):
        out += _F64.pack(value)
    elif isinstance(value, str):
        _write_len_prefixed(out, value.encode("utf-8"))
    elif isinstance(value, (bytes, bytearray, memoryview)):
        _write_len_prefixed(out, bytes(value))
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        for field in dataclasses.fields(value):
            if field.init:
                _write(out, getattr(value, field.name), _field_hint(field))
    elif isinstance(value, tuple):
        if origin is tuple and Ellipsis not in args and len(args) == len(value):
            item_hints = args
        else:
            item_hints = (None,) * len(value)
        for item, item_hint in zip(value, item_hints):
            _write(out, item, item_hint)
    elif isinstance(value, list):
        item_hint = args[0] if origin is list and args else None
        out += _U64.pack(len(value))
        for item in value:
            _write(out, item, item_hint)
    elif isinstance(value, dict):
        key_hint, value_hint = args if origin is dict and len(args) == 2 else (None, None)
        out += _U64.pack(len(value))
        for key, item in value.items():
            _write(out, key, key_hint)
            _write(out, item, value_hint)
    else:
        raise TypeError(f"cannot serialize value of type {type(value).__name__}")


def deserialize(data: bytes | bytearray | memoryview, type_: Any) -> Any:
    """Decode a value of ``type_`` from the start of ``data``.

    Trailing bytes after the value are ignored. Raises ``ValueError`` on
    truncated or malformed input and ``TypeError`` for unsupported types.
    """
    return _Reader(bytes(data)).read(type_)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise ValueError(
                f"unexpected end of input: needed {size} bytes at offset {self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt: struct.Struct) -> Any:
        return fmt.unpack(self._take(fmt.size))[0]

    def _read_len_prefixed(self) -> bytes:
        return self._take(self._unpack(_U64))

    def read(self, type_: Any) -> Any:
        inner = _optional_inner(type_)
        if inner is not None:
            tag = self._take(1)[0]
            if tag == 0:
                return None
            if tag == 1:
                return self.read(inner)
            raise ValueError(f"invalid option tag {tag}")

        origin, args = get_origin(type_), get_args(type_)
        if origin is list:
            if not args:
                raise TypeError("list type needs an element type")
            return [self.read(args[0]) for _ in range(self._unpack(_U64))]
        if origin is tuple:
            if not args or Ellipsis in args:
                raise TypeError("tuple type needs a fixed list of element types")
            return tuple(self.read(arg) for arg in args)
        if origin is dict:
            if len(args) != 2:
                raise TypeError("dict type needs key and value types")
            key_type, value_type = args
            result = {}
            for _ in range(self._unpack(_U64)):
                key = self.read(key_type)
                result[key] = self.read(value_type)
            return result

        if not isinstance(type_, type):
            raise TypeError(f"cannot deserialize values of type {type_!r}")
        if issubclass(type_, enum.Enum):
            members = list(type_)
            index = self._unpack(_U32)
            if index >= len(members):
                raise ValueError(f"invalid variant index {index} for {type_.__name__}")
            return members[index]
        if type_ is bool:
            byte = self._take(1)[0]
            if byte > 1:
                raise ValueError(f"invalid boolean byte {byte}")
            return bool(byte)
        if type_ is int:
            return self._unpack(_U64)
        if type_ is float:
            return self._unpack(_F64)
        if type_ is str:
            return self._read_len_prefixed().decode("utf-8")
        if type_ in (bytes, bytearray):
            return type_(self._read_len_prefixed())
        if dataclasses.is_dataclass(type_):
            values = {
                field.name: self.read(_field_hint(field))
                for field in dataclasses.fields(type_)
                if field.init
            }
            return type_(**values)
        raise TypeError(f"cannot deserialize values of type {type_.__name__}")