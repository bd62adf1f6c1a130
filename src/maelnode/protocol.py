"""Line-delimited JSON wire protocol.

Every message is one JSON object per line::

    {"src": "c1", "dest": "n1", "body": {"type": "init", "msg_id": 1, ...}}

Bodies are frozen dataclasses tagged with the ``@body`` decorator, which
records the ``type`` discriminator they travel under. Each node program
builds a ``Codec`` from its own closed set of body classes; a line whose
body ``type`` is outside that set is a ``DecodeError``.

Usage:
    @body("echo")
    class Echo:
        msg_id: int
        echo: str

    codec = Codec(Init, InitOk, Echo, EchoOk)
    envelope = codec.decode('{"src":"c1","dest":"n1","body":{"type":"echo","msg_id":1,"echo":"hi"}}')
    line = codec.encode(envelope.reply(EchoOk(msg_id=1, in_reply_to=1, echo="hi")))
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import MISSING, dataclass, fields, is_dataclass
from typing import Any, get_args, get_origin, get_type_hints

from maelnode.errors import DecodeError, EncodeError


__all__ = [
    "Codec",
    "Envelope",
    "Init",
    "InitOk",
    "body",
    "body_type",
]


U64_MAX = 2**64 - 1


# =============================================================================
# Body registration
# =============================================================================

_TAG_ATTR = "__body_type__"


def body[T](type_tag: str) -> Callable[[type[T]], type[T]]:
    """Mark a class as a message body travelling under ``type_tag``.

    Applies ``@dataclass(frozen=True, slots=True)`` unless the class is
    already a dataclass.
    """

    def decorator(cls: type[T]) -> type[T]:
        if not is_dataclass(cls):
            cls = dataclass(frozen=True, slots=True)(cls)
        setattr(cls, _TAG_ATTR, type_tag)
        return cls

    return decorator


def body_type(value: object) -> str:
    """Wire ``type`` tag of a body instance or class."""
    cls = value if isinstance(value, type) else type(value)
    try:
        return getattr(cls, _TAG_ATTR)
    except AttributeError:
        msg = f"{cls.__name__} is not a message body"
        raise TypeError(msg) from None


# =============================================================================
# Envelope
# =============================================================================


@dataclass(frozen=True)
class Envelope[B]:
    """Outer ``{src, dest, body}`` wrapper of every message."""

    src: str
    dest: str
    body: B

    def reply[R](self, body: R) -> Envelope[R]:
        """Envelope answering this one: ``src`` and ``dest`` swapped."""
        return Envelope(src=self.dest, dest=self.src, body=body)


# =============================================================================
# Bodies shared by every program
# =============================================================================


@body("init")
class Init:
    msg_id: int
    node_id: str
    node_ids: tuple[str, ...]


@body("init_ok")
class InitOk:
    msg_id: int
    in_reply_to: int


# =============================================================================
# Value conversion
# =============================================================================


def _describe(value: object) -> str:
    return f"{type(value).__name__} {value!r}"


def _decode_value(value: Any, hint: Any, path: str) -> Any:
    """Check ``value`` against ``hint`` and convert JSON arrays to tuples/sets."""
    origin = get_origin(hint)
    args = get_args(hint)

    if hint is int:
        # All protocol integers are unsigned 64-bit.
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U64_MAX:
            raise DecodeError(f"{path}: expected unsigned integer, got {_describe(value)}")
        return value

    if hint is str:
        if not isinstance(value, str):
            raise DecodeError(f"{path}: expected string, got {_describe(value)}")
        return value

    if origin in (list, tuple, frozenset):
        if not isinstance(value, list):
            raise DecodeError(f"{path}: expected array, got {_describe(value)}")

        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            if len(value) != len(args):
                raise DecodeError(f"{path}: expected {len(args)} elements, got {len(value)}")
            return tuple(_decode_value(v, t, f"{path}[{i}]") for i, (v, t) in enumerate(zip(value, args)))

        items = [_decode_value(v, args[0], f"{path}[{i}]") for i, v in enumerate(value)]
        if origin is frozenset:
            return frozenset(items)
        if origin is tuple:
            return tuple(items)
        return items

    if origin is dict:
        if not isinstance(value, dict):
            raise DecodeError(f"{path}: expected object, got {_describe(value)}")
        _, value_hint = args
        return {k: _decode_value(v, value_hint, f"{path}.{k}") for k, v in value.items()}

    msg = f"{path}: unsupported field type {hint!r}"
    raise TypeError(msg)


def _encode_value(value: Any) -> Any:
    match value:
        case frozenset() | set():
            return sorted(_encode_value(v) for v in value)
        case tuple() | list():
            return [_encode_value(v) for v in value]
        case dict():
            return {k: _encode_value(v) for k, v in value.items()}
        case _:
            return value


# =============================================================================
# Codec
# =============================================================================


class Codec:
    """Decoder/encoder for one program's closed set of body kinds."""

    def __init__(self, *body_types: type) -> None:
        self._by_tag: dict[str, type] = {}
        self._hints: dict[type, dict[str, Any]] = {}
        for cls in body_types:
            tag = body_type(cls)
            if tag in self._by_tag:
                msg = f"duplicate body type {tag!r}: {self._by_tag[tag].__name__} and {cls.__name__}"
                raise ValueError(msg)
            self._by_tag[tag] = cls
            self._hints[cls] = get_type_hints(cls)

    @property
    def kinds(self) -> frozenset[str]:
        return frozenset(self._by_tag)

    def decode(self, line: str | bytes) -> Envelope[Any]:
        """Parse one input line into an envelope."""
        try:
            raw = json.loads(line)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(f"malformed JSON: {exc}") from exc

        match raw:
            case {"src": str() as src, "dest": str() as dest, "body": dict() as raw_body}:
                return Envelope(src=src, dest=dest, body=self.decode_body(raw_body))
            case _:
                raise DecodeError(f"not an envelope: {line!r}")

    def decode_body(self, raw: dict[str, Any]) -> Any:
        match raw.get("type"):
            case str() as tag if tag in self._by_tag:
                cls = self._by_tag[tag]
            case str() as tag:
                raise DecodeError(f"unknown body type {tag!r}")
            case None:
                raise DecodeError("body has no 'type' field")
            case other:
                raise DecodeError(f"body 'type' must be a string, got {_describe(other)}")

        hints = self._hints[cls]
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in raw:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise DecodeError(f"{tag}: missing field {f.name!r}")
                continue
            kwargs[f.name] = _decode_value(raw[f.name], hints[f.name], f"{tag}.{f.name}")
        return cls(**kwargs)

    def encode(self, envelope: Envelope[Any]) -> str:
        """Serialize an envelope to a single line, without the trailing newline."""
        body_cls = type(envelope.body)
        if body_cls not in self._hints:
            raise EncodeError(f"{body_cls.__name__} is not a body of this program")

        payload: dict[str, Any] = {"type": body_type(body_cls)}
        for f in fields(envelope.body):
            payload[f.name] = _encode_value(getattr(envelope.body, f.name))

        try:
            return json.dumps(
                {"src": envelope.src, "dest": envelope.dest, "body": payload},
                separators=(",", ":"),
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"cannot serialize {body_cls.__name__}: {exc}") from exc
