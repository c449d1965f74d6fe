"""
Media Envelopes
===============

One canonical representation for every piece of multimodal content that
flows through the core: user attachments, tool results and model output.

Canonical JSON shape (the one interchange format this package owns):

    {
      "type": "text" | "image" | "audio" | "video" | "document",
      "text": "...",                  # text only
      "mime": "image/png",            # required for non-text
      "uri":  "https://... | file://... | data:...",
      "data": "<base64>",             # exactly one of uri / data for non-text
      "meta": {"width": 1024, "height": 768, "duration_s": 3.2}
    }

Producers hand in loosely shaped input and normalize() either returns a
valid envelope or raises InvalidEnvelope; nothing is half-normalized.
Normalizing an envelope that is already canonical returns it unchanged.
"""

import json
import mimetypes
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from agentcore.errors import InvalidEnvelope


class MediaKind(str, Enum):
    """Kinds of content an envelope can carry."""
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


_KNOWN_KINDS = {kind.value for kind in MediaKind}

# OpenAI-style content part types we know how to fold into an envelope
_COMPAT_TYPES = {"image_url", "input_audio"}

_DATA_URL_RE = re.compile(r"^data:([\w.+-]+/[\w.+-]+)?((?:;[^,;]*)*),", re.IGNORECASE)

_EMPTY_META: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class MediaEnvelope:
    """
    A normalized, immutable piece of content.

    Build envelopes with the helpers in this module (text(), image_uri(),
    audio_data(), ...) or with normalize(); the constructor itself does not
    validate.
    """
    kind: MediaKind
    text: str | None = None
    mime: str | None = None
    uri: str | None = None
    data: str | None = None
    meta: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_META, hash=False)

    @property
    def is_text(self) -> bool:
        return self.kind is MediaKind.TEXT

    @property
    def has_uri(self) -> bool:
        return self.uri is not None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any]:
        """Canonical JSON-ready dict; absent fields and empty meta are omitted."""
        result: dict[str, Any] = {"type": self.kind.value}
        if self.text is not None:
            result["text"] = self.text
        if self.mime is not None:
            result["mime"] = self.mime
        if self.uri is not None:
            result["uri"] = self.uri
        if self.data is not None:
            result["data"] = self.data
        if self.meta:
            result["meta"] = dict(self.meta)
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# ==============================================================================
# Small helpers
# ==============================================================================

def mime_from_data_url(data_url: str) -> str:
    """
    Extract the MIME type from a data URL.

    "data:image/png;base64,iVBOR..." -> "image/png"

    Returns an empty string when the input is not a data URL or has no
    MIME type. Never raises.
    """
    if not isinstance(data_url, str):
        return ""
    match = _DATA_URL_RE.match(data_url)
    if not match or not match.group(1):
        return ""
    return match.group(1).lower()


def kind_from_mime(mime: str) -> MediaKind:
    """Pick the envelope kind for a MIME type; unknown families are documents."""
    family = (mime or "").split("/", 1)[0].lower()
    if family == "image":
        return MediaKind.IMAGE
    if family == "audio":
        return MediaKind.AUDIO
    if family == "video":
        return MediaKind.VIDEO
    return MediaKind.DOCUMENT


def _raw_kind(value: Mapping[str, Any]) -> Any:
    return value.get("type", value.get("kind"))


def probe(value: Any) -> bool:
    """
    Cheap check whether a value looks like a media envelope.

    Meant as a fast-path filter: it only looks at the declared kind and
    never raises, even on malformed input. A True result does not promise
    that normalize() will succeed.
    """
    try:
        if isinstance(value, MediaEnvelope):
            return True
        if not isinstance(value, Mapping):
            return False
        kind = _raw_kind(value)
        if isinstance(kind, MediaKind):
            return True
        return isinstance(kind, str) and (kind in _KNOWN_KINDS or kind in _COMPAT_TYPES)
    except Exception:
        return False


# ==============================================================================
# Normalization
# ==============================================================================

def _first_present(value: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in value and value[key] is not None:
            return value[key]
    return None


def _expect_string(name: str, candidate: Any) -> str | None:
    if candidate is None:
        return None
    if not isinstance(candidate, str):
        raise InvalidEnvelope(f"'{name}' must be a string, got {type(candidate).__name__}")
    return candidate


def _unfold_compat(value: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite OpenAI-style content parts into the canonical field names."""
    kind = _raw_kind(value)

    if kind == "image_url":
        image_url = value.get("image_url")
        url = image_url.get("url") if isinstance(image_url, Mapping) else image_url
        unfolded = {"type": "image", "uri": url}
        mime = _first_present(value, "mime", "mime_type", "mimeType")
        if mime is None and isinstance(url, str) and not url.startswith("data:"):
            mime = mimetypes.guess_type(url)[0]
        if mime is not None:
            unfolded["mime"] = mime
        return unfolded

    if kind == "input_audio":
        audio = value.get("input_audio")
        if not isinstance(audio, Mapping):
            raise InvalidEnvelope("'input_audio' must be an object with 'data' and 'format'")
        audio_format = audio.get("format")
        unfolded = {"type": "audio", "data": audio.get("data")}
        if isinstance(audio_format, str) and audio_format:
            unfolded["mime"] = f"audio/{audio_format}"
        return unfolded

    return dict(value)


def _envelope_fields(envelope: MediaEnvelope) -> dict[str, Any]:
    # The constructor does not validate, so fields may hold anything
    return {
        "type": envelope.kind,
        "text": envelope.text,
        "mime": envelope.mime,
        "uri": envelope.uri,
        "data": envelope.data,
        "meta": envelope.meta,
    }


def normalize(value: Any) -> MediaEnvelope:
    """
    Normalize an envelope-like value into a canonical MediaEnvelope.

    Accepts a MediaEnvelope or a mapping in canonical, aliased (mime_type,
    url, file_uri, base64, ...) or OpenAI content-part form. Envelope
    objects are checked like any other input; one that is already
    canonical is returned as is.

    Raises:
        InvalidEnvelope: If the value cannot be turned into a valid envelope
    """
    if isinstance(value, MediaEnvelope):
        canonical = normalize(_envelope_fields(value))
        if (canonical == value and type(value.kind) is MediaKind
                and isinstance(value.meta, MappingProxyType)):
            return value
        return canonical
    if not isinstance(value, Mapping):
        raise InvalidEnvelope(f"Expected a mapping, got {type(value).__name__}")

    raw = _unfold_compat(value)

    raw_kind = _raw_kind(raw)
    if isinstance(raw_kind, MediaKind):
        kind = raw_kind
    elif isinstance(raw_kind, str) and raw_kind in _KNOWN_KINDS:
        kind = MediaKind(raw_kind)
    elif raw_kind is None:
        raise InvalidEnvelope("Envelope is missing 'type'")
    else:
        raise InvalidEnvelope(f"Unknown media type: {raw_kind!r}")

    text = _expect_string("text", raw.get("text"))
    mime = _expect_string("mime", _first_present(raw, "mime", "mime_type", "mimeType"))
    uri = _expect_string("uri", _first_present(raw, "uri", "url", "file_uri", "fileUri"))
    data = _expect_string("data", _first_present(raw, "data", "base64"))

    meta = raw.get("meta")
    if meta is None:
        meta = _EMPTY_META
    elif isinstance(meta, Mapping):
        meta = MappingProxyType(dict(meta)) if meta else _EMPTY_META
    else:
        raise InvalidEnvelope(f"'meta' must be an object, got {type(meta).__name__}")

    if kind is MediaKind.TEXT:
        if text is None:
            raise InvalidEnvelope("Text envelope requires 'text'")
        if mime is not None or uri is not None or data is not None:
            raise InvalidEnvelope("Text envelope must not carry 'mime', 'uri' or 'data'")
        return MediaEnvelope(kind=kind, text=text, meta=meta)

    if (uri is None) == (data is None):
        raise InvalidEnvelope(f"{kind.value} envelope requires exactly one of 'uri' or 'data'")

    if mime is None and uri is not None:
        mime = mime_from_data_url(uri) or None
    if not mime:
        raise InvalidEnvelope(f"{kind.value} envelope requires 'mime'")

    return MediaEnvelope(kind=kind, text=text, mime=mime, uri=uri, data=data, meta=meta)


def try_parse_envelope_from_string(content: str) -> MediaEnvelope | None:
    """
    Best-effort conversion of a string into an envelope.

    Recognizes JSON object text holding an envelope and data URLs with a
    MIME type. Any other string is an ordinary message part, so the result
    is None rather than an error.
    """
    if not isinstance(content, str):
        return None
    stripped = content.strip()

    if stripped.startswith("data:"):
        mime = mime_from_data_url(stripped)
        if not mime:
            return None
        return MediaEnvelope(kind=kind_from_mime(mime), mime=mime, uri=stripped)

    if stripped.startswith("{") and stripped.endswith("}"):
        try:
            parsed = json.loads(stripped)
        except ValueError:
            return None
        if not probe(parsed):
            return None
        try:
            return normalize(parsed)
        except InvalidEnvelope:
            return None

    return None


# ==============================================================================
# Builders
# ==============================================================================

def _meta(meta: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(meta)) if meta else _EMPTY_META


def text(value: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    """Create a text envelope."""
    return MediaEnvelope(kind=MediaKind.TEXT, text=value, meta=_meta(meta))


def image_uri(uri: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.IMAGE, mime=mime, uri=uri, meta=_meta(meta))


def image_data(base64: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.IMAGE, mime=mime, data=base64, meta=_meta(meta))


def audio_uri(uri: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.AUDIO, mime=mime, uri=uri, meta=_meta(meta))


def audio_data(base64: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.AUDIO, mime=mime, data=base64, meta=_meta(meta))


def video_uri(uri: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.VIDEO, mime=mime, uri=uri, meta=_meta(meta))


def video_data(base64: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.VIDEO, mime=mime, data=base64, meta=_meta(meta))


def document_uri(uri: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.DOCUMENT, mime=mime, uri=uri, meta=_meta(meta))


def document_data(base64: str, mime: str, meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    return MediaEnvelope(kind=MediaKind.DOCUMENT, mime=mime, data=base64, meta=_meta(meta))


def from_kind(kind: MediaKind, mime: str, *, uri: str | None = None, data: str | None = None,
              meta: Mapping[str, Any] | None = None) -> MediaEnvelope:
    """
    Build a non-text envelope of the given kind and validate it.

    Raises:
        InvalidEnvelope: If the combination of fields is not valid
    """
    candidate = {"type": kind.value, "mime": mime, "uri": uri, "data": data}
    if meta:
        candidate["meta"] = meta
    return normalize(candidate)
