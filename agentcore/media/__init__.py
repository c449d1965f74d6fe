"""
Media Module
============

Canonical multimodal envelopes and the normalizer that produces them.

    from agentcore import media

    env = media.normalize({"type": "image", "mime": "image/png", "uri": "https://x/y.png"})
    media.probe({"type": "audio"})          # True (shape only, no validation)
    media.mime_from_data_url("data:image/png;base64,AAA")  # "image/png"
"""

from agentcore.media.envelope import (
    MediaEnvelope,
    MediaKind,
    audio_data,
    audio_uri,
    document_data,
    document_uri,
    from_kind,
    image_data,
    image_uri,
    kind_from_mime,
    mime_from_data_url,
    normalize,
    probe,
    text,
    try_parse_envelope_from_string,
    video_data,
    video_uri,
)

__all__ = [
    "MediaEnvelope",
    "MediaKind",
    "normalize",
    "probe",
    "mime_from_data_url",
    "kind_from_mime",
    "try_parse_envelope_from_string",
    "from_kind",
    "text",
    "image_uri",
    "image_data",
    "audio_uri",
    "audio_data",
    "video_uri",
    "video_data",
    "document_uri",
    "document_data",
]
