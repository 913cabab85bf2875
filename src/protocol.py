"""Syslog wire framing (RFC 6587 section 3.4)."""

from src.models import Framing, Trailer


def frame_octet_counting(payload: bytes) -> bytes:
    """Prepend the decimal byte length and a space: b"<len> <payload>"."""
    return str(len(payload)).encode("ascii") + b" " + payload


def frame_non_transparent(payload: bytes, trailer: Trailer = Trailer.LF) -> bytes:
    """Append the trailer byte. The payload must not contain it; nothing is escaped."""
    return payload + trailer.value


def frame_message(payload: bytes, framing: Framing, trailer: Trailer = Trailer.LF) -> bytes:
    if framing is Framing.OCTET_COUNTING:
        return frame_octet_counting(payload)
    return frame_non_transparent(payload, trailer)
