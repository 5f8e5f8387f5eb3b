"""
Room photo transport helpers.

Photos arrive as base64 strings, optionally wrapped in a data URI, and are
stored as raw bytes. On the way out they are re-wrapped as data URIs with a
MIME type sniffed from the file signature.
"""
import base64
import binascii
import logging
import re

try:
    import magic
    HAS_MAGIC = True
except ImportError:
    HAS_MAGIC = False

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"

DATA_URI_RE = re.compile(r"^data:[^;]+;base64,(.*)$", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s+")


def decode_room_image(raw) -> bytes | None:
    """Decode an incoming photo. Empty or invalid base64 means no photo."""
    raw = str(raw or "").strip()
    if not raw:
        return None

    payload = raw
    match = DATA_URI_RE.match(raw)
    if match:
        payload = match.group(1)
    # MIME-style payloads wrap lines; whitespace is not part of the data
    payload = WHITESPACE_RE.sub("", payload)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Ignoring room image with invalid base64 payload")
        return None
    return data or None


def detect_image_mime(data: bytes) -> str:
    """
    Sniff the MIME type from the file signature.

    Falls back to image/jpeg when python-magic is unavailable or undecided.
    """
    if not HAS_MAGIC:
        return DEFAULT_IMAGE_MIME

    try:
        detected = magic.Magic(mime=True).from_buffer(data[:2048])
    except Exception as e:
        logger.warning(f"MIME detection failed, using {DEFAULT_IMAGE_MIME}: {e}")
        return DEFAULT_IMAGE_MIME
    return detected or DEFAULT_IMAGE_MIME


def encode_room_image(data) -> str:
    if not data:
        return ""
    data = bytes(data)
    mime = detect_image_mime(data)
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
