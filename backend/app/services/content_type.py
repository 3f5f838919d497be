"""
BranchRelay Backend — Image Content-Type Sniffing
===================================================

What:  Infers the MIME type of a base64 image from its data-URL header.
Why:   Clients send images as JSON strings, so there is no multipart
       Content-Type to trust; the data-URL prefix is the only hint we get.
How:   Looks for a `data:image/<subtype>` marker in the first 20 characters.
       Raw base64 (no header) falls back to JPEG, the format phone cameras
       produce, so sniffing never fails.
"""

# What: Only this many leading characters are inspected
# Why 20: "data:image/jpeg;base" fits; the payload body is never scanned
SNIFF_WINDOW = 20

DEFAULT_CONTENT_TYPE = "image/jpeg"
DEFAULT_EXTENSION = "jpg"

# Ordered: first marker found in the window wins
CONTENT_TYPE_MARKERS = (
    ("data:image/jpeg", "image/jpeg"),
    ("data:image/jpg", "image/jpeg"),
    ("data:image/png", "image/png"),
    ("data:image/gif", "image/gif"),
    ("data:image/webp", "image/webp"),
)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def sniff_content_type(payload: str) -> str:
    """Return the image MIME type announced by the payload's data-URL header."""
    header = payload[:SNIFF_WINDOW]
    for marker, content_type in CONTENT_TYPE_MARKERS:
        if marker in header:
            return content_type
    return DEFAULT_CONTENT_TYPE


def file_extension_for(content_type: str) -> str:
    """Map a MIME type to the extension used in the storage key."""
    return EXTENSIONS.get(content_type, DEFAULT_EXTENSION)


def strip_data_url_prefix(payload: str) -> str:
    """
    Drop a `data:<mime>;base64,` header, keeping everything after the first comma.

    Raw base64 never contains a comma, so a payload without one is returned as-is.
    """
    if "," in payload:
        return payload.split(",", 1)[1]
    return payload
