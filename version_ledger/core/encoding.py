# version_ledger/core/encoding.py
import base64
import binascii

from version_ledger.core.errors import CorruptDocument


def utf8_to_b64(text: str) -> str:
    """Encode text as standard base64 (the GitHub contents API wire format)."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def b64_to_utf8(data: str) -> str:
    """Decode base64 back to text. GitHub wraps the payload at 60 columns."""
    try:
        return base64.b64decode("".join(data.split()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise CorruptDocument(f"Ledger content is not valid base64 UTF-8: {e}") from e
