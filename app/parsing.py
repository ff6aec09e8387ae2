# app/parsing.py
import re
import json
import os
from math import isfinite
from urllib.parse import unquote
from typing import Any, Iterable, List, Optional, Union

from .errors import ValidationError

MAX_FILES = 10
MAX_FILE_SIZE = 5 * 1024 * 1024
_ALLOWED_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")

_RE_CONTROL = re.compile(r"[\u0000-\u001F\u007F]")
_RE_WS = re.compile(r"\s+")
_CTRL = ''.join(map(chr, list(range(0, 32)) + [127]))
_CTRL_TABLE = str.maketrans('', '', _CTRL)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def clean_text(value: Optional[str]) -> str:
    """Strip control characters and collapse whitespace runs."""
    if value is None:
        return ""
    s = _RE_CONTROL.sub(" ", str(value))
    s = _RE_WS.sub(" ", s)
    return s.strip()


def normalize_id(raw: Optional[str]) -> str:
    """
    Normalize a catalog id taken from a URL path:
      - Strip whitespace, quotes, encoded newlines (%0A/%0D)
      - Decode URL-encoded chars
      - Remove control / zero-width chars
    """
    if raw is None:
        return ""
    s = str(raw).strip().strip('"').strip("'")
    s = re.sub(r'(?:%0A|%0D)+$', '', s, flags=re.IGNORECASE)
    s = unquote(s)
    s = s.replace('\u200b', '').replace('\ufeff', '')
    s = s.translate(_CTRL_TABLE)
    return s.strip()


def require_text(value: Any, label: str) -> str:
    text = clean_text(value)
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def optional_text(value: Any) -> Optional[str]:
    text = clean_text(value)
    return text or None


def parse_price(value: Any) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Product price is required")
    if isinstance(value, bool):
        raise ValidationError("Product price must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Product price must be a number")
    if not isfinite(price):
        raise ValidationError("Product price must be a number")
    if price < 0:
        raise ValidationError("Product price must not be negative")
    return price


def parse_stock(value: Any) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise ValidationError("Stock must be a whole number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Stock must be a whole number")
    if not isfinite(number) or number != int(number):
        raise ValidationError("Stock must be a whole number")
    if number < 0:
        raise ValidationError("Stock must not be negative")
    return int(number)


def parse_bool(value: Any, label: str = "isActive") -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValidationError(f"{label} must be true or false")


def _decode_json_list(raw: str, label: str) -> list:
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} format")
    if not isinstance(decoded, list):
        raise ValidationError(f"Invalid {label} format")
    return decoded


def _unwrap(raw: Union[str, Iterable, None], label: str) -> list:
    """
    Accept a JSON list as text, a list as-is, or a single-element list
    holding JSON text (what a multipart form field yields).
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        s = raw.strip()
        return _decode_json_list(s, label) if s else []
    items = list(raw)
    if len(items) == 1 and isinstance(items[0], str) and items[0].strip().startswith("["):
        return _decode_json_list(items[0].strip(), label)
    return items


def parse_label_set(raw: Union[str, Iterable, None], label: str) -> List[str]:
    """
    Decode colors/sizes into a non-empty, de-duplicated list of labels.
    Order of first appearance is kept.
    """
    items = _unwrap(raw, label)
    labels: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValidationError(f"Invalid {label} format")
        text = clean_text(item)
        if text and text not in labels:
            labels.append(text)
    if not labels:
        raise ValidationError(f"At least one {label[:-1] if label.endswith('s') else label} is required")
    return labels


def parse_id_list(raw: Union[str, Iterable, None], label: str) -> List[str]:
    """Decode a list of storage ids (deletedImages). Empty input gives []."""
    ids: List[str] = []
    for item in _unwrap(raw, label):
        if not isinstance(item, str):
            raise ValidationError(f"Invalid {label} format")
        s = item.strip()
        if s and s not in ids:
            ids.append(s)
    return ids


def parse_retained_ids(raw: Union[str, Iterable, None], label: str = "existingImages") -> List[str]:
    """
    Decode the retained image set (existingImages). Entries may be image
    objects ({"url", "storageId", "isPrimary"}; "publicId" accepted too)
    or bare storage ids.
    """
    ids: List[str] = []
    for item in _unwrap(raw, label):
        if isinstance(item, dict):
            item = item.get("storageId") or item.get("storage_id") or item.get("publicId")
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"Invalid {label} format")
        s = item.strip()
        if s not in ids:
            ids.append(s)
    return ids


def validate_image_file(filename: Optional[str], content_type: Optional[str], size: Optional[int]) -> None:
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    if not (_ALLOWED_TYPES.fullmatch(ext) and _ALLOWED_TYPES.search(content_type or "")):
        raise ValidationError(f"Only image files are allowed ('{filename}')")
    if size is not None and size > MAX_FILE_SIZE:
        raise ValidationError(f"File '{filename}' is too large. Maximum 5MB per file.")


def validate_file_count(count: int, required: bool) -> None:
    if required and count == 0:
        raise ValidationError("At least one image is required")
    if count > MAX_FILES:
        raise ValidationError(f"Too many files. Maximum {MAX_FILES} images.")
