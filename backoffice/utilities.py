# Standard Library
import re
import json
import uuid

# Local
from .errors import ValidationError


_SLUG_STRIP = re.compile(r"[^\w\s-]", re.ASCII)
_SLUG_COLLAPSE = re.compile(r"[\s_-]+")


def derive_slug(name):
    """
    "Remera  Oversize!! 2024" -> "remera-oversize-2024"

    Lowercase + trim, drop anything that is not a letter, digit, whitespace
    or hyphen, collapse whitespace/underscore/hyphen runs into one hyphen,
    then trim hyphens from both ends.
    """
    slug = (name or "").lower().strip()
    slug = _SLUG_STRIP.sub("", slug)
    slug = _SLUG_COLLAPSE.sub("-", slug)
    return slug.strip("-")


def row_from_instance(obj):
    """Flatten a model instance into the plain dict shape the store hands out."""
    row = {}
    for f in obj._meta.concrete_fields:
        value = getattr(obj, f.attname)
        if isinstance(value, uuid.UUID):
            value = str(value)
        row[f.attname] = value
    return row


def _parse_payload(request):
    """Consistent, tolerant request payload parsing."""
    if isinstance(request.data, dict):
        return request.data
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        return json.loads(body or "{}")
    except ValueError:
        return {}


def _as_bool(val, default=False):
    if val is None or val == "":
        return default
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in ("true", "1", "yes", "on"):
        return True
    if s in ("false", "0", "no", "off"):
        return False
    return default


def _as_list(val):
    """Coerce incoming field to list[str] safely."""
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return [str(x).strip() for x in val if str(x).strip()]
    if isinstance(val, str):
        return [v.strip() for v in val.split(",") if v.strip()]
    return []


def _normalize_id(val):
    v = (str(val or "")).strip()
    return v or None


def _required_id(data, key="id"):
    record_id = _normalize_id(data.get(key))
    if not record_id:
        raise ValidationError(f"{key} is required", field=key)
    return record_id
