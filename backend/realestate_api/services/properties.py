"""Dynamic property definitions and the per-listing value store.

Values are persisted as text. Each data type owns a codec that turns a client
value into that text (checking it against the definition when strict) and turns
stored text back into a typed Python value on read.
"""

from datetime import date, datetime
import json
import logging
import math
import re
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from realestate_api.core.config import get_settings
from realestate_api.core.errors import ConflictError, NotFoundError, ValidationError
from realestate_api.models.category import FinalType
from realestate_api.models.property import CHOICE_TYPES, Property, PropertyDataType, PropertyValue
from realestate_api.schemas.property import ListingPropertyValue, PropertyMeta, PropertyResponse

logger = logging.getLogger(__name__)

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}
_INTEGER = re.compile(r"[+-]?\d+")


class InvalidValue(ValueError):
    pass


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and len(value) == 0)


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class ValueCodec:
    data_type: PropertyDataType

    def encode(self, value: Any, allowed: Any) -> str:
        raise NotImplementedError

    def decode(self, text: str) -> Any:
        raise NotImplementedError


class NumberCodec(ValueCodec):
    data_type = PropertyDataType.NUMBER

    def encode(self, value, allowed):
        if isinstance(value, bool):
            raise InvalidValue("expected a number")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
            return str(int(value.strip()))
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidValue("expected a number")
        if not math.isfinite(number):
            raise InvalidValue("expected a finite number")
        if number.is_integer():
            return str(int(number))
        return repr(number)

    def decode(self, text):
        return int(text) if _INTEGER.fullmatch(text) else float(text)


class TextCodec(ValueCodec):
    data_type = PropertyDataType.TEXT

    def encode(self, value, allowed):
        if isinstance(value, (dict, list)):
            return _to_json(value)
        return str(value)

    def decode(self, text):
        return text


class SingleChoiceCodec(ValueCodec):
    data_type = PropertyDataType.SINGLE_CHOICE

    def encode(self, value, allowed):
        if isinstance(value, (dict, list)):
            raise InvalidValue("expected a single choice")
        choice = str(value)
        if allowed and choice not in allowed:
            raise InvalidValue(f"'{choice}' is not one of {', '.join(allowed)}")
        return choice

    def decode(self, text):
        return text


class MultipleChoiceCodec(ValueCodec):
    data_type = PropertyDataType.MULTIPLE_CHOICE

    def encode(self, value, allowed):
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except ValueError:
                parsed = [part.strip() for part in value.split(",") if part.strip()]
            value = parsed if isinstance(parsed, list) else [str(parsed)]
        if not isinstance(value, list):
            raise InvalidValue("expected a list of choices")
        choices = [str(v) for v in value]
        unknown = [c for c in choices if allowed and c not in allowed]
        if unknown:
            raise InvalidValue(f"{', '.join(unknown)} not in {', '.join(allowed)}")
        return _to_json(choices)

    def decode(self, text):
        parsed = json.loads(text)
        return parsed if isinstance(parsed, list) else [parsed]


class DateCodec(ValueCodec):
    data_type = PropertyDataType.DATE

    def encode(self, value, allowed):
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        try:
            return date.fromisoformat(str(value)[:10]).isoformat()
        except ValueError:
            raise InvalidValue("expected an ISO date (YYYY-MM-DD)")

    def decode(self, text):
        return date.fromisoformat(text[:10])


class BooleanCodec(ValueCodec):
    data_type = PropertyDataType.BOOLEAN

    def encode(self, value, allowed):
        if isinstance(value, bool):
            return "true" if value else "false"
        normalized = str(value).strip().lower()
        if normalized in _TRUE:
            return "true"
        if normalized in _FALSE:
            return "false"
        raise InvalidValue("expected true or false")

    def decode(self, text):
        return text.strip().lower() in _TRUE


class FileCodec(ValueCodec):
    data_type = PropertyDataType.FILE

    def encode(self, value, allowed):
        # Only attach_file writes file metadata; it names files on disk.
        raise InvalidValue("file properties are set by uploading to /api/properties/files")

    def decode(self, text):
        try:
            parsed = json.loads(text)
        except ValueError:
            return {"filename": text}
        return parsed if isinstance(parsed, dict) else {"filename": text}


CODECS: dict[PropertyDataType, ValueCodec] = {
    codec.data_type: codec
    for codec in (
        NumberCodec(),
        TextCodec(),
        SingleChoiceCodec(),
        MultipleChoiceCodec(),
        DateCodec(),
        BooleanCodec(),
        FileCodec(),
    )
}


def parse_data_type(raw: str) -> PropertyDataType:
    normalized = (raw or "").strip().lower()
    for data_type in PropertyDataType:
        if normalized in (data_type.value, data_type.name.lower()):
            return data_type
    allowed = ", ".join(t.value for t in PropertyDataType)
    raise ValidationError(f"Invalid data type '{raw}'. Allowed types: {allowed}", code="INVALID_DATA_TYPE")


def load_allowed_values(text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("unparseable allowed_values stored: %r", text)
        return None


def normalize_allowed_values(data_type: PropertyDataType, allowed: Any) -> str | None:
    """Validate an allowed-values policy for a data type and return its stored JSON text."""
    if data_type in CHOICE_TYPES:
        if not isinstance(allowed, list) or not allowed:
            raise ValidationError(
                f"allowed_values must be a non-empty list for {data_type.value} properties",
                code="ALLOWED_VALUES_REQUIRED",
            )
        choices = [str(v).strip() for v in allowed if str(v).strip()]
        if len(choices) != len(allowed):
            raise ValidationError("allowed_values must not contain empty choices", code="ALLOWED_VALUES_REQUIRED")
        return _to_json(choices)

    if data_type == PropertyDataType.FILE:
        if not isinstance(allowed, dict):
            raise ValidationError(
                "allowed_values for file properties must declare extensions or mime_types",
                code="ALLOWED_VALUES_REQUIRED",
            )
        extensions = allowed.get("extensions") or []
        mime_types = allowed.get("mime_types") or allowed.get("mimeTypes") or []
        if not isinstance(extensions, list) or not isinstance(mime_types, list) or not (extensions or mime_types):
            raise ValidationError(
                "allowed_values for file properties must declare extensions or mime_types",
                code="ALLOWED_VALUES_REQUIRED",
            )
        policy: dict[str, Any] = {}
        if extensions:
            policy["extensions"] = [e.lower() if e.startswith(".") else f".{e.lower()}" for e in map(str, extensions)]
        if mime_types:
            policy["mime_types"] = [str(m).lower() for m in mime_types]
        for key in ("max_size", "maxSize"):
            if allowed.get(key):
                try:
                    policy["max_size"] = int(allowed[key])
                except (TypeError, ValueError):
                    raise ValidationError(
                        "max_size for file properties must be a whole number of bytes",
                        code="ALLOWED_VALUES_REQUIRED",
                    )
        return _to_json(policy)

    return None


def _get_final_type(db: Session, final_type_id: int) -> FinalType:
    final_type = db.query(FinalType).filter(FinalType.id == final_type_id).first()
    if not final_type:
        raise NotFoundError("Final type not found", code="FINAL_TYPE_NOT_FOUND")
    return final_type


def _key_taken(db: Session, final_type_id: int, key: str, exclude_id: int | None = None) -> bool:
    q = db.query(Property.id).filter(Property.final_type_id == final_type_id, Property.property_key == key)
    if exclude_id is not None:
        q = q.filter(Property.id != exclude_id)
    return q.first() is not None


def define_property(
    db: Session,
    final_type_id: int,
    property_key: str,
    property_name: str,
    data_type: str,
    allowed_values: Any = None,
    group_name: str = "general",
    is_filter: bool = False,
    is_required: bool = False,
    display_order: int = 0,
    placeholder: str | None = None,
    unit: str | None = None,
) -> Property:
    parsed_type = parse_data_type(data_type)
    allowed_text = normalize_allowed_values(parsed_type, allowed_values)
    _get_final_type(db, final_type_id)

    key = property_key.strip()
    if _key_taken(db, final_type_id, key):
        raise ConflictError("Property key already exists for this final type", code="PROPERTY_KEY_EXISTS")

    prop = Property(
        final_type_id=final_type_id,
        property_key=key,
        property_name=property_name.strip(),
        group_name=(group_name or "general").strip(),
        data_type=parsed_type,
        allowed_values=allowed_text,
        is_filter=is_filter,
        is_required=is_required,
        display_order=display_order,
        placeholder=placeholder,
        unit=unit,
    )
    db.add(prop)
    db.flush()
    logger.info("defined property %s (%s) on final type %s", key, parsed_type.value, final_type_id)
    return prop


def update_property(db: Session, prop: Property, changes: dict[str, Any]) -> Property:
    data_type = parse_data_type(changes["data_type"]) if changes.get("data_type") else prop.data_type
    type_changed = data_type != prop.data_type
    if type_changed and prop.values:
        raise ConflictError("Cannot change the data type of a property that has values", code="PROPERTY_HAS_VALUES")
    if type_changed or "allowed_values" in changes:
        allowed = changes["allowed_values"] if "allowed_values" in changes else load_allowed_values(prop.allowed_values)
        prop.allowed_values = normalize_allowed_values(data_type, allowed)
    prop.data_type = data_type

    if changes.get("property_key"):
        key = changes["property_key"].strip()
        if key != prop.property_key and _key_taken(db, prop.final_type_id, key, exclude_id=prop.id):
            raise ConflictError("Property key already exists for this final type", code="PROPERTY_KEY_EXISTS")
        prop.property_key = key

    for field in ("property_name", "group_name", "is_filter", "is_required", "display_order", "placeholder", "unit"):
        if field in changes and changes[field] is not None:
            setattr(prop, field, changes[field])
    db.flush()
    return prop


def delete_property(db: Session, prop: Property) -> None:
    count = db.query(func.count(PropertyValue.id)).filter(PropertyValue.property_id == prop.id).scalar() or 0
    if count:
        raise ConflictError(
            f"Cannot delete property with {count} existing values",
            code="PROPERTY_HAS_VALUES",
        )
    db.delete(prop)
    db.flush()


def bulk_define(db: Session, items: list[dict[str, Any]]) -> tuple[int, int]:
    """Define many properties at once, skipping keys that already exist."""
    created = skipped = 0
    seen: set[tuple[int, str]] = set()
    for item in items:
        marker = (item["final_type_id"], item["property_key"].strip())
        if marker in seen or _key_taken(db, *marker):
            skipped += 1
            continue
        define_property(db, **item)
        seen.add(marker)
        created += 1
    return created, skipped


def property_response(prop: Property, values_count: int | None = None) -> PropertyResponse:
    return PropertyResponse(
        id=prop.id,
        final_type_id=prop.final_type_id,
        final_type_name=prop.final_type.name if prop.final_type else None,
        property_key=prop.property_key,
        property_name=prop.property_name,
        group_name=prop.group_name,
        data_type=prop.data_type,
        allowed_values=load_allowed_values(prop.allowed_values),
        is_filter=prop.is_filter,
        is_required=prop.is_required,
        display_order=prop.display_order,
        placeholder=prop.placeholder,
        unit=prop.unit,
        values_count=values_count,
        created_at=prop.created_at,
        updated_at=prop.updated_at,
    )


def encode_value(prop: Property, value: Any, strict: bool | None = None) -> str | None:
    """Stored text for a client value, or None when the value is empty."""
    if _is_empty(value):
        return None
    if strict is None:
        strict = get_settings().STRICT_PROPERTY_VALUES
    if not strict:
        if isinstance(value, (dict, list)):
            return _to_json(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    codec = CODECS[prop.data_type]
    allowed = load_allowed_values(prop.allowed_values) if prop.data_type in CHOICE_TYPES else None
    try:
        return codec.encode(value, allowed)
    except InvalidValue as exc:
        raise ValidationError(
            f"Invalid value for property '{prop.property_key}': {exc}",
            code="INVALID_PROPERTY_VALUE",
        )


def decode_value(prop: Property, text: str) -> Any:
    try:
        return CODECS[prop.data_type].decode(text)
    except (ValueError, TypeError):
        return None


def set_listing_properties(
    db: Session,
    listing_id: int,
    final_type_id: int,
    values: dict[str, Any] | None,
    require_all: bool = False,
) -> int:
    """Replace every stored value of a listing with ``values``.

    Keys without a definition on the final type and empty values are skipped.
    File-typed keys are rejected; stored files of replaced rows are left on
    disk for the caller to remove once the transaction commits (see
    ``stored_file_values``). Returns the number of rows written.
    """
    values = values or {}
    definitions = {p.property_key: p for p in db.query(Property).filter(Property.final_type_id == final_type_id).all()}

    if require_all:
        missing = [
            key
            for key, prop in definitions.items()
            if prop.is_required and prop.data_type != PropertyDataType.FILE and _is_empty(values.get(key))
        ]
        if missing:
            raise ValidationError(
                f"Missing required properties: {', '.join(sorted(missing))}",
                code="MISSING_REQUIRED_PROPERTY",
            )

    rows: list[PropertyValue] = []
    for key, value in values.items():
        prop = definitions.get(key)
        if prop is None:
            continue
        if prop.data_type == PropertyDataType.FILE and not _is_empty(value):
            raise ValidationError(
                f"Invalid value for property '{key}': file properties are set by uploading to /api/properties/files",
                code="INVALID_PROPERTY_VALUE",
            )
        text = encode_value(prop, value)
        if text is None:
            continue
        rows.append(PropertyValue(real_estate_id=listing_id, property_id=prop.id, value=text))

    db.query(PropertyValue).filter(PropertyValue.real_estate_id == listing_id).delete(synchronize_session=False)
    db.add_all(rows)
    db.flush()
    return len(rows)


def stored_file_values(db: Session, listing_id: int) -> list[tuple[str, str]]:
    """``(property_key, filename)`` for every file-typed value of a listing."""
    rows = (
        db.query(PropertyValue, Property)
        .join(Property, PropertyValue.property_id == Property.id)
        .filter(PropertyValue.real_estate_id == listing_id, Property.data_type == PropertyDataType.FILE)
        .all()
    )
    stored = []
    for value, prop in rows:
        filename = (decode_value(prop, value.value) or {}).get("filename")
        if filename:
            stored.append((prop.property_key, filename))
    return stored


def property_meta(prop: Property) -> PropertyMeta:
    return PropertyMeta(
        id=prop.id,
        property_key=prop.property_key,
        property_name=prop.property_name,
        group_name=prop.group_name,
        data_type=prop.data_type,
        unit=prop.unit,
        is_filter=prop.is_filter,
        is_required=prop.is_required,
    )


def get_listing_properties(db: Session, listing_id: int) -> dict[str, ListingPropertyValue]:
    rows = (
        db.query(PropertyValue, Property)
        .join(Property, PropertyValue.property_id == Property.id)
        .filter(PropertyValue.real_estate_id == listing_id)
        .order_by(Property.display_order, Property.property_name)
        .all()
    )
    return {
        prop.property_key: ListingPropertyValue(
            value=row.value,
            typed_value=decode_value(prop, row.value),
            property=property_meta(prop),
        )
        for row, prop in rows
    }
