"""
JSON mapping between Forge payloads and typed dataclasses.

Each session owns one mapper built from fixed options. Decoding is driven by
dataclass fields and their type hints:

- ``field(metadata={"json": "name"})`` maps a field to a differently named key
- ``field(metadata={"transient": True})`` is never read from or written to JSON
- ``field(metadata={"inject": "root"})`` is filled from the mapping context
"""

import dataclasses
import enum
import json
import logging
import threading
import types
from datetime import datetime
from typing import Any, Union, get_args, get_origin, get_type_hints

from forge_client.core.errors import JsonMappingError
from forge_client.core.types import print_date

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)


class _FieldSpec:
    __slots__ = ("attr", "type")

    def __init__(self, attr: str, type_: Any):
        self.attr = attr
        self.type = type_


class JsonMapper:
    """
    Decodes JSON into dataclass instances and encodes request bodies.

    Args:
        fail_on_unknown_properties: Raise on keys the target type does not declare
        case_insensitive_enums: Match enum constants regardless of case

    """

    def __init__(self, fail_on_unknown_properties: bool = False, case_insensitive_enums: bool = True):
        self.fail_on_unknown_properties = fail_on_unknown_properties
        self.case_insensitive_enums = case_insensitive_enums
        self._lock = threading.Lock()
        self._fields: dict[type, dict[str, _FieldSpec]] = {}
        self._injectables: dict[type, list[tuple[str, str]]] = {}

    # =========================================================================
    # Decoding
    # =========================================================================

    def read_value(self, data: str | bytes, type_: Any, context: dict[str, Any] | None = None) -> Any:
        """Decode a JSON document into a new value of ``type_``."""
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        payload = self._parse(text)
        try:
            return self.convert(payload, type_, context)
        except JsonMappingError:
            raise
        except (TypeError, ValueError, KeyError) as e:
            raise JsonMappingError(f"Failed to deserialize {text}", body=text) from e

    def read_for_updating(self, instance: Any, data: str | bytes, context: dict[str, Any] | None = None) -> Any:
        """Merge a JSON object into an existing dataclass instance, in place."""
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        payload = self._parse(text)
        if not isinstance(payload, dict):
            raise JsonMappingError(f"Expected a JSON object to update {type(instance).__name__}", body=text)
        try:
            return self.update(instance, payload, context)
        except JsonMappingError:
            raise
        except (TypeError, ValueError, KeyError) as e:
            raise JsonMappingError(f"Failed to deserialize {text}", body=text) from e

    def update(self, instance: Any, payload: dict[str, Any], context: dict[str, Any] | None = None) -> Any:
        """Assign every known key of ``payload`` onto ``instance``."""
        cls = type(instance)
        fields = self._fields_for(cls)
        for key, raw in payload.items():
            spec = fields.get(key)
            if spec is None:
                if self.fail_on_unknown_properties:
                    raise JsonMappingError(f"Unrecognized field '{key}' for {cls.__name__}")
                continue
            setattr(instance, spec.attr, self.convert(raw, spec.type, context))
        if context:
            for attr, key in self._injectables_for(cls):
                if key in context:
                    setattr(instance, attr, context[key])
        return instance

    def convert(self, value: Any, type_: Any, context: dict[str, Any] | None = None) -> Any:
        """Convert a decoded JSON value to ``type_``."""
        if value is None or type_ is Any or type_ is object:
            return value

        origin = get_origin(type_)
        if origin is Union or origin is types.UnionType:
            candidates = [arg for arg in get_args(type_) if arg is not _NONE_TYPE]
            if len(candidates) == 1:
                return self.convert(value, candidates[0], context)
            return value

        if origin in (list, tuple, set, frozenset):
            if not isinstance(value, list):
                raise TypeError(f"Expected a JSON array, got {type(value).__name__}")
            args = get_args(type_)
            item_type = args[0] if args else Any
            return origin(self.convert(item, item_type, context) for item in value)

        if origin is dict:
            if not isinstance(value, dict):
                raise TypeError(f"Expected a JSON object, got {type(value).__name__}")
            args = get_args(type_)
            value_type = args[1] if len(args) == 2 else Any
            return {key: self.convert(item, value_type, context) for key, item in value.items()}

        if type_ in (list, dict):
            if not isinstance(value, type_):
                raise TypeError(f"Expected {type_.__name__}, got {type(value).__name__}")
            return value

        if isinstance(type_, type) and issubclass(type_, enum.Enum):
            return self._convert_enum(value, type_)

        if dataclasses.is_dataclass(type_):
            if not isinstance(value, dict):
                raise TypeError(f"Expected a JSON object for {type_.__name__}, got {type(value).__name__}")
            return self.update(type_(), value, context)

        if type_ is bool:
            if not isinstance(value, bool):
                raise TypeError(f"Expected a boolean, got {value!r}")
            return value
        if type_ in (int, float):
            if isinstance(value, (dict, list)):
                raise TypeError(f"Expected a number, got {type(value).__name__}")
            return type_(value)
        if type_ is str:
            if isinstance(value, (dict, list)):
                raise TypeError(f"Expected a string, got {type(value).__name__}")
            return value if isinstance(value, str) else str(value)
        return value

    def _convert_enum(self, value: Any, enum_cls: type[enum.Enum]) -> enum.Enum | None:
        for member in enum_cls:
            if member.value == value:
                return member
        if self.case_insensitive_enums and isinstance(value, str):
            lowered = value.lower()
            for member in enum_cls:
                if member.name.lower() == lowered or str(member.value).lower() == lowered:
                    return member
        logger.debug("Unknown %s constant %r", enum_cls.__name__, value)
        return None

    def _parse(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise JsonMappingError(f"Failed to deserialize {text}", body=text) from e

    def _fields_for(self, cls: type) -> dict[str, _FieldSpec]:
        fields = self._fields.get(cls)
        if fields is not None:
            return fields
        hints = get_type_hints(cls, localns=getattr(cls, "_type_registry", None))
        fields = {}
        injectables = []
        for f in dataclasses.fields(cls):
            if "inject" in f.metadata:
                injectables.append((f.name, f.metadata["inject"]))
                continue
            if f.metadata.get("transient"):
                continue
            fields[f.metadata.get("json", f.name)] = _FieldSpec(f.name, hints.get(f.name, Any))
        with self._lock:
            self._fields[cls] = fields
            self._injectables[cls] = injectables
        return fields

    def _injectables_for(self, cls: type) -> list[tuple[str, str]]:
        if cls not in self._injectables:
            self._fields_for(cls)
        return self._injectables[cls]

    # =========================================================================
    # Encoding
    # =========================================================================

    def write_value(self, value: Any) -> str:
        """Encode a request body."""
        return json.dumps(value, default=self._default)

    def to_payload(self, obj: Any) -> dict[str, Any]:
        """Dict form of a dataclass, skipping unset, transient and injected fields."""
        payload = {}
        for f in dataclasses.fields(obj):
            if f.metadata.get("transient") or "inject" in f.metadata:
                continue
            value = getattr(obj, f.name)
            if value is not None:
                payload[f.metadata.get("json", f.name)] = value
        return payload

    def _default(self, value: Any) -> Any:
        if isinstance(value, enum.Enum):
            return value.value
        if isinstance(value, datetime):
            return print_date(value)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return self.to_payload(value)
        if isinstance(value, (set, frozenset, tuple)):
            return list(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
