"""
Base Schema Classes

This module provides base classes for outbound and inbound wire records
with common serialization and deserialization methods.

Unlike an enveloped protocol, the chat backend exchanges bare JSON
objects, so a record's fields are the whole payload.
"""

import json
from dataclasses import asdict
from typing import Any, Dict, TypeVar

from ..errors import DecodeError

T = TypeVar("T", bound="BaseResponse")


class BaseRequest:
    """
    Base class for outbound records.

    Provides common serialization methods for converting dataclass records
    to dictionary and JSON formats.
    """

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with one key per field, named as on the wire.
        """
        return asdict(self)

    def to_json(self) -> str:
        """
        Convert to JSON string.

        Returns:
            JSON string representation of the record.
        """
        return json.dumps(self.to_dict())


class BaseResponse:
    """
    Base class for inbound records.

    Provides common deserialization methods for creating records from
    dictionary and JSON formats. Any malformed input is reported as a
    DecodeError so callers only have to handle one failure type.
    """

    @classmethod
    def from_dict(cls: type[T], data: Any) -> T:
        """
        Create instance from a decoded JSON value.

        Args:
            data: Decoded JSON value, expected to be an object.

        Returns:
            Instance of the record class.

        Raises:
            DecodeError: If the value is not an object or misses fields.
        """
        if not isinstance(data, dict):
            raise DecodeError(
                f"Expected a JSON object for {cls.__name__}, "
                f"got {type(data).__name__}"
            )
        return cls._from_data(data)

    @classmethod
    def from_json(cls: type[T], json_str: Any) -> T:
        """
        Create instance from JSON text.

        Args:
            json_str: JSON text (str or bytes).

        Returns:
            Instance of the record class.

        Raises:
            DecodeError: If the text is not valid JSON or not a valid record.
        """
        try:
            data = json.loads(json_str)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid JSON for {cls.__name__}: {e}")
        return cls.from_dict(data)

    @classmethod
    def _from_data(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from a JSON object.

        Should be overridden by subclasses to validate and map fields.
        """
        raise NotImplementedError("Subclasses must define _from_data")
