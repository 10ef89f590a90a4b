"""
SerializableException: the base class for every kdbview exception. Errors that
reach the HTTP layer are returned to the browser as JSON, so each exception can
be turned into a dictionary and rebuilt from one without losing its type.

Usage:

>>> class MyException(SerializableException):
>>>     pass
>>>
>>> try:
>>>     raise MyException("table not found", table="trades")
>>> except SerializableException as e:
>>>     payload = rapidjson.dumps(e.to_dict())
>>>
>>> # the receiving side must define MyException too to get the same type back
>>> raise SerializableException.from_dict(rapidjson.loads(payload))
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypedDict, Union, cast

import rapidjson

# mypy has not figured out recursive types yet so this can't be totally typesafe
JsonSerializable = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]


class SerializableExceptionDict(TypedDict):
    __type__: str
    __name__: str
    __message__: str
    __extra_data__: Dict[str, JsonSerializable]
    __should_report__: bool


class _ExceptionRegistry:
    """Keep a mapping of SerializableExceptions to their names"""

    def __init__(self) -> None:
        self.__mapping: Dict[str, Type["SerializableException"]] = {}

    def register_class(self, cls: Type["SerializableException"]) -> None:
        if cls.__name__ not in self.__mapping:
            self.__mapping[cls.__name__] = cls

    def get_class_by_name(
        self, cls_name: str
    ) -> Optional[Type["SerializableException"]]:
        return self.__mapping.get(cls_name)


_REGISTRY = _ExceptionRegistry()


class SerializableException(Exception):
    """
    NOTE: subclasses must not define their own constructor. Pass any
    additional context as keyword arguments, they end up in ``extra_data``
    and survive the round trip through ``to_dict``/``from_dict``.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        should_report: bool = True,
        **extra_data: JsonSerializable,
    ) -> None:
        self.extra_data = extra_data or {}
        # kept unformatted so from_dict does not format it a second time
        self.raw_message = message or ""
        self.message = self.format_message(message) if message else ""
        # whether or not the error should be reported to sentry
        self.should_report = should_report
        super().__init__(message)

    def format_message(self, message: str) -> str:
        """
        Can be overridden to handle custom formatting
        """
        return message

    def to_dict(self) -> SerializableExceptionDict:
        return {
            "__type__": "SerializableException",
            "__name__": self.__class__.__name__,
            "__message__": self.raw_message,
            "__should_report__": self.should_report,
            "__extra_data__": self.extra_data,
        }

    @classmethod
    def from_dict(cls, edict: SerializableExceptionDict) -> "SerializableException":
        assert edict["__type__"] == "SerializableException"
        exception_class = _REGISTRY.get_class_by_name(edict.get("__name__", ""))
        if exception_class is None:
            # unknown on this side, build a subclass on the fly so the name
            # and message are still preserved
            exception_class = cast(
                Type[SerializableException], type(edict["__name__"], (cls,), {})
            )

        return exception_class(
            message=edict.get("__message__", ""),
            should_report=edict.get("__should_report__", True),
            **edict.get("__extra_data__", {}),
        )

    def __init_subclass__(cls) -> None:
        _REGISTRY.register_class(cls)
        return super().__init_subclass__()

    @classmethod
    def from_standard_exception_instance(
        cls, exc: Exception
    ) -> "SerializableException":
        if isinstance(exc, cls):
            return exc
        return cls.from_dict(
            {
                "__type__": "SerializableException",
                "__name__": exc.__class__.__name__,
                "__message__": str(exc),
                "__extra_data__": {"from_standard_exception": True},
                "__should_report__": True,
            }
        )

    def __repr__(self) -> str:
        result: str = rapidjson.dumps(self.to_dict(), indent=2)
        return result
