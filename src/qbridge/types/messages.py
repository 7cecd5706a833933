"""Message types for the bridge: client instructions and their results.

Every inbound OSC message at ``/qgate/<kind>`` maps onto exactly one
`Request` subclass, its integer arguments filling the subclass fields in
declaration order. Every `Response` maps onto one outbound message at
``/qresult/<kind>``.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, fields
from typing import Any

from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig
from mashumaro.types import Discriminator
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message_builder import OscMessageBuilder

from qbridge.types.errors import MessageConversionError
from qbridge.util.defaults import PROBABILITY_UNSET

REQUEST_ADDRESS_PREFIX = "/qgate/"
RESPONSE_ADDRESS_PREFIX = "/qresult/"

# annotations are strings (postponed evaluation)
_OSC_ARG_TYPES = {
    "int": OscMessageBuilder.ARG_TYPE_INT,
    "float": OscMessageBuilder.ARG_TYPE_FLOAT,
}


def get_all_subclasses_map(cls: type) -> dict[str, type]:
    """Get all subclasses of a class recursively."""

    def _get_all(clas: type, subclasses: dict[str, type]):
        if not clas.__subclasses__():
            return subclasses
        for subcls in clas.__subclasses__():
            subclasses[subcls.__name__] = subcls
            subclasses |= _get_all(subcls, subclasses)
        return subclasses

    return _get_all(cls, dict())


def _kind_map(base: type) -> dict[str, type]:
    kinds = {}
    for subcls in get_all_subclasses_map(base).values():
        default = subcls.__dataclass_fields__["kind"].default
        if default is not MISSING:
            kinds[default] = subcls
    return kinds


def operand_names(cls: type) -> tuple[str, ...]:
    """Names of the fields carried as OSC arguments (everything but `kind`)."""
    return tuple(f.name for f in fields(cls) if f.name != "kind")


@dataclass(frozen=True, kw_only=True)
class Message(DataClassDictMixin):
    """Base class for all messages."""

    kind: str


# ============================================================================


@dataclass(frozen=True, kw_only=True)
class Request(Message):
    """One decoded client instruction. Consumed exactly once by the runner."""

    class Config(BaseConfig):
        discriminator = Discriminator(field="kind", include_subtypes=True)

    @property
    def address(self) -> str:
        return REQUEST_ADDRESS_PREFIX + self.kind

    def osc_args(self) -> list[int]:
        return [getattr(self, name) for name in operand_names(type(self))]

    def to_osc(self) -> OscMessage:
        builder = OscMessageBuilder(address=self.address)
        for value in self.osc_args():
            builder.add_arg(value, OscMessageBuilder.ARG_TYPE_INT)
        return builder.build()

    @classmethod
    def from_osc(cls, message: OscMessage) -> Request:
        return request_from_osc(message.address, list(message.params))


@dataclass(frozen=True, kw_only=True)
class XRequest(Request):
    kind: str = "x"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class YRequest(Request):
    kind: str = "y"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class ZRequest(Request):
    kind: str = "z"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class HRequest(Request):
    kind: str = "h"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class SRequest(Request):
    kind: str = "s"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class SdgRequest(Request):
    kind: str = "sdg"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class TRequest(Request):
    """Part of the schema, not part of the Clifford gate set the runner applies."""

    kind: str = "t"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class TdgRequest(Request):
    """Part of the schema, not part of the Clifford gate set the runner applies."""

    kind: str = "tdg"
    reg: int
    qubit: int


@dataclass(frozen=True, kw_only=True)
class CXRequest(Request):
    kind: str = "cx"
    control_reg: int
    control: int
    target_reg: int
    target: int


@dataclass(frozen=True, kw_only=True)
class MzRequest(Request):
    """Measure `qubit` in the Z basis; flushes the accumulated circuit."""

    kind: str = "mz"
    reg: int
    qubit: int


def get_request_map() -> dict[str, type[Request]]:
    return _kind_map(Request)


def request_from_osc(address: str, params: list[Any]) -> Request:
    """Convert an OSC address + argument list into a Request.

    Raises
    ------
    MessageConversionError
        Unknown address, wrong argument count or non-integer argument.
    """
    if not address.startswith(REQUEST_ADDRESS_PREFIX):
        raise MessageConversionError(f"Unknown address: {address}")
    kind = address[len(REQUEST_ADDRESS_PREFIX) :]
    try:
        req_cls = get_request_map()[kind]
    except KeyError:
        raise MessageConversionError(f"Unknown instruction: {address}") from None

    names = operand_names(req_cls)
    if len(params) != len(names):
        raise MessageConversionError(
            f"{address} takes {len(names)} arguments {names}, got {len(params)}."
        )
    for name, value in zip(names, params):
        # bool is an int subclass, OSC T/F must not pass as a qubit index
        if isinstance(value, bool) or not isinstance(value, int):
            raise MessageConversionError(
                f"{address}: argument '{name}' must be an int, got {value!r}."
            )
    return req_cls(**dict(zip(names, params)))


# ============================================================================


@dataclass(frozen=True, kw_only=True)
class Response(Message):
    """One outcome returned to the client. Consumed exactly once by the sender."""

    class Config(BaseConfig):
        discriminator = Discriminator(field="kind", include_subtypes=True)

    @property
    def address(self) -> str:
        return RESPONSE_ADDRESS_PREFIX + self.kind

    def osc_args(self) -> list[tuple[Any, str]]:
        return [
            (getattr(self, f.name), _OSC_ARG_TYPES[f.type])
            for f in fields(self)
            if f.name != "kind"
        ]

    def to_osc(self) -> OscMessage:
        builder = OscMessageBuilder(address=self.address)
        for value, arg_type in self.osc_args():
            builder.add_arg(value, arg_type)
        return builder.build()

    @classmethod
    def from_osc(cls, message: OscMessage) -> Response:
        return response_from_osc(message.address, list(message.params))


@dataclass(frozen=True, kw_only=True)
class MzResponse(Response):
    kind: str = "mz"
    bit: int
    probability: float = PROBABILITY_UNSET


def get_response_map() -> dict[str, type[Response]]:
    return _kind_map(Response)


def response_from_osc(address: str, params: list[Any]) -> Response:
    if not address.startswith(RESPONSE_ADDRESS_PREFIX):
        raise MessageConversionError(f"Unknown address: {address}")
    kind = address[len(RESPONSE_ADDRESS_PREFIX) :]
    try:
        resp_cls = get_response_map()[kind]
    except KeyError:
        raise MessageConversionError(f"Unknown result: {address}") from None
    names = operand_names(resp_cls)
    if len(params) != len(names):
        raise MessageConversionError(
            f"{address} takes {len(names)} arguments {names}, got {len(params)}."
        )
    return resp_cls(**dict(zip(names, params)))
