from enum import Enum, auto
from typing import Any, NamedTuple, Optional
import struct

from .Errors import TypeMismatchError


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


class SocketDirection(Enum):
    INPUT = auto()
    OUTPUT = auto()

class SocketFunction(Enum):
    VALUE = auto()
    FLOW = auto()

class ValueType(Enum):
    FLOAT = "float"
    BOOL = "bool"
    INT = "int"

    @staticmethod
    def validate(payload: Any, value_type: 'ValueType') -> bool:
        # bool is a subclass of int, so it has to be excluded explicitly
        if value_type == ValueType.FLOAT:
            return isinstance(payload, float)
        elif value_type == ValueType.BOOL:
            return isinstance(payload, bool)
        elif value_type == ValueType.INT:
            return isinstance(payload, int) and not isinstance(payload, bool) \
                and INT32_MIN <= payload <= INT32_MAX
        return False


def to_float32(number: float) -> float:
    return struct.unpack("f", struct.pack("f", number))[0]


def wrap_int32(number: int) -> int:
    return (number - INT32_MIN) % (2 ** 32) + INT32_MIN


class Value(NamedTuple):
    """
    A scalar carried on a value socket.

    Build values with `Float`, `Bool` and `Int` rather than by hand, they
    check the payload and normalise it to the declared width.
    """
    type: ValueType
    payload: Any

    def is_numeric(self) -> bool:
        return self.type in (ValueType.FLOAT, ValueType.INT)

    def expect(self, value_type: ValueType, node_id: Optional[int] = None, socket: Optional[str] = None) -> Any:
        if self.type != value_type:
            raise TypeMismatchError(
                f"expected {value_type.value} but found {self.type.value}",
                node_id=node_id, socket=socket)
        return self.payload

    def __repr__(self):
        return f"{self.type.name.capitalize()}({self.payload!r})"


def Float(number) -> Value:
    if isinstance(number, bool) or not isinstance(number, (int, float)):
        raise TypeError(f"Float value requires a number, got {number!r}")
    return Value(ValueType.FLOAT, to_float32(float(number)))


def Bool(flag) -> Value:
    if not isinstance(flag, bool):
        raise TypeError(f"Bool value requires a bool, got {flag!r}")
    return Value(ValueType.BOOL, flag)


def Int(number) -> Value:
    if isinstance(number, bool) or not isinstance(number, int):
        raise TypeError(f"Int value requires an int, got {number!r}")
    if not INT32_MIN <= number <= INT32_MAX:
        raise ValueError(f"Int value {number} does not fit in 32 bits")
    return Value(ValueType.INT, number)
