# Dice expression trees.
# Symbolic trees hold DiceSpec payloads; concrete trees hold rolled values.
import typing
from dataclasses import dataclass
from datetime import datetime

T = typing.TypeVar("T")

U32_MAX = 2**32 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


class RollError(Exception):
    pass


# Input doesn't match the dice grammar.
class GrammarError(RollError):
    def __init__(self, message: str, position: int | None = None):
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)
        self.position = position


# Grammatically fine, but a token can't be represented.
class ParseError(RollError):
    pass


class InvalidDice(RollError):
    pass


# Also an ArithmeticError so generic handlers still catch it.
class RollArithmeticError(RollError, ArithmeticError):
    pass


# The session log failed to persist a roll.
class LogError(RollError):
    pass


def _truncated_divide(x: int, y: int) -> int:
    if y == 0:
        raise RollArithmeticError(f"Division by zero: {x} / {y}")
    quotient = abs(x) // abs(y)
    return quotient if (x < 0) == (y < 0) else -quotient


def _truncated_modulo(x: int, y: int) -> int:
    if y == 0:
        raise RollArithmeticError(f"Modulo by zero: {x} % {y}")
    return x - y * _truncated_divide(x, y)


ARITHMETICS: dict[str, typing.Callable[[int, int], int]] = {
    "+": lambda x, y: x + y,
    "-": lambda x, y: x - y,
    "*": lambda x, y: x * y,
    "/": _truncated_divide,
    "%": _truncated_modulo,
}

NEGATE = "-"


def check_i64(value: int, description="") -> int:
    if value < I64_MIN or value > I64_MAX:
        raise RollArithmeticError(f"Integer overflow in {description}: {value}")
    return value


# An unrolled request for `count` dice with `faces` sides each.
class DiceSpec(typing.NamedTuple):
    count: int
    faces: int

    def __str__(self):
        return f"{self.count}d{self.faces}"


# One persisted fact about one die.
class RollRecord(typing.NamedTuple):
    user_id: int
    result: int
    sides: int
    timestamp: datetime


# Base for expression tree nodes.
# `describe` renders the node, `get_value` folds it to an integer.
# Both only make sense once dice payloads are concrete rolls, except that
# symbolic trees can still be described for echoing the input back.
class Expression(typing.Generic[T]):
    def describe(self) -> str:
        raise NotImplementedError("Description missing for this expression.")

    def get_value(self) -> int:
        raise NotImplementedError("Value missing for this expression.")

    def __str__(self):
        return self.describe()


@dataclass(frozen=True)
class Dice(Expression[T]):
    payload: T

    def describe(self) -> str:
        if isinstance(self.payload, DiceSpec):
            return str(self.payload)
        return "[" + ", ".join(str(item) for item in self.payload) + "]"

    def get_value(self) -> int:
        if isinstance(self.payload, DiceSpec):
            raise TypeError(f"Dice {self.payload} have not been rolled yet.")
        return check_i64(sum(int(item) for item in self.payload), f"dice {self}")


@dataclass(frozen=True)
class Literal(Expression[T]):
    value: int

    def describe(self) -> str:
        return str(self.value)

    def get_value(self) -> int:
        return self.value


@dataclass(frozen=True)
class UnaryOp(Expression[T]):
    op: str
    operand: Expression[T]

    def describe(self) -> str:
        return f"{self.op} {self.operand.describe()}"

    def get_value(self) -> int:
        if self.op != NEGATE:
            raise ValueError(f"Unknown prefix operator: {self.op}")
        return check_i64(-self.operand.get_value(), f"negation {self}")


@dataclass(frozen=True)
class BinaryOp(Expression[T]):
    left: Expression[T]
    op: str
    right: Expression[T]

    def describe(self) -> str:
        return f"{self.left.describe()} {self.op} {self.right.describe()}"

    def get_value(self) -> int:
        try:
            func = ARITHMETICS[self.op]
        except KeyError as err:
            raise ValueError(f"Unknown infix operator: {self.op}") from err
        value = func(self.left.get_value(), self.right.get_value())
        return check_i64(value, f"{self}")


# All dice nodes of a tree, left to right.
def walk_dice(expr: Expression) -> typing.Iterator[Dice]:
    if isinstance(expr, Dice):
        yield expr
    elif isinstance(expr, UnaryOp):
        yield from walk_dice(expr.operand)
    elif isinstance(expr, BinaryOp):
        yield from walk_dice(expr.left)
        yield from walk_dice(expr.right)


# How many dice would be rolled when evaluating a symbolic tree.
def count_dice(expr: Expression[DiceSpec]) -> int:
    return sum(node.payload.count for node in walk_dice(expr))
