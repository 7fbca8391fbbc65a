# Dicerolling.
# Parser and evaluator for dice roll inputs.

import logging
import random
import re
import typing
from datetime import datetime, timezone

from dice_details import *

log = logging.getLogger(__name__)

# fmt: off
TOKEN_SPEC = [
    ("DICE",     r"\d+d\d+"),                   # Dice literals, no spaces allowed
    ("NUMBER",   r"\d+"),                       # Unsigned integer
    ("OP",       r"[+\-*/%()]"),                # Operators and grouping
    ("SKIP",     r"\s+"),                       # Skip over whitespace
    ("MISMATCH", r"."),                         # Any other character
]
TOKEN_PATTERN = re.compile(
    '|'.join(f"(?P<{pair[0]}>{pair[1]})" for pair in TOKEN_SPEC))
# fmt: on

NEGATE_BIND_POWER = 100


# Something that can persist individual rolls.
class RollLog(typing.Protocol):
    def record(self, user_id, result: int, sides: int, timestamp: datetime) -> None:
        ...


# Tokenizes a formula to symbol instances, ending with an END symbol.
def symbolize(symbol_table, intext: str):
    tokens = []
    for item in TOKEN_PATTERN.finditer(intext):
        # https://docs.python.org/3.6/library/re.html#writing-a-tokenizer
        kind = item.lastgroup  # group name
        value = item.group()

        if kind == "SKIP":
            continue
        elif kind == "MISMATCH":
            raise GrammarError(f"Couldn't interpret <{value}> from: {intext}", item.start())

        symbol_id = value if kind == "OP" else kind
        try:  # look up symbol type
            symbol = symbol_table[symbol_id]
        except KeyError:
            raise GrammarError(f"Failed to find symbol type for {symbol_id}", item.start())
        tokens.append(symbol(value, item.start()))

    tokens.append(symbol_table["END"]("", len(intext)))
    return tokens


# Based on Pratt top-down operator precedence.
# http://effbot.org/zone/simple-top-down-parsing.htm
# Builds symbolic expression trees; nothing is rolled while parsing.
class Parser:
    SYMBOL_TABLE = {}

    class _Symbol:
        # token type.
        _kind = None
        # operator binding power, 0 for literals.
        _bp = 0

        def __init__(self, text: str = "", position: int = 0):
            self.text = text
            self.position = position

        # Null denotation: literals, or prefix behavior for operators.
        # `leading` is set when this symbol starts an expression.
        def as_prefix(self, parser, leading=False) -> Expression[DiceSpec]:
            raise GrammarError(f"Unexpected symbol: {self}", self.position)

        # Left denotation: infix behavior for operators. Preceding expression
        # provided as `left`.
        def as_infix(self, parser, left) -> Expression[DiceSpec]:
            raise GrammarError(f"Unexpected symbol: {self}", self.position)

        def __repr__(self):
            if self._kind == "END":
                return "end of input"
            return f"<{self.text}>"

    def __init__(self, tokens):
        self.token_list = tokens
        self.iter_pos = -1
        self.token_current = None
        self._next()

    # Stays on the final END token once reached.
    def _next(self):
        if self.iter_pos + 1 < len(self.token_list):
            self.iter_pos += 1
            self.token_current = self.token_list[self.iter_pos]
        return self.token_current

    def _current(self) -> _Symbol:
        return self.token_current  # type: ignore

    def advance(self, expected=None):
        current = self._current()
        if expected and current._kind != expected:
            raise GrammarError(f"Missing expected: {expected}, found {current}", current.position)
        return self._next()

    # Parse an expression from symbols. Recursive.
    def expr(self, right_bp=0, leading=False) -> Expression[DiceSpec]:
        prev = self._current()
        self._next()
        left = prev.as_prefix(self, leading)
        while right_bp < self._current()._bp:
            prev = self._current()
            self._next()
            left = prev.as_infix(self, left)
        return left

    # Build the symbolic tree for the whole token list.
    def parse(self) -> Expression[DiceSpec]:
        ret = self.expr(leading=True)
        current = self._current()
        if current._kind != "END":
            raise GrammarError(f"Unexpected {current}: missing operators?", current.position)
        return ret

    @staticmethod
    def register_symbol(symbol_kind, bind_power=0):
        try:
            s = Parser.SYMBOL_TABLE[symbol_kind]
        except KeyError:

            class s(Parser._Symbol):
                pass

            s.__name__ = "symbol-" + symbol_kind
            s.__qualname__ = "symbol-" + symbol_kind
            s._kind = symbol_kind
            s._bp = bind_power
            Parser.SYMBOL_TABLE[symbol_kind] = s
        else:
            s._bp = max(bind_power, s._bp)
        return s

    @staticmethod
    def register_infix(kind, bind_power):
        # left-associative: the right side only takes tighter operators
        def _as_infix(self, parser, left):
            return BinaryOp(left, kind, parser.expr(bind_power))

        s = Parser.register_symbol(kind, bind_power)
        s.as_infix = _as_infix
        return s


def _number_nud(self, parser, leading=False):
    value = int(self.text)
    if value > I64_MAX:
        raise ParseError(f"Integer {self.text} is too large (max {I64_MAX})")
    return Literal(value)


def _dice_nud(self, parser, leading=False):
    count_text, _, faces_text = self.text.partition("d")
    if not count_text or not faces_text:
        raise ParseError(f"Malformed dice: {self.text}")
    count, faces = int(count_text), int(faces_text)
    if count > U32_MAX:
        raise ParseError(f"Too many dice in {self.text} (max {U32_MAX})")
    if faces > U32_MAX:
        raise ParseError(f"Too many faces in {self.text} (max {U32_MAX})")
    return Dice(DiceSpec(count, faces))


# Unary minus is only allowed at the start of an expression.
def _dash_nud(self, parser, leading=False):
    if not leading:
        raise GrammarError("Negation is only allowed at the start of an expression", self.position)
    return UnaryOp(NEGATE, parser.expr(NEGATE_BIND_POWER))


# Beginning a parenthesis-grouped expression
def _left_paren_nud(self, parser, leading=False):
    inner = parser.expr(leading=True)
    parser.advance(expected=")")
    return inner


def _end_nud(self, parser, leading=False):
    raise GrammarError("Expected further input. Missing operands?", self.position)


# initialize symbol table with type classes
Parser.register_symbol("NUMBER").as_prefix = _number_nud  # type: ignore
Parser.register_symbol("DICE").as_prefix = _dice_nud  # type: ignore
Parser.register_symbol("END").as_prefix = _end_nud  # type: ignore
Parser.register_symbol("(").as_prefix = _left_paren_nud  # type: ignore
Parser.register_symbol(")")

Parser.register_infix("+", 10)
Parser.register_infix("-", 10).as_prefix = _dash_nud  # type: ignore
Parser.register_infix("*", 20)
Parser.register_infix("/", 20)
Parser.register_infix("%", 20)


def parse(formula: str) -> Expression[DiceSpec]:
    if len(formula.strip()) < 1:
        raise GrammarError("Roll formula is empty.", 0)
    return Parser(symbolize(Parser.SYMBOL_TABLE, formula)).parse()


# Rolls every dice node of a symbolic tree, recording each die as it lands.
# Log failures are kept in `log_errors` and never undo a roll.
class RollEvaluator:
    def __init__(self, user_id, roll_log: RollLog, rng=random, timestamp: datetime | None = None):
        self.user_id = user_id
        self.roll_log = roll_log
        self.rng = rng
        self.timestamp = timestamp if timestamp else datetime.now(timezone.utc)
        self.log_errors: list[LogError] = []

    def evaluate(self, expression: Expression[DiceSpec]) -> Expression[tuple[int, ...]]:
        validate(expression)
        return self._evaluate(expression)

    def _evaluate(self, expression):
        if isinstance(expression, Dice):
            return Dice(self.roll_dice(expression.payload))
        if isinstance(expression, Literal):
            return expression
        if isinstance(expression, UnaryOp):
            return UnaryOp(expression.op, self._evaluate(expression.operand))
        if isinstance(expression, BinaryOp):
            left = self._evaluate(expression.left)
            right = self._evaluate(expression.right)
            return BinaryOp(left, expression.op, right)
        raise TypeError(f"Unexpected expression node: {expression!r}")

    def roll_dice(self, spec: DiceSpec) -> tuple[int, ...]:
        if spec.faces < 1:
            raise InvalidDice(f"Dice {spec} need at least one face.")
        results = []
        for _ in range(spec.count):
            result = self.rng.randint(1, spec.faces)
            results.append(result)
            self._record(result, spec.faces)
        return tuple(results)

    def _record(self, result: int, sides: int):
        try:
            self.roll_log.record(self.user_id, result, sides, self.timestamp)
        except (LogError, OSError) as err:
            log.warning(f"Failed to record roll {result} (d{sides}) for {self.user_id}: {err}")
            self.log_errors.append(err if isinstance(err, LogError) else LogError(str(err)))


# Reject dice that can't be rolled before anything is sampled.
def validate(expression: Expression[DiceSpec]):
    for node in walk_dice(expression):
        if node.payload.faces < 1:
            raise InvalidDice(f"Dice {node.payload} need at least one face.")


def evaluate(
    expression: Expression[DiceSpec],
    user_id,
    roll_log: RollLog,
    rng=random,
    timestamp: datetime | None = None,
) -> Expression[tuple[int, ...]]:
    return RollEvaluator(user_id, roll_log, rng, timestamp).evaluate(expression)


class RollResult(typing.NamedTuple):
    formula: str
    expression: Expression[tuple[int, ...]]
    display: str
    total: int
    log_errors: list[LogError]


# Parse, roll and total a formula. `max_dice` optionally caps how many dice
# the formula may roll in all.
def roll(
    formula: str, user_id, roll_log: RollLog, rng=random, max_dice: int | None = None
) -> RollResult:
    symbolic = parse(formula)
    if max_dice is not None and count_dice(symbolic) > max_dice:
        raise InvalidDice(f"Too many dice! At most {max_dice} can be rolled at once.")
    evaluator = RollEvaluator(user_id, roll_log, rng)
    concrete = evaluator.evaluate(symbolic)
    return RollResult(
        formula=formula,
        expression=concrete,
        display=concrete.describe(),
        total=concrete.get_value(),
        log_errors=evaluator.log_errors,
    )


# Cthulhu Dark: every ten points buys a human die, any remainder an insight die.
def roll_cthulhu_dark(
    points: int, evaluator: RollEvaluator, faces: int = 6
) -> tuple[tuple[int, ...], int | None]:
    if points < 1:
        return (), None
    human = evaluator.roll_dice(DiceSpec(points // 10, faces))
    insight = None
    if points % 10 != 0:
        insight = evaluator.roll_dice(DiceSpec(1, faces))[0]
    return human, insight


if __name__ == "__main__":
    from sessions import MemoryLog

    while True:
        intext = input()
        try:
            print(parse(intext).describe())
            result = roll(intext, 0, MemoryLog())
            print(f"{result.display} ⇒ {result.total}")
        except RollError as err:
            print(f"{err}")
