from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Callable

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode


class CalcError(ValueError):
    pass


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


# name -> (function, arity)
FUNCTIONS: dict[str, tuple[Callable[..., float], int]] = {
    "sqrt": (math.sqrt, 1),
    "abs": (abs, 1),
    "sin": (math.sin, 1),
    "cos": (math.cos, 1),
    "tan": (math.tan, 1),
    "log": (math.log, 1),
    "log10": (math.log10, 1),
    "exp": (math.exp, 1),
    "floor": (lambda x: float(math.floor(x)), 1),
    "ceil": (lambda x: float(math.ceil(x)), 1),
    "round": (_round_half_up, 1),
    "pow": (math.pow, 2),
    "min": (min, 2),
    "max": (max, 2),
}

CONSTANTS: dict[str, float] = {"PI": math.pi, "E": math.e}

OPERATORS = "+-*/%^"

# (kind, value) where kind is num | op | func | const | lparen | rparen | comma
Token = tuple[str, Any]


def tokenize(expr: str) -> list[Token]:
    tokens: list[Token] = []
    i, n = 0, len(expr)
    while i < n:
        ch = expr[i]
        if ch.isspace():
            i += 1
            continue
        if ch.isdigit() or (ch == "." and i + 1 < n and expr[i + 1].isdigit()):
            start = i
            seen_dot = False
            while i < n and (expr[i].isdigit() or expr[i] == "."):
                if expr[i] == ".":
                    if seen_dot:
                        raise CalcError("Invalid number: multiple decimal points")
                    seen_dot = True
                i += 1
            tokens.append(("num", float(expr[start:i])))
            continue
        if ch in OPERATORS:
            tokens.append(("op", ch))
            i += 1
            continue
        if ch == "(":
            tokens.append(("lparen", ch))
            i += 1
            continue
        if ch == ")":
            tokens.append(("rparen", ch))
            i += 1
            continue
        if ch == ",":
            tokens.append(("comma", ch))
            i += 1
            continue
        if ch.isalpha() or ch == "_":
            start = i
            while i < n and (expr[i].isalnum() or expr[i] == "_"):
                i += 1
            ident = expr[start:i]
            if ident in CONSTANTS:
                tokens.append(("const", ident))
            elif ident in FUNCTIONS:
                tokens.append(("func", ident))
            else:
                raise CalcError(f"Unknown identifier: {ident}")
            continue
        raise CalcError(f"Unexpected character: {ch}")
    return tokens


class _Parser:
    """Recursive descent over the token list.

    expression = term (('+'|'-') term)*
    term       = power (('*'|'/'|'%') power)*
    power      = unary ('^' power)?
    unary      = ('+'|'-') unary | primary
    primary    = number | constant | func '(' args ')' | '(' expression ')'
    """

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> float:
        value = self.expression()
        if self.pos < len(self.tokens):
            raise CalcError("Unexpected tokens after expression")
        return value

    def _peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Token | None:
        tok = self._peek()
        self.pos += 1
        return tok

    def _peek_op(self, ops: str) -> str | None:
        tok = self._peek()
        if tok is not None and tok[0] == "op" and tok[1] in ops:
            return tok[1]
        return None

    def expression(self) -> float:
        left = self.term()
        while (op := self._peek_op("+-")) is not None:
            self.pos += 1
            right = self.term()
            left = left + right if op == "+" else left - right
        return left

    def term(self) -> float:
        left = self.power()
        while (op := self._peek_op("*/%")) is not None:
            self.pos += 1
            right = self.power()
            if op == "*":
                left *= right
            elif right == 0:
                raise CalcError("Division by zero")
            elif op == "/":
                left /= right
            else:
                left = math.fmod(left, right)
        return left

    def power(self) -> float:
        left = self.unary()
        if self._peek_op("^") is not None:
            self.pos += 1
            left = math.pow(left, self.power())
        return left

    def unary(self) -> float:
        op = self._peek_op("+-")
        if op is not None:
            self.pos += 1
            val = self.unary()
            return -val if op == "-" else val
        return self.primary()

    def primary(self) -> float:
        tok = self._next()
        if tok is None:
            raise CalcError("Unexpected end of expression")
        kind, value = tok
        if kind == "num":
            return value
        if kind == "const":
            return CONSTANTS[value]
        if kind == "func":
            fn, arity = FUNCTIONS[value]
            lp = self._next()
            if lp is None or lp[0] != "lparen":
                raise CalcError(f"Expected '(' after function {value}")
            args: list[float] = []
            nxt = self._peek()
            if nxt is not None and nxt[0] != "rparen":
                args.append(self.expression())
                while (nxt := self._peek()) is not None and nxt[0] == "comma":
                    self.pos += 1
                    args.append(self.expression())
            rp = self._next()
            if rp is None or rp[0] != "rparen":
                raise CalcError("Expected ')' after function arguments")
            if len(args) != arity:
                raise CalcError(f"Function {value} expects {arity} argument(s), got {len(args)}")
            return float(fn(*args))
        if kind == "lparen":
            val = self.expression()
            rp = self._next()
            if rp is None or rp[0] != "rparen":
                raise CalcError("Expected ')'")
            return val
        raise CalcError(f"Unexpected token: {value!r}")


def evaluate(expression: str) -> float:
    tokens = tokenize(expression)
    if not tokens:
        raise CalcError("Empty expression")
    try:
        return _Parser(tokens).parse()
    except (OverflowError, ValueError) as e:
        if isinstance(e, CalcError):
            raise
        raise CalcError(str(e)) from e


@dataclass
class CalculateTool:
    spec: ToolSpec = ToolSpec(
        name="calculate",
        description=(
            "Evaluate an arithmetic expression. Supports + - * / % ^, parentheses, PI, E and "
            "sqrt, abs, sin, cos, tan, log, log10, exp, floor, ceil, round, pow, min, max."
        ),
        parameters={
            "type": "object",
            "properties": {
                "expression": {"type": "string", "minLength": 1, "description": "e.g. '2 * (3 + 4) ^ 2'"},
            },
            "required": ["expression"],
        },
    )

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        expression = args["expression"]
        try:
            value = evaluate(expression)
        except CalcError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Calculation error: {e}")
        if not math.isfinite(value):
            return ToolResult.failure(ErrorCode.EXEC_ERROR, "Expression did not result in a valid number.")
        if value.is_integer() and abs(value) < 2 ** 53:
            return ToolResult.success({"expression": expression, "value": int(value)})
        return ToolResult.success({"expression": expression, "value": value})
