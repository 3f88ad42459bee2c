"""
Four-function expression engine
Tokenizer, shunting-yard converter, RPN evaluator and display formatter
"""

import logging
import math
import operator
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Sequence, Union

logger = logging.getLogger(__name__)

SIGNIFICANT_DIGITS = 12
ERROR_DISPLAY = "Error"
PLAIN_NOTATION_MIN = 1e-6
PLAIN_NOTATION_MAX = 1e21

# ==========================================
# ERRORS
# ==========================================

class EvaluationError(ValueError):
    """Base class for recoverable expression failures"""


class MismatchedParenthesesError(EvaluationError):
    def __init__(self, message: str = "Mismatched parentheses"):
        super().__init__(message)


class InvalidExpressionError(EvaluationError):
    def __init__(self, message: str = "Invalid expression"):
        super().__init__(message)


class DivisionByZeroError(EvaluationError):
    def __init__(self, message: str = "Division by zero"):
        super().__init__(message)

# ==========================================
# TOKENS AND OPERATOR TABLE
# ==========================================

class TokenType(Enum):
    NUMBER = "NUMBER"
    OPERATOR = "OPERATOR"
    NEGATE = "NEGATE"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"


class Associativity(Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: Union[str, float]
    position: int


@dataclass(frozen=True)
class OperatorSpec:
    precedence: int
    associativity: Associativity


OPERATORS = MappingProxyType({
    '+': OperatorSpec(2, Associativity.LEFT),
    '-': OperatorSpec(2, Associativity.LEFT),
    '*': OperatorSpec(3, Associativity.LEFT),
    '/': OperatorSpec(3, Associativity.LEFT),
})

# Binds tighter than any binary operator
NEGATE_PRECEDENCE = max(spec.precedence for spec in OPERATORS.values()) + 1

BINARY_OPERATIONS: Dict[str, Callable[[float, float], float]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
}

_SINGLE_CHAR_TOKENS = {
    '+': TokenType.OPERATOR,
    '-': TokenType.OPERATOR,
    '*': TokenType.OPERATOR,
    '/': TokenType.OPERATOR,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
}

_NUMERIC_CHARS = frozenset('0123456789.')
_UNARY_CONTEXT = (TokenType.LPAREN, TokenType.OPERATOR, TokenType.NEGATE)
_NUMBER_PREFIX = re.compile(r'\d+(?:\.\d*)?|\.\d+')
_EXPONENT_PADDING = re.compile(r'e([+-])0+(?=\d)')

# ==========================================
# TOKENIZER
# ==========================================

def parse_literal(literal: str) -> float:
    """Parse the longest numeric prefix of a digit/dot run.

    '1.2.3' reads as 1.2 and a run with no digits before or after a single
    dot ('.', '..') reads as NaN, which later formats as Error.
    """
    match = _NUMBER_PREFIX.match(literal)
    if not match:
        logger.debug(f"Unparseable numeric literal: {literal!r}")
        return math.nan
    return float(match.group())


def _flush(tokens: tuple[Token, ...], literal: str, start: int) -> tuple[Token, ...]:
    if not literal:
        return tokens
    return tokens + (Token(TokenType.NUMBER, parse_literal(literal), start),)


def tokenize(expression: str) -> tuple[Token, ...]:
    """Convert an expression string into an immutable token tuple.

    Characters outside digits, '.', '+-*/' and parentheses are dropped, so
    this never fails. A '-' is a negation when nothing precedes it or when
    it follows '(', an operator or another negation.
    """
    tokens: tuple[Token, ...] = ()
    literal = ""
    start = 0

    for i, char in enumerate(expression):
        if char in _NUMERIC_CHARS:
            if not literal:
                start = i
            literal += char
            continue

        tokens = _flush(tokens, literal, start)
        literal = ""

        token_type = _SINGLE_CHAR_TOKENS.get(char)
        if token_type is None:
            continue

        if char == '-' and (not tokens or tokens[-1].type in _UNARY_CONTEXT):
            token_type = TokenType.NEGATE
        tokens += (Token(token_type, char, i),)

    return _flush(tokens, literal, start)

# ==========================================
# INFIX TO POSTFIX (SHUNTING-YARD)
# ==========================================

def _precedence(token: Token) -> int:
    if token.type == TokenType.NEGATE:
        return NEGATE_PRECEDENCE
    return OPERATORS[token.value].precedence


def to_postfix(tokens: Sequence[Token]) -> tuple[Token, ...]:
    """Reorder infix tokens into Reverse Polish order.

    A negation is pushed without popping anything, so chains like '--5'
    stay right-associative, while an incoming binary operator pops it as
    the highest-precedence entry on the stack.
    """
    output: list[Token] = []
    stack: list[Token] = []

    for token in tokens:
        if token.type == TokenType.NUMBER:
            output.append(token)

        elif token.type == TokenType.OPERATOR:
            spec = OPERATORS[token.value]
            while stack and stack[-1].type in (TokenType.OPERATOR, TokenType.NEGATE):
                top = _precedence(stack[-1])
                if top > spec.precedence or (
                        top == spec.precedence and spec.associativity == Associativity.LEFT):
                    output.append(stack.pop())
                else:
                    break
            stack.append(token)

        elif token.type in (TokenType.NEGATE, TokenType.LPAREN):
            stack.append(token)

        elif token.type == TokenType.RPAREN:
            while stack and stack[-1].type != TokenType.LPAREN:
                output.append(stack.pop())
            if not stack:
                raise MismatchedParenthesesError(
                    f"Mismatched parentheses: unexpected ')' at position {token.position}")
            stack.pop()

    while stack:
        token = stack.pop()
        if token.type == TokenType.LPAREN:
            raise MismatchedParenthesesError(
                f"Mismatched parentheses: unclosed '(' at position {token.position}")
        output.append(token)

    return tuple(output)

# ==========================================
# POSTFIX EVALUATOR
# ==========================================

def evaluate_postfix(postfix: Sequence[Token]) -> float:
    """Evaluate an RPN token sequence to a single float"""
    stack: list[float] = []

    for token in postfix:
        if token.type == TokenType.NUMBER:
            stack.append(token.value)

        elif token.type == TokenType.NEGATE:
            if not stack:
                raise InvalidExpressionError(
                    f"Invalid expression: missing operand for '-' at position {token.position}")
            stack.append(-stack.pop())

        elif token.type == TokenType.OPERATOR:
            if len(stack) < 2:
                raise InvalidExpressionError(
                    f"Invalid expression: missing operand for '{token.value}' "
                    f"at position {token.position}")
            b = stack.pop()
            a = stack.pop()
            if token.value == '/' and b == 0:
                raise DivisionByZeroError()
            stack.append(BINARY_OPERATIONS[token.value](a, b))

        else:
            raise InvalidExpressionError(f"Unexpected token in postfix: {token.value}")

    if len(stack) != 1:
        raise InvalidExpressionError(
            "Invalid expression: empty" if not stack
            else f"Invalid expression: {len(stack)} values left without an operator")

    return stack[0]

# ==========================================
# DISPLAY FORMATTING
# ==========================================

def format_number(value: float) -> str:
    """Render a result with at most 12 significant digits.

    Non-finite values become 'Error'. Magnitudes in [1e-6, 1e21) print as
    plain decimals so the display can be fed back into an expression;
    anything outside uses an unpadded exponent ('1.5e-7', '1e+21').
    """
    if not math.isfinite(value):
        return ERROR_DISPLAY

    rounded = float(f"{value:.{SIGNIFICANT_DIGITS}g}")
    if rounded.is_integer() and abs(rounded) < PLAIN_NOTATION_MAX:
        return str(int(rounded))
    if PLAIN_NOTATION_MIN <= abs(rounded) < PLAIN_NOTATION_MAX:
        return format(Decimal(repr(rounded)), 'f')
    return _EXPONENT_PADDING.sub(r'e\1', repr(rounded))

# ==========================================
# PIPELINE
# ==========================================

def evaluate(expression: str) -> str:
    """Evaluate an expression and return its display string.

    Raises the first EvaluationError met while converting or evaluating.
    """
    tokens = tokenize(expression)
    logger.debug(f"Tokens for {expression!r}: {[t.value for t in tokens]}")

    postfix = to_postfix(tokens)
    logger.debug(f"RPN: {' '.join('neg' if t.type == TokenType.NEGATE else str(t.value) for t in postfix)}")

    result = evaluate_postfix(postfix)
    if not math.isfinite(result):
        logger.warning(f"Non-finite result for {expression!r}: {result}")

    return format_number(result)
