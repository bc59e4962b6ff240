# smartcalc.py

"""
Overview of Implementation Approach
-----------------------------------
SmartCalc is a line-oriented integer calculator. Each input line is either a `/command`, an assignment
(`name = value`), a query of a bound variable, or an infix expression. Expressions run through a fixed
pipeline:

    raw line -> Normalizer -> tokens -> validate -> to_postfix (shunting-yard) -> evaluate_postfix -> int

Variables live in a VariableEnvironment that is owned by the REPL and passed explicitly into every call.
Only integers are supported: division truncates toward zero and `^` is integer exponentiation. Repeated
`+`/`-` characters form a single "sign run" operator that collapses to `+` or `-` at evaluation time.
Literals are capped at MAX_LITERAL_DIGITS and every operator result at MAX_RESULT_BITS, so oversized
values fail the line instead of the session.

Modules, Classes, and Functions Implemented
-------------------------------------------
- Error classes: ErrorKind, CalculatorError and one subclass per kind, StackUnderflow
- Stack: Stack
- Tokens: TokenType, Token, Normalizer, normalize
- Validation: validate
- Conversion: to_postfix
- Evaluation: VariableEnvironment, evaluate_postfix, evaluate_expression, evaluate_line
- Outcomes: Value, Bound, Query, Failure, format_outcome
- Configuration: CalculatorConfig, configure_logging
- REPL: REPL (main loop with /help, /vars, /exit)
- Main entry point: main()
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, TypeVar, Union

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ---------------------------
# Error Classes
# ---------------------------

class ErrorKind(Enum):
    """Every way a single input line can fail. The value is the message shown to the user."""
    INVALID_EXPRESSION = "Invalid expression"
    INVALID_IDENTIFIER = "Invalid identifier"
    UNKNOWN_VARIABLE = "Unknown variable"
    INVALID_ASSIGNMENT = "Invalid assignment"
    DIVISION_BY_ZERO = "Division by zero"
    MALFORMED_EXPRESSION = "Malformed expression"
    RESULT_TOO_LARGE = "Result too large"


class CalculatorError(Exception):
    """Base class for calculator errors. Subclasses fix the error kind."""
    kind = ErrorKind.INVALID_EXPRESSION

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind.value)


class InvalidExpressionError(CalculatorError):
    """Unbalanced brackets or a repeated `*`, `/` or `^`."""
    kind = ErrorKind.INVALID_EXPRESSION


class InvalidIdentifierError(CalculatorError):
    """A name that is not made of letters only."""
    kind = ErrorKind.INVALID_IDENTIFIER


class UnknownVariableError(CalculatorError):
    kind = ErrorKind.UNKNOWN_VARIABLE


class InvalidAssignmentError(CalculatorError):
    """Right-hand side of an assignment is neither an integer nor a name."""
    kind = ErrorKind.INVALID_ASSIGNMENT


class DivisionByZeroError(CalculatorError):
    kind = ErrorKind.DIVISION_BY_ZERO


class MalformedExpressionError(CalculatorError):
    """The postfix sequence left too few or too many values on the evaluation stack."""
    kind = ErrorKind.MALFORMED_EXPRESSION


class ResultTooLargeError(CalculatorError):
    """An intermediate or final value exceeds MAX_RESULT_BITS."""
    kind = ErrorKind.RESULT_TOO_LARGE


class StackUnderflow(IndexError):
    """Raised when popping or peeking an empty Stack."""
    pass


# ---------------------------
# Stack
# ---------------------------

T = TypeVar("T")


class Stack(Generic[T]):
    """LIFO stack whose pop/peek raise StackUnderflow instead of IndexError on an empty stack."""

    def __init__(self):
        self._items: List[T] = []

    def push(self, item: T) -> None:
        self._items.append(item)

    def pop(self) -> T:
        if not self._items:
            raise StackUnderflow("pop from empty stack")
        return self._items.pop()

    def peek(self) -> T:
        if not self._items:
            raise StackUnderflow("peek at empty stack")
        return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"


# ---------------------------
# Tokens
# ---------------------------

OPERATOR_CHARS = frozenset("+-*/^")
SIGN_CHARS = frozenset("+-")
SINGLE_OPERATORS = frozenset("*/^")
REPEAT_FORBIDDEN = frozenset("*/^")

# Both stay below the interpreter's int <-> str conversion limit (4300 digits by default).
MAX_LITERAL_DIGITS = 3900
MAX_RESULT_BITS = 13000

# Higher number = binds tighter. Parentheses rank lowest so nothing is popped past them.
PRIORITY: Dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
    "^": 3,
}


class TokenType(Enum):
    NUMBER = "NUMBER"
    IDENTIFIER = "IDENTIFIER"
    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"


@dataclass(frozen=True)
class Token:
    """A lexical token. `value` is set only for NUMBER tokens.

    IDENTIFIER also carries any word that is neither a number nor an operator (for example `a1` or `*-`);
    such words are rejected as invalid identifiers when evaluated.
    """
    type: TokenType
    text: str
    value: Optional[int] = None

    @property
    def is_operand(self) -> bool:
        return self.type in (TokenType.NUMBER, TokenType.IDENTIFIER)

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.text!r})"


def is_number(text: str) -> bool:
    """Decimal digits with at most one leading sign."""
    if text[:1] in ("+", "-"):
        text = text[1:]
    return text.isdecimal()


def parse_literal(text: str) -> int:
    """int() for a string accepted by is_number; raises ValueError past MAX_LITERAL_DIGITS."""
    if len(text.lstrip("+-")) > MAX_LITERAL_DIGITS:
        raise ValueError(f"integer literal longer than {MAX_LITERAL_DIGITS} digits")
    return int(text)


def is_identifier(text: str) -> bool:
    return text.isalpha()


def is_sign_run(text: str) -> bool:
    return bool(text) and all(ch in SIGN_CHARS for ch in text)


def is_operator(text: str) -> bool:
    return text in SINGLE_OPERATORS or is_sign_run(text)


def resolve_sign(run: str) -> str:
    """
    Collapses a sign run to a single operator: any `+` makes it `+`, otherwise an even
    number of `-` is `+` and an odd number is `-`. Other operators are returned unchanged.
    """
    if not is_sign_run(run):
        return run
    if "+" in run or len(run) % 2 == 0:
        return "+"
    return "-"


def priority(token: Token) -> int:
    if token.type is TokenType.OPERATOR:
        return PRIORITY[resolve_sign(token.text)]
    return 0


def _char_class(ch: str) -> Optional[str]:
    if ch.isdecimal():
        return "digit"
    if ch.isalpha():
        return "letter"
    if ch in OPERATOR_CHARS:
        return "operator"
    return None


def _classify(word: str) -> Token:
    if word == "(":
        return Token(TokenType.LPAREN, word)
    if word == ")":
        return Token(TokenType.RPAREN, word)
    if is_number(word):
        try:
            return Token(TokenType.NUMBER, word, parse_literal(word))
        except ValueError as e:
            raise InvalidExpressionError() from e
    if is_operator(word):
        return Token(TokenType.OPERATOR, word)
    return Token(TokenType.IDENTIFIER, word)


class Normalizer:
    """
    Turns a raw input line into whitespace-separated lexical tokens.

    Two input styles are accepted:
      - spaced form (the line contains whitespace, or is a bare number): only parentheses are padded,
        everything else is expected to be separated already;
      - space-less form: a break is inserted between neighbouring characters unless both are digits,
        both are letters, or both are operator characters. `2*(x+10)` becomes `2 * ( x + 10 )`.

    No validation happens here.
    """

    def __init__(self, line: str):
        self.line = line

    def normalize_text(self) -> str:
        text = self.line.strip()
        if is_number(text) or any(ch.isspace() for ch in text):
            return text.replace("(", " ( ").replace(")", " ) ")

        pieces: List[str] = []
        previous: Optional[str] = None
        for ch in text:
            current = _char_class(ch)
            if pieces and current is not None and current == previous:
                pieces[-1] += ch
            else:
                pieces.append(ch)
            previous = current
        return " ".join(pieces)

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        for word in self.normalize_text().split():
            token = _classify(word)
            # `5 - - 3` holds one sign run, same as `5--3`
            if (
                tokens
                and token.type is TokenType.OPERATOR
                and tokens[-1].type is TokenType.OPERATOR
                and is_sign_run(token.text)
                and is_sign_run(tokens[-1].text)
            ):
                tokens[-1] = Token(TokenType.OPERATOR, tokens[-1].text + token.text)
                continue
            tokens.append(token)
        return tokens


def normalize(line: str) -> List[Token]:
    return Normalizer(line).tokenize()


# ---------------------------
# Validation
# ---------------------------

def validate(tokens: List[Token]) -> None:
    """
    Rejects unbalanced brackets and doubled `*`, `/` or `^` (e.g. `2**3`).
    Raises InvalidExpressionError; returns None when the expression is acceptable.
    """
    opened = 0
    closed = 0
    for token in tokens:
        if token.type is TokenType.LPAREN:
            opened += 1
        elif token.type is TokenType.RPAREN:
            closed += 1
            if closed > opened:
                raise InvalidExpressionError()
    if opened != closed:
        raise InvalidExpressionError()

    last = ""
    for ch in " ".join(token.text for token in tokens):
        if ch == last and ch in REPEAT_FORBIDDEN:
            raise InvalidExpressionError()
        last = ch


# ---------------------------
# Conversion (shunting-yard)
# ---------------------------

def _emit(output: List[Token], token: Token) -> None:
    if token.type in (TokenType.LPAREN, TokenType.RPAREN):
        return
    output.append(token)


def to_postfix(tokens: List[Token]) -> List[Token]:
    """
    Converts validated infix tokens to postfix order.

    An operator with higher priority than the stack top is pushed. Otherwise every pending
    operator down to the nearest `(` is emitted first, so `2 ^ 3 ^ 2` is `(2 ^ 3) ^ 2` and
    `1 + 2 ^ 2 * 3` is `(1 + 2 ^ 2) * 3`.
    """
    output: List[Token] = []
    operators: Stack[Token] = Stack()
    try:
        for token in tokens:
            if token.is_operand:
                output.append(token)
            elif token.type is TokenType.LPAREN:
                operators.push(token)
            elif token.type is TokenType.RPAREN:
                while operators.peek().type is not TokenType.LPAREN:
                    _emit(output, operators.pop())
                operators.pop()
            elif not operators or operators.peek().type is TokenType.LPAREN:
                operators.push(token)
            elif priority(token) > priority(operators.peek()):
                operators.push(token)
            else:
                while operators and operators.peek().type is not TokenType.LPAREN:
                    _emit(output, operators.pop())
                operators.push(token)
        while operators:
            _emit(output, operators.pop())
    except StackUnderflow as e:
        raise InvalidExpressionError() from e
    return output


# ---------------------------
# Evaluation
# ---------------------------

class VariableEnvironment:
    """Identifier -> integer bindings for one session. Bindings are only added or overwritten, never removed."""

    def __init__(self, bindings: Optional[Dict[str, int]] = None):
        self._bindings: Dict[str, int] = dict(bindings or {})

    def get(self, name: str) -> Optional[int]:
        return self._bindings.get(name)

    def assign(self, name: str, raw_value: str) -> int:
        """
        Binds `name` to an integer literal or to the current value of another variable.
        The environment is left untouched when any check fails.
        """
        name = name.strip()
        raw_value = raw_value.strip()
        if not is_identifier(name):
            raise InvalidIdentifierError()
        if is_number(raw_value):
            try:
                value = parse_literal(raw_value)
            except ValueError as e:
                raise InvalidAssignmentError() from e
        elif is_identifier(raw_value):
            if raw_value not in self._bindings:
                raise UnknownVariableError()
            value = self._bindings[raw_value]
        else:
            raise InvalidAssignmentError()
        self._bindings[name] = value
        logger.info(f"Bound {name} = {value}")
        return value

    def items(self) -> List[Tuple[str, int]]:
        return sorted(self._bindings.items())

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)


def _divide(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZeroError()
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _power(base: int, exponent: int) -> int:
    if exponent >= 0:
        # |base| ** exponent has at least exponent * (bit_length - 1) + 1 bits
        if abs(base) > 1 and exponent * (abs(base).bit_length() - 1) >= MAX_RESULT_BITS:
            raise ResultTooLargeError()
        return base ** exponent
    # Negative exponent: the real result is truncated toward zero.
    if base == 0:
        raise DivisionByZeroError()
    logger.warning(f"Negative exponent in {base} ^ {exponent}; result truncated to an integer")
    if base == 1:
        return 1
    if base == -1:
        return -1 if exponent % 2 else 1
    return 0


def apply_operator(op: str, a: int, b: int) -> int:
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "/":
        return _divide(a, b)
    if op == "^":
        return _power(a, b)
    raise MalformedExpressionError(f"Unknown operator: {op}")


def evaluate_postfix(postfix: List[Token], env: VariableEnvironment) -> int:
    """Runs a postfix sequence against `env`. Exactly one value must remain at the end."""
    stack: Stack[int] = Stack()
    for token in postfix:
        if token.type is TokenType.NUMBER:
            stack.push(token.value)
        elif token.type is TokenType.IDENTIFIER:
            if not is_identifier(token.text):
                raise InvalidIdentifierError()
            value = env.get(token.text)
            if value is None:
                raise UnknownVariableError()
            stack.push(value)
        elif token.type is TokenType.OPERATOR:
            try:
                b = stack.pop()
                a = stack.pop()
            except StackUnderflow as e:
                raise MalformedExpressionError() from e
            result = apply_operator(resolve_sign(token.text), a, b)
            if result.bit_length() > MAX_RESULT_BITS:
                raise ResultTooLargeError()
            stack.push(result)
        else:
            raise MalformedExpressionError(f"Unexpected token in postfix sequence: {token.text}")
    if len(stack) != 1:
        raise MalformedExpressionError()
    return stack.pop()


def evaluate_expression(line: str, env: VariableEnvironment) -> int:
    tokens = normalize(line)
    validate(tokens)
    postfix = to_postfix(tokens)
    logger.debug(f"Postfix for {line.strip()!r}: {' '.join(token.text for token in postfix)}")
    return evaluate_postfix(postfix, env)


# ---------------------------
# Outcomes
# ---------------------------

@dataclass(frozen=True)
class Value:
    """Result of an expression."""
    value: int


@dataclass(frozen=True)
class Bound:
    """An assignment succeeded."""
    name: str
    value: int


@dataclass(frozen=True)
class Query:
    """A bare variable name was looked up."""
    name: str
    value: int


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


Outcome = Union[Value, Bound, Query, Failure]


def evaluate_line(line: str, env: VariableEnvironment) -> Outcome:
    """
    Evaluates one non-command line.

    Lines containing `=` are assignments split on the first `=`; a line that is exactly a bound
    name is a query; anything else goes through the expression pipeline. Errors never escape:
    they come back as a Failure and leave `env` as it was.
    """
    try:
        if "=" in line:
            name, raw_value = line.split("=", 1)
            value = env.assign(name, raw_value)
            return Bound(name.strip(), value)
        name = line.strip()
        if name in env:
            return Query(name, env.get(name))
        return Value(evaluate_expression(line, env))
    except CalculatorError as e:
        logger.debug(f"{e.kind.name} for {line.strip()!r}: {e}")
        return Failure(e.kind, str(e))


def format_outcome(outcome: Outcome) -> Optional[str]:
    """Text printed for an outcome; assignments print nothing."""
    if isinstance(outcome, (Value, Query)):
        try:
            return str(outcome.value)
        except ValueError:
            return ErrorKind.RESULT_TOO_LARGE.value
    if isinstance(outcome, Failure):
        return outcome.message
    return None


# ---------------------------
# Configuration
# ---------------------------

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _stdin_is_tty() -> bool:
    isatty = getattr(sys.stdin, "isatty", None)
    return bool(isatty and isatty())


class CalculatorConfig(BaseModel):
    """Settings for the REPL. Read from SMARTCALC_* environment variables (and a .env file) by from_env()."""
    prompt: str = "> "
    log_level: str = "WARNING"
    show_banner: bool = True
    interactive: bool = Field(default_factory=_stdin_is_tty)

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, **overrides) -> "CalculatorConfig":
        """Builds a config from the environment; keyword overrides that are not None win."""
        load_dotenv()
        env_names = {
            "prompt": "SMARTCALC_PROMPT",
            "log_level": "SMARTCALC_LOG_LEVEL",
            "show_banner": "SMARTCALC_BANNER",
            "interactive": "SMARTCALC_INTERACTIVE",
        }
        values = {field: os.environ[var] for field, var in env_names.items() if var in os.environ}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


# ---------------------------
# REPL
# ---------------------------

BANNER = "SmartCalc integer calculator. Type /help for instructions, /exit to quit."

HELP_TEXT = """
SmartCalc Help
--------------
Enter an expression to evaluate it with integer arithmetic:
  Operators:      + - * / ^ and parentheses
  Precedence:     ^ binds tighter than * and /, which bind tighter than + and -
  Grouping:       an operator that does not outrank the one before it closes everything pending
                  inside the current parentheses (2 ^ 3 ^ 2 = 64, 1 + 2 ^ 2 * 3 = 15)
  Division:       truncates toward zero (7 / 2 = 3, -7 / 2 = -3)
  Sign runs:      repeated signs collapse (5 -- 3 = 8, 5 --- 3 = 2, 5 +- 3 = 8)
  Spacing:        either separate every token (3 + 4 * 2) or use none at all (3+4*2)

Variables (names are letters only):
  a = 5           bind a number
  b = a           copy the current value of another variable
  a               show a value

Commands:
  /help           show this message
  /vars           list variables
  /exit           quit
"""

COMMANDS = ("/help", "/vars", "/exit")


class REPL:
    """Reads lines, dispatches /commands, and prints evaluation results until /exit or end of input."""

    def __init__(self, config: Optional[CalculatorConfig] = None, env: Optional[VariableEnvironment] = None):
        self.config = config or CalculatorConfig()
        self.env = env if env is not None else VariableEnvironment()
        self.running = True
        self.session: Optional[PromptSession] = None
        if self.config.interactive:
            self.session = PromptSession(history=InMemoryHistory())

    def _run_command(self, line: str) -> str:
        command = line[1:].strip().lower()
        if command == "help":
            return HELP_TEXT.strip()
        if command == "vars":
            items = self.env.items()
            if not items:
                return "(no variables)"
            return "\n".join(f"{name} = {value}" for name, value in items)
        if command == "exit":
            self.running = False
            return "Bye!"
        logger.debug(f"Unknown command {line!r}")
        return "Unknown command"

    def handle_line(self, line: str) -> Optional[str]:
        """Processes one input line and returns the text to print, if any."""
        stripped = line.strip()
        if not stripped:
            return None
        if stripped.startswith("/"):
            return self._run_command(stripped)
        return format_outcome(evaluate_line(line, self.env))

    def _read_line(self) -> str:
        if self.session is not None:
            words = list(COMMANDS) + [name for name, _ in self.env.items()]
            return self.session.prompt(self.config.prompt, completer=WordCompleter(words, WORD=True))
        return input(self.config.prompt)

    def run(self) -> int:
        """Main loop. Returns the process exit status."""
        if self.config.show_banner:
            print(BANNER)
        while self.running:
            try:
                line = self._read_line()
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print()
                break
            out = self.handle_line(line)
            if out is not None:
                print(out)
        return 0


# ---------------------------
# Main Entry Point
# ---------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive integer calculator with variables.")
    parser.add_argument("--prompt", type=str, help="Prompt shown before each line (default: '> ').")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        help="Logging level for diagnostics written to stderr (default: WARNING).",
    )
    parser.add_argument("--no-banner", action="store_true", help="Do not print the welcome banner.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    try:
        config = CalculatorConfig.from_env(
            prompt=args.prompt,
            log_level=args.log_level,
            show_banner=False if args.no_banner else None,
        )
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)
    logger.debug(f"Starting with {config!r}")
    return REPL(config).run()


if __name__ == "__main__":
    raise SystemExit(main())
