# grapher/expressions/parser.py
"""
Arithmetic expression parser and evaluator.

Expression text such as "x^2 + y^2 <= 1" or "sin(theta) * 2" is tokenized,
parsed by recursive descent into an AstNode tree, and compiled into nested
closures for fast repeated evaluation. The parser honours the usual
precedence rules, from loosest to tightest:

    ||   &&   < <= > >= != ==   + -   * / %   unary - + !   ^ (right-assoc)

`**` is accepted as an alias of `^`. Identifiers followed by '(' are calls to
functions of the FunctionLibrary; any other identifier is either a library
constant or a free variable bound at evaluation time.
"""
import operator
import math
import re
from typing import Callable, FrozenSet, List, Mapping, Union

from ..core import EvaluationFailure, ParseError
from .base import FunctionLibrary


## --- AST Representation ---
class AstNode:
    """
    A node in the Abstract Syntax Tree of an expression.

    Operators and function calls carry their operands in `args`; variables
    and constants are nodes with an empty argument list. Number literals are
    stored directly as floats.

    Attributes:
        name (str): Operator symbol, function name or identifier
        args (list): Operands (AstNodes or floats)

    Examples:
        >>> AstNode('+', [AstNode('x', []), 1.0])
        AstNode('+', [AstNode('x', []), 1.0])
    """
    def __init__(self, name: str, args: list):
        self.name = name
        self.args = args

    def __repr__(self):
        return f"AstNode('{self.name}', {self.args})"

    def __eq__(self, other):
        return isinstance(other, AstNode) and self.name == other.name and self.args == other.args


_TOKEN_RE = re.compile(
    r"\s*("
    r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"  # numbers
    r"|[A-Za-z_][A-Za-z_0-9]*"  # identifiers
    r"|\*\*|&&|\|\||<=|>=|==|!=|[-+*/%^<>!(),]"  # operators and punctuation
    r")"
)
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z_0-9]*")
_COMPARISONS = {"<", "<=", ">", ">=", "==", "!="}
_BOOLEAN_OPS = _COMPARISONS | {"&&", "||", "!"}
_BINARY = {
    "+": operator.add, "-": operator.sub,
    "*": operator.mul, "/": operator.truediv, "%": operator.mod,
    "^": math.pow,
    "<": operator.lt, "<=": operator.le, ">": operator.gt, ">=": operator.ge,
    "==": operator.eq, "!=": operator.ne,
}

Params = Mapping[str, float]
Compiled = Callable[[Params], Union[float, bool]]


def tokenize(text: str) -> List[str]:
    """
    Splits expression text into tokens.

    Raises:
        ParseError: If the text contains a character that starts no token

    Examples:
        >>> tokenize("2*x^2 <= y")
        ['2', '*', 'x', '^', '2', '<=', 'y']
    """
    text = text.rstrip()
    tokens, pos = [], 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ParseError(f"Unexpected character '{text[pos]}' at position {pos} in '{text}'")
        tokens.append(match.group(1))
        pos = match.end()
    return tokens


def _atom(token: str) -> Union[float, AstNode]:
    """Converts a number token to a float and any other token to an AstNode."""
    if token[0].isdigit() or token[0] == ".":
        return float(token)
    return AstNode(token, [])


## --- Recursive Descent Parser ---
class _Parser:
    def __init__(self, tokens: List[str], library: FunctionLibrary, text: str):
        self.tokens = tokens
        self.library = library
        self.text = text
        self.pos = 0

    def _peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise ParseError(f"Unexpected end of expression '{self.text}'")
        self.pos += 1
        return token

    def _accept(self, *options: str) -> Union[str, None]:
        if self._peek() in options:
            return self._take()
        return None

    def _expect(self, token: str):
        found = self._take()
        if found != token:
            raise ParseError(f"Expected '{token}' but found '{found}' in '{self.text}'")

    def parse(self) -> Union[AstNode, float]:
        if not self.tokens:
            raise ParseError("Empty expression")
        node = self._or()
        if self.pos < len(self.tokens):
            raise ParseError(f"Unexpected tokens at end of expression: {' '.join(self.tokens[self.pos:])}")
        return node

    def _or(self):
        node = self._and()
        while self._accept("||"):
            node = AstNode("||", [node, self._and()])
        return node

    def _and(self):
        node = self._comparison()
        while self._accept("&&"):
            node = AstNode("&&", [node, self._comparison()])
        return node

    def _comparison(self):
        node = self._sum()
        op = self._accept(*_COMPARISONS)
        if op:
            node = AstNode(op, [node, self._sum()])
        return node

    def _sum(self):
        node = self._product()
        while True:
            op = self._accept("+", "-")
            if not op:
                return node
            node = AstNode(op, [node, self._product()])

    def _product(self):
        node = self._unary()
        while True:
            op = self._accept("*", "/", "%")
            if not op:
                return node
            node = AstNode(op, [node, self._unary()])

    def _unary(self):
        op = self._accept("-", "+", "!")
        if op == "+":
            return self._unary()
        if op:
            return AstNode(op, [self._unary()])
        return self._power()

    def _power(self):
        base = self._primary()
        if self._accept("^", "**"):
            return AstNode("^", [base, self._unary()])
        return base

    def _primary(self):
        token = self._take()
        if token == "(":
            node = self._or()
            self._expect(")")
            return node
        node = _atom(token)
        if not isinstance(node, AstNode):
            return node
        if not _IDENTIFIER_RE.fullmatch(token):
            raise ParseError(f"Unexpected '{token}' in '{self.text}'")
        if self._peek() == "(":
            return self._call(token)
        return node

    def _call(self, name: str) -> AstNode:
        if name not in self.library.functions:
            raise ParseError(f"Unknown function '{name}' in '{self.text}'")
        self._expect("(")
        args = []
        if self._peek() != ")":
            args.append(self._or())
            while self._accept(","):
                args.append(self._or())
        self._expect(")")
        arity = self.library.functions[name].arity
        if len(args) != arity:
            raise ParseError(f"Function '{name}' takes {arity} argument(s), got {len(args)}")
        return AstNode(name, args)


## --- Compilation ---
def _compile(node: Union[AstNode, float], library: FunctionLibrary) -> Compiled:
    """Turns an AST into nested closures taking a name -> value binding map."""
    if not isinstance(node, AstNode):
        value = node
        return lambda params: value

    args = [_compile(arg, library) for arg in node.args]
    name = node.name

    if len(args) == 2 and name in _BINARY:
        op, (lhs, rhs) = _BINARY[name], args
        return lambda params: op(lhs(params), rhs(params))
    if name == "&&":
        lhs, rhs = args
        return lambda params: bool(lhs(params)) and bool(rhs(params))
    if name == "||":
        lhs, rhs = args
        return lambda params: bool(lhs(params)) or bool(rhs(params))
    if name == "-" and len(args) == 1:
        operand = args[0]
        return lambda params: -operand(params)
    if name == "!":
        operand = args[0]
        return lambda params: not operand(params)

    if args:
        fn = library.functions[name].fn
        if len(args) == 1:
            operand = args[0]
            return lambda params: fn(operand(params))
        return lambda params: fn(*(arg(params) for arg in args))

    if name in library.constants:
        value = library.constants[name]
        return lambda params: value
    return lambda params: params[name]


def _identifiers(node) -> FrozenSet[str]:
    if not isinstance(node, AstNode):
        return frozenset()
    if not node.args:
        return frozenset([node.name])
    names = frozenset()
    for arg in node.args:
        names |= _identifiers(arg)
    return names


class Expression:
    """
    A parsed, ready-to-evaluate expression.

    Attributes:
        text (str): The source text
        ast (AstNode | float): The parsed tree
        token_count (int): Number of syntactic tokens in the text
        variables (frozenset): Every identifier that is not a function call,
            library constants included
        returns_bool (bool): Whether the top-level operation yields a boolean

    Examples:
        >>> expr = parse_expression("x^2 + pi", default_library())
        >>> sorted(expr.variables), expr.token_count
        (['pi', 'x'], 5)
        >>> expr.evaluate({"x": 2.0})
        7.141592653589793
    """
    def __init__(self, text: str, ast: Union[AstNode, float], token_count: int, library: FunctionLibrary):
        self.text = text
        self.ast = ast
        self.token_count = token_count
        self.variables = _identifiers(ast)
        self.returns_bool = isinstance(ast, AstNode) and ast.name in _BOOLEAN_OPS
        self._compiled = _compile(ast, library)

    def __repr__(self):
        return f"Expression('{self.text}')"

    def evaluate(self, params: Params) -> Union[float, bool]:
        """
        Evaluates the expression for one binding of its free variables.

        Raises:
            EvaluationFailure: On a domain error, division by zero, overflow
                or a variable missing from `params`
        """
        try:
            return self._compiled(params)
        except KeyError as e:
            raise EvaluationFailure(f"Unknown variable {e} in '{self.text}'") from e
        except (ArithmeticError, ValueError, TypeError, RecursionError) as e:
            raise EvaluationFailure(f"Cannot evaluate '{self.text}': {e}") from e


def parse_expression(text: str, library: FunctionLibrary) -> Expression:
    """
    Parses expression text into an Expression.

    Raises:
        ParseError: If the text is empty, malformed, calls an unknown function
            or passes the wrong number of arguments, or if it nests deeper
            than the interpreter can walk
    """
    tokens = tokenize(text)
    try:
        ast = _Parser(list(tokens), library, text).parse()
        return Expression(text, ast, len(tokens), library)
    except RecursionError:
        raise ParseError(f"Expression too deeply nested: '{text[:50]}...'") from None
