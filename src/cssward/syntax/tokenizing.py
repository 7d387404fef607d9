"""Tokenization of CSS text, after sections 3 and 4 of CSS Syntax Level 3 (http://drafts.csswg.org/css-syntax/#tokenization).

_All_ input is preserved as tokens are vended: comments are not tokens in their own right, but their text is folded into the `source` of an adjacent token, and filtering of code points is made reversible (see `FilteredCodePoint`), so that concatenating the `source` of every token yields the input text exactly.

Tokens know their canonical textual form too (see `serialize`), which is what a token without `source` (e.g. one created programmatically) is written as. Minified serialization uses the shortest spelling of numbers instead of their original representation.
"""

from .preprocessing import DataSource, FilteredCodePoint, Position
from ..utils import CP, Appender, assert_all_instance_of, BufferedPeekingReader, is_surrogate_code_point_ordinal, join, PeekingUnreadingReader

import logging
import math
import re
from abc import ABC
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import StrEnum
from functools import singledispatch
from itertools import takewhile
from typing import ClassVar, TypeVar

logger = logging.getLogger(__name__)

ParseErrorRecord = tuple[str, int, int] # Error tag, line and column

class HashTokenType(StrEnum):
    id = 'id'
    unrestricted = 'unrestricted'

class NumberTokenType(StrEnum):
    integer = 'integer'
    number = 'number'

RECURSION_DEPTH_EXCEEDED = 'recursion-depth-exceeded'

@dataclass(frozen=True, kw_only=True, slots=True)
class Token(ABC):
    """Base class of tokens, the immutable units of CSS text that the tokenizer vends and the parser consumes.

    Each token class has a fixed `kind` (e.g. `ident` or `{`) and validates its attributes on construction, see `validate`.

    Tokens are values: they are immutable, copying one returns the token itself, and "modifying" one (e.g. with `copy_with_significance`) creates a new token.
    """
    kind: ClassVar[str] # The name of the type of token, as featured in messages
    source: str | None = field(default=None, compare=False) # The original text in the code point stream that the token is formed from, if any
    position: Position = (-1, -1)
    significant: bool = True # Whether the token carries meaning in the grammar it was matched against; insignificant tokens are dropped by minified serialization
    urange_length: int = field(default=0, compare=False) # Number of tokens (this one included) that together spell a unicode-range, see `UrangeMatcher`
    def __post_init__(self) -> None:
        validate(self)
    def __copy__(self) -> 'Token':
        return self
    def __deepcopy__(self, memo) -> 'Token':
        return self
    def __str__(self) -> str:
        return self.source if self.source is not None else serialize(self)
    def copy_with_significance(self, significant: bool) -> 'Token':
        """Get a token like this one but with the specified significance; the token itself is returned when its significance already matches."""
        return self if self.significant == significant else replace(self, significant=significant)
    def with_urange_length(self, length: int) -> 'Token':
        """Get a token like this one, recording that it begins a unicode-range spanning `length` tokens.

        The length is never reduced, since a longer candidate match of the same range may have been recorded already.
        """
        return self if length <= self.urange_length else replace(self, urange_length=length)
    def to_token_array(self) -> list['Token']:
        return [ self ]
    def to_component_value_array(self) -> list['Token']:
        """:raises ValueError: for tokens that may only appear in component values as part of a function or a simple block"""
        if isinstance(self, (FunctionToken, OpenBracketToken, OpenParenToken, OpenBraceToken)):
            raise ValueError(f'Token type "{self.kind}" is not valid in a ComponentValueList.')
        return [ self ]
    @staticmethod
    def separate(first: 'Token', second: 'Token') -> bool:
        """Determine whether two tokens written one after the other would be tokenized back as something other than the two tokens, requiring an empty comment between them.

        See also http://drafts.csswg.org/css-syntax/#serialization.
        """
        def delim(token: Token, *values: str) -> bool:
            return isinstance(token, DelimToken) and token.value in values
        wordlike = (IdentToken, FunctionToken, URLToken, BadURLToken)
        numeric = (NumberToken, PercentageToken, DimensionToken)
        match first:
            case IdentToken():
                return isinstance(second, (*wordlike, *numeric, CDCToken, OpenParenToken, HashToken)) or delim(second, '-')
            case HashToken() | DimensionToken():
                return isinstance(second, (*wordlike, *numeric, CDCToken, HashToken)) or delim(second, '-')
            case AtKeywordToken():
                return isinstance(second, (*wordlike, *numeric, CDCToken)) or delim(second, '-')
            case NumberToken():
                return isinstance(second, (*wordlike, *numeric, HashToken)) or delim(second, '%')
            case DelimToken(value='#' | '-'):
                return isinstance(second, (*wordlike, *numeric)) or delim(second, '-')
            case DelimToken(value='@'):
                return isinstance(second, wordlike) or delim(second, '-')
            case DelimToken(value='.' | '+'):
                return isinstance(second, numeric)
            case DelimToken(value='/'):
                return delim(second, '*')
            case DelimToken(value='<'):
                return isinstance(second, wordlike) or delim(second, '!', '/')
            case _:
                return False

@dataclass(frozen=True, kw_only=True, slots=True)
class IdentToken(Token):
    kind = 'ident'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class FunctionToken(Token):
    kind = 'function'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class AtKeywordToken(Token):
    kind = 'at-keyword'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class HashToken(Token):
    kind = 'hash'
    value: str
    type: HashTokenType = HashTokenType.unrestricted

@dataclass(frozen=True, kw_only=True, slots=True)
class StringToken(Token):
    kind = 'string'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class BadStringToken(Token):
    kind = 'bad-string'
    text: ClassVar[str] = '\'badstring\n'

@dataclass(frozen=True, kw_only=True, slots=True)
class URLToken(Token):
    kind = 'url'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class BadURLToken(Token):
    kind = 'bad-url'
    text: ClassVar[str] = 'url(badurl\'\')'

@dataclass(frozen=True, kw_only=True, slots=True)
class DelimToken(Token):
    kind = 'delim'
    value: str

@dataclass(frozen=True, kw_only=True, slots=True)
class NumberToken(Token):
    kind = 'number'
    value: int | float
    type: NumberTokenType = NumberTokenType.integer
    representation: str | None = None # The number as written in the source, e.g. `+.50`

@dataclass(frozen=True, kw_only=True, slots=True)
class PercentageToken(Token):
    kind = 'percentage'
    value: int | float
    type: NumberTokenType = NumberTokenType.integer
    representation: str | None = None

@dataclass(frozen=True, kw_only=True, slots=True)
class DimensionToken(Token):
    kind = 'dimension'
    value: int | float
    unit: str
    type: NumberTokenType = NumberTokenType.integer
    representation: str | None = None

@dataclass(frozen=True, kw_only=True, slots=True)
class WhitespaceToken(Token):
    kind = 'whitespace'
    text: ClassVar[str] = ' '

@dataclass(frozen=True, kw_only=True, slots=True)
class CDOToken(Token):
    kind = 'CDO'
    text: ClassVar[str] = '<!--'

@dataclass(frozen=True, kw_only=True, slots=True)
class CDCToken(Token):
    kind = 'CDC'
    text: ClassVar[str] = '-->'

@dataclass(frozen=True, kw_only=True, slots=True)
class ColonToken(Token):
    kind = 'colon'
    text: ClassVar[str] = ':'

@dataclass(frozen=True, kw_only=True, slots=True)
class SemicolonToken(Token):
    kind = 'semicolon'
    text: ClassVar[str] = ';'

@dataclass(frozen=True, kw_only=True, slots=True)
class CommaToken(Token):
    kind = 'comma'
    text: ClassVar[str] = ','

@dataclass(frozen=True, kw_only=True, slots=True)
class OpenBracketToken(Token):
    kind = '['
    text: ClassVar[str] = '['
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class CloseBracketToken(Token):
    kind = ']'
    text: ClassVar[str] = ']'
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class OpenParenToken(Token):
    kind = '('
    text: ClassVar[str] = '('
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class CloseParenToken(Token):
    kind = ')'
    text: ClassVar[str] = ')'
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class OpenBraceToken(Token):
    kind = '{'
    text: ClassVar[str] = '{'
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class CloseBraceToken(Token):
    kind = '}'
    text: ClassVar[str] = '}'
    mirror_type: ClassVar[type[Token]]

@dataclass(frozen=True, kw_only=True, slots=True)
class IncludeMatchToken(Token):
    kind = 'include-match'
    text: ClassVar[str] = '~='

@dataclass(frozen=True, kw_only=True, slots=True)
class DashMatchToken(Token):
    kind = 'dash-match'
    text: ClassVar[str] = '|='

@dataclass(frozen=True, kw_only=True, slots=True)
class PrefixMatchToken(Token):
    kind = 'prefix-match'
    text: ClassVar[str] = '^='

@dataclass(frozen=True, kw_only=True, slots=True)
class SuffixMatchToken(Token):
    kind = 'suffix-match'
    text: ClassVar[str] = '$='

@dataclass(frozen=True, kw_only=True, slots=True)
class SubstringMatchToken(Token):
    kind = 'substring-match'
    text: ClassVar[str] = '*='

@dataclass(frozen=True, kw_only=True, slots=True)
class ColumnToken(Token):
    kind = 'column'
    text: ClassVar[str] = '||'

@dataclass(frozen=True, kw_only=True, slots=True)
class PreprocessorCommentToken(Token):
    """Class of tokens for comments that start with `@` (e.g. `/*@noflip*/`), which are directives to CSS preprocessors rather than commentary.

    These are only produced when the tokenizer is asked to (see `Tokenizer`), all other comments are folded into token sources.
    """
    kind = 'preprocessor-comment'
    value: str # The text between `/*` and `*/`

@dataclass(frozen=True, kw_only=True, slots=True)
class EOFToken(Token):
    """The token that ends every token stream; a stream cut short by the parser ends with one carrying the reason for it."""
    kind = 'EOF'
    text: ClassVar[str] = ''
    reason: str | None = None

CloseBraceToken.mirror_type = OpenBraceToken
CloseBracketToken.mirror_type = OpenBracketToken
CloseParenToken.mirror_type = OpenParenToken
OpenBraceToken.mirror_type = CloseBraceToken
OpenBracketToken.mirror_type = CloseBracketToken
OpenParenToken.mirror_type = CloseParenToken

NumericToken = NumberToken | PercentageToken | DimensionToken

number_pattern = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')

@singledispatch
def validate(token: Token) -> None:
    """Check the attributes of a newly created token.

    :raises ValueError: describing the first problem found
    """
    if not (isinstance(token.position, tuple) and len(token.position) == 2 and all(type(n) is int for n in token.position)):
        raise ValueError('Position must be a tuple of two integers')

@validate.register
def _(token: IdentToken | FunctionToken | AtKeywordToken | StringToken | URLToken | PreprocessorCommentToken) -> None:
    validate_value(token)
    validate.dispatch(Token)(token)

@validate.register
def _(token: HashToken) -> None:
    validate_value(token)
    if token.type not in tuple(HashTokenType):
        raise ValueError(f'Invalid type flag for Token type {token.kind}')
    validate.dispatch(Token)(token)

@validate.register
def _(token: DelimToken) -> None:
    validate_value(token)
    if len(token.value) != 1:
        raise ValueError(f'Value for Token type {token.kind} must be a single character')
    validate.dispatch(Token)(token)

@validate.register
def _(token: NumberToken | PercentageToken | DimensionToken) -> None:
    value = token.value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f'Token type {token.kind} requires a numeric value')
    if token.type not in tuple(NumberTokenType):
        raise ValueError(f'Invalid type flag for Token type {token.kind}')
    if token.type == NumberTokenType.integer and not isinstance(value, int):
        raise ValueError('Type is \'integer\', but value supplied is not an integer')
    if token.representation is not None:
        if not (isinstance(token.representation, str) and number_pattern.fullmatch(token.representation)):
            raise ValueError('Representation must be numeric')
        if token.type == NumberTokenType.number and not representation_matches(token):
            raise ValueError(f'Representation "{token.representation}" does not match value "{value:.15g}"')
    if isinstance(token, DimensionToken) and not (isinstance(token.unit, str) and token.unit):
        raise ValueError(f'Token type {token.kind} requires a unit')
    validate.dispatch(Token)(token)

@validate.register
def _(token: EOFToken) -> None:
    if token.reason not in (None, RECURSION_DEPTH_EXCEEDED):
        raise ValueError(f'Invalid reason for Token type {token.kind}')
    validate.dispatch(Token)(token)

def validate_value(token: Token) -> None:
    if not isinstance(getattr(token, 'value'), str):
        raise ValueError(f'Token type {token.kind} requires a value')

def representation_matches(token: NumericToken) -> bool:
    assert token.representation is not None
    return float(Decimal(token.representation)) == token.value

@singledispatch
def serialize(token: Token, minify: bool = False) -> str:
    """Produce the canonical text of a token, i.e. text that tokenizes back into an equivalent token.

    :param minify: Whether to use the shortest spelling of numbers rather than their original representation
    """
    return type(token).text # type: ignore # Token types without a fixed form register their own procedure

@serialize.register
def _(token: IdentToken, minify: bool = False) -> str:
    return escape_name(token.value)

@serialize.register
def _(token: FunctionToken, minify: bool = False) -> str:
    return escape_name(token.value) + '('

@serialize.register
def _(token: AtKeywordToken, minify: bool = False) -> str:
    return '@' + escape_name(token.value)

@serialize.register
def _(token: HashToken, minify: bool = False) -> str:
    return '#' + escape_name(token.value, digit_start_allowed=(token.type == HashTokenType.unrestricted))

@serialize.register
def _(token: StringToken, minify: bool = False) -> str:
    return '"' + escape_string(token.value) + '"'

@serialize.register
def _(token: URLToken, minify: bool = False) -> str:
    return 'url("' + escape_string(token.value) + '")'

@serialize.register
def _(token: DelimToken, minify: bool = False) -> str:
    return '\\\n' if token.value == '\\' else token.value

@serialize.register
def _(token: NumberToken, minify: bool = False) -> str:
    return format_number(token, minify)

@serialize.register
def _(token: PercentageToken, minify: bool = False) -> str:
    return format_number(token, minify) + '%'

@serialize.register
def _(token: DimensionToken, minify: bool = False) -> str:
    number = format_number(token, minify)
    unit = escape_name(token.unit)
    if 'e' not in number.lower() and re.match(r'[eE]-?\d', unit):
        unit = '\\' + format(ord(unit[0]), 'x') + ' ' + unit[1:] # Would otherwise be read as an exponent
    return number + unit

@serialize.register
def _(token: PreprocessorCommentToken, minify: bool = False) -> str:
    return '/*' + token.value + '*/'

def escape_name(name: str, *, digit_start_allowed: bool = False) -> str:
    """Escape a name (an ident sequence) for writing it out.

    See http://drafts.csswg.org/cssom/#serialize-an-identifier.
    """
    if name == '-':
        return '\\-'
    def escaped(index: int, cp: CP) -> str:
        if cp < ' ' or cp in ('\x7f', '<', '>'):
            return '\\' + format(ord(cp), 'x') + ' '
        elif is_digit(cp) and not digit_start_allowed and (index == 0 or (index == 1 and name[0] == '-')):
            return '\\' + format(ord(cp), 'x') + ' '
        elif is_ident_code_point(cp):
            return cp
        else:
            return '\\' + cp
    return join(escaped(index, cp) for index, cp in enumerate(name))

def escape_string(value: str) -> str:
    """Escape the contents of a string (or URL) for writing it out between double quotes.

    See http://drafts.csswg.org/cssom/#serialize-a-string.
    """
    def escaped(cp: CP) -> str:
        if cp < ' ' or cp in ('\x7f', '<', '>'):
            return '\\' + format(ord(cp), 'x') + ' '
        elif cp in ('"', '\\'):
            return '\\' + cp
        else:
            return cp
    return join(escaped(cp) for cp in value)

def format_number(token: NumericToken, minify: bool = False) -> str:
    """Get the text of the number of a numeric token.

    The representation the number was written with is used when it is known (and still agrees with the value), otherwise the value is formatted with up to 15 significant digits.
    """
    if token.representation is not None and representation_matches(token):
        text = token.representation
    elif token.type == NumberTokenType.integer:
        text = str(token.value)
    else:
        mantissa, e, exponent = f'{token.value:.15g}'.partition('e')
        if e:
            text = mantissa + ('' if '.' in mantissa else '.0') + 'e' + format(int(exponent), '+d')
        else:
            text = mantissa + ('' if '.' in mantissa else '.0')
    return shortest_number(text) if minify else text

def shortest_number(text: str) -> str:
    """Get the shortest spelling of a number written as `text`, e.g. `.5` for `+0.50`."""
    sign = ''
    if text[:1] in ('+', '-'):
        sign, text = text[0].replace('+', ''), text[1:]
    mantissa, e, exponent = text.partition('e') if 'e' in text else text.partition('E')
    whole, _, fraction = mantissa.partition('.')
    mantissa = (whole.lstrip('0') + ('.' + fraction.rstrip('0') if fraction.rstrip('0') else '')) or '0'
    return sign + mantissa + (('e' + str(int(exponent))) if e else '')

def generate_tokens(input: DataSource | str, *, preprocessor_comments: bool = False, errors: Appender[ParseErrorRecord] | None = None) -> Iterator[Token]:
    """Generate the sequence of tokens of CSS text, ending with the `EOFToken`.

    Implements http://drafts.csswg.org/css-syntax/#css-tokenize. Comments are consumed together with the token that precedes them (or the first token of input, for leading comments) and are retained in the `source` of said token.

    :param input: The text to tokenize or a data source vending its [filtered] code points
    :param preprocessor_comments: Whether to turn comments beginning with `@` into `PreprocessorCommentToken` tokens
    :param errors: Where to record parse errors; each error is recorded as a tuple of a tag and the line and column where the error was encountered
    """
    data_source = input if isinstance(input, DataSource) else DataSource(input)
    reader: PeekingUnreadingReader[FilteredCodePoint] = BufferedPeekingReader(data_source)
    def current_cp() -> FilteredCodePoint:
        """See http://drafts.csswg.org/css-syntax/#current-input-code-point."""
        return consumed[-1]
    def next(n: int) -> str:
        """See http://drafts.csswg.org/css-syntax/#next-input-code-point."""
        return join(reader.peek(n))
    consumed: list[FilteredCodePoint] = [] # Code points that have been consumed for the token being formed
    def consume(n: int) -> None:
        """Consume the next code point(s) from the stream.

        If no code points are available for consumption (the stream is "exhausted"), an empty string signifying the so-called EOF ("end of file", see https://drafts.csswg.org/css-syntax/#eof-code-point) value, is consumed instead.
        """
        nonlocal consumed
        consumed += reader.read(n) or [ FilteredCodePoint('', source='', position=data_source.position) ]
    def reconsume(*cps: FilteredCodePoint) -> None:
        """See http://drafts.csswg.org/css-syntax/#reconsume-the-current-input-code-point."""
        assert cps and list(cps) == consumed[-len(cps):]
        reader.unread(cp for cp in cps if cp)
        del consumed[-len(cps):]
    def error(tag: str, cp: FilteredCodePoint) -> None:
        """Record a parse error encountered at a code point."""
        logger.debug('Tokenization error %s at %s', tag, cp.position)
        if errors is not None:
            errors.append((tag, *cp.position))
    T = TypeVar('T', bound=Token)
    def sourced(cls: type[T]) -> Callable[..., T]:
        """Return a callable that constructs a token of specified class (`cls`) with its `source` and `position` attributes initialized from the consumed code points."""
        return lambda *args, **kwargs: cls(*args, **kwargs, source=join(cp.source for cp in consumed), position=consumed[0].position)
    def is_preprocessor_comment() -> bool:
        return preprocessor_comments and next(3) == '/*@'
    def consume_comment() -> str:
        """Consume the leading `/* ... */` sequence of code points in the stream, returning the text between the delimiters."""
        assert next(2) == '/*'
        consume(2)
        start = consumed[-2]
        mark = len(consumed)
        while next(1):
            if next(2) == '*/':
                consume(2)
                return join(consumed[mark:-2])
            consume(1)
        error('unclosed-comment', start)
        return join(consumed[mark:])
    def consume_comments() -> str:
        """Consume any comments (except preprocessor comments) at the head of the stream, returning their source text."""
        mark = len(consumed)
        while next(2) == '/*' and not is_preprocessor_comment():
            consume_comment()
        return join(cp.source for cp in consumed[mark:])
    def is_valid_escape(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax/#starts-with-a-valid-escape."""
        if not cps:
            cps = current_cp() + next(1)
        return cps[0:1] == '\\' and not is_newline(cps[1:2])
    def consume_escaped_code_point() -> CP:
        """See http://drafts.csswg.org/css-syntax/#consume-escaped-code-point."""
        assert is_valid_escape()
        consume(1)
        match consumed[-1]:
            case cp if is_hex_digit(cp):
                mark = len(consumed)
                while is_hex_digit(next(1)) and len(consumed) - mark < 5:
                    consume(1)
                if is_whitespace(next(1)):
                    consume(1)
                num = int(join(consumed[mark-1:]), 16)
                return '\ufffd' if (num == 0 or is_for_surrogate(num) or num > 0x10ffff) else chr(num)
            case '':
                error('bad-escape', consumed[-2])
                return '\ufffd'
            case _ as cp:
                return cp
    def consume_ident_like_token() -> FunctionToken | IdentToken | URLToken | BadURLToken:
        """See http://drafts.csswg.org/css-syntax/#consume-ident-like-token."""
        string = consume_ident_sequence()
        if next(1) == '(':
            consume(1)
            if string.lower() == 'url':
                while (cps := next(2)) and all(is_whitespace(cp) for cp in cps):
                    consume(1)
                if not ((cps := next(2))[0:1] in ('"', '\'') or (is_whitespace(cps[0:1]) and cps[1:2] in ('"', '\''))):
                    return consume_url_token()
            return sourced(FunctionToken)(value=string)
        else:
            return sourced(IdentToken)(value=string)
    def consume_ident_sequence() -> str:
        """See http://drafts.csswg.org/css-syntax#consume-name."""
        result = ''
        while True:
            consume(1)
            match consumed[-1]:
                case cp if is_ident_code_point(cp):
                    result += cp
                case _ if is_valid_escape():
                    result += consume_escaped_code_point()
                case _:
                    reconsume(current_cp())
                    return result
    def consume_number() -> tuple[int | float, NumberTokenType, str]:
        """See http://drafts.csswg.org/css-syntax#consume-number.

        :returns: The value and type of the number, and the text it was written with
        """
        mark = len(consumed)
        type = NumberTokenType.integer
        number, exponent = '', ''
        if (cp := next(1)) in ('+', '-'):
            consume(1)
            number += cp
        while is_digit(cp := next(1)):
            consume(1)
            number += cp
        if (cps := next(2))[0:1] == '.' and is_digit(cps[1:2]):
            consume(1)
            number += '.'
            while is_digit(cp := next(1)):
                consume(1)
                number += cp
            type = NumberTokenType.number
        if (cps := next(3))[0:1] in ('E', 'e') and ((cps[1:2] in ('-', '+') and is_digit(cps[2:3])) or is_digit(cps[1:2])):
            consume(1)
            if (cp := next(1)) in ('+', '-'):
                consume(1)
                exponent += cp
            while is_digit(cp := next(1)):
                consume(1)
                exponent += cp
            type = NumberTokenType.number
        # Floating point arithmetics would make e.g. `12E-1` come out as `1.2000000000000002`; `Decimal` does not.
        value = (int if type == 'integer' else float)(Decimal(number) * Decimal(10) ** Decimal(exponent or '0'))
        return value, type, join(consumed[mark:])
    def consume_numeric_token() -> DimensionToken | NumberToken | PercentageToken:
        """See http://drafts.csswg.org/css-syntax#consume-numeric-token."""
        value, type, representation = consume_number()
        if starts_ident_sequence(next(3)):
            return sourced(DimensionToken)(value=value, type=type, representation=representation, unit=consume_ident_sequence())
        elif next(1) == '%':
            consume(1)
            return sourced(PercentageToken)(value=value, type=type, representation=representation)
        else:
            return sourced(NumberToken)(value=value, type=type, representation=representation)
    def consume_remnants_of_bad_url() -> None:
        """See http://drafts.csswg.org/css-syntax#consume-remnants-of-bad-url."""
        while True:
            consume(1)
            match consumed[-1]:
                case ')' | '':
                    return
                case _ if is_valid_escape():
                    consume_escaped_code_point()
    def consume_url_token() -> URLToken | BadURLToken:
        """See http://drafts.csswg.org/css-syntax#consume-url-token."""
        while is_whitespace(next(1)):
            consume(1)
        value = ''
        while True:
            consume(1)
            match consumed[-1]:
                case ')':
                    break
                case '':
                    error('unclosed-url', consumed[0])
                    break
                case cp if is_whitespace(cp):
                    while is_whitespace(cp := next(1)):
                        consume(1)
                    if cp in (')', ''):
                        consume(1)
                        if cp == '':
                            error('unclosed-url', consumed[0])
                        break
                    else:
                        consume_remnants_of_bad_url()
                        return sourced(BadURLToken)()
                case cp if cp in ('"', '\'', '(') or is_non_printable_code_point(cp):
                    error('bad-character-in-url', consumed[-1])
                    consume_remnants_of_bad_url()
                    return sourced(BadURLToken)()
                case '\\':
                    if is_valid_escape():
                        value += consume_escaped_code_point()
                    else:
                        error('bad-escape', consumed[-1])
                        consume_remnants_of_bad_url()
                        return sourced(BadURLToken)()
                case _ as cp:
                    value += cp
        return sourced(URLToken)(value=value)
    def starts_ident_sequence(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax#would-start-an-identifier."""
        if not cps:
            cps = current_cp() + next(2)
        match cps[0:1]:
            case '-':
                return (is_ident_start_code_point(cp := cps[1:2]) or cp == '-') or is_valid_escape(cps[1:3])
            case cp if is_ident_start_code_point(cp):
                return True
            case '\\':
                return is_valid_escape(cps[0:2])
            case _:
                return False
    def starts_number(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax#starts-with-a-number."""
        if not cps:
            cps = current_cp() + next(2)
        match cps[0:1]:
            case '+' | '-':
                return is_digit(cp := cps[1:2]) or (cp == '.' and is_digit(cps[2:3]))
            case '.':
                return is_digit(cps[1:2])
            case cp if is_digit(cp):
                return True
            case _:
                return False
    def matched(cls: type[Token], delim: CP) -> Token:
        """Form a two code point token (e.g. `~=`) if the next code point is `=` (`|` for the column token), otherwise a delimiter."""
        if next(1) == cls.text[1]: # type: ignore
            consume(1)
            return sourced(cls)()
        return sourced(DelimToken)(value=delim)
    def consume_token() -> Token:
        """See http://drafts.csswg.org/css-syntax#consume-token."""
        assert not consumed
        consume(1)
        match consumed[-1]:
            case cp if is_whitespace(cp):
                while is_whitespace(next(1)):
                    consume(1)
                return sourced(WhitespaceToken)()
            case '"' | '\'':
                return consume_string_token()
            case '#' as cp:
                if is_ident_code_point(next(1)) or is_valid_escape(next(2)):
                    return sourced(HashToken)(type=(HashTokenType.id if starts_ident_sequence(next(3)) else HashTokenType.unrestricted), value=consume_ident_sequence())
                else:
                    return sourced(DelimToken)(value=cp)
            case '$' as cp:
                return matched(SuffixMatchToken, cp)
            case '(':
                return sourced(OpenParenToken)()
            case ')':
                return sourced(CloseParenToken)()
            case '*' as cp:
                return matched(SubstringMatchToken, cp)
            case '+' as cp:
                if starts_number():
                    reconsume(current_cp())
                    return consume_numeric_token()
                else:
                    return sourced(DelimToken)(value=cp)
            case ',':
                return sourced(CommaToken)()
            case '-' as cp:
                if starts_number():
                    reconsume(current_cp())
                    return consume_numeric_token()
                elif next(2) == '->':
                    consume(2)
                    return sourced(CDCToken)()
                elif starts_ident_sequence():
                    reconsume(current_cp())
                    return consume_ident_like_token()
                else:
                    return sourced(DelimToken)(value=cp)
            case '.' as cp:
                if starts_number():
                    reconsume(current_cp())
                    return consume_numeric_token()
                else:
                    return sourced(DelimToken)(value=cp)
            case ':':
                return sourced(ColonToken)()
            case ';':
                return sourced(SemicolonToken)()
            case '<' as cp:
                if next(3) == '!--':
                    consume(3)
                    return sourced(CDOToken)()
                else:
                    return sourced(DelimToken)(value=cp)
            case '@' as cp:
                if starts_ident_sequence(next(3)):
                    return sourced(AtKeywordToken)(value=consume_ident_sequence())
                else:
                    return sourced(DelimToken)(value=cp)
            case '[':
                return sourced(OpenBracketToken)()
            case '\\' as cp:
                if is_valid_escape():
                    reconsume(current_cp())
                    return consume_ident_like_token()
                else:
                    error('bad-escape', consumed[-1])
                    return sourced(DelimToken)(value=cp)
            case ']':
                return sourced(CloseBracketToken)()
            case '^' as cp:
                return matched(PrefixMatchToken, cp)
            case '{':
                return sourced(OpenBraceToken)()
            case '}':
                return sourced(CloseBraceToken)()
            case cp if is_digit(cp):
                reconsume(current_cp())
                return consume_numeric_token()
            case cp if is_ident_start_code_point(cp):
                reconsume(current_cp())
                return consume_ident_like_token()
            case '|' as cp:
                if next(1) == '|':
                    return matched(ColumnToken, cp)
                return matched(DashMatchToken, cp)
            case '~' as cp:
                return matched(IncludeMatchToken, cp)
            case '':
                return sourced(EOFToken)()
            case _ as cp:
                return sourced(DelimToken)(value=cp)
    def consume_string_token(ending_cp: CP | None = None) -> StringToken | BadStringToken:
        """See http://drafts.csswg.org/css-syntax#consume-string-token."""
        if not ending_cp:
            ending_cp = consumed[-1]
        value = ''
        while True:
            consume(1)
            match consumed[-1]:
                case cp if cp == ending_cp:
                    break
                case '':
                    error('unclosed-string', consumed[0])
                    break
                case cp if is_newline(cp):
                    error('newline-in-string', consumed[-1])
                    reconsume(current_cp())
                    return sourced(BadStringToken)()
                case '\\':
                    if not (cp := next(1)):
                        error('bad-escape', consumed[-1])
                    elif is_newline(cp):
                        consume(1)
                    else:
                        value += consume_escaped_code_point()
                case _ as cp:
                    value += cp
        return sourced(StringToken)(value=value)
    prefix = consume_comments() # Comments at the start of input are kept with the first token
    consumed.clear()
    while True:
        if is_preprocessor_comment():
            token: Token = sourced(PreprocessorCommentToken)(value=consume_comment())
        else:
            token = consume_token()
        consumed.clear()
        suffix = '' if isinstance(token, EOFToken) else consume_comments()
        consumed.clear()
        if prefix or suffix:
            token = replace(token, source=prefix + (token.source or '') + suffix)
            prefix = ''
        yield token
        if isinstance(token, EOFToken):
            return

def tokenize(input: DataSource | str, *, preprocessor_comments: bool = False, errors: Appender[ParseErrorRecord] | None = None) -> Iterator[Token]:
    """Generate the sequence of tokens of CSS text, excluding the final `EOFToken`.

    See `generate_tokens` for the meaning of parameters.
    """
    return takewhile(lambda token: not isinstance(token, EOFToken), generate_tokens(input, preprocessor_comments=preprocessor_comments, errors=errors))

class Tokenizer:
    """Class of objects that vend the tokens of some CSS text on demand, one at a time, keeping record of parse errors.

    Once the input is exhausted, `next_token` keeps returning the same `EOFToken`.
    """
    parse_errors: list[ParseErrorRecord]
    _tokens: Iterator[Token]
    _eof: EOFToken | None
    def __init__(self, source: DataSource | str, *, preprocessor_comments: bool = False):
        self.parse_errors = []
        self._tokens = generate_tokens(source, preprocessor_comments=preprocessor_comments, errors=self.parse_errors)
        self._eof = None
    def __iter__(self) -> Iterator[Token]:
        while not isinstance(token := self.next_token(), EOFToken):
            yield token
    def next_token(self) -> Token:
        if self._eof is None:
            token = next(self._tokens)
            if not isinstance(token, EOFToken):
                return token
            logger.debug('Token stream exhausted at %s', token.position)
            self._eof = token
        return self._eof
    def clear_parse_errors(self) -> None:
        self.parse_errors.clear()

def assert_all_tokens_of_type(values: Iterable[object], kind: str, what: str) -> None:
    """Ensure every value is a token of a type (e.g. `whitespace`).

    :raises TypeError: naming the first offending value and its index
    """
    values = list(values)
    assert_all_instance_of(values, Token, what)
    for index, token in enumerate(values):
        if token.kind != kind: # type: ignore
            raise TypeError(f'{what} may only contain "{kind}" tokens (found "{token.kind}" at index {index})') # type: ignore

def is_digit(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#digit."""
    return ('0' <= cp <= '9')

is_for_surrogate = is_surrogate_code_point_ordinal

def is_hex_digit(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#hex-digit."""
    return is_digit(cp) or ('A' <= cp <= 'F') or ('a' <= cp <= 'f')

def is_ident_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#ident-code-point."""
    return is_ident_start_code_point(cp) or is_digit(cp) or cp == '-'

def is_ident_start_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#ident-start-code-point."""
    return ('A' <= cp <= 'Z') or ('a' <= cp <= 'z') or is_non_ascii_code_point(cp) or cp == '_'

def is_newline(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#newline."""
    return cp == '\n'

def is_non_ascii_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax-3/#non-ascii-code-point.

    Any non-ASCII code point may start a name, which is what CSS Syntax Level 3 prescribes and what browsers do.
    """
    return cp >= '\u0080'

def is_non_printable_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#non-printable-code-point."""
    return '\u0000' <= cp <= '\u0008' or cp == '\u000b' or '\u000e' <= cp <= '\u001f' or cp == '\u007f'

def is_whitespace(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#whitespace."""
    return is_newline(cp) or cp in ('\t', ' ')
