"""Parsing of CSS text, after section 5 of CSS Syntax Level 3.

The parser builds the objects of the `cssward.objects` module, following the algorithms of http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parsing, the revision of CSS Syntax where blocks of rules are kept as lists of component values (to be parsed for declarations on demand) and CSS text is consumed as lists of rules and lists of declarations.

NOTE: The input to a parser is typically third-party CSS text, so nesting of component values (blocks in blocks, functions in functions) is limited, see `DEFAULT_RECURSION_LIMIT`. Input that exceeds the limit is discarded from the point it does, with a `recursion-depth-exceeded` parse error recorded.

# Deviations

* Tokens which CSS Syntax instructs to discard or "do nothing" with (e.g. white-space and semicolons between declarations, or remnants of bad declarations) are kept with the objects that follow them (see `leading` on rules and declarations) or with the list they end (see `trailing` on lists); this preserves input for reproduction, as `str` of a parsed stylesheet is the text it was parsed from
* Kept tokens are insignificant, except for the first semicolon between two declarations, which is what separates them
* Preprocessor comments in front of a rule or a declaration are attached to it, elsewhere (except in `{}`-blocks, which are parsed again for their declarations) they are folded into the source of the token that follows
* `parse_stylesheet` does not look for `@charset` (decoding is done before parsing); the rule is kept like any other at-rule
"""

from .preprocessing import DataSource
from .tokenizing import AtKeywordToken, CDCToken, CDOToken, CloseParenToken, ColonToken, CommaToken, DelimToken, EOFToken, FunctionToken, IdentToken, OpenBraceToken, OpenBracketToken, OpenParenToken, ParseErrorRecord, PreprocessorCommentToken, RECURSION_DEPTH_EXCEEDED, SemicolonToken, Token, Tokenizer, WhitespaceToken
from ..objects import AtRule, ComponentValue, ComponentValueList, CSSFunction, CSSObjectList, Declaration, DeclarationList, DeclarationOrAtRuleList, insignificant, Preceded, QualifiedRule, Rule, RuleList, SimpleBlock, Stylesheet, TokenList, UNKNOWN_POSITION
from ..utils import Appender, assert_all_instance_of, join

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from functools import partial
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 100 # How deep component values may be nested, by default

class TokenStream:
    """A class of token streams (http://drafts.csswg.org/css-syntax/#css-token-stream), objects which a parser normally uses for token consumption.

    The stream is fed by a callable returning tokens, which is expected to keep returning an `EOFToken` after the end of input.

    Besides vending tokens the stream keeps the state a parse shares between the procedures of this module: where parse errors are recorded, and how deep the component value being consumed is nested. Once the nesting limit is exceeded, the stream is cut short: the rest of input is discarded, and an `EOFToken` carrying the reason is vended instead, while errors about unexpected end of input are no longer recorded.

    See http://drafts.csswg.org/css-syntax/#css-token-stream.
    """
    depth: int = 0
    recursion_limit: int
    truncated: bool = False
    _errors: Appender[ParseErrorRecord]
    _source: Callable[[], Token]
    _buffer: list[Token]
    def __init__(self, source: Callable[[], Token], *, errors: Appender[ParseErrorRecord], recursion_limit: int = DEFAULT_RECURSION_LIMIT):
        self._source = source
        self._errors = errors
        self._buffer = []
        self.recursion_limit = recursion_limit
    def _peek(self, index: int) -> Token:
        while len(self._buffer) <= index:
            self._buffer.append(self._source())
        return self._buffer[index]
    def next_token(self, *, comments: bool = False) -> Token:
        """See http://drafts.csswg.org/css-syntax/#token-stream-next-token.

        :param comments: Whether preprocessor comments are vended as tokens; if not, consecutive preprocessor comments are folded into the source of the token that follows them
        """
        if not comments and isinstance(self._peek(0), PreprocessorCommentToken):
            n = 1
            while isinstance(self._peek(n), PreprocessorCommentToken):
                n += 1
            self._buffer[:n + 1] = [ replace(self._buffer[n], source=join(str(token) for token in self._buffer[:n + 1])) ]
        return self._peek(0)
    def empty(self, *, comments: bool = False) -> bool:
        """See http://drafts.csswg.org/css-syntax/#token-stream-empty."""
        return isinstance(self.next_token(comments=comments), EOFToken)
    def consume_token(self, *, comments: bool = False) -> Token:
        """See http://drafts.csswg.org/css-syntax/#token-stream-consume-a-token.

        Consuming the `EOFToken` leaves it in the stream.
        """
        token = self.next_token(comments=comments)
        if not isinstance(token, EOFToken):
            del self._buffer[0]
        return token
    def consume_remnant(self) -> list[ComponentValue]:
        """Consume the text the `EOFToken` was formed from, e.g. when input is nothing but comments.

        :returns: An insignificant white-space token with said text as its source, for keeping as trivia, or an empty list if there is no such text
        """
        eof = self.next_token()
        if not (isinstance(eof, EOFToken) and eof.source):
            return []
        self._buffer[0] = replace(eof, source=None)
        return [ WhitespaceToken(source=eof.source, position=eof.position, significant=False) ]
    def error(self, tag: str, token: Token) -> None:
        """Record a parse error encountered at a token."""
        if self.truncated and tag.startswith('unexpected-eof'):
            return
        logger.debug('Parse error %s at %s', tag, token.position)
        self._errors.append((tag, *token.position))
    def truncate(self, token: Token) -> None:
        """Cut the stream short at a token, because the latter would be nested too deep."""
        logger.debug('Component value at %s nested deeper than %d, discarding the rest of input', token.position, self.recursion_limit)
        self.error(RECURSION_DEPTH_EXCEEDED, token)
        eof = EOFToken(reason=RECURSION_DEPTH_EXCEEDED, position=token.position)
        self._buffer[:] = [ eof ]
        self._source = lambda: eof
        self.truncated = True

T = TypeVar('T', bound=Preceded)

def attach(item: T, leading: list[ComponentValue]) -> T:
    """Give a rule or declaration the tokens that were skipped in front of it, including any preprocessor comments."""
    item.leading = leading
    item.pp_comments = [ token for token in leading if isinstance(token, PreprocessorCommentToken) ]
    return item

def trivia(token: Token) -> Token:
    """Get a token as kept among skipped tokens: insignificant, unless it is a preprocessor comment."""
    return token if isinstance(token, PreprocessorCommentToken) else token.copy_with_significance(False)

def with_remnant(values: ComponentValueList, input: TokenStream) -> ComponentValueList:
    """Keep the text of the end of input (see `TokenStream.consume_remnant`), if any, as the trailing trivia of a list."""
    if remnant := input.consume_remnant():
        values.trailing = remnant
    return values

def consume_whitespace(input: TokenStream, *, comments: bool = False, to: Appender[ComponentValue]) -> None:
    """Consume consecutive white-space tokens ahead (along with preprocessor comments, if `comments` is true) as trivia."""
    while isinstance(input.next_token(comments=comments), (WhitespaceToken, PreprocessorCommentToken)):
        to.append(trivia(input.consume_token(comments=comments)))

def consume_list_of_rules(input: TokenStream, *, top_level: bool = False) -> RuleList:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-list-of-rules.

    An invalid qualified rule (one the input ends in before its block) is not featured in the list, its tokens are kept as trivia instead.
    """
    rules = RuleList()
    skipped: list[ComponentValue] = []
    while True:
        match input.next_token(comments=True):
            case EOFToken():
                break
            case WhitespaceToken() | PreprocessorCommentToken():
                skipped.append(trivia(input.consume_token(comments=True)))
            case CDOToken() | CDCToken() if top_level:
                skipped.append(trivia(input.consume_token()))
            case AtKeywordToken():
                rules.add(attach(consume_at_rule(input), skipped))
                skipped = []
            case _:
                rule = consume_qualified_rule(input)
                if rule.block is None:
                    skipped += (insignificant(value) for value in rule.prelude)
                else:
                    rules.add(attach(rule, skipped))
                    skipped = []
    rules.trailing = skipped + input.consume_remnant()
    return rules

def consume_at_rule(input: TokenStream) -> AtRule:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-at-rule."""
    rule = AtRule(input.consume_token())
    prelude: list[ComponentValue] = []
    while True:
        match token := input.next_token():
            case SemicolonToken():
                rule.end = [ input.consume_token() ]
                break
            case EOFToken():
                input.error('unexpected-eof-in-rule', token)
                rule.end = []
                break
            case OpenBraceToken():
                rule.block = consume_simple_block(input) # The block of the rule is not counted as nesting
                break
            case _:
                consume_component_value(input, to=prelude)
    rule.prelude = ComponentValueList(prelude)
    return rule

def consume_qualified_rule(input: TokenStream) -> QualifiedRule:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-qualified-rule.

    Where CSS Syntax returns nothing, the rule is returned without a block; such rules are invalid.
    """
    rule = QualifiedRule(input.next_token())
    prelude: list[ComponentValue] = []
    while True:
        match token := input.next_token():
            case EOFToken():
                input.error('unexpected-eof-in-rule', token)
                break
            case OpenBraceToken():
                rule.block = consume_simple_block(input)
                break
            case _:
                consume_component_value(input, to=prelude)
    rule.prelude = ComponentValueList(prelude)
    return rule

def consume_list_of_declarations(input: TokenStream, *, at_rules: bool = False) -> DeclarationList | DeclarationOrAtRuleList:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-list-of-declarations.

    :param at_rules: Whether at-rules are featured in the list; if not, an at-rule is a parse error and its tokens are kept as trivia
    """
    declarations: DeclarationList | DeclarationOrAtRuleList = DeclarationOrAtRuleList() if at_rules else DeclarationList()
    skipped: list[ComponentValue] = []
    terminated = True # Whether the item last added to the list was followed by a semicolon (at-rules end on their own)
    while True:
        match token := input.next_token(comments=True):
            case EOFToken():
                break
            case WhitespaceToken() | PreprocessorCommentToken():
                skipped.append(trivia(input.consume_token(comments=True)))
            case SemicolonToken():
                skipped.append(input.consume_token().copy_with_significance(not terminated))
                terminated = True
            case AtKeywordToken():
                rule = consume_at_rule(input)
                if at_rules:
                    declarations.add(attach(rule, skipped))
                    skipped = []
                else:
                    input.error('unexpected-token-in-declaration-list', token)
                    skipped += (insignificant(value) for value in rule.to_component_value_array())
                terminated = True
            case IdentToken():
                declaration = consume_declaration(input, skipped=skipped)
                if declaration is not None:
                    declarations.add(attach(declaration, skipped)) # type: ignore
                    skipped = []
                    terminated = False
            case _:
                input.error('unexpected-token-in-declaration-list', token)
                consume_remnants_of_bad_declaration(input, to=skipped)
    declarations.trailing = [ value.copy_with_significance(False) if isinstance(value, SemicolonToken) else value for value in skipped ] + input.consume_remnant()
    return declarations

def consume_declaration(input: TokenStream, *, stop_token: type[Token] = SemicolonToken, skipped: Appender[ComponentValue]) -> Declaration | None:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-declaration.

    Unlike in CSS Syntax, the declaration is consumed off the stream directly (up to `stop_token`), rather than off a list of component values collected beforehand. White-space around the value, and the `!important` annotation, are kept apart from the value (see `Declaration`).

    :param skipped: Where to put the consumed tokens, as trivia, if they do not make a declaration
    """
    declaration = Declaration(input.consume_token())
    head: list[Token] = []
    consume_whitespace(input, to=head) # type: ignore # Only tokens are consumed
    if not isinstance(token := input.next_token(), ColonToken):
        input.error('expected-colon', token)
        for value in (declaration.token, *head):
            skipped.append(insignificant(value))
        consume_remnants_of_bad_declaration(input, stop_token=stop_token, to=skipped)
        return None
    head.append(input.consume_token())
    consume_whitespace(input, to=head) # type: ignore
    values: list[ComponentValue] = []
    while not isinstance(input.next_token(), (EOFToken, stop_token)):
        consume_component_value(input, to=values)
    match tuple(((index, value) for index, value in enumerate(values) if not isinstance(value, WhitespaceToken)))[-2:]: # Match the last two non-whitespace values...
        case ((i, DelimToken(value='!')), (_, IdentToken(value=word))) if word.lower() == 'important': # ...are they a "!" followed by "important"?
            declaration.important = True
            end = i
        case _:
            end = len(values)
    while end and isinstance(values[end - 1], WhitespaceToken):
        end -= 1
    declaration.value = ComponentValueList(values[:end])
    declaration.head = head
    declaration.tail = [ trivia(value) if isinstance(value, WhitespaceToken) else value for value in values[end:] ] # type: ignore # Only tokens follow the value
    return declaration

def consume_remnants_of_bad_declaration(input: TokenStream, *, stop_token: type[Token] = SemicolonToken, to: Appender[ComponentValue]) -> None:
    """Consume component values up to `stop_token` (or end of input), as insignificant trivia."""
    while not isinstance(input.next_token(), (EOFToken, stop_token)):
        values: list[ComponentValue] = []
        consume_component_value(input, to=values)
        for value in values:
            to.append(insignificant(value))

def consume_component_value(input: TokenStream, *, to: Appender[ComponentValue]) -> ComponentValue | None:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-component-value.

    :returns: The consumed value, or `None` if the value would have been nested too deep, in which case the stream is cut short at it
    """
    token = input.next_token()
    if input.depth >= input.recursion_limit:
        input.truncate(token)
        return None
    input.depth += 1
    value: ComponentValue
    match token:
        case OpenBraceToken() | OpenBracketToken() | OpenParenToken():
            value = consume_simple_block(input)
        case FunctionToken():
            value = consume_function(input)
        case _:
            value = input.consume_token()
    input.depth -= 1
    to.append(value)
    return value

def consume_simple_block(input: TokenStream) -> SimpleBlock:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-simple-block."""
    block = SimpleBlock(input.consume_token())
    ending_token = block.end_token_type
    comments = isinstance(block.token, OpenBraceToken) # Contents of `{}`-blocks are parsed again, for declarations that preprocessor comments may precede
    values: list[ComponentValue] = []
    while True:
        match token := input.next_token(comments=comments):
            case ending_token(): # type: ignore # `ending_token` is a class, which is all a class pattern needs
                block.end = [ input.consume_token() ]
                break
            case EOFToken():
                input.error('unexpected-eof-in-block', token)
                block.end = []
                break
            case PreprocessorCommentToken():
                values.append(input.consume_token(comments=True))
            case _:
                consume_component_value(input, to=values)
    block.value = ComponentValueList(values)
    return block

def consume_function(input: TokenStream) -> CSSFunction:
    """Implements http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#consume-function."""
    function = CSSFunction(input.consume_token())
    values: list[ComponentValue] = []
    while True:
        match token := input.next_token():
            case CloseParenToken():
                function.end = [ input.consume_token() ]
                break
            case EOFToken():
                input.error('unexpected-eof-in-function', token)
                function.end = []
                break
            case _:
                consume_component_value(input, to=values)
    function.value = ComponentValueList(values)
    return function

class Parser:
    """Class of CSS parsers, each parsing either some CSS text or a sequence of tokens.

    The parser offers the "entry points" of http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parser-entry-points as methods, e.g. `parse_stylesheet`. Input is consumed as it is parsed, so normally a parser is used for a single entry point.

    Parse errors, those of tokenization included, are recorded in `parse_errors` in the order they are encountered, as tuples of the error tag and the line and column the error was encountered at.
    """
    parse_errors: list[ParseErrorRecord]
    _input: TokenStream
    def __init__(self, source: str | DataSource | Tokenizer | Iterable[Token], *, eof: Token | None = None, recursion_limit: int = DEFAULT_RECURSION_LIMIT, preprocessor_comments: bool = False):
        """:param source: CSS text to tokenize and parse (also as a data source or a tokenizer), or the tokens to parse
        :param eof: The token to end a sequence of tokens with; a token that is not an `EOFToken` only lends its position to the one that ends the sequence
        :param recursion_limit: How deep component values may be nested
        :param preprocessor_comments: Whether to attach preprocessor comments (see `PreprocessorCommentToken`) in CSS text to the rules and declarations they precede
        :raises TypeError: if `source` is a list of objects other than tokens
        """
        next_token: Callable[[], Token]
        if isinstance(source, (str, DataSource)):
            source = Tokenizer(source, preprocessor_comments=preprocessor_comments)
        if isinstance(source, Tokenizer):
            self.parse_errors = source.parse_errors
            next_token = source.next_token
        else:
            if isinstance(source, CSSObjectList) and not isinstance(source, TokenList):
                raise TypeError('Tokens must be a TokenList or a sequence of tokens')
            tokens = list(source)
            assert_all_instance_of(tokens, Token, 'tokens')
            if not isinstance(eof, EOFToken):
                eof = EOFToken(position=eof.position if eof is not None else UNKNOWN_POSITION)
            self.parse_errors = []
            next_token = partial(next, iter(tokens), eof)
        self._input = TokenStream(next_token, errors=self.parse_errors, recursion_limit=recursion_limit)
    @classmethod
    def from_string(cls, text: str | DataSource, **options: Any) -> 'Parser':
        return cls(text, **options)
    @classmethod
    def from_tokens(cls, tokens: Iterable[Token], eof: Token | None = None, **options: Any) -> 'Parser':
        return cls(tokens, eof=eof, **options)
    def clear_parse_errors(self) -> None:
        self.parse_errors.clear()
    def parse_stylesheet(self) -> Stylesheet:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-stylesheet."""
        return Stylesheet(consume_list_of_rules(self._input, top_level=True))
    def parse_rule_list(self) -> RuleList:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-list-of-rules.

        Unlike with `parse_stylesheet`, `<!--` and `-->` are not skipped but start qualified rules.
        """
        return consume_list_of_rules(self._input)
    def parse_rule(self) -> Rule | None:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-rule.

        :returns: The rule, or `None` if there is either no (valid) rule or more than one
        """
        leading: list[ComponentValue] = []
        consume_whitespace(self._input, comments=True, to=leading)
        rule: Rule
        match token := self._input.next_token():
            case EOFToken():
                self._input.error('unexpected-eof', token)
                return None
            case AtKeywordToken():
                rule = consume_at_rule(self._input)
            case _:
                rule = consume_qualified_rule(self._input)
                if rule.block is None:
                    return None
        consume_whitespace(self._input, to=[])
        if not self._input.empty():
            self._input.error('expected-eof', self._input.next_token())
            return None
        return attach(rule, leading)
    def parse_declaration(self) -> Declaration | None:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-declaration.

        The value of the declaration extends to the end of input, semicolons included.
        """
        leading: list[ComponentValue] = []
        consume_whitespace(self._input, comments=True, to=leading)
        if not isinstance(token := self._input.next_token(), IdentToken):
            self._input.error('expected-ident', token)
            return None
        declaration = consume_declaration(self._input, stop_token=EOFToken, skipped=[])
        return attach(declaration, leading) if declaration is not None else None
    def parse_declaration_list(self) -> DeclarationList:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-list-of-declarations.

        At-rules are not declarations, so these are parse errors here; see `parse_declaration_or_at_rule_list` for the list as CSS Syntax has it.
        """
        return consume_list_of_declarations(self._input) # type: ignore
    def parse_declaration_or_at_rule_list(self) -> DeclarationOrAtRuleList:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-list-of-declarations."""
        return consume_list_of_declarations(self._input, at_rules=True) # type: ignore
    def parse_component_value(self) -> ComponentValue | None:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-component-value.

        :returns: The component value, or `None` if there is either none or more than one
        """
        consume_whitespace(self._input, to=[])
        if self._input.empty():
            self._input.error('unexpected-eof', self._input.next_token())
            return None
        values: list[ComponentValue] = []
        consume_component_value(self._input, to=values)
        consume_whitespace(self._input, to=[])
        if not self._input.empty():
            self._input.error('expected-eof', self._input.next_token())
            return None
        return values[0] if values else None
    def parse_component_value_list(self) -> ComponentValueList:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-list-of-component-values."""
        values: list[ComponentValue] = []
        while not self._input.empty():
            consume_component_value(self._input, to=values)
        return with_remnant(ComponentValueList(values), self._input)
    def parse_comma_separated_component_value_list(self) -> list[ComponentValueList]:
        """See http://www.w3.org/TR/2019/CR-css-syntax-3-20190716/#parse-comma-separated-list-of-component-values.

        The commas are not featured in the lists.
        """
        lists: list[list[ComponentValue]] = [ [] ]
        while not self._input.empty():
            if isinstance(self._input.next_token(), CommaToken):
                self._input.consume_token()
                lists.append([])
            else:
                consume_component_value(self._input, to=lists[-1])
        result = [ ComponentValueList(values) for values in lists ]
        with_remnant(result[-1], self._input)
        return result

def parse_stylesheet(text: str, **options: Any) -> Stylesheet:
    """Parse CSS text as a stylesheet; see `Parser` for the options, and for access to parse errors."""
    return Parser.from_string(text, **options).parse_stylesheet()

def parse_rule_list(text: str, **options: Any) -> RuleList:
    return Parser.from_string(text, **options).parse_rule_list()

def parse_rule(text: str, **options: Any) -> Rule | None:
    return Parser.from_string(text, **options).parse_rule()

def parse_declaration(text: str, **options: Any) -> Declaration | None:
    return Parser.from_string(text, **options).parse_declaration()

def parse_declaration_list(text: str, **options: Any) -> DeclarationList:
    return Parser.from_string(text, **options).parse_declaration_list()

def parse_declaration_or_at_rule_list(text: str, **options: Any) -> DeclarationOrAtRuleList:
    return Parser.from_string(text, **options).parse_declaration_or_at_rule_list()

def parse_component_value(text: str, **options: Any) -> ComponentValue | None:
    return Parser.from_string(text, **options).parse_component_value()

def parse_component_value_list(text: str, **options: Any) -> ComponentValueList:
    return Parser.from_string(text, **options).parse_component_value_list()

def parse_comma_separated_component_value_list(text: str, **options: Any) -> list[ComponentValueList]:
    return Parser.from_string(text, **options).parse_comma_separated_component_value_list()

def declarations(rule: Rule) -> DeclarationList | DeclarationOrAtRuleList:
    """Parse the block of a rule for its declarations.

    The block of a qualified rule is parsed as a list of declarations, that of an at-rule as a list of declarations and at-rules (e.g. `@page` may feature `@top-left` and the like). A rule without block has no declarations.
    """
    at_rules = isinstance(rule, AtRule)
    if rule.block is None:
        return DeclarationOrAtRuleList() if at_rules else DeclarationList()
    parser = Parser.from_tokens(rule.block.value.to_token_array(), eof=rule.block.end[0] if rule.block.end else None)
    return parser.parse_declaration_or_at_rule_list() if at_rules else parser.parse_declaration_list()
