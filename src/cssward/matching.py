"""Matching of lists of component values against grammar elements (matchers, see the `values` module).

Matching is done by generating _candidate_ matches: for a matcher, a list of component values and a starting offset in the list, `generate_matches` lazily produces every distinct way the matcher can match starting there, longest match first as a rule. Combinators (`Juxtaposition`, `Quantifier`, etc.) backtrack by drawing further candidates from the generators of their elements, so that e.g. `a? a` matches a single `a` after the first candidate (the one where `a?` took the `a`) failed. Generators are only advanced as far as necessary, which is what keeps matching of a complex grammar against a long list tractable; `match_against` stops at the first candidate that spans the entire list.

A match that "ends" at an offset includes the white-space that was skipped over following it (with the `skip-whitespace` option), so that the next element of a sequence starts matching at the next non-white-space value.
"""

from .objects import ComponentValue, ComponentValueList, CSSFunction, CSSObjectList, SimpleBlock
from .syntax.tokenizing import CommaToken, BadStringToken, BadURLToken, CloseBraceToken, CloseBracketToken, CloseParenToken, DelimToken, DimensionToken, format_number, IdentToken, NumberToken, SemicolonToken, StringToken, Token, URLToken, WhitespaceToken
from .utils import is_custom_property_name_string, ParseError
from .values import AnythingMatcher, Alternative, BlockMatcher, CheckedMatcher, CustomPropertyMatcher, DelimMatcher, FunctionMatcher, Juxtaposition, KeywordMatcher, Match, Matcher, NonEmpty, NothingMatcher, NoWhitespace, Options, Quantifier, SIGNIFICANT_WHITESPACE, TokenMatcher, UnorderedGroup, UrangeMatcher, UrlMatcher, WhitespaceMatcher

import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from functools import singledispatch

logger = logging.getLogger(__name__)

MAX_CODE_POINT = 0x10ffff

def match_against(matcher: Matcher, values: CSSObjectList, options: Options | None = None) -> Match | None:
    """Match a list of component values against a matcher.

    Leading white-space is skipped over if the `skip-whitespace` option is set. Unless the `nonterminal` option is set, the match must span the entire list.

    :param options: Matching options, overriding the default options of the matcher (see `Matcher.default_options`)
    :returns: The first acceptable candidate match, or `None` if there is none
    """
    options = { **matcher.default_options, **(options or {}) }
    start = next_index(values, -1, options)
    for match in generate_matches(matcher, values, start, options):
        if match.next == len(values) or options['nonterminal']:
            if options['mark-significance']:
                mark_significance(values, match)
            return match
    return None

@singledispatch
def generate_matches(matcher: Matcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    """Generate the candidate matches of a matcher against a list of component values, starting at an offset.

    Per the applied `singledispatch` decorator, this procedure is only called for matchers for which no more applicable variant of `generate_matches` is registered, which is an error.

    :param start: Offset of the first value to match
    :param options: Matching options, see `Matcher`
    :returns: An iterator of matches, without duplicates
    """
    raise TypeError(f"No suitable `generate_matches` procedure for {matcher}")

def next_index(values: Sequence, index: int, options: Options) -> int:
    """Get the offset following `index`, past any white-space if white-space is skipped over."""
    index += 1
    if options.get('skip-whitespace', True):
        while index < len(values) and isinstance(values[index], WhitespaceToken):
            index += 1
    return index

def make_match(matcher: Matcher, values: CSSObjectList, start: int, end: int, submatch: Match | None = None, stack: Iterable[Match] = ()) -> Match:
    """Create the match of a matcher from the matches of its sub-matchers.

    Named sub-matches become captures of the match, while unnamed sub-matches contribute their own captures.
    """
    captures: list[Match] = []
    for match in (*stack, submatch):
        if match is None:
            continue
        if match.name is not None:
            captures.append(match)
        else:
            captures += match.captures
    return Match(values, start, end - start, matcher.capture_name, captures)

def unique(matches: Iterable[Match]) -> Iterator[Match]:
    seen = set()
    for match in matches:
        if match.unique_id not in seen:
            seen.add(match.unique_id)
            yield match

def value_at(values: Sequence, index: int) -> ComponentValue | None:
    return values[index] if 0 <= index < len(values) else None

def single_value(matcher: Matcher, values: CSSObjectList, start: int, options: Options, submatch: Match | None = None) -> Iterator[Match]:
    yield make_match(matcher, values, start, next_index(values, start, options), submatch)

@generate_matches.register
def _(matcher: TokenMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if isinstance(value, matcher.token_type) and (matcher.callback is None or matcher.callback(value)):
        yield from single_value(matcher, values, start, options)

@generate_matches.register
def _(matcher: KeywordMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if isinstance(value, IdentToken) and value.value.lower() in matcher.words:
        yield from single_value(matcher, values, start, options)

@generate_matches.register
def _(matcher: DelimMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if isinstance(value, DelimToken) and value.value in matcher.values:
        yield from single_value(matcher, values, start, options)

@generate_matches.register
def _(matcher: CustomPropertyMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if isinstance(value, IdentToken) and is_custom_property_name_string(value.value):
        yield from single_value(matcher, values, start, options)

def match_contents(matcher: Matcher, values: ComponentValueList, options: Options) -> Match | None:
    """Match the entire contents of a block or a function."""
    return match_against(matcher, values, { **options, 'nonterminal': False, 'mark-significance': False })

@generate_matches.register
def _(matcher: FunctionMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if not isinstance(value, CSSFunction):
        return
    match matcher.name:
        case None:
            pass
        case str():
            if value.name.lower() != matcher.name.lower():
                return
        case _ if not matcher.name(value.name):
            return
    if (contents := match_contents(matcher.matcher, value.value, options)) is not None:
        yield from single_value(matcher, values, start, options, contents)

@generate_matches.register
def _(matcher: BlockMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    if isinstance(value, SimpleBlock) and value.start_token_type is matcher.block_type:
        if (contents := match_contents(matcher.matcher, value.value, options)) is not None:
            yield from single_value(matcher, values, start, options, contents)

@generate_matches.register
def _(matcher: UrlMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    value = value_at(values, start)
    match value:
        case URLToken():
            if matcher.callback is None or matcher.callback(value.value, []):
                url = Match(values, start, next_index(values, start, options) - start, 'url')
                yield from single_value(matcher, values, start, options, url)
        case CSSFunction() if value.name.lower() == 'url':
            contents_matcher: Matcher = TokenMatcher(StringToken).capture('url')
            if matcher.modifier_matcher is not None:
                contents_matcher = Juxtaposition([ contents_matcher, Quantifier.star(matcher.modifier_matcher.capture('modifier')) ])
            if (contents := match_contents(contents_matcher, value.value, options)) is None:
                return
            url = next(capture for capture in contents.captures if capture.name == 'url')
            modifiers = [ capture.values[0] for capture in contents.captures if capture.name == 'modifier' ]
            if matcher.callback is None or matcher.callback(url.values[0].value, modifiers):
                yield from single_value(matcher, values, start, options, contents)

@generate_matches.register
def _(matcher: Alternative, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    yield from unique(make_match(matcher, values, start, match.next, match) for element in matcher.matchers for match in generate_matches(element, values, start, options))

@generate_matches.register
def _(matcher: Juxtaposition, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    """Variant of `generate_matches` for juxtaposition, which enumerates combinations of the candidates of every element, depth first.

    With commas, an element following a non-empty match must either match non-empty after a comma, or match empty (without the comma).
    """
    def combinations(index: int, offset: int, nonempty: bool, stack: tuple[Match, ...]) -> Iterator[Match]:
        if index == len(matcher.matchers):
            yield make_match(matcher, values, start, offset, None, stack)
            return
        element = matcher.matchers[index]
        if matcher.commas and nonempty:
            comma = next_index(values, offset - 1, options)
            if isinstance(value_at(values, comma), CommaToken):
                for match in generate_matches(element, values, next_index(values, comma, options), options):
                    if match.length:
                        yield from combinations(index + 1, match.next, True, (*stack, match))
            for match in generate_matches(element, values, offset, options):
                if not match.length:
                    yield from combinations(index + 1, match.next, True, (*stack, match))
        else:
            for match in generate_matches(element, values, offset, options):
                yield from combinations(index + 1, match.next, nonempty or match.length > 0, (*stack, match))
    yield from unique(combinations(0, start, False, ()))

@generate_matches.register
def _(matcher: Quantifier, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    """Variant of `generate_matches` for quantifiers.

    Repetitions are explored depth first, with the match made of the most repetitions reported first; each match is reported when all the ways to continue it were exhausted.

    :raises ParseError: if the repeated matcher matches empty, as repeating it would never end
    """
    skipping = { **options, 'skip-whitespace': True }
    stack: list[tuple[Match, Iterator[Match]]] = [ (Match(values, start, 0), generate_matches(matcher.matcher, values, start, options)) ]
    seen = set()
    while stack:
        last, candidates = stack[-1]
        match = next(candidates, None)
        if match is None:
            stack.pop()
            if len(stack) >= matcher.min:
                result = make_match(matcher, values, start, last.next, last, (item[0] for item in stack[1:]))
                if result.unique_id not in seen:
                    seen.add(result.unique_id)
                    yield result
            continue
        if not match.length:
            raise ParseError('Empty match in quantifier!')
        offset: int | None = match.next
        if len(stack) < matcher.max and matcher.commas:
            comma = next_index(values, match.next - 1, skipping)
            offset = next_index(values, comma, skipping) if isinstance(value_at(values, comma), CommaToken) else None
        if len(stack) < matcher.max and offset is not None:
            stack.append((match, generate_matches(matcher.matcher, values, offset, options)))
        else:
            stack.append((match, iter(())))

@generate_matches.register
def _(matcher: UnorderedGroup, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    """Variant of `generate_matches` for unordered groups, which tries the elements in every order, depth first.

    With `||`, every non-empty prefix of an ordering is a candidate as well. The remainder of an ordering only depends on which elements were used and where it continues, so each such state is explored once, for `&&` as well; orderings reaching an explored state are not tried again, even where their captures would differ.
    """
    count = len(matcher.matchers)
    explored: set[tuple[frozenset[int], int]] = set()
    def orderings(used: frozenset[int], offset: int, stack: tuple[Match, ...]) -> Iterator[Match]:
        for index, element in enumerate(matcher.matchers):
            if index in used:
                continue
            for match in generate_matches(element, values, offset, options):
                state = (used | { index }, match.next)
                if state not in explored:
                    explored.add(state)
                    yield from orderings(state[0], match.next, (*stack, match))
                if not matcher.all_required or len(state[0]) == count:
                    yield make_match(matcher, values, start, match.next, None, (*stack, match))
    if count:
        yield from unique(orderings(frozenset(), start, ()))
    elif matcher.all_required:
        yield make_match(matcher, values, start, start)

def any_value(value: ComponentValue, toplevel: bool) -> bool:
    """Determine whether a component value may feature in `<any-value>` (or in `<declaration-value>` if `toplevel`)."""
    match value:
        case BadStringToken() | BadURLToken() | CloseParenToken() | CloseBracketToken() | CloseBraceToken():
            return False
        case SemicolonToken() | DelimToken(value='!'):
            return not toplevel
        case SimpleBlock() | CSSFunction():
            return all(any_value(item, False) for item in value.value)
    return True

def significant_whitespace(values: CSSObjectList, index: int, options: Options) -> list[Match]:
    """Capture the white-space of a value matched by `AnythingMatcher` as significant."""
    match value := values[index]:
        case WhitespaceToken():
            return [ Match(values, index, 1, SIGNIFICANT_WHITESPACE) ]
        case SimpleBlock() | CSSFunction() if not options.get('skip-whitespace', True):
            return [ match for offset in range(len(value.value)) for match in significant_whitespace(value.value, offset, options) ]
    return []

@generate_matches.register
def _(matcher: AnythingMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    limit = 1 if matcher.quantifier is None else len(values)
    ends: list[tuple[int, list[Match]]] = []
    captures: list[Match] = []
    offset = start
    while len(ends) < limit and offset < len(values) and any_value(values[offset], matcher.toplevel):
        captures = captures + significant_whitespace(values, offset, options)
        offset = next_index(values, offset, options)
        ends.append((offset, captures))
    for end, stack in reversed(ends):
        yield make_match(matcher, values, start, end, None, stack)
    if matcher.quantifier == '*':
        yield make_match(matcher, values, start, start)

@generate_matches.register
def _(matcher: NothingMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    return iter(())

@generate_matches.register
def _(matcher: NonEmpty, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    for match in generate_matches(matcher.matcher, values, start, options):
        if match.length:
            yield make_match(matcher, values, start, match.next, match)

@generate_matches.register
def _(matcher: NoWhitespace, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    if not isinstance(value_at(values, start - 1), WhitespaceToken):
        yield make_match(matcher, values, start, start)

@generate_matches.register
def _(matcher: WhitespaceMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    end = start
    while isinstance(value_at(values, end), WhitespaceToken):
        end += 1
    if not matcher.significant:
        yield make_match(matcher, values, start, end)
    elif end > start:
        yield make_match(matcher, values, start, end, Match(values, start, 1, SIGNIFICANT_WHITESPACE))
    elif options.get('skip-whitespace', True) and isinstance(value_at(values, start - 1), WhitespaceToken):
        yield make_match(matcher, values, start - 1, start, Match(values, start - 1, 1, SIGNIFICANT_WHITESPACE)) # The white-space was skipped over by the preceding match

@generate_matches.register
def _(matcher: CheckedMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    for match in generate_matches(matcher.matcher, values, start, options):
        if matcher.check(values, match, options):
            yield make_match(matcher, values, start, match.next, match)

def urange_text(token: Token) -> str:
    """Get the text a token contributes to a unicode-range."""
    match token:
        case IdentToken() | DelimToken():
            return token.value
        case NumberToken():
            return format_number(token)
        case DimensionToken():
            return format_number(token) + token.unit
    raise TypeError(f'Token type {token.kind} is not part of a unicode-range')

def urange_candidates(values: CSSObjectList, start: int) -> list[list[Token]]:
    """Get the token sequences following the `u` ident at `start` that form a unicode-range per the grammar, see http://drafts.csswg.org/css-syntax/#urange-syntax."""
    def question_marks(index: int) -> int:
        count = 0
        while isinstance(value := value_at(values, index + count), DelimToken) and value.value == '?':
            count += 1
        return count
    following = [ value_at(values, start + offset) for offset in (1, 2) ]
    candidates: list[list[Token]] = []
    match following:
        case [ DelimToken(value='+'), IdentToken() ]:
            candidates += [ values.slice(start + 1, 2 + count) for count in range(question_marks(start + 3) + 1) ]
        case [ DelimToken(value='+'), _ ]:
            candidates += [ values.slice(start + 1, 1 + count) for count in range(1, question_marks(start + 2) + 1) ]
        case [ DimensionToken(), _ ]:
            candidates += [ values.slice(start + 1, 1 + count) for count in range(question_marks(start + 2) + 1) ]
        case [ NumberToken(), NumberToken() | DimensionToken() ]:
            candidates.append(values.slice(start + 1, 2))
            candidates.append(values.slice(start + 1, 1))
        case [ NumberToken(), _ ]:
            candidates += [ values.slice(start + 1, 1 + count) for count in range(question_marks(start + 2) + 1) ]
    return sorted(candidates, key=len, reverse=True)

def urange_bounds(text: str) -> tuple[int, int] | None:
    """Interpret the text of a unicode-range (following the `u`), see http://drafts.csswg.org/css-syntax/#urange-syntax.

    :returns: The start and the end of the range, or `None` if the text does not spell a valid range
    """
    if match := re.fullmatch(r'\+([0-9a-f]*)(\?*)', text, re.IGNORECASE):
        digits, wildcards = match[1], len(match[2])
        if not 0 < len(digits) + wildcards <= 6:
            return None
        start, end = int(digits + '0' * wildcards, 16), int(digits + 'f' * wildcards, 16)
    elif match := re.fullmatch(r'\+([0-9a-f]{1,6})-([0-9a-f]{1,6})', text, re.IGNORECASE):
        start, end = int(match[1], 16), int(match[2], 16)
    else:
        return None
    return (start, end) if start <= end <= MAX_CODE_POINT else None

@generate_matches.register
def _(matcher: UrangeMatcher, values: CSSObjectList, start: int, options: Options) -> Iterator[Match]:
    """Variant of `generate_matches` for unicode-ranges.

    Matching records on the first token how many tokens the range spans (see `Token.urange_length`), since the tokens must be written out without anything separating them.
    """
    first = value_at(values, start)
    if not (isinstance(first, IdentToken) and first.value.lower() == 'u'):
        return
    for tokens in urange_candidates(values, start):
        bounds = urange_bounds(''.join(urange_text(token) for token in tokens))
        if bounds is None:
            continue
        end = next_index(values, start + len(tokens), options)
        values[start] = values[start].with_urange_length(1 + len(tokens))
        captures = [ Match(ComponentValueList([ NumberToken(value=bound) ]), 0, 1, name) for name, bound in zip(('start', 'end'), bounds) ]
        yield make_match(matcher, values, start, end, None, captures)

def mark_significance(values: CSSObjectList, match: Match) -> None:
    """Mark white-space in the portion of a list up to the end of a match significant where the match captured it as such (see `SIGNIFICANT_WHITESPACE`), and insignificant elsewhere.

    The white-space in blocks and functions in the list is marked likewise, in its entirety. Marked tokens replace the original ones in the lists, which all matches read their values from.
    """
    significant: set[tuple[int, int]] = set() # List identity and offset
    def collect(match: Match) -> None:
        for capture in match.captures:
            if capture.name == SIGNIFICANT_WHITESPACE:
                significant.update((id(capture.container), offset) for offset in range(capture.start, capture.next))
            collect(capture)
    def mark(values: CSSObjectList, end: int) -> None:
        for offset in range(end):
            match value := values[offset]:
                case WhitespaceToken():
                    values[offset] = value.copy_with_significance((id(values), offset) in significant)
                case SimpleBlock() | CSSFunction():
                    mark(value.value, len(value.value))
    collect(match)
    logger.debug('Marking significance of white-space up to offset %d, %d white-space token(s) significant', match.next, len(significant))
    mark(values, match.next)
