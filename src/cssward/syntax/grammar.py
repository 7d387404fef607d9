"""A utility module that offers matchers for the commonly used value types, see http://drafts.csswg.org/css-values-4/#value-defs.

Matchers are built on first use and kept by the factory, since the same few (e.g. `<integer>`) feature in many grammars.
"""

from .tokenizing import CommaToken, DimensionToken, HashToken, IdentToken, NumberToken, NumberTokenType, PercentageToken, StringToken, Token
from ..values import Alternative, KeywordMatcher, Matcher, TokenMatcher, UrlMatcher, WhitespaceMatcher

import logging
import re
from collections.abc import Callable, Hashable, Iterable

logger = logging.getLogger(__name__)

CSS_WIDE_KEYWORDS = ('initial', 'inherit', 'unset', 'revert') # See http://drafts.csswg.org/css-cascade-4/#defaulting-keywords

LENGTH_UNITS = frozenset(( # See http://drafts.csswg.org/css-values-4/#lengths
    'em', 'rem', 'ex', 'rex', 'cap', 'rcap', 'ch', 'rch', 'ic', 'ric', 'lh', 'rlh',
    'vw', 'vh', 'vi', 'vb', 'vmin', 'vmax',
    'cm', 'mm', 'q', 'in', 'pt', 'pc', 'px',
))

class MatcherFactory:
    """Class of registries of matchers for common value types.

    A factory is constructed explicitly and passed to whatever builds grammars with it; every matcher it returns is built once per factory and the same instance is returned on subsequent calls.
    """
    cache: dict[Hashable, Matcher]
    def __init__(self):
        self.cache = {}
    def cached(self, key: Hashable, build: Callable[[], Matcher]) -> Matcher:
        """Get the matcher stored under a key, building (and storing) it first if there is none."""
        if key not in self.cache:
            logger.debug('Building matcher %r', key)
            self.cache[key] = build()
        return self.cache[key]
    def optional_whitespace(self) -> Matcher:
        return self.cached('optional_whitespace', lambda: WhitespaceMatcher(significant=False))
    def significant_whitespace(self) -> Matcher:
        return self.cached('significant_whitespace', lambda: WhitespaceMatcher(significant=True))
    def comma(self) -> Matcher:
        return self.cached('comma', lambda: TokenMatcher(CommaToken))
    def ident(self) -> Matcher:
        """See http://drafts.csswg.org/css-values-4/#css-identifier."""
        return self.cached('ident', lambda: TokenMatcher(IdentToken))
    def custom_ident(self, exclude: Iterable[str] = ()) -> Matcher:
        """Get a matcher of author-defined identifiers, see http://drafts.csswg.org/css-values-4/#custom-idents.

        :param exclude: Additional identifiers that are not acceptable, compared ASCII case-insensitively
        """
        excluded = frozenset(word.lower() for word in (*CSS_WIDE_KEYWORDS, 'default', *exclude))
        return self.cached(('custom_ident', excluded), lambda: TokenMatcher(IdentToken, lambda token: token.value.lower() not in excluded)) # type: ignore
    def string(self) -> Matcher:
        """See http://drafts.csswg.org/css-values-4/#strings."""
        return self.cached('string', lambda: TokenMatcher(StringToken))
    def urlstring(self, url_type: str) -> Matcher:
        """Get a matcher of strings that are URLs, as featured e.g. in `@import`.

        :param url_type: The kind of resource the URL refers to, e.g. `image`; factories that restrict URLs may use it
        """
        return self.cached(('urlstring', url_type), self.string)
    def url(self, url_type: str) -> Matcher:
        """Get a matcher of URLs, see http://drafts.csswg.org/css-values-4/#urls.

        :param url_type: See `urlstring`
        """
        return self.cached(('url', url_type), UrlMatcher)
    def css_wide_keywords(self) -> Matcher:
        return self.cached('css_wide_keywords', lambda: KeywordMatcher(CSS_WIDE_KEYWORDS))
    def integer(self) -> Matcher:
        """See http://drafts.csswg.org/css-values-4/#integers."""
        return self.cached('integer', lambda: TokenMatcher(NumberToken, is_integer))
    def number(self) -> Matcher:
        """See http://drafts.csswg.org/css-values-4/#numbers."""
        return self.cached('number', lambda: TokenMatcher(NumberToken))
    def percentage(self) -> Matcher:
        """See http://drafts.csswg.org/css-values-4/#percentages."""
        return self.cached('percentage', lambda: TokenMatcher(PercentageToken))
    def length(self) -> Matcher:
        """Get a matcher of lengths, see http://drafts.csswg.org/css-values-4/#lengths; a unitless zero is a length too."""
        return self.cached('length', lambda: Alternative([ TokenMatcher(DimensionToken, is_length), TokenMatcher(NumberToken, is_zero) ]))
    def color_hex(self) -> Matcher:
        """Get a matcher of hexadecimal colors with three or six digits, see http://drafts.csswg.org/css-color/#hex-notation."""
        return self.cached('color_hex', lambda: TokenMatcher(HashToken, is_color_hex))

def is_integer(token: Token) -> bool:
    return token.type == NumberTokenType.integer # type: ignore

def is_zero(token: Token) -> bool:
    return token.value == 0 # type: ignore

def is_length(token: Token) -> bool:
    return token.unit.lower() in LENGTH_UNITS # type: ignore

def is_color_hex(token: Token) -> bool:
    return re.fullmatch(r'[0-9a-f]{3}|[0-9a-f]{6}', token.value, re.IGNORECASE) is not None # type: ignore
