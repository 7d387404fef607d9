"""Implement the ["CSS Values and Units Module Level 4"](http://drafts.csswg.org/css-values-4) value definition syntax, in the form of _matchers_.

A matcher is a grammar element: it expresses a subset of valid sequences of component values. Matchers here are configuration only, the procedures that match them against lists of component values live in the `matching` module, which attaches `generate_matches` and `match_against` to `Matcher` (see the package `__init__`).

The results of matching are `Match` objects.
"""

from .objects import ComponentValueList, CSSObjectList, stringify
from .syntax.tokenizing import IdentToken, OpenBraceToken, OpenBracketToken, OpenParenToken, Token
from .utils import assert_all_instance_of

from collections.abc import Callable, Iterable, Mapping, Sequence
from copy import copy
import math
from typing import Any

Options = Mapping[str, Any] # Matching options by name, e.g. `skip-whitespace`

SIGNIFICANT_WHITESPACE = 'significantWhitespace' # The name of captures of white-space that carries meaning

class Match:
	"""Class of results of matching a matcher against a list of component values.

	A match refers to a portion of the list it was made against, and may feature _captures_, the matches of sub-matchers that were tagged with a name (see `Matcher.capture`). The matched values are read from the list every time they are asked for, so a match reflects later changes to the list (e.g. white-space being marked insignificant).
	"""
	container: CSSObjectList # The list the match was made against
	start: int
	length: int
	name: str | None
	captures: list['Match']
	def __init__(self, container: CSSObjectList, start: int, length: int, name: str | None = None, captures: Iterable['Match'] = ()):
		"""
		:param name: The name the matcher was tagged with, if any
		:param captures: Named matches of sub-matchers
		:raises TypeError: if any of `captures` is not a `Match`
		"""
		captures = list(captures)
		assert_all_instance_of(captures, Match, 'captures')
		self.container = container
		self.start = start
		self.length = length
		self.name = name
		self.captures = captures
	def __eq__(self, other: object) -> bool:
		return isinstance(other, Match) and self.unique_id == other.unique_id
	def __hash__(self) -> int:
		return hash(self.unique_id)
	def __repr__(self) -> str:
		return f'{type(self).__name__}({self.start}, {self.length}, {self.name!r}, {self.captures!r})'
	def __str__(self) -> str:
		return stringify(self.values)
	@property
	def next(self) -> int:
		"""The offset in the list following the match."""
		return self.start + self.length
	@property
	def values(self) -> list:
		return self.container.slice(self.start, self.length)
	@property
	def unique_id(self) -> tuple:
		"""A value that is equal for matches of the same portion of the same list with the same name and captures."""
		return (id(self.container), self.start, self.length, self.name, tuple(capture.unique_id for capture in self.captures))

class Matcher:
	"""An [abstract] class of CSS grammar elements.

	Options recognized by every matcher (see also `default_options`):

	* `skip-whitespace`: whether white-space between matched values is skipped over
	* `nonterminal`: whether a match need not reach the end of the list (`match_against` only)
	* `mark-significance`: whether white-space tokens in the list are marked significant or not following a successful match (`match_against` only)
	"""
	capture_name: str | None = None
	default_options: Options = { 'skip-whitespace': True, 'nonterminal': False, 'mark-significance': False }
	def set_default_options(self, options: Options) -> 'Matcher':
		"""Change the options `match_against` uses when not given some.

		:returns: The matcher itself
		"""
		self.default_options = { **self.default_options, **options }
		return self
	def capture(self, name: str) -> 'Matcher':
		"""Get a copy of this matcher that tags its matches with `name`."""
		result = copy(self)
		result.capture_name = name
		return result

class TokenMatcher(Matcher):
	"""Class of matchers of a single token of a type, optionally one that a callback accepts."""
	token_type: type[Token]
	callback: Callable[[Token], bool] | None
	def __init__(self, token_type: type[Token], callback: Callable[[Token], bool] | None = None):
		if not (isinstance(token_type, type) and issubclass(token_type, Token)):
			raise TypeError('token_type must be a Token class')
		self.token_type = token_type
		self.callback = callback

class KeywordMatcher(Matcher):
	"""Class of matchers of ident tokens spelling one of a set of keywords, ASCII case-insensitively.

	See http://drafts.csswg.org/css-values-4/#keywords.
	"""
	words: frozenset[str] # In lower case
	def __init__(self, words: str | Iterable[str]):
		self.words = frozenset(word.lower() for word in ([ words ] if isinstance(words, str) else words))

class DelimMatcher(Matcher):
	"""Class of matchers of delim tokens of one of a set of values (case-sensitively)."""
	values: frozenset[str]
	def __init__(self, values: str | Iterable[str]):
		self.values = frozenset([ values ] if isinstance(values, str) else values)

class FunctionMatcher(Matcher):
	"""Class of matchers of a function, whose contents are matched by another matcher.

	See http://drafts.csswg.org/css-values-4/#functional-notations.
	"""
	name: str | Callable[[str], bool] | None # Compared ASCII case-insensitively when a string, any name is accepted when `None`
	matcher: Matcher
	def __init__(self, name: str | Callable[[str], bool] | None, matcher: Matcher | None = None):
		"""
		:param matcher: Matcher for the contents of the function; an empty function is expected if `None`
		:raises ValueError: if `name` is not a string, a callable or `None`
		"""
		if not (name is None or isinstance(name, str) or callable(name)):
			raise ValueError('name must be a string, callable, or None')
		self.name = name
		self.matcher = matcher if matcher is not None else Juxtaposition(())

class BlockMatcher(Matcher):
	"""Class of matchers of a simple block delimited a certain way, whose contents are matched by another matcher."""
	block_type: type[Token] # The type of the opening token
	matcher: Matcher
	def __init__(self, block_type: type[Token], matcher: Matcher | None = None):
		""":raises ValueError: if `block_type` is not one of the opening bracket token types"""
		if block_type not in (OpenBraceToken, OpenBracketToken, OpenParenToken):
			raise ValueError('A block is delimited by either {}, [], or ().')
		self.block_type = block_type
		self.matcher = matcher if matcher is not None else Juxtaposition(())

class UrlMatcher(Matcher):
	"""Class of matchers of a URL, i.e. a url token or a `url()` function with a string, see http://drafts.csswg.org/css-values-4/#urls.

	The URL is captured with the name `url`. If a modifier matcher is given, the `url()` function may feature any number of URL modifiers following the string, each captured with the name `modifier`. The callback gets the URL and the modifiers (a sequence of component values) and decides whether the URL is acceptable, e.g. by checking its scheme and host.
	"""
	callback: Callable[[str, Sequence], bool] | None
	modifier_matcher: Matcher | None
	def __init__(self, callback: Callable[[str, Sequence], bool] | None = None, modifier_matcher: Matcher | None = None):
		self.callback = callback
		self.modifier_matcher = modifier_matcher
	@staticmethod
	def any_modifier_matcher() -> Matcher:
		"""Get a matcher for URL modifiers that accepts any identifier or function, per http://drafts.csswg.org/css-values-4/#typedef-url-modifier."""
		return Alternative([ TokenMatcher(IdentToken), FunctionMatcher(None, AnythingMatcher(quantifier='*')) ])

class CustomPropertyMatcher(Matcher):
	"""Class of matchers of a custom property name, see http://drafts.csswg.org/css-variables/#custom-property."""

class Alternative(Matcher):
	"""Class of matchers that match what any one of a number of matchers matches.

	Implements the `|` combinator as defined at http://drafts.csswg.org/css-values-4/#component-combinators.
	"""
	matchers: list[Matcher]
	def __init__(self, matchers: Iterable[Matcher]):
		""":raises TypeError: if any of the matchers is not a `Matcher`"""
		matchers = list(matchers)
		assert_all_instance_of(matchers, Matcher, 'matchers')
		self.matchers = matchers

class Juxtaposition(Matcher):
	"""Class of matchers of a sequence of what each of a number of matchers matches, in order.

	Implements "juxtaposing components" as defined at http://drafts.csswg.org/css-values-4/#component-combinators. With `commas`, successive non-empty matches must be separated by a comma, as is the case with many functional notations.
	"""
	matchers: list[Matcher]
	commas: bool
	def __init__(self, matchers: Iterable[Matcher], commas: bool = False):
		matchers = list(matchers)
		assert_all_instance_of(matchers, Matcher, 'matchers')
		self.matchers = matchers
		self.commas = commas

class Quantifier(Matcher):
	"""Class of matchers that express repetition of what another matcher matches, with lower and upper bounds on the number of repetitions.

	Implements the multipliers defined at http://drafts.csswg.org/css-values-4/#component-multipliers. With `commas`, the repetitions are separated by commas (the `#` multiplier).
	"""
	matcher: Matcher
	min: int
	max: int | float # `math.inf` for no upper bound
	commas: bool
	def __init__(self, matcher: Matcher, min: int, max: int | float, commas: bool = False):
		""":raises ValueError: if the bounds are not `0 <= min <= max`"""
		if not isinstance(matcher, Matcher):
			raise TypeError(f'matcher must be an instance of Matcher (found {type(matcher).__name__})')
		if not 0 <= min <= max:
			raise ValueError(f'Invalid quantifier bounds {{{min},{max}}}')
		self.matcher = matcher
		self.min = min
		self.max = max
		self.commas = commas
	@classmethod
	def optional(cls, matcher: Matcher) -> 'Quantifier':
		"""The `?` multiplier."""
		return cls(matcher, 0, 1)
	@classmethod
	def star(cls, matcher: Matcher) -> 'Quantifier':
		"""The `*` multiplier."""
		return cls(matcher, 0, math.inf)
	@classmethod
	def plus(cls, matcher: Matcher) -> 'Quantifier':
		"""The `+` multiplier."""
		return cls(matcher, 1, math.inf)
	@classmethod
	def count(cls, matcher: Matcher, min: int, max: int | float) -> 'Quantifier':
		"""The `{A,B}` multiplier."""
		return cls(matcher, min, max)
	@classmethod
	def hash(cls, matcher: Matcher, min: int = 1, max: int | float = math.inf) -> 'Quantifier':
		"""The `#` multiplier, optionally with bounds (`#{A,B}`)."""
		return cls(matcher, min, max, commas=True)

class UnorderedGroup(Matcher):
	"""Class of matchers of what each of a number of matchers matches, in any order.

	Implements the `&&` (`all_required`) and `||` combinators as defined at http://drafts.csswg.org/css-values-4/#component-combinators. With `&&` every matcher must match, while `||` requires one or more of them to match; either way, a matcher matches at most once.
	"""
	matchers: list[Matcher]
	all_required: bool
	def __init__(self, matchers: Iterable[Matcher], all_required: bool):
		matchers = list(matchers)
		assert_all_instance_of(matchers, Matcher, 'matchers')
		self.matchers = matchers
		self.all_required = all_required
	@classmethod
	def all_of(cls, matchers: Iterable[Matcher]) -> 'UnorderedGroup':
		return cls(matchers, True)
	@classmethod
	def some_of(cls, matchers: Iterable[Matcher]) -> 'UnorderedGroup':
		return cls(matchers, False)

class AnythingMatcher(Matcher):
	"""Class of matchers of component values generally, as e.g. the value of a custom property.

	Implements `<declaration-value>` (`toplevel`) and `<any-value>`, see http://drafts.csswg.org/css-syntax/#any-value. Bad tokens and unmatched closing brackets are never matched; at the top level, neither are semicolons and `!` delims.

	Matched white-space is captured as significant, and so is every white-space inside matched blocks and functions when white-space is not being skipped.
	"""
	quantifier: str | None # `None` to match exactly one component value, `*` for any number of them, `+` for one or more
	toplevel: bool
	def __init__(self, quantifier: str | None = None, toplevel: bool = False):
		""":raises ValueError: if the quantifier is neither of `None`, `*` and `+`"""
		if quantifier not in (None, '*', '+'):
			raise ValueError('Invalid quantifier')
		self.quantifier = quantifier
		self.toplevel = toplevel

class NothingMatcher(Matcher):
	"""Class of matchers that never match."""

class NonEmpty(Matcher):
	"""Class of matchers that express a non-empty match of another matcher.

	Implements the `!` multiplier as defined at http://drafts.csswg.org/css-values-4/#mult-req.
	"""
	matcher: Matcher
	def __init__(self, matcher: Matcher):
		self.matcher = matcher

class NoWhitespace(Matcher):
	"""Class of matchers of the absence of white-space, i.e. an empty match only where the preceding value is not white-space."""

class WhitespaceMatcher(Matcher):
	"""Class of matchers of [optional] white-space.

	Insignificant white-space is always matched, possibly empty. Significant white-space must be present, either at the start or just before it (where it was skipped over by a preceding matcher), and is captured with the name `significantWhitespace`.
	"""
	significant: bool
	def __init__(self, significant: bool = False):
		self.significant = significant

class CheckedMatcher(Matcher):
	"""Class of matchers that only accept the matches of another matcher for which a check passes.

	The check is called with the list of values, the match and the options, for constraints the grammar can't express.
	"""
	matcher: Matcher
	check: Callable[[ComponentValueList, Match, Options], bool]
	def __init__(self, matcher: Matcher, check: Callable[[ComponentValueList, Match, Options], bool]):
		self.matcher = matcher
		self.check = check

class UrangeMatcher(Matcher):
	"""Class of matchers of a unicode-range, see http://drafts.csswg.org/css-syntax/#urange.

	Tokenization turns a unicode-range into a number of tokens (e.g. `U+1?` is an ident, a number and a delim), so the range is pieced back together from these. The bounds of the range are captured, as number tokens, with the names `start` and `end`.
	"""
