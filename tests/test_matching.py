import time
import unittest
from collections.abc import Sequence

from cssward.matching import generate_matches, match_against
from cssward.objects import ComponentValueList, stringify
from cssward.syntax.parsing import parse_component_value_list
from cssward.syntax.tokenizing import (
    CommaToken,
    IdentToken,
    NumberToken,
    OpenBraceToken,
    OpenBracketToken,
    StringToken,
    WhitespaceToken,
)
from cssward.utils import ParseError
from cssward.values import (
    SIGNIFICANT_WHITESPACE,
    Alternative,
    AnythingMatcher,
    BlockMatcher,
    CheckedMatcher,
    CustomPropertyMatcher,
    DelimMatcher,
    FunctionMatcher,
    Juxtaposition,
    KeywordMatcher,
    Match,
    Matcher,
    NonEmpty,
    NothingMatcher,
    NoWhitespace,
    Quantifier,
    TokenMatcher,
    UnorderedGroup,
    UrangeMatcher,
    UrlMatcher,
    WhitespaceMatcher,
)

IDENT = TokenMatcher(IdentToken)
NUMBER = TokenMatcher(NumberToken)


def ends(matcher: Matcher, values: ComponentValueList, start: int = 0, **options: bool) -> list[int]:
    """Get where each candidate match of a matcher ends, in order."""
    options = {**Matcher.default_options, **{name.replace("_", "-"): value for name, value in options.items()}}
    return [match.next for match in generate_matches(matcher, values, start, options)]


class SingleValueTest(unittest.TestCase):
    def test_token(self) -> None:
        values = parse_component_value_list("foo bar, 1")
        self.assertEqual(ends(IDENT, values), [2])
        self.assertEqual(ends(IDENT, values, skip_whitespace=False), [1])
        self.assertEqual(ends(IDENT, values, 3), [])
        self.assertEqual(ends(IDENT, values, 6), [])
        self.assertEqual(ends(TokenMatcher(IdentToken, lambda token: token.value == "bar"), values, 2), [3])  # type: ignore
        self.assertEqual(ends(TokenMatcher(IdentToken, lambda token: token.value == "bar"), values, 0), [])  # type: ignore
        with self.assertRaisesRegex(TypeError, "token_type must be a Token class"):
            TokenMatcher(str)  # type: ignore

    def test_keyword(self) -> None:
        matcher = KeywordMatcher(["Auto", "none"])
        self.assertIsNotNone(match_against(matcher, parse_component_value_list("AUTO")))
        self.assertIsNotNone(match_against(matcher, parse_component_value_list(" none ")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("normal")))
        self.assertIsNone(match_against(matcher, parse_component_value_list('"auto"')))
        self.assertIsNotNone(match_against(KeywordMatcher("auto"), parse_component_value_list("auto")))

    def test_delim(self) -> None:
        self.assertIsNotNone(match_against(DelimMatcher("/"), parse_component_value_list("/")))
        self.assertIsNone(match_against(DelimMatcher(["+", "-"]), parse_component_value_list("/")))

    def test_custom_property(self) -> None:
        self.assertIsNotNone(match_against(CustomPropertyMatcher(), parse_component_value_list("--main-color")))
        self.assertIsNone(match_against(CustomPropertyMatcher(), parse_component_value_list("color")))

    def test_nothing(self) -> None:
        self.assertEqual(ends(NothingMatcher(), parse_component_value_list("a")), [])
        self.assertEqual(ends(NothingMatcher(), ComponentValueList()), [])

    def test_unknown_matcher(self) -> None:
        with self.assertRaises(TypeError):
            ends(Matcher(), parse_component_value_list("a"))


class FunctionAndBlockTest(unittest.TestCase):
    def test_function(self) -> None:
        matcher = FunctionMatcher("calc", NUMBER)
        self.assertIsNotNone(match_against(matcher, parse_component_value_list("CALC(1)")))
        self.assertIsNotNone(match_against(matcher, parse_component_value_list("calc( 1 )")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("min(1)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("calc(a)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("calc(1 2)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("(1)")))

    def test_function_names(self) -> None:
        prefixed = FunctionMatcher(lambda name: name.startswith("-webkit-"), NUMBER)
        self.assertIsNotNone(match_against(prefixed, parse_component_value_list("-webkit-foo(1)")))
        self.assertIsNone(match_against(prefixed, parse_component_value_list("foo(1)")))
        self.assertIsNotNone(match_against(FunctionMatcher(None, NUMBER), parse_component_value_list("anything(1)")))
        with self.assertRaisesRegex(ValueError, "name must be a string, callable, or None"):
            FunctionMatcher(12)  # type: ignore

    def test_empty_function(self) -> None:
        self.assertIsNotNone(match_against(FunctionMatcher("foo"), parse_component_value_list("foo()")))
        self.assertIsNotNone(match_against(FunctionMatcher("foo"), parse_component_value_list("foo( )")))
        self.assertIsNone(match_against(FunctionMatcher("foo"), parse_component_value_list("foo(1)")))

    def test_block(self) -> None:
        matcher = BlockMatcher(OpenBracketToken, IDENT)
        self.assertIsNotNone(match_against(matcher, parse_component_value_list("[a]")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("(a)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("[1]")))
        self.assertIsNotNone(match_against(BlockMatcher(OpenBraceToken), parse_component_value_list("{}")))
        with self.assertRaisesRegex(ValueError, r"A block is delimited by either \{\}, \[\], or \(\)."):
            BlockMatcher(IdentToken)


class UrlTest(unittest.TestCase):
    def test_url_token(self) -> None:
        seen: list[tuple[str, Sequence]] = []
        matcher = UrlMatcher(lambda url, modifiers: seen.append((url, modifiers)) is None)
        match = match_against(matcher, parse_component_value_list("url(foo.png)"))
        assert match is not None
        self.assertEqual([capture.name for capture in match.captures], ["url"])
        self.assertEqual(str(match.captures[0]), "url(foo.png)")
        self.assertEqual(seen, [("foo.png", [])])

    def test_url_function(self) -> None:
        seen: list[tuple[str, Sequence]] = []
        matcher = UrlMatcher(lambda url, modifiers: seen.append((url, modifiers)) is None)
        match = match_against(matcher, parse_component_value_list('url( "a.png" )'))
        assert match is not None
        self.assertEqual(seen, [("a.png", [])])
        self.assertIsNone(match_against(matcher, parse_component_value_list("url(a b)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list('url("a" foo)')))

    def test_callback_rejects(self) -> None:
        matcher = UrlMatcher(lambda url, modifiers: url.startswith("https:"))
        self.assertIsNotNone(match_against(matcher, parse_component_value_list("url(https://example.com/a.png)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list("url(http://example.com/a.png)")))
        self.assertIsNone(match_against(matcher, parse_component_value_list('url("javascript:alert(1)")')))

    def test_modifiers(self) -> None:
        seen: list[tuple[str, Sequence]] = []
        matcher = UrlMatcher(lambda url, modifiers: seen.append((url, modifiers)) is None, UrlMatcher.any_modifier_matcher())
        match = match_against(matcher, parse_component_value_list('url("a" foo bar(1))'))
        assert match is not None
        self.assertEqual([capture.name for capture in match.captures], ["url", "modifier", "modifier"])
        ((url, modifiers),) = seen
        self.assertEqual(url, "a")
        self.assertEqual([stringify([modifier]) for modifier in modifiers], ["foo", "bar(1)"])


class CombinatorTest(unittest.TestCase):
    def test_alternative(self) -> None:
        values = parse_component_value_list("a b c")
        self.assertEqual(ends(Alternative([IDENT, Quantifier.plus(IDENT)]), values), [2, 5, 4])
        self.assertEqual(ends(Alternative([NUMBER, IDENT]), values), [2])
        self.assertEqual(ends(Alternative([]), values), [])
        with self.assertRaises(TypeError):
            Alternative([IDENT, "b"])  # type: ignore

    def test_juxtaposition(self) -> None:
        values = parse_component_value_list("a b c")
        self.assertEqual(ends(Juxtaposition([IDENT, IDENT]), values), [4])
        self.assertEqual(ends(Juxtaposition([]), values), [0])
        self.assertEqual(ends(Juxtaposition([IDENT, NUMBER]), values), [])

    def test_juxtaposition_backtracks(self) -> None:
        values = parse_component_value_list("a")
        self.assertEqual(ends(Quantifier.optional(IDENT), values), [1, 0])
        match = match_against(Juxtaposition([Quantifier.optional(IDENT), IDENT]), values)
        assert match is not None
        self.assertEqual(match.length, 1)

    def test_juxtaposition_with_commas(self) -> None:
        matcher = Juxtaposition([IDENT, Quantifier.optional(NUMBER), IDENT], commas=True)
        self.assertEqual(ends(matcher, parse_component_value_list("a, 1, b")), [7])
        self.assertEqual(ends(matcher, parse_component_value_list("a, b")), [4])
        self.assertEqual(ends(matcher, parse_component_value_list("a b")), [])
        self.assertIsNone(match_against(matcher, parse_component_value_list("a, , b")))

    def test_juxtaposition_of_optionals(self) -> None:
        matcher = Juxtaposition([Quantifier.optional(KeywordMatcher(word)) for word in "abc"])
        candidates = ends(matcher, parse_component_value_list("a b c"))
        self.assertEqual((candidates[0], candidates[-1]), (5, 0))

        matcher = Juxtaposition([Quantifier.optional(KeywordMatcher(word)) for word in "abc"], commas=True)
        self.assertEqual(ends(matcher, parse_component_value_list("a,,c")), [1, 0])

    def test_quantifier(self) -> None:
        values = parse_component_value_list("a b c")
        self.assertEqual(ends(Quantifier.star(IDENT), values), [5, 4, 2, 0])
        self.assertEqual(ends(Quantifier.plus(IDENT), values), [5, 4, 2])
        self.assertEqual(ends(Quantifier.count(IDENT, 2, 2), values), [4])
        self.assertEqual(ends(Quantifier.count(IDENT, 1, 2), values), [4, 2])
        self.assertEqual(ends(Quantifier.plus(NUMBER), values), [])

    def test_quantifier_with_commas(self) -> None:
        values = parse_component_value_list("a, b ,c")
        self.assertEqual(ends(Quantifier.hash(IDENT), values), [7, 5, 1])
        self.assertEqual(ends(Quantifier.hash(IDENT, 1, 2), values), [5, 1])
        match = match_against(Quantifier.hash(IDENT), values)
        assert match is not None
        self.assertEqual(match.length, 7)
        self.assertIsNone(match_against(Quantifier.hash(IDENT), parse_component_value_list("a b")))
        self.assertIsNone(match_against(Quantifier.hash(IDENT), parse_component_value_list("a,")))

    def test_quantifier_bounds(self) -> None:
        with self.assertRaisesRegex(ValueError, "Invalid quantifier bounds"):
            Quantifier(IDENT, 2, 1)
        with self.assertRaisesRegex(ValueError, "Invalid quantifier bounds"):
            Quantifier(IDENT, -1, 1)
        with self.assertRaises(TypeError):
            Quantifier("a", 0, 1)  # type: ignore

    def test_quantifier_of_empty_match(self) -> None:
        with self.assertRaisesRegex(ParseError, "Empty match in quantifier!"):
            ends(Quantifier.star(Quantifier.optional(IDENT)), parse_component_value_list("a"))

    def test_all_of(self) -> None:
        matcher = UnorderedGroup.all_of([KeywordMatcher("a"), KeywordMatcher("b")])
        self.assertEqual(ends(matcher, parse_component_value_list("b a")), [3])
        self.assertEqual(ends(matcher, parse_component_value_list("a b")), [3])
        self.assertEqual(ends(matcher, parse_component_value_list("a a")), [])
        self.assertEqual(ends(UnorderedGroup.all_of([]), parse_component_value_list("a")), [0])

    def test_all_of_many_members(self) -> None:
        started = time.monotonic()
        optionals = UnorderedGroup.all_of([Quantifier.optional(KeywordMatcher(f"k{index}")) for index in range(12)])
        self.assertIsNone(match_against(optionals, parse_component_value_list("nope")))
        self.assertEqual(ends(optionals, parse_component_value_list("nope")), [0])

        keywords = UnorderedGroup.all_of([KeywordMatcher(f"k{index}") for index in range(12)])
        values = parse_component_value_list(" ".join(f"k{index}" for index in reversed(range(12))))
        match = match_against(keywords, values)
        assert match is not None
        self.assertEqual(match.length, len(values))
        self.assertLess(time.monotonic() - started, 5)

    def test_some_of(self) -> None:
        matcher = UnorderedGroup.some_of([KeywordMatcher("a"), KeywordMatcher("b"), KeywordMatcher("c")])
        self.assertEqual(ends(matcher, parse_component_value_list("c a")), [3, 2])
        self.assertEqual(ends(matcher, parse_component_value_list("d")), [])
        self.assertIsNone(match_against(matcher, parse_component_value_list("a a")))
        self.assertEqual(ends(UnorderedGroup.some_of([]), parse_component_value_list("a")), [])

    def test_some_of_with_optionals(self) -> None:
        matcher = UnorderedGroup.some_of([KeywordMatcher("a"), Quantifier.optional(KeywordMatcher("b")), KeywordMatcher("c")])
        match = match_against(matcher, parse_component_value_list("c a"))
        assert match is not None
        self.assertEqual(match.length, 3)

    def test_non_empty(self) -> None:
        self.assertEqual(ends(NonEmpty(Quantifier.star(IDENT)), parse_component_value_list("a")), [1])
        self.assertEqual(ends(NonEmpty(Quantifier.star(IDENT)), parse_component_value_list(",")), [])

    def test_checked(self) -> None:
        values = parse_component_value_list("a b c")
        matcher = CheckedMatcher(Quantifier.plus(IDENT), lambda values, match, options: match.length > 2)
        self.assertEqual(ends(matcher, values), [5, 4])

    def test_captures(self) -> None:
        matcher = Juxtaposition([IDENT.capture("first"), Quantifier.star(NUMBER.capture("number"))])
        match = match_against(matcher, parse_component_value_list("a 1 2"))
        assert match is not None
        self.assertEqual([capture.name for capture in match.captures], ["first", "number", "number"])
        self.assertEqual([str(capture) for capture in match.captures], ["a ", "1 ", "2"])
        self.assertIsNone(IDENT.capture_name)


class AnythingTest(unittest.TestCase):
    def test_single(self) -> None:
        self.assertEqual(ends(AnythingMatcher(), parse_component_value_list("a b")), [2])
        self.assertEqual(ends(AnythingMatcher(), ComponentValueList()), [])

    def test_quantified(self) -> None:
        values = parse_component_value_list("a b")
        self.assertEqual(ends(AnythingMatcher("*"), values), [3, 2, 0])
        self.assertEqual(ends(AnythingMatcher("+"), values), [3, 2])
        self.assertEqual(ends(AnythingMatcher("*"), values, skip_whitespace=False), [3, 2, 1, 0])
        with self.assertRaisesRegex(ValueError, "Invalid quantifier"):
            AnythingMatcher("?")

    def test_toplevel(self) -> None:
        values = parse_component_value_list("a; b")
        self.assertEqual(ends(AnythingMatcher("+", toplevel=True), values), [1])
        self.assertEqual(ends(AnythingMatcher("+"), values), [4, 3, 1])
        self.assertEqual(ends(AnythingMatcher("+", toplevel=True), parse_component_value_list("a !important")), [2])
        self.assertEqual(ends(AnythingMatcher("+"), parse_component_value_list("a)")), [1])
        self.assertEqual(ends(AnythingMatcher("+"), parse_component_value_list("(a ;) b")), [3, 2])
        self.assertEqual(ends(AnythingMatcher("+", toplevel=True), parse_component_value_list("(a ;) b")), [3, 2])
        self.assertEqual(ends(AnythingMatcher("+", toplevel=True), parse_component_value_list('f("a\nb")')), [])

    def test_significant_whitespace(self) -> None:
        values = parse_component_value_list("a b")
        match = match_against(AnythingMatcher("*"), values, {"skip-whitespace": False})
        assert match is not None
        self.assertEqual([(capture.name, capture.start) for capture in match.captures], [(SIGNIFICANT_WHITESPACE, 1)])

        values = parse_component_value_list("f(a b)")
        match = match_against(AnythingMatcher(), values, {"skip-whitespace": False})
        assert match is not None
        self.assertEqual([capture.start for capture in match.captures], [1])
        self.assertIs(match.captures[0].container, values[0].value)  # type: ignore


class WhitespaceTest(unittest.TestCase):
    def test_insignificant(self) -> None:
        values = parse_component_value_list("a  b")
        self.assertEqual(ends(WhitespaceMatcher(), values, 0), [0])
        self.assertEqual(ends(WhitespaceMatcher(), values, 1, skip_whitespace=False), [2])

    def test_significant(self) -> None:
        values = parse_component_value_list("a b")
        self.assertEqual(ends(WhitespaceMatcher(significant=True), values, 1, skip_whitespace=False), [2])
        self.assertEqual(ends(WhitespaceMatcher(significant=True), values, 2), [2])
        self.assertEqual(ends(WhitespaceMatcher(significant=True), values, 2, skip_whitespace=False), [])
        self.assertEqual(ends(WhitespaceMatcher(significant=True), values, 0), [])
        self.assertEqual(ends(WhitespaceMatcher(significant=True), parse_component_value_list("a,b"), 2), [])

    def test_no_whitespace(self) -> None:
        values = parse_component_value_list("a b,c")
        self.assertEqual(ends(NoWhitespace(), values, 0), [0])
        self.assertEqual(ends(NoWhitespace(), values, 2), [])
        self.assertEqual(ends(NoWhitespace(), values, 4), [4])
        self.assertIsNone(match_against(Juxtaposition([IDENT, NoWhitespace(), IDENT]), values, {"nonterminal": True}))
        self.assertIsNotNone(match_against(Juxtaposition([IDENT, NoWhitespace(), TokenMatcher(CommaToken)]), parse_component_value_list("a,")))

    def test_mark_significance(self) -> None:
        values = parse_component_value_list("a b")
        match_against(Juxtaposition([IDENT, IDENT]), values, {"mark-significance": True})
        self.assertFalse(values[1].significant)  # type: ignore
        self.assertEqual(stringify(values, minify=True), "a/**/b")
        self.assertEqual(str(values), "a b")

        values = parse_component_value_list("a b")
        match = match_against(Juxtaposition([IDENT, WhitespaceMatcher(significant=True), IDENT]), values, {"mark-significance": True})
        assert match is not None
        self.assertTrue(values[1].significant)  # type: ignore
        self.assertEqual(stringify(values, minify=True), "a b")

    def test_mark_significance_in_functions(self) -> None:
        values = parse_component_value_list("f( a  b )")
        matcher = FunctionMatcher("f", Juxtaposition([IDENT, IDENT]))
        self.assertIsNotNone(match_against(matcher, values, {"mark-significance": True}))
        self.assertEqual(stringify(values, minify=True), "f(a/**/b)")

        values = parse_component_value_list("f( a  b )")
        matcher = FunctionMatcher("f", AnythingMatcher("*"))
        self.assertIsNotNone(match_against(matcher, values, {"mark-significance": True, "skip-whitespace": False}))
        self.assertEqual(stringify(values, minify=True), "f( a b )")

    def test_default_options(self) -> None:
        values = parse_component_value_list("a b")
        matcher = Juxtaposition([IDENT, WhitespaceMatcher(), IDENT]).set_default_options({"skip-whitespace": False})
        self.assertIsNotNone(match_against(matcher, values))
        self.assertIsNone(match_against(Juxtaposition([IDENT, IDENT]).set_default_options({"skip-whitespace": False}), values))
        self.assertIsNotNone(match_against(IDENT, values, {"nonterminal": True}))
        self.assertIsNone(match_against(IDENT, values))


class UrangeTest(unittest.TestCase):
    def bounds(self, text: str) -> tuple[int, int] | None:
        values = parse_component_value_list(text)
        match = match_against(UrangeMatcher(), values)
        if match is None:
            return None
        self.assertEqual([capture.name for capture in match.captures], ["start", "end"])
        return tuple(capture.values[0].value for capture in match.captures)  # type: ignore

    def test_ranges(self) -> None:
        self.assertEqual(self.bounds("U+1?"), (0x10, 0x1F))
        self.assertEqual(self.bounds("u+12-FdDd"), (0x12, 0xFDDD))
        self.assertEqual(self.bounds("u+0-7F"), (0x0, 0x7F))
        self.assertEqual(self.bounds("U+26"), (0x26, 0x26))
        self.assertEqual(self.bounds("U+A5"), (0xA5, 0xA5))
        self.assertEqual(self.bounds("u+4??"), (0x400, 0x4FF))
        self.assertEqual(self.bounds("U+10FFFF"), (0x10FFFF, 0x10FFFF))

    def test_invalid_ranges(self) -> None:
        self.assertIsNone(self.bounds("U+FFFFFF"))
        self.assertIsNone(self.bounds("U+??????"))
        self.assertIsNone(self.bounds("U+1234567"))
        self.assertIsNone(self.bounds("U+"))
        self.assertIsNone(self.bounds("V+12"))
        self.assertIsNone(self.bounds("U+1?2"))

    def test_reversed_range_matches_prefix(self) -> None:
        values = parse_component_value_list("U+200-100")
        self.assertEqual(ends(UrangeMatcher(), values), [2])
        self.assertIsNone(match_against(UrangeMatcher(), values))

    def test_serialization(self) -> None:
        values = parse_component_value_list("U+1?")
        self.assertIsNotNone(match_against(UrangeMatcher(), values))
        self.assertEqual(values[0].urange_length, 3)  # type: ignore
        self.assertEqual(stringify(values, minify=True), "U+1?")

        values = ComponentValueList([IdentToken(value="u"), NumberToken(value=1, representation="+1"), CommaToken()])
        self.assertEqual(stringify(values, minify=True), "u/**/1,")
        self.assertIsNotNone(match_against(Juxtaposition([UrangeMatcher(), TokenMatcher(CommaToken)]), values))
        self.assertEqual(stringify(values, minify=True), "u+1,")

    def test_minified_range_stays_apart_from_what_follows(self) -> None:
        for text, minified in [("U+1 a", "U+1/**/a"), ("U+10-20 a", "U+10-20/**/a"), ("u+4?? b", "u+4??b")]:
            values = parse_component_value_list(text)
            self.assertIsNotNone(match_against(Juxtaposition([UrangeMatcher(), IDENT]), values, {"mark-significance": True}))
            self.assertEqual(values[0].urange_length, len(values) - 2)  # type: ignore
            self.assertEqual(stringify(values, minify=True), minified)


class MatchTest(unittest.TestCase):
    def test_values_follow_the_list(self) -> None:
        values = parse_component_value_list("a b")
        match = Match(values, 0, 3)
        self.assertEqual(str(match), "a b")
        values[1] = WhitespaceToken(significant=False)
        self.assertEqual(match.values[1], WhitespaceToken(significant=False))
        self.assertEqual(match.next, 3)

    def test_identity(self) -> None:
        values = parse_component_value_list("a b")
        self.assertEqual(Match(values, 0, 1, "x"), Match(values, 0, 1, "x"))
        self.assertNotEqual(Match(values, 0, 1, "x"), Match(values, 0, 1, "y"))
        self.assertNotEqual(Match(values, 0, 1), Match(parse_component_value_list("a b"), 0, 1))
        self.assertEqual(len({Match(values, 0, 1), Match(values, 0, 1)}), 1)
        with self.assertRaises(TypeError):
            Match(values, 0, 1, captures=["x"])  # type: ignore

    def test_matcher_methods(self) -> None:
        values = parse_component_value_list("a")
        self.assertIsNotNone(IDENT.match_against(values))  # type: ignore
        self.assertEqual([match.next for match in IDENT.generate_matches(values, 0, Matcher.default_options)], [1])  # type: ignore

    def test_string_token_type(self) -> None:
        self.assertIsNotNone(match_against(TokenMatcher(StringToken), parse_component_value_list("'a'")))
