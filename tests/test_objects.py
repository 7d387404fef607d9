import copy
import unittest

from cssward.objects import (
    AtRule,
    ComponentValueList,
    CSSFunction,
    Declaration,
    DeclarationList,
    QualifiedRule,
    SimpleBlock,
    TokenList,
    find_first_non_whitespace,
    insignificant,
    stringify,
)
from cssward.syntax.parsing import parse_component_value, parse_component_value_list
from cssward.syntax.tokenizing import (
    CloseBracketToken,
    ColonToken,
    FunctionToken,
    IdentToken,
    NumberToken,
    OpenBracketToken,
    WhitespaceToken,
)


def ident(value: str) -> IdentToken:
    return IdentToken(value=value)


class CSSObjectListTest(unittest.TestCase):
    def test_add_and_remove(self) -> None:
        tokens = TokenList([ident("a"), ident("b")])
        tokens.add(ident("c"))
        tokens.add([ident("x"), ident("y")], 1)
        self.assertEqual([token.value for token in tokens], ["a", "x", "y", "b", "c"])  # type: ignore
        self.assertEqual(tokens.remove(0), ident("a"))
        self.assertEqual(len(tokens), 4)
        with self.assertRaisesRegex(IndexError, "out of range"):
            tokens.add(ident("z"), 5)
        with self.assertRaisesRegex(IndexError, "out of range"):
            tokens.remove(4)

    def test_cursor_survives_changes(self) -> None:
        tokens = TokenList([ident("a"), ident("b"), ident("c")])
        cursor = iter(tokens)
        self.assertEqual(next(cursor), ident("a"))
        tokens.add(ident("x"), 0)
        self.assertEqual(next(cursor), ident("b"))
        tokens.remove(0)
        self.assertEqual(next(cursor), ident("c"))
        with self.assertRaises(StopIteration):
            next(cursor)

    def test_item_access(self) -> None:
        tokens = TokenList([ident("a"), ident("b")])
        tokens[2] = ident("c")
        tokens[0] = ident("z")
        self.assertEqual([token.value for token in tokens], ["z", "b", "c"])  # type: ignore
        with self.assertRaisesRegex(IndexError, "Offset is out of range."):
            tokens[5] = ident("d")
        with self.assertRaisesRegex(IndexError, "Cannot leave holes in the list."):
            del tokens[0]
        del tokens[2]
        self.assertEqual(len(tokens), 2)
        with self.assertRaisesRegex(TypeError, "Offset must be an integer."):
            tokens["a"]  # type: ignore
        with self.assertRaisesRegex(IndexError, "Offset is out of range."):
            tokens[2]

    def test_item_types(self) -> None:
        with self.assertRaises(TypeError):
            TokenList([SimpleBlock.new_from_delimiter("(")])  # type: ignore
        with self.assertRaisesRegex(TypeError, 'may not contain tokens of type "function"'):
            ComponentValueList([FunctionToken(value="f")])
        values = ComponentValueList()
        with self.assertRaises(TypeError):
            values.add(OpenBracketToken())

    def test_slice(self) -> None:
        tokens = TokenList([ident(name) for name in "abcd"])
        self.assertEqual([token.value for token in tokens.slice(1, 2)], ["b", "c"])  # type: ignore
        self.assertEqual([token.value for token in tokens.slice(2)], ["c", "d"])  # type: ignore
        self.assertEqual([token.value for token in tokens.slice(-1, 1)], ["d"])  # type: ignore
        self.assertEqual([token.value for token in tokens.slice(0, -1)], ["a", "b", "c"])  # type: ignore

    def test_deepcopy(self) -> None:
        values = parse_component_value_list("a (b [c]) f(d)")
        duplicate = copy.deepcopy(values)
        self.assertEqual(str(duplicate), str(values))
        self.assertIsNot(duplicate[2], values[2])
        self.assertEqual(len(list(duplicate)), len(values))

    def test_position(self) -> None:
        values = parse_component_value_list("a b")
        self.assertEqual(values.position, (1, 1))
        self.assertEqual(TokenList([ident("a")]).position, (-1, -1))


class ObjectTest(unittest.TestCase):
    def test_simple_block(self) -> None:
        with self.assertRaisesRegex(ValueError, "delimited by either"):
            SimpleBlock(ident("a"))
        with self.assertRaisesRegex(ValueError, "delimited by either"):
            SimpleBlock.new_from_delimiter("<")
        block = SimpleBlock.new_from_delimiter("[")
        self.assertIs(block.start_token_type, OpenBracketToken)
        self.assertIs(block.end_token_type, CloseBracketToken)
        self.assertEqual(str(block), "[]")
        block.value.add(ident("a"))
        self.assertEqual(str(block), "[a]")

    def test_function(self) -> None:
        function = CSSFunction.new_from_name("calc")
        function.value.add([NumberToken(value=1), WhitespaceToken(), NumberToken(value=2)])
        self.assertEqual(function.name, "calc")
        self.assertEqual(str(function), "calc(1 2)")
        with self.assertRaises(ValueError):
            CSSFunction(ident("calc"))

    def test_declaration(self) -> None:
        declaration = Declaration(ident("color"))
        declaration.value.add(ident("red"))
        self.assertEqual(str(declaration), "color:red")
        declaration.important = True
        self.assertEqual(str(declaration), "color:red !important")
        self.assertEqual(stringify(declaration, minify=True), "color:red!important")
        with self.assertRaisesRegex(ValueError, "must begin with an ident token"):
            Declaration(NumberToken(value=1))

    def test_declaration_list(self) -> None:
        declarations = DeclarationList()
        for name, value in [("a", 1), ("b", 2)]:
            declaration = Declaration(ident(name))
            declaration.value.add(NumberToken(value=value))
            declarations.add(declaration)
        self.assertEqual(str(declarations), "a:1; b:2;")
        self.assertEqual(stringify(declarations, minify=True), "a:1;b:2")

    def test_rules(self) -> None:
        rule = QualifiedRule()
        rule.prelude.add(ident("a"))
        rule.block = SimpleBlock.new_from_delimiter("{")
        rule.block.value.add([ident("color"), ColonToken(), ident("red")])
        self.assertEqual(str(rule), "a{ color:red }")
        self.assertEqual(stringify(rule, minify=True), "a{color:red}")
        with self.assertRaisesRegex(ValueError, "Qualified rule block must be delimited by {}"):
            rule.block = SimpleBlock.new_from_delimiter("[")

        at_rule = AtRule.new_from_name("import")
        self.assertEqual(str(at_rule), "@import;")
        with self.assertRaisesRegex(ValueError, "At-rule block must be delimited by {}"):
            at_rule.block = SimpleBlock.new_from_delimiter("(")
        with self.assertRaises(ValueError):
            AtRule(ident("import"))

    def test_insignificant(self) -> None:
        block = parse_component_value("(a b)")
        assert isinstance(block, SimpleBlock)
        result = insignificant(block)
        self.assertFalse(any(value.significant for value in result.value))  # type: ignore
        self.assertFalse(result.token.significant)  # type: ignore
        self.assertTrue(all(value.significant for value in block.value))  # type: ignore
        self.assertEqual(stringify(result, minify=True), "")

    def test_stringify_separates_tokens(self) -> None:
        self.assertEqual(stringify([ident("a"), ident("b")]), "a/**/b")
        self.assertEqual(stringify(parse_component_value_list("a/**/b")), "a/**/b")
        self.assertEqual(stringify(parse_component_value_list("a /* x */ b"), minify=True), "a b")

    def test_find_first_non_whitespace(self) -> None:
        values = ComponentValueList([WhitespaceToken(), ident("a")])
        self.assertEqual(find_first_non_whitespace(values), ident("a"))
        self.assertIsNone(find_first_non_whitespace(ComponentValueList([WhitespaceToken()])))
        with self.assertRaisesRegex(TypeError, "List must be TokenList or ComponentValueList"):
            find_first_non_whitespace([ident("a")])  # type: ignore
