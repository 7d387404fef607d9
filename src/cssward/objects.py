"""The object model of parsed CSS: component values (tokens, simple blocks and functions), declarations, rules, stylesheets, and the lists these are kept in.

See http://drafts.csswg.org/css-syntax/#parsing for the definitions of the constructs modelled here.

Every object can be turned back into tokens (`to_token_array`) and thus into text (`stringify`). Objects made by the parser remember the tokens that were skipped while making them (e.g. the white-space and the semicolons between declarations) so that the text they were parsed from can be reproduced exactly; these tokens are kept insignificant, which is what lets minified serialization leave them out.
"""

from .syntax.preprocessing import Position
from .syntax.tokenizing import AtKeywordToken, CloseBraceToken, CloseBracketToken, CloseParenToken, ColonToken, DelimToken, FunctionToken, IdentToken, OpenBraceToken, OpenBracketToken, OpenParenToken, PreprocessorCommentToken, SemicolonToken, Token, WhitespaceToken, serialize
from .utils import assert_all_instance_of, join

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Sequence
from copy import deepcopy
from typing import Any, ClassVar, Protocol, runtime_checkable, TypeAlias, TypeVar
from weakref import WeakSet

T = TypeVar('T')

UNKNOWN_POSITION: Position = (-1, -1)

@runtime_checkable
class CSSObject(Protocol):
    """The interface all objects of the object model (tokens included) conform to."""
    @property
    def position(self) -> Position:
        raise NotImplementedError
    def to_token_array(self) -> list[Token]:
        """Get the sequence of tokens that represents the object."""
        raise NotImplementedError
    def to_component_value_array(self) -> list['ComponentValue']:
        """Get the sequence of component values that represents the object."""
        raise NotImplementedError

class Cursor(Iterator[T]):
    """Class of iterators over object lists that keep their place while the list is being modified.

    The `offset` is that of the item to be returned next. Inserting items before the offset or removing items before it shifts the offset along, so the same item is returned next; an item inserted _at_ the offset is returned next instead.
    """
    offset: int
    _list: 'CSSObjectList[T]'
    def __init__(self, list: 'CSSObjectList[T]'):
        self._list = list
        self.offset = 0
    def __next__(self) -> T:
        if self.offset >= len(self._list):
            raise StopIteration
        item = self._list[self.offset]
        self.offset += 1
        return item
    def seek(self, offset: int) -> None:
        """:raises IndexError: if there is no item at `offset`"""
        if not 0 <= offset < len(self._list):
            raise IndexError('Offset is out of range.')
        self.offset = offset

class CSSObjectList(Sequence[T]):
    """Class of ordered lists of CSS objects of a kind.

    Lists are sequences with positional insertion and removal; holes can not be left in them. Iterating a list yields a `Cursor`, which stays valid while the list is modified.

    Serializing a list writes out its items with separators between them, as dictated by the kind of list (see `separator`). Where the parser recorded the tokens actually found between items (see `leading` on rules and declarations, and `trailing` on lists), those are written out instead.
    """
    item_type: ClassVar[type | tuple[type, ...]] = object
    trailing: list['ComponentValue'] | None # Tokens found after the last item by the parser
    _items: list[T]
    _cursors: WeakSet[Cursor[T]]
    def __init__(self, items: Iterable[T] = ()):
        items = list(items)
        self.check_items(items)
        self._items = items
        self._cursors = WeakSet()
        self.trailing = None
    def __deepcopy__(self, memo: dict) -> 'CSSObjectList[T]':
        result = type(self).__new__(type(self))
        memo[id(self)] = result
        for name, value in vars(self).items():
            setattr(result, name, WeakSet() if name == '_cursors' else deepcopy(value, memo))
        return result
    def __iter__(self) -> Cursor[T]:
        cursor = Cursor(self)
        self._cursors.add(cursor)
        return cursor
    def __len__(self) -> int:
        return len(self._items)
    def __getitem__(self, offset: int) -> T: # type: ignore # Slicing is done with `slice`
        self.check_offset(offset)
        if not 0 <= offset < len(self._items):
            raise IndexError('Offset is out of range.')
        return self._items[offset]
    def __setitem__(self, offset: int, value: T) -> None:
        self.check_offset(offset)
        self.check_items([ value ])
        if offset == len(self._items):
            self._items.append(value)
        elif 0 <= offset < len(self._items):
            self._items[offset] = value
        else:
            raise IndexError('Offset is out of range.')
    def __delitem__(self, offset: int) -> None:
        self.check_offset(offset)
        if offset == len(self._items) - 1:
            self.remove(offset)
        elif 0 <= offset < len(self._items):
            raise IndexError('Cannot leave holes in the list.')
        else:
            raise IndexError('Offset is out of range.')
    def __str__(self) -> str:
        return stringify(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._items!r})'
    @staticmethod
    def check_offset(offset: Any) -> None:
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise TypeError('Offset must be an integer.')
    def check_items(self, items: Sequence[Any]) -> None:
        """:raises TypeError: if any of the items may not be featured in this list"""
        assert_all_instance_of(items, self.item_type, type(self).__name__)
    def add(self, value: T | Iterable[T], index: int | None = None) -> None:
        """Insert an item, or a number of items, into the list.

        :param index: Offset to insert at, the end of the list if `None`
        :raises IndexError: if `index` is beyond the end of the list
        """
        values = [ value ] if isinstance(value, self.item_type) else list(value) # type: ignore
        self.check_items(values)
        if index is None:
            index = len(self._items)
        elif not 0 <= index <= len(self._items):
            raise IndexError('Index is out of range.')
        self._items[index:index] = values
        for cursor in self._cursors:
            if cursor.offset > index:
                cursor.offset += len(values)
    def remove(self, index: int) -> T: # type: ignore # Removal is by offset, not by value
        """Remove the item at an offset.

        :returns: The removed item
        :raises IndexError: if there is no item at `index`
        """
        if not 0 <= index < len(self._items):
            raise IndexError('Index is out of range.')
        for cursor in self._cursors:
            if cursor.offset > index:
                cursor.offset -= 1
        return self._items.pop(index)
    def slice(self, offset: int, length: int | None = None) -> list[T]:
        """Get a portion of the list.

        :param offset: Where the portion starts; counts from the end of the list if negative
        :param length: How many items the portion has at most; if negative, the portion stops that many items short of the end of the list
        """
        if length is None:
            return self._items[offset:]
        elif length < 0:
            return self._items[offset:length]
        else:
            start = offset if offset >= 0 else max(len(self._items) + offset, 0)
            return self._items[start:start + length]
    def clear(self) -> None:
        self._items.clear()
        for cursor in self._cursors:
            cursor.offset = 0
    @property
    def position(self) -> Position:
        """The position of the item that comes first in the source, which isn't necessarily the first item in the list."""
        return min((position for item in self._items if (position := item.position) != UNKNOWN_POSITION), default=UNKNOWN_POSITION) # type: ignore
    def separator(self, left: T, right: T | None = None) -> list[Token]:
        """Get the tokens to write out between two items, or after the last item (`right` is `None`)."""
        return []
    def to_token_array(self) -> list[Token]:
        return [ token for value in self.joined(lambda item: item.to_token_array()) for token in value.to_token_array() ] # type: ignore
    def to_component_value_array(self) -> list['ComponentValue']:
        return self.joined(lambda item: item.to_component_value_array()) # type: ignore
    def joined(self, values: Callable[[T], list['ComponentValue']]) -> list['ComponentValue']:
        result: list[ComponentValue] = []
        for index, item in enumerate(self._items):
            result += values(item)
            if index + 1 < len(self._items):
                if getattr(self._items[index + 1], 'leading', None) is None:
                    result += self.separator(item, self._items[index + 1])
            elif self.trailing is None:
                result += self.separator(item)
        if self.trailing is not None:
            result += self.trailing
        return result

class SimpleBlock:
    """See http://drafts.csswg.org/css-syntax/#simple-block."""
    token: Token # The opening token
    value: 'ComponentValueList'
    end: list[Token] | None # The closing token(s) found by the parser (none where input ended first), `None` for a block that was not parsed
    delimiters: ClassVar[dict[str, type[Token]]] = { '{': OpenBraceToken, '[': OpenBracketToken, '(': OpenParenToken }
    def __init__(self, token: Token):
        if not isinstance(token, (OpenBraceToken, OpenBracketToken, OpenParenToken)):
            raise ValueError('A SimpleBlock is delimited by either {}, [], or ().')
        self.token = token
        self.value = ComponentValueList()
        self.end = None
    @classmethod
    def new_from_delimiter(cls, delimiter: str) -> 'SimpleBlock':
        """Create an empty block.

        :param delimiter: The opening delimiter, `{`, `[` or `(`
        """
        if delimiter not in cls.delimiters:
            raise ValueError('A SimpleBlock is delimited by either {}, [], or ().')
        return cls(cls.delimiters[delimiter]())
    def __str__(self) -> str:
        return stringify(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.token.kind}, {self.value!r})'
    @property
    def position(self) -> Position:
        return self.token.position
    @property
    def start_token_type(self) -> type[Token]:
        return type(self.token)
    @property
    def end_token_type(self) -> type[Token]:
        return self.token.mirror_type # type: ignore
    def to_token_array(self) -> list[Token]:
        tokens = self.value.to_token_array()
        if isinstance(self.token, OpenBraceToken) and self.end is None and tokens:
            if not isinstance(tokens[0], WhitespaceToken):
                tokens.insert(0, WhitespaceToken(significant=False))
            if not isinstance(tokens[-1], WhitespaceToken):
                tokens.append(WhitespaceToken(significant=False))
        return [ self.token, *tokens, *(self.end if self.end is not None else [ self.end_token_type() ]) ]
    def to_component_value_array(self) -> list['ComponentValue']:
        return [ self ]

class CSSFunction:
    """See http://drafts.csswg.org/css-syntax/#function."""
    token: FunctionToken
    value: 'ComponentValueList'
    end: list[Token] | None # The closing parenthesis found by the parser, see `SimpleBlock.end`
    def __init__(self, token: Token):
        if not isinstance(token, FunctionToken):
            raise ValueError(f'CSS function must begin with a function token, got {token.kind}')
        self.token = token
        self.value = ComponentValueList()
        self.end = None
    @classmethod
    def new_from_name(cls, name: str) -> 'CSSFunction':
        return cls(FunctionToken(value=name))
    def __str__(self) -> str:
        return stringify(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.name!r}, {self.value!r})'
    @property
    def name(self) -> str:
        return self.token.value
    @property
    def position(self) -> Position:
        return self.token.position
    def to_token_array(self) -> list[Token]:
        return [ self.token, *self.value.to_token_array(), *(self.end if self.end is not None else [ CloseParenToken() ]) ]
    def to_component_value_array(self) -> list['ComponentValue']:
        return [ self ]

ComponentValue: TypeAlias = Token | SimpleBlock | CSSFunction # See http://drafts.csswg.org/css-syntax/#component-value

class Preceded:
    """Mixin for objects the parser may have skipped tokens in front of, i.e. rules and declarations.

    Preprocessor comments in front of such an object are kept with it (`pp_comments`). An object that was not parsed has no recorded `leading` tokens; it is written out with its preprocessor comments, each followed by white-space.
    """
    leading: list[ComponentValue] | None
    pp_comments: list[PreprocessorCommentToken]
    def leading_values(self) -> list[ComponentValue]:
        if self.leading is not None:
            return list(self.leading)
        return [ value for comment in self.pp_comments for value in (comment, WhitespaceToken(significant=False)) ]

class Declaration(Preceded):
    """See http://drafts.csswg.org/css-syntax/#declaration.

    The value of a parsed declaration excludes the white-space around it and the `!important` annotation; the parser records these (and the colon) separately, for serialization.
    """
    token: IdentToken
    value: 'ComponentValueList'
    head: list[Token] | None # The colon and any white-space around it
    tail: list[Token] | None # White-space after the value and the `!important` annotation, if any
    _important: bool
    def __init__(self, token: Token):
        if not isinstance(token, IdentToken):
            raise ValueError(f'Declaration must begin with an ident token, got {token.kind}')
        self.token = token
        self.value = ComponentValueList()
        self._important = False
        self.head = self.tail = self.leading = None
        self.pp_comments = []
    def __str__(self) -> str:
        return stringify(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.name!r}, {self.value!r}, important={self.important})'
    @property
    def name(self) -> str:
        return self.token.value
    @property
    def position(self) -> Position:
        return self.token.position
    @property
    def important(self) -> bool:
        return self._important
    @important.setter
    def important(self, value: bool) -> None:
        if value != self._important:
            self.tail = None # The recorded annotation no longer applies
        self._important = value
    def to_token_array(self) -> list[Token]:
        return [ token for value in self.to_component_value_array() for token in value.to_token_array() ]
    def to_component_value_array(self) -> list[ComponentValue]:
        result: list[ComponentValue] = [ *self.leading_values(), self.token, *(self.head if self.head is not None else [ ColonToken() ]), *self.value.to_component_value_array() ]
        if self.tail is not None:
            result += self.tail
        elif self.important:
            if not (result and isinstance(result[-1], WhitespaceToken)):
                result.append(WhitespaceToken(significant=False))
            result += [ DelimToken(value='!'), IdentToken(value='important') ]
        return result

class Rule(Preceded, ABC):
    """See http://drafts.csswg.org/css-syntax/#rule."""
    prelude: 'ComponentValueList'
    _block: SimpleBlock | None
    def __str__(self) -> str:
        return stringify(self)
    @property
    @abstractmethod
    def position(self) -> Position:
        raise NotImplementedError
    @property
    def block(self) -> SimpleBlock | None:
        return self._block
    @block.setter
    def block(self, block: SimpleBlock | None) -> None:
        if block is not None and not isinstance(block.token, OpenBraceToken):
            raise ValueError(self.block_error)
        self._block = block
    block_error: ClassVar[str]
    def to_token_array(self) -> list[Token]:
        return [ token for value in self.to_component_value_array() for token in value.to_token_array() ]
    @abstractmethod
    def to_component_value_array(self) -> list[ComponentValue]:
        raise NotImplementedError

class AtRule(Rule):
    """See http://drafts.csswg.org/css-syntax/#at-rule."""
    token: AtKeywordToken
    end: list[Token] | None # The semicolon found by the parser (none where input ended first), for a rule without block
    block_error = 'At-rule block must be delimited by {}'
    def __init__(self, token: Token):
        if not isinstance(token, AtKeywordToken):
            raise ValueError(f'At rule must begin with an at-keyword token, got {token.kind}')
        self.token = token
        self.prelude = ComponentValueList()
        self._block = None
        self.end = self.leading = None
        self.pp_comments = []
    @classmethod
    def new_from_name(cls, name: str) -> 'AtRule':
        return cls(AtKeywordToken(value=name))
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.name!r}, {self.prelude!r}, {self.block!r})'
    @property
    def name(self) -> str:
        return self.token.value
    @property
    def position(self) -> Position:
        return self.token.position
    def to_component_value_array(self) -> list[ComponentValue]:
        result: list[ComponentValue] = [ *self.leading_values(), self.token, *self.prelude.to_component_value_array() ]
        if self.block is not None:
            result.append(self.block)
        else:
            result += self.end if self.end is not None else [ SemicolonToken() ]
        return result

class QualifiedRule(Rule):
    """See http://drafts.csswg.org/css-syntax/#qualified-rule."""
    _position: Position
    block_error = 'Qualified rule block must be delimited by {}'
    def __init__(self, token: Token | None = None):
        """:param token: The token the rule starts with, which the position of the rule is taken from"""
        self._position = token.position if token is not None else UNKNOWN_POSITION
        self.prelude = ComponentValueList()
        self._block = None
        self.leading = None
        self.pp_comments = []
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.prelude!r}, {self.block!r})'
    @property
    def position(self) -> Position:
        return self._position
    def to_component_value_array(self) -> list[ComponentValue]:
        return [ *self.leading_values(), *self.prelude.to_component_value_array(), *([ self.block ] if self.block is not None else []) ]

class ComponentValueList(CSSObjectList[ComponentValue]):
    """Class of lists of component values.

    Function tokens and opening bracket tokens may not be featured in these lists, since in component values these only ever occur as part of functions and simple blocks.
    """
    item_type = (Token, SimpleBlock, CSSFunction)
    def check_items(self, items: Sequence[Any]) -> None:
        super().check_items(items)
        for item in items:
            if isinstance(item, (FunctionToken, OpenBraceToken, OpenBracketToken, OpenParenToken)):
                raise TypeError(f'{type(self).__name__} may not contain tokens of type "{item.kind}".')

class TokenList(CSSObjectList[Token]):
    item_type = Token

class DeclarationList(CSSObjectList[Declaration]):
    """Class of lists of declarations, written out with a semicolon between each two."""
    item_type = Declaration
    def separator(self, left: Declaration, right: Declaration | None = None) -> list[Token]:
        if right is not None:
            return [ SemicolonToken(), WhitespaceToken(significant=False) ]
        return [ SemicolonToken(significant=False) ]

class DeclarationOrAtRuleList(CSSObjectList[Declaration | AtRule]):
    """Class of lists of declarations and at-rules (e.g. the contents of a `@page` block); at-rules end themselves, so only declarations are followed by a semicolon."""
    item_type = (Declaration, AtRule)
    def separator(self, left: Declaration | AtRule, right: Declaration | AtRule | None = None) -> list[Token]:
        if isinstance(left, AtRule):
            return [ WhitespaceToken(significant=False) ] if right is not None else []
        if right is not None:
            return [ SemicolonToken(), WhitespaceToken(significant=False) ]
        return [ SemicolonToken(significant=False) ]

class RuleList(CSSObjectList[Rule]):
    item_type = Rule
    def separator(self, left: Rule, right: Rule | None = None) -> list[Token]:
        return [ WhitespaceToken(significant=False) ] if right is not None else []

class Stylesheet:
    """See http://drafts.csswg.org/css-syntax/#css-stylesheet."""
    rule_list: RuleList
    def __init__(self, rule_list: RuleList | None = None):
        self.rule_list = rule_list if rule_list is not None else RuleList()
    def __str__(self) -> str:
        return stringify(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.rule_list!r})'
    @property
    def position(self) -> Position:
        return (0, 0)
    def to_token_array(self) -> list[Token]:
        return self.rule_list.to_token_array()
    def to_component_value_array(self) -> list[ComponentValue]:
        return self.rule_list.to_component_value_array()

def insignificant(value: ComponentValue) -> ComponentValue:
    """Get a component value like `value` but with every token in it marked insignificant."""
    match value:
        case Token():
            return value.copy_with_significance(False)
        case SimpleBlock() | CSSFunction():
            result = deepcopy(value)
            result.token = insignificant(result.token) # type: ignore
            result.value = ComponentValueList(insignificant(item) for item in result.value)
            if result.end is not None:
                result.end = [ token.copy_with_significance(False) for token in result.end ]
            return result
    raise TypeError(f'Not a component value: {value!r}')

def stringify(value: CSSObject | Iterable[CSSObject], *, minify: bool = False) -> str:
    """Write out an object (or a sequence of objects) as CSS text.

    An empty comment is inserted between two tokens that would otherwise run together into something else (see `Token.separate`), unless both were parsed, as then the text they were parsed from is used and already separates them. Tokens that together spell a unicode-range (see `Token.urange_length`) are written out without any separation. When minifying, a run of white-space is written as a single white-space token.

    :param minify: Whether to leave out insignificant tokens and spell the rest as briefly as possible, instead of reproducing parsed tokens verbatim
    """
    tokens = value.to_token_array() if isinstance(value, CSSObject) else [ token for item in value for token in item.to_token_array() ]
    result: list[str] = []
    previous: Token | None = None
    unseparated = 0 # Number of tokens still to be written out without separation
    for token in tokens:
        continued = unseparated > 0 # Whether the token continues a unicode-range
        unseparated = max(unseparated - 1, token.urange_length - 1, 0)
        if minify and not token.significant:
            continue
        if minify and isinstance(token, WhitespaceToken) and isinstance(previous, WhitespaceToken):
            continue
        if not continued and previous is not None and Token.separate(previous, token) and (minify or previous.source is None or token.source is None):
            result.append('/**/')
        ranged = continued or token.urange_length > 1 # Numbers in a unicode-range keep their sign
        result.append(serialize(token, minify and not ranged) if minify else str(token))
        previous = token
    return join(result)

def find_first_non_whitespace(values: TokenList | ComponentValueList) -> ComponentValue | None:
    """Find the first item in a list that is not a white-space token.

    :raises TypeError: if the list is not a list of tokens or component values
    """
    if not isinstance(values, (TokenList, ComponentValueList)):
        raise TypeError('List must be TokenList or ComponentValueList')
    return next((value for value in values if not isinstance(value, WhitespaceToken)), None)
