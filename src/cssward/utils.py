"""Helpers shared by the rest of the package: readers over streams of code points or tokens, checks of what collections contain, and code point predicates."""

from collections.abc import Iterable, Sequence
from itertools import islice
from typing import Any, Protocol, runtime_checkable, TypeAlias, TypeVar

T = TypeVar('T')
T_co = TypeVar('T_co', covariant=True)
T_contra = TypeVar('T_contra', contravariant=True)

CP: TypeAlias = str # A single code point, or the empty string at end of input

@runtime_checkable
class Reader(Protocol[T_co]):
    """Objects with a `read` method in the manner of `io.IOBase.read`: at most `size` items are vended per call, all of the remaining ones if `size` is negative, and none once the stream is exhausted."""
    def read(self, size: int = -1, /) -> Sequence[T_co]: ...

@runtime_checkable
class PeekingUnreadingReader(Reader[T], Protocol[T]):
    """Readers that can also look ahead without consuming anything, and take back items they vended."""
    def peek(self, size: int, /) -> Sequence[T]:
        """:returns: up to `size` items that the next `read` would vend, fewer only at end of stream"""
        ...
    def unread(self, items: Iterable[T]) -> None:
        """Put `items` back in front of the stream, in the order given."""
        ...

class IteratorReader(Reader[T]):
    """Reader that takes its items from an iterable, several at a time."""
    def __init__(self, source: Iterable[T]):
        self._source = iter(source)
    def read(self, size: int = -1, /) -> Sequence[T]:
        return list(self._source if size < 0 else islice(self._source, size))

class BufferedPeekingReader(PeekingUnreadingReader[T]):
    """Makes any reader peekable and unreadable, by keeping what was peeked at or given back in a buffer in front of it.

    The tokenizer never looks more than three code points ahead, so the buffer stays small.
    """
    def __init__(self, source: Reader[T]):
        self._source = source
        self._buffer: list[T] = []
    def peek(self, size: int, /) -> Sequence[T]:
        if (missing := size - len(self._buffer)) > 0:
            self._buffer.extend(self._source.read(missing))
        return self._buffer[:size]
    def read(self, size: int = -1, /) -> Sequence[T]:
        if size < 0:
            result, self._buffer = [ *self._buffer, *self._source.read() ], []
            return result
        result = self.peek(size)
        del self._buffer[:size]
        return result
    def unread(self, items: Iterable[T]) -> None:
        self._buffer[:0] = items

@runtime_checkable
class Appender(Protocol[T_contra]):
    """Write-only view of a collection, e.g. a `list` that parse errors or skipped tokens are appended to."""
    def append(self, x: T_contra, /) -> None: ...

class ParseError(RuntimeError):
    """Raised when parsing or matching machinery is misused, e.g. a grammar repeating a matcher that can match nothing.

    Malformed CSS text never raises this; errors in it are recorded instead (see the `parse_errors` attribute of tokenizers and parsers).
    """

def join(strings: Iterable[str]) -> str:
    return ''.join(strings)

def assert_all_instance_of(values: Iterable[Any], cls: type | tuple[type, ...], what: str) -> None:
    """Ensure every value is an instance of a class (or of one of several classes).

    :param what: Describes the collection being checked, for the error message
    :raises TypeError: naming the first offending value's type and its index
    """
    for index, value in enumerate(values):
        if not isinstance(value, cls):
            name = ' | '.join(c.__name__ for c in cls) if isinstance(cls, tuple) else cls.__name__
            raise TypeError(f'{what} may only contain instances of {name} (found {type(value).__name__} at index {index})')

def is_custom_property_name_string(s: str) -> bool:
    """See http://www.w3.org/TR/css-typed-om-1/#custom-property-name-string."""
    return s.startswith('--')

def is_surrogate_code_point_ordinal(o: int) -> bool:
    """See http://infra.spec.whatwg.org/#surrogate (leading surrogates are 0xD800 to 0xDBFF, trailing ones follow them up to 0xDFFF)."""
    return 0xd800 <= o <= 0xdfff

def is_surrogate_code_point(cp: CP) -> bool:
    return cp != '' and is_surrogate_code_point_ordinal(ord(cp))
