"""Preprocessing of input to tokenization of CSS text, per http://drafts.csswg.org/css-syntax/#input-preprocessing."""

from ..utils import CP, IteratorReader, ParseError, Reader, is_surrogate_code_point

from collections.abc import Callable, Iterator, Sequence
from functools import partial

Position = tuple[int, int] # A 1-based (line, column) pair

class FilteredCodePoint(CP):
    """Class of code point derivatives that reference the original (unfiltered) code point sequence.

    E.g. filtered '\r\n' can be represented by a `CP` object with the `source` attribute being `\r\n` and the value (`CP` is a string) being the filtered product, in this case `\n`.

    Said representation facilitates recovery of original text from a sequence of filtered code points, and by indirection, from token(s). The `position` attribute is where the code point begins in the original text.
    """
    source: CP
    position: Position
    def __new__(cls, *args, source: CP, position: Position = (-1, -1), **kwargs):
        obj = super().__new__(cls, *args, **kwargs)
        assert len(obj) <= 1 # Code points are always single-character strings or an empty string (signifying the end-of-stream condition)
        obj.source = source
        obj.position = position
        return obj

def filter_code_points(next: Callable[[], CP]) -> Iterator[FilteredCodePoint]:
    """See http://drafts.csswg.org/css-syntax/#css-filter-code-points.

    Code points are numbered as they are filtered; every filtered newline starts a new line, so e.g. '\r\n' advances the line number once.
    """
    line, column = 1, 1
    def filtered(value: CP, source: CP) -> FilteredCodePoint:
        nonlocal line, column
        result = FilteredCodePoint(value, source=source, position=(line, column))
        if value == '\n':
            line, column = line + 1, 1
        else:
            column += 1
        return result
    cp = next()
    while cp:
        match cp:
            case '\r' if (cp := next()) == '\n':
                yield filtered('\n', '\r\n')
            case '\r':
                yield filtered('\n', '\r')
                continue
            case '\f':
                yield filtered('\n', cp)
            case _ if cp == '\0' or is_surrogate_code_point(cp):
                yield filtered('\uFFFD', cp)
            case _:
                yield filtered(cp, cp)
        cp = next()

class DataSource(Reader[FilteredCodePoint]):
    """Class of readers of filtered code points of some CSS text, allowing a single code point to be put back.

    A data source tracks the position of the code point it would read next, which is also the position of the end of input once it is exhausted.
    """
    _reader: Reader[FilteredCodePoint]
    _putback: FilteredCodePoint | None
    _position: Position
    def __init__(self, text: str):
        self._reader = IteratorReader(filter_code_points(partial(next, iter(text), '')))
        self._putback = None
        self._position = (1, 1)
    @property
    def position(self) -> Position:
        """The position of the code point that will be read next."""
        return self._putback.position if self._putback is not None else self._position
    def read(self, size: int = -1, /) -> Sequence[FilteredCodePoint]:
        result: list[FilteredCodePoint] = []
        if size and self._putback is not None:
            result.append(self._putback)
            self._putback = None
            size -= 1
        if size:
            result += self._reader.read(size)
        if result and result[-1].position >= self._position:
            line, column = result[-1].position
            self._position = (line + 1, 1) if result[-1] == '\n' else (line, column + 1)
        return result
    def read_char(self) -> FilteredCodePoint:
        """Read one code point; an empty code point signifies end of input."""
        cps = self.read(1)
        return cps[0] if cps else FilteredCodePoint('', source='', position=self.position)
    def putback_char(self, cp: FilteredCodePoint) -> None:
        """Put back the code point last read, so that it is read again next.

        :raises ParseError: if a code point was already put back and not read since
        """
        if not cp:
            return
        if self._putback is not None:
            raise ParseError('Only one code point may be put back at a time')
        self._putback = cp
