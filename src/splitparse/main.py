"""
The implementations of the main classes.
"""

from __future__ import annotations
from typing import Any, Self, Literal, TypeVar, Generic, Callable, Final, TypeAlias
from types import TracebackType

from abc import ABC, abstractmethod
from collections.abc import Iterator, Iterable, Sequence, MutableSequence
import functools
import itertools
import logging
import reprlib

import splitparse.const as const


logger = logging.getLogger(__name__)

_ItemT = TypeVar("_ItemT")
_DataT = TypeVar("_DataT")
_OutT = TypeVar("_OutT")
_DataCovT = TypeVar("_DataCovT", covariant=True)
_RestCovT = TypeVar("_RestCovT", covariant=True)



class ParseFailure:
    """
    When returned from a parser, indicates that it has failed.

    Carries no reason and no position. All failures are equal to each other.
    The library always returns the `FAILURE` instance.

    ```
    r = parser.parse("input")
    if r:
        ... # `r` is a `Result` object
    else:
        ... # `r` is a `ParseFailure` object
    ```
    """

    def error(self) -> ParseError:
        """Converts this to a ParseError."""
        return ParseError("Failed to parse the input.")

    def __bool__(self) -> Literal[False]:
        return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ParseFailure)

    def __hash__(self) -> int:
        return hash(ParseFailure)

    def __repr__(self) -> str:
        return "<ParseFailure>"

FAILURE: Final[ParseFailure] = ParseFailure()


class ParseError(Exception):
    """
    The exception raised for errors that can't be expressed as a `ParseFailure`.

    Usually means the parsers were put together incorrectly.
    """

class ParseAbort(ParseError):
    """
    Raised by `Env.with_()` when the given parser fails.

    Caught by the `Env` it was raised for. (When used as a context manager, or through `sequence()`.)
    """

    def __init__(self, env: Env) -> None:
        super().__init__("A parser failed inside a sequence.")
        self.env: Env = env

class NoProgressError(ParseError):
    """
    Raised by repetition combinators with the progress check enabled,
    when the repeated parser succeeds without consuming anything.
    """

    def __init__(self, parser: Parser) -> None:
        super().__init__(f"{parser!r} succeeded without consuming any input inside a repetition.")
        self.parser: Parser = parser


class Result(Generic[_DataCovT, _RestCovT]):
    """
    When returned from a parser, indicates that it has succeeded.

    ```
    r = parser.parse("input")
    if r:
        output, rest = r
    ```

    When used for typing: `Result[DataType, StreamType]`
    """

    def __init__(self, data: _DataCovT, rest: _RestCovT) -> None:
        self.data: _DataCovT = data
        """The output of the parser."""
        self.rest: _RestCovT = rest
        """The remaining input."""

    def __bool__(self) -> Literal[True]:
        return True

    def __iter__(self) -> Iterator[Any]:
        yield self.data
        yield self.rest

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Result):
            return self.data == other.data and self.rest == other.rest
        elif isinstance(other, tuple) and len(other) == 2:
            return (self.data, self.rest) == other
        else:
            return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<Result {self.data!r} rest={self.rest!r}>"

ParseOutcome: TypeAlias = "Result[Any, Any] | ParseFailure"



class Stream(ABC, Generic[_ItemT]):
    """
    The remaining input.

    Splitting off the head with `uncons()` logically consumes the stream: keep using the stream returned in the `Result`.

    Subclasses must keep `pos` up to date. It counts the items split off since the start of the input.

    New input kinds are supported by subclassing this.
    """

    pos: int

    @abstractmethod
    def uncons(self) -> Result[_ItemT, Self] | ParseFailure:
        """
        Splits off the next item.

        Returns the item and the rest of the stream, or `FAILURE` at the end of the input.
        """

    def copy(self) -> Self:
        """
        Returns a duplicate that can be consumed without affecting this stream.

        Immutable streams return themselves.
        """
        return self


class TextStream(Stream[str]):
    """Character text. Moving forward only creates a new offset; the string is shared."""

    def __init__(self, src: str, pos: int = 0) -> None:
        self.src: str = src
        """The string that's being parsed."""
        self.pos: int = pos
        """The current position."""

    def uncons(self) -> Result[str, TextStream] | ParseFailure:
        if self.pos >= len(self.src):
            return FAILURE
        return Result(self.src[self.pos], TextStream(self.src, self.pos + 1))

    @property
    def remaining(self) -> str:
        return self.src[self.pos:]

    def __len__(self) -> int:
        return max(len(self.src) - self.pos, 0)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TextStream):
            return self.remaining == other.remaining
        elif isinstance(other, str):
            return self.remaining == other
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.remaining)

    def __repr__(self) -> str:
        return f"TextStream({self.remaining!r})"


class SliceStream(Stream[_ItemT]):
    """An indexable sequence (list, tuple, bytes...). Moving forward only creates a new offset."""

    def __init__(self, src: Sequence[_ItemT], pos: int = 0) -> None:
        self.src: Sequence[_ItemT] = src
        self.pos: int = pos

    def uncons(self) -> Result[_ItemT, SliceStream[_ItemT]] | ParseFailure:
        if self.pos >= len(self.src):
            return FAILURE
        return Result(self.src[self.pos], SliceStream(self.src, self.pos + 1))

    @property
    def remaining(self) -> Sequence[_ItemT]:
        return self.src[self.pos:]

    def __len__(self) -> int:
        return max(len(self.src) - self.pos, 0)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SliceStream):
            return self.remaining == other.remaining
        elif isinstance(other, Sequence) and not isinstance(other, str):
            return self.remaining == other
        else:
            return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SliceStream({self.remaining!r})"


class IteratorStream(Stream[_ItemT]):
    """
    A forward-only iterator.

    `uncons()` advances the underlying iterator, so a stream that was split can't be used again.

    `copy()` uses `itertools.tee()`: every live copy buffers the items the others have taken.
    Prefer `BufferedStream` for iterators that are driven through repetitions.
    """

    def __init__(self, iterable: Iterable[_ItemT], pos: int = 0) -> None:
        self.iterator: Iterator[_ItemT] = iter(iterable)
        """The underlying iterator. Holds whatever wasn't consumed yet."""
        self.pos: int = pos

    def uncons(self) -> Result[_ItemT, IteratorStream[_ItemT]] | ParseFailure:
        try:
            item = next(self.iterator)
        except StopIteration:
            return FAILURE
        return Result(item, IteratorStream(self.iterator, self.pos + 1))

    def copy(self) -> IteratorStream[_ItemT]:
        self.iterator, duplicate = itertools.tee(self.iterator)
        return IteratorStream(duplicate, self.pos)

    def __repr__(self) -> str:
        return f"<IteratorStream at item {self.pos}>"


class BufferedStream(Stream[_ItemT]):
    """
    A buffering adapter for iterators.

    Every stream remembers its head item and the stream after it,
    so `uncons()` can be repeated on the same stream and `copy()` is free.
    """

    def __init__(self, iterable: Iterable[_ItemT], pos: int = 0) -> None:
        self.iterator: Iterator[_ItemT] = iter(iterable)
        self.pos: int = pos
        self._next: Result[_ItemT, BufferedStream[_ItemT]] | ParseFailure | None = None

    def uncons(self) -> Result[_ItemT, BufferedStream[_ItemT]] | ParseFailure:
        if self._next is None:
            try:
                item = next(self.iterator)
            except StopIteration:
                self._next = FAILURE
            else:
                self._next = Result(item, BufferedStream(self.iterator, self.pos + 1))
        return self._next

    def __repr__(self) -> str:
        return f"<BufferedStream at item {self.pos}>"


def as_stream(value: Stream[_ItemT] | Iterable[_ItemT]) -> Stream[_ItemT]:
    """
    Converts the value into a `Stream`.

    - `Stream`: returned as-is.
    - `str`: `TextStream`
    - Other sequences: `SliceStream`
    - Other iterables: `IteratorStream`
    """
    if isinstance(value, Stream):
        return value
    elif isinstance(value, str):
        return TextStream(value)  # type: ignore[return-value]
    elif isinstance(value, Sequence):
        return SliceStream(value)
    elif isinstance(value, Iterable):
        return IteratorStream(value)
    else:
        raise TypeError(f"Can't use a {type(value).__name__} object as an input stream.")



class Parser(ABC, Generic[_ItemT, _OutT]):
    """
    Turns a stream into an output and the remaining stream, or fails.

    Implement `parse_stream()`. Call the parser (or `parse()`) with a `Stream` or anything `as_stream()` accepts.

    When used for typing: `Parser[ItemType, OutputType]`
    """

    @abstractmethod
    def parse_stream(self, stream: Stream[_ItemT]) -> Result[_OutT, Stream[_ItemT]] | ParseFailure: ...

    def parse(self, value: Stream[_ItemT] | Iterable[_ItemT]) -> Result[_OutT, Stream[_ItemT]] | ParseFailure:
        return self.parse_stream(as_stream(value))

    def __call__(self, value: Stream[_ItemT] | Iterable[_ItemT]) -> Result[_OutT, Stream[_ItemT]] | ParseFailure:
        return self.parse_stream(as_stream(value))

    def and_then(self, other: ParserLike) -> AndThen:
        """Same as `and_then(self, other)`."""
        return AndThen(self, other)

ParserLike: TypeAlias = "Parser | Callable[[Stream], ParseOutcome] | str"

def as_parser(parser: ParserLike) -> Parser:
    """
    Converts the value into a `Parser`.

    - `Parser`: returned as-is.
    - `str`: `string(...)`
    - Other callables: `FnParser`
    """
    if isinstance(parser, Parser):
        return parser
    elif isinstance(parser, str):
        return string(parser)
    elif callable(parser):
        return FnParser(parser)
    else:
        raise TypeError(f"Can't use a {type(parser).__name__} object as a parser.")


class FnParser(Parser[Any, Any]):
    """
    Wraps a function (or closure) taking a `Stream` and returning a `Result` or a `ParseFailure`.

    Can be used as a decorator:
    ```
    @FnParser
    def foo(stream: Stream[str]) -> Result[str, Stream[str]] | ParseFailure:
        ...
    ```
    """

    def __init__(self, fn: Callable[[Stream], ParseOutcome]) -> None:
        functools.update_wrapper(self, fn, updated=())
        self.fn: Callable[[Stream], ParseOutcome] = fn

    def parse_stream(self, stream: Stream) -> ParseOutcome:
        return self.fn(stream)

    def __repr__(self) -> str:
        return f"FnParser({getattr(self.fn, '__qualname__', self.fn)!r})"


class Ref(Parser[Any, Any]):
    """
    Delegates to another parser.

    For recursive grammars, create it empty and `set()` it once the referenced parser exists:
    ```
    expr = Ref()
    group = sequence(...)   # uses `expr`
    expr.set(...)           # uses `group`
    ```
    """

    def __init__(self, parser: ParserLike | None = None) -> None:
        self.parser: Parser | None = None if parser is None else as_parser(parser)

    def set(self, parser: ParserLike) -> None:
        self.parser = as_parser(parser)

    def parse_stream(self, stream: Stream) -> ParseOutcome:
        if self.parser is None:
            raise ParseError("Parsing with a Ref that was never set.")
        return self.parser.parse_stream(stream)

    @reprlib.recursive_repr("Ref(...)")
    def __repr__(self) -> str:
        return f"Ref({self.parser!r})"



class Satisfy(Parser[_ItemT, _ItemT]):
    """Takes one item if the predicate accepts it."""

    def __init__(self, pred: Callable[[_ItemT], Any]) -> None:
        self.pred: Callable[[_ItemT], Any] = pred

    def parse_stream(self, stream: Stream[_ItemT]) -> Result[_ItemT, Stream[_ItemT]] | ParseFailure:
        r = stream.uncons()
        if r and self.pred(r.data):
            return r
        return FAILURE

    def __repr__(self) -> str:
        return f"satisfy({getattr(self.pred, '__qualname__', self.pred)})"


class String(Parser[str, str]):
    """
    Matches the literal one character at a time.

    Characters matched before a mismatch stay consumed. (Matters for `IteratorStream`.)
    """

    def __init__(self, literal: str) -> None:
        self.literal: str = literal

    def parse_stream(self, stream: Stream[str]) -> Result[str, Stream[str]] | ParseFailure:
        for expected in self.literal:
            r = stream.uncons()
            if not r or r.data != expected:
                return FAILURE
            stream = r.rest
        return Result(self.literal, stream)

    def __repr__(self) -> str:
        return f"string({self.literal!r})"


def satisfy(pred: Callable[[_ItemT], Any]) -> Satisfy[_ItemT]:
    """
    Parser factory.

    Takes one item, succeeding with it if `pred(item)` is truthy.
    """
    return Satisfy(pred)

def string(literal: str) -> String:
    """
    Parser factory.

    Matches the exact literal and outputs it.
    """
    return String(literal)

def char(stream: Stream[_ItemT]) -> Result[_ItemT, Stream[_ItemT]] | ParseFailure:
    """A pre-defined parser (not a factory). Takes any one item."""
    return stream.uncons()

def digit(stream: Stream[str]) -> Result[str, Stream[str]] | ParseFailure:
    """A pre-defined parser (not a factory). Takes one decimal digit. (`0` to `9`)"""
    r = stream.uncons()
    if r and isinstance(r.data, str) and r.data in const.DECIMAL:
        return r
    return FAILURE

def space(stream: Stream[str]) -> Result[str, Stream[str]] | ParseFailure:
    """A pre-defined parser (not a factory). Takes one whitespace character."""
    r = stream.uncons()
    if r and isinstance(r.data, str) and r.data.isspace():
        return r
    return FAILURE



def _repeat(parser: Parser, stream: Stream, out: MutableSequence, check_progress: bool | None) -> Stream:
    """
    Runs the parser until it fails, appending the outputs to `out`.

    Every attempt runs on a copy, so the consumption of the failed attempt is dropped.

    Returns the stream left by the last successful attempt.
    """
    check = const.CHECK_PROGRESS if check_progress is None else check_progress
    count = 0
    while r := parser.parse_stream(stream.copy()):
        if check and r.rest.pos == stream.pos:
            raise NoProgressError(parser)
        out.append(r.data)
        stream = r.rest
        count += 1
    logger.debug("%r stopped after %d match(es)", parser, count)
    return stream


class AndThen(Parser[Any, tuple[Any, Any]]):
    """Runs both parsers in order. Outputs a pair."""

    def __init__(self, first: ParserLike, second: ParserLike) -> None:
        self.first: Parser = as_parser(first)
        self.second: Parser = as_parser(second)

    def parse_stream(self, stream: Stream) -> Result[tuple[Any, Any], Stream] | ParseFailure:
        if not (a := self.first.parse_stream(stream)):
            return FAILURE
        if not (b := self.second.parse_stream(a.rest)):
            return FAILURE
        return Result((a.data, b.data), b.rest)

    def __repr__(self) -> str:
        return f"and_then({self.first!r}, {self.second!r})"


class Optional(Parser[Any, Any]):
    """Attempts the parser. On failure, outputs `default` and leaves the input as it was."""

    def __init__(self, parser: ParserLike, default: Any = None) -> None:
        self.parser: Parser = as_parser(parser)
        self.default: Any = default

    def parse_stream(self, stream: Stream) -> ParseOutcome:
        if r := self.parser.parse_stream(stream.copy()):
            return r
        return Result(self.default, stream)

    def __repr__(self) -> str:
        return f"optional({self.parser!r})"


class ManyAppend(Parser[Any, None]):
    """Repeats the parser until it fails, appending the outputs to a list owned by the caller. Outputs `None`."""

    def __init__(self, parser: ParserLike, out: MutableSequence, *, check_progress: bool | None = None) -> None:
        self.parser: Parser = as_parser(parser)
        self.out: MutableSequence = out
        self.check_progress: bool | None = check_progress

    def parse_stream(self, stream: Stream) -> Result[None, Stream]:
        return Result(None, _repeat(self.parser, stream, self.out, self.check_progress))

    def __repr__(self) -> str:
        return f"many_append({self.parser!r})"


class Many(Parser[Any, list]):
    """Repeats the parser until it fails. Never fails."""

    def __init__(self, parser: ParserLike, *, check_progress: bool | None = None) -> None:
        self.parser: Parser = as_parser(parser)
        self.check_progress: bool | None = check_progress

    def parse_stream(self, stream: Stream) -> Result[list, Stream]:
        out: list = []
        rest = _repeat(self.parser, stream, out, self.check_progress)
        return Result(out, rest)

    def __repr__(self) -> str:
        return f"many({self.parser!r})"


class Many1(Parser[Any, list]):
    """Repeats the parser until it fails. Fails if the first attempt fails."""

    def __init__(self, parser: ParserLike, *, check_progress: bool | None = None) -> None:
        self.parser: Parser = as_parser(parser)
        self.check_progress: bool | None = check_progress

    def parse_stream(self, stream: Stream) -> Result[list, Stream] | ParseFailure:
        if not (first := self.parser.parse_stream(stream)):
            return FAILURE
        out: list = [first.data]
        rest = _repeat(self.parser, first.rest, out, self.check_progress)
        return Result(out, rest)

    def __repr__(self) -> str:
        return f"many1({self.parser!r})"


class SepBy(Parser[Any, list]):
    """
    Matches the parser any number of times, with the separator between each.

    A trailing separator without an item after it is left unconsumed. Never fails.
    """

    def __init__(self, parser: ParserLike, separator: ParserLike, *, check_progress: bool | None = None) -> None:
        self.parser: Parser = as_parser(parser)
        self.separator: Parser = as_parser(separator)
        self.check_progress: bool | None = check_progress

        @sequence
        def separated_item(env: Env) -> Result:
            env.with_(self.separator)
            return env.result(env.with_(self.parser))
        self._tail: Parser = separated_item

    def parse_stream(self, stream: Stream) -> Result[list, Stream]:
        out: list = []
        if not (first := self.parser.parse_stream(stream.copy())):
            return Result(out, stream)
        out.append(first.data)
        rest = _repeat(self._tail, first.rest, out, self.check_progress)
        return Result(out, rest)

    def __repr__(self) -> str:
        return f"sep_by({self.parser!r}, {self.separator!r})"


def and_then(first: ParserLike, second: ParserLike) -> AndThen:
    """
    Parser factory.

    Runs `first`, then `second` on what's left. Outputs `(first_output, second_output)`.

    Fails if either fails. Whatever `first` consumed is not restored.
    """
    return AndThen(first, second)

def optional(parser: ParserLike, default: Any = None) -> Optional:
    """
    Parser factory.

    Outputs the parser's output if it matched, otherwise `default` without consuming anything. Never fails.
    """
    return Optional(parser, default)

def many(parser: ParserLike, *, check_progress: bool | None = None) -> Many:
    """
    Parser factory.

    Repeatedly matches the parser until it fails. Outputs a list, possibly empty.

    The parser must consume input whenever it succeeds, or this never stops.
    `check_progress` (defaults to `const.CHECK_PROGRESS`) raises `NoProgressError` instead.
    """
    return Many(parser, check_progress=check_progress)

def many1(parser: ParserLike, *, check_progress: bool | None = None) -> Many1:
    """
    Parser factory.

    Like `many()`, but the first match is required.
    """
    return Many1(parser, check_progress=check_progress)

def sep_by(parser: ParserLike, separator: ParserLike, *, check_progress: bool | None = None) -> SepBy:
    """
    Parser factory.

    Matches `parser`, then `separator` and `parser` pairs until a pair fails. Outputs the list of `parser` outputs.
    """
    return SepBy(parser, separator, check_progress=check_progress)

def many_append(parser: ParserLike, out: MutableSequence, *, check_progress: bool | None = None) -> ManyAppend:
    """
    Parser factory.

    Like `many()`, but appends to `out` instead of outputting a new list.
    """
    return ManyAppend(parser, out, check_progress=check_progress)



class Env(Generic[_ItemT]):
    """
    Threads the stream through several parsers without nesting `and_then()`.

    As a context manager:
    ```
    def foo(stream: Stream[str]) -> Result[tuple[str, str], Stream[str]] | ParseFailure:
        with Env(stream) as env:
            a = env.with_(string("a"))
            b = env.with_(many(digit))
            return env.result((a, b))
        return FAILURE  # reached only if one of the parsers failed
    ```

    Or through the `sequence()` decorator.
    """

    def __init__(self, stream: Stream[_ItemT] | Iterable[_ItemT]) -> None:
        self.stream: Stream[_ItemT] = as_stream(stream)
        """The current stream."""
        self.failed: bool = False
        """Whether the block was left because a parser failed."""

    def with_(self, parser: ParserLike) -> Any:
        """
        Runs the parser on the current stream and returns its output.

        If it fails, raises `ParseAbort`. The current stream is left untouched.
        """
        r = as_parser(parser).parse_stream(self.stream)
        if not r:
            raise ParseAbort(self)
        self.stream = r.rest
        return r.data

    def result(self, data: _DataT) -> Result[_DataT, Stream[_ItemT]]:
        """Ends the sequence successfully."""
        return Result(data, self.stream)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exctype: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool:
        if isinstance(exc, ParseAbort) and exc.env is self:
            self.failed = True
            logger.debug("Sequence aborted at item %d", self.stream.pos)
            return True
        return False


def sequence(fn: Callable[[Env], Result[_DataT, Stream]]) -> FnParser:
    """
    Decorator. Turns a function using an `Env` into a parser.

    ```
    @sequence
    def integer(env: Env[str]) -> Result[int, Stream[str]]:
        return env.result(int("".join(env.with_(many1(digit)))))
    ```
    """
    @functools.wraps(fn)
    def inner(stream: Stream) -> Result[_DataT, Stream] | ParseFailure:
        with Env(stream) as env:
            return fn(env)
        return FAILURE
    return FnParser(inner)
