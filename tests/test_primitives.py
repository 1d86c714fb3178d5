import pytest

from splitparse import (
    FAILURE,
    FnParser,
    IteratorStream,
    ParseError,
    Ref,
    Result,
    TextStream,
    as_parser,
    char,
    digit,
    many,
    optional,
    satisfy,
    sequence,
    space,
    string,
)


class TestSatisfy:
    @pytest.mark.parametrize("text", ["a", "ab", "z9"])
    def test_accepts_one_matching_item(self, text: str) -> None:
        r = satisfy(str.isalpha).parse(text)

        assert r.data == text[0]
        assert r.rest == text[1:]
        assert r.rest.pos == 1

    @pytest.mark.parametrize("text", ["", "1", " a"])
    def test_fails_on_rejected_item_or_empty_input(self, text: str) -> None:
        assert satisfy(str.isalpha).parse(text) == FAILURE

    def test_works_on_any_item_type(self) -> None:
        assert satisfy(lambda n: n > 2).parse([3, 1]) == (3, [1])
        assert not satisfy(lambda n: n > 2).parse([1, 3])

    def test_predicate_state_evolves_between_calls(self) -> None:
        seen: list[str] = []

        def first_two(c: str) -> bool:
            seen.append(c)
            return len(seen) <= 2

        p = many(satisfy(first_two))

        assert p.parse("abcd") == (["a", "b"], "cd")
        assert p.parse("abcd") == ([], "abcd")


class TestChar:
    def test_takes_any_item(self) -> None:
        assert char(TextStream("?x")) == ("?", "x")

    def test_fails_on_empty_input(self) -> None:
        assert not char(TextStream(""))


class TestDigit:
    def test_takes_a_decimal_digit(self) -> None:
        assert digit(TextStream("7x")) == ("7", "x")

    @pytest.mark.parametrize("text", ["", "x", "a1", "٣"])
    def test_rejects_everything_else(self, text: str) -> None:
        assert not digit(TextStream(text))

    def test_rejects_non_character_items(self) -> None:
        assert not digit(IteratorStream([[1]]))
        assert not as_parser(digit).parse([7])


class TestSpace:
    @pytest.mark.parametrize("text", [" ", "\t", "\n", " "])
    def test_takes_whitespace(self, text: str) -> None:
        assert space(TextStream(text + "x")) == (text, "x")

    def test_rejects_other_characters(self) -> None:
        assert not space(TextStream("x "))
        assert not space(TextStream(""))

    def test_rejects_non_character_items(self) -> None:
        assert not as_parser(space).parse([32])


class TestString:
    def test_matches_literal_prefix(self) -> None:
        assert string("abc").parse("abcd") == ("abc", "d")

    def test_fails_on_mismatch(self) -> None:
        assert string("abc").parse("abx") == FAILURE

    def test_fails_on_short_input(self) -> None:
        assert not string("abc").parse("ab")

    def test_empty_literal_matches_without_consuming(self) -> None:
        r = string("").parse("ab")

        assert r == ("", "ab")
        assert r.rest.pos == 0

    def test_partial_match_stays_consumed_on_iterators(self) -> None:
        s = IteratorStream(iter("abxy"))

        assert not string("abc").parse(s)
        assert list(s.iterator) == ["y"]


class TestAdapters:
    def test_plain_function_is_a_parser(self) -> None:
        assert many(char).parse("ab") == (["a", "b"], "")

    def test_str_becomes_literal_parser(self) -> None:
        assert as_parser("ab").parse("abc") == ("ab", "c")

    def test_parser_passes_through(self) -> None:
        p = string("a")

        assert as_parser(p) is p

    def test_rejects_non_callables(self) -> None:
        with pytest.raises(TypeError, match="int"):
            as_parser(5)

    def test_fn_parser_wraps_closure(self) -> None:
        marker = object()
        p = FnParser(lambda stream: Result(marker, stream))

        r = p.parse("ab")

        assert r.data is marker
        assert r.rest == "ab"

    def test_fn_parser_as_decorator_keeps_name(self) -> None:
        @FnParser
        def two_chars(stream):
            return string("ab")(stream)

        assert two_chars.__name__ == "two_chars"
        assert two_chars.parse("abc") == ("ab", "c")

    def test_fn_parser_does_not_copy_callable_attributes(self) -> None:
        class Constant:
            def __init__(self) -> None:
                self.parse_stream = None

            def __call__(self, stream):
                return Result("c", stream)

        p = FnParser(Constant())

        assert p.parse("ab") == ("c", "ab")

    def test_call_is_same_as_parse(self) -> None:
        p = string("a")

        assert p("ab") == p.parse("ab")


class TestRef:
    def test_delegates_to_the_referenced_parser(self) -> None:
        p = string("a")

        assert Ref(p).parse("ab") == p.parse("ab")

    def test_unset_ref_raises(self) -> None:
        with pytest.raises(ParseError):
            Ref().parse("a")

    def test_recursive_grammar(self) -> None:
        nested = Ref()

        @sequence
        def group(env):
            env.with_("(")
            depth = env.with_(optional(nested, 0))
            env.with_(")")
            return env.result(depth + 1)

        nested.set(group)

        assert nested.parse("((()))") == (3, "")
        assert nested.parse("(()x") == FAILURE
