from splitparse import (
    FAILURE,
    BufferedStream,
    IteratorStream,
    SliceStream,
    general,
    satisfy,
    sep_by,
    string,
)


class TestInteger:
    def test_reads_decimal_number(self) -> None:
        assert general.integer.parse("123") == (123, "")

    def test_stops_at_non_digit(self) -> None:
        assert general.integer.parse("42abc") == (42, "abc")

    def test_missing_number_reads_as_zero(self) -> None:
        assert general.integer.parse("abc") == (0, "abc")

    def test_iterator_input_is_drained(self) -> None:
        r = general.integer.parse(IteratorStream(iter("123")))

        assert r.data == 123
        assert next(r.rest.iterator, None) is None

    def test_buffered_iterator_input(self) -> None:
        assert general.integer.parse(BufferedStream(iter("7,"))).data == 7

    def test_character_list_input(self) -> None:
        r = general.integer.parse(SliceStream(list("56x")))

        assert r == (56, ["x"])


class TestIntegerList:
    def test_comma_separated(self) -> None:
        assert general.integer_list.parse("123,4,56") == ([123, 4, 56], "")

    def test_with_explicit_separator_predicate(self) -> None:
        p = sep_by(general.integer, satisfy(lambda c: c == ","))

        assert p.parse("1,2;3") == ([1, 2], ";3")


class TestFieldDecl:
    def test_name_and_type(self) -> None:
        assert general.field_decl.parse("x: int") == ((["x"], ["i", "n", "t"]), "")

    def test_spaces_are_optional(self) -> None:
        assert general.field_decl.parse("count:u8 rest") == (
            (["c", "o", "u", "n", "t"], ["u", "8"]),
            " rest",
        )

    def test_missing_colon_fails(self) -> None:
        assert general.field_decl.parse("x int") == FAILURE

    def test_same_shape_with_and_then(self) -> None:
        p = (
            general.word
            .and_then(general.spaces)
            .and_then(string(":"))
            .and_then(general.spaces)
            .and_then(general.word)
        )

        r = p.parse("x: int")

        (((name, _), _), _), type_name = r.data
        assert (name, type_name) == (["x"], ["i", "n", "t"])
        assert r.rest == ""
