"""
Ready-made parsers for common text pieces.
"""

from __future__ import annotations

from splitparse import *

_digits = many(digit)

@sequence
def integer(env: Env[str]) -> Result[int, Stream[str]]:
    """
    Decimal integer without a sign.

    Never fails. A missing number reads as `0`; use `many1(digit)` when at least one digit is required.
    """
    n = 0
    for c in env.with_(_digits):
        n = n * 10 + (ord(c) - ord("0"))
    return env.result(n)

word = many(satisfy(str.isalnum))
"""Letters and digits, as a list of characters. May be empty."""

spaces = many(space)
"""Zero or more whitespace characters."""

integer_list = sep_by(integer, satisfy(lambda c: c == ","))
"""Comma separated integers, without spaces. `"1,2,3"`"""

@sequence
def field_decl(env: Env[str]) -> Result[tuple[list[str], list[str]], Stream[str]]:
    """
    `name: type` pair. Outputs `(name, type)`, both as lists of characters.
    """
    name = env.with_(word)
    env.with_(spaces)
    env.with_(":")
    env.with_(spaces)
    type_name = env.with_(word)
    return env.result((name, type_name))
