"""
Library for putting parsers together out of small composable pieces.

See the objects for more explanations.

See the `splitparse.general` module for ready-made parsers you can use as examples.

Defining parsers:
```
@sequence
def assignment(env: Env[str]) -> Result[tuple[list[str], int], Stream[str]]:
    name = env.with_(many1(satisfy(str.isalpha)))
    env.with_(many(space))
    env.with_("=")          # strings match literally
    env.with_(many(space))
    value = env.with_(general.integer)
    return env.result((name, value))
```

Using parsers:
```
result = assignment.parse("x = 10")
if result:
    value, rest = result    # `result` is a `Result` object
else:
    ...                     # `result` is a `ParseFailure` object
```

Input can be a `str`, any sequence, any iterable, or a `Stream` object.
"""

import splitparse.const as const
import splitparse.main
from splitparse.main import (
    ParseFailure,
    FAILURE,
    ParseError,
    ParseAbort,
    NoProgressError,
    Result,
    Stream,
    TextStream,
    SliceStream,
    IteratorStream,
    BufferedStream,
    as_stream,
    Parser,
    FnParser,
    Ref,
    as_parser,
    satisfy,
    string,
    char,
    digit,
    space,
    and_then,
    optional,
    many,
    many1,
    sep_by,
    many_append,
    Env,
    sequence,
)
import splitparse.general as general
