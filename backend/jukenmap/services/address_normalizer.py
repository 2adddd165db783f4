"""Address coarsening used when a precise address fails to geocode.

Japanese addresses end with block, lot and building numbers
("東京都文京区本駒込１－２－３ ○○ビル4F"). The geocoder often finds nothing for
the full string but resolves the town name fine, so the retry query drops
everything from the first ASCII or full-width digit onwards.
"""

import re

_TRAILING_NUMBERS = re.compile(r"[0-9０-９].*$")


def shorten(address: str) -> str:
    """Strip the trailing numeric part of an address.

    Pure and idempotent: the result contains no digits, so shortening it
    again returns it unchanged.

    >>> shorten("東京都文京区本駒込１－２－３")
    '東京都文京区本駒込'
    >>> shorten("東京都千代田区一番町22-10")
    '東京都千代田区一番町'
    """
    if not address:
        return ""
    return _TRAILING_NUMBERS.sub("", address).rstrip()
