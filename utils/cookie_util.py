"""
Cookie parsing helpers.

Cookies reach the gateway two ways: the regular ``Cookie`` request header, and
a ``cookie`` field embedded in the query string or the request body (clients
that cannot send cookies cross-origin put the whole cookie string there).
Both end up as a flat ``{name: value}`` mapping.
"""

import re
from urllib.parse import quote, unquote

# A pair ends at '; ' (semicolon plus at least one space) or at trailing
# whitespace closing the string.
_COOKIE_DELIMITER = re.compile(r';\s+|(?<!\s)\s+$')

# Undecodable bytes left behind by errors='surrogateescape'
_ESCAPED_BYTE = re.compile('[\udc80-\udcff]')


def safe_decode(value: str) -> str:
    """Percent-decode ``value``, keeping any sequence that is not valid UTF-8 as-is.

    ``%E4%BD%A0%FF`` -> ``你%FF``.
    """
    decoded = unquote(value, errors='surrogateescape')
    return _ESCAPED_BYTE.sub(lambda m: '%{:02X}'.format(ord(m.group()) - 0xDC00), decoded)


def parse_cookie_header(raw: str | None) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for pair in _COOKIE_DELIMITER.split(raw or ''):
        crack = pair.find('=')
        if crack < 1 or crack == len(pair) - 1:
            continue
        cookies[safe_decode(pair[:crack]).strip()] = safe_decode(pair[crack + 1:]).strip()
    return cookies


def cookie_to_json(cookie: str | None) -> dict[str, str]:
    """Turn a cookie string carried inside query/body into a cookie mapping."""
    if not cookie:
        return {}
    return parse_cookie_header(cookie)


def cookie_to_header(cookie: dict | str | None) -> str:
    """Serialize a cookie mapping back into a ``Cookie`` header value."""
    if not cookie:
        return ''
    if isinstance(cookie, str):
        return cookie
    return '; '.join(f'{quote(str(k), safe="")}={quote(str(v), safe="")}' for k, v in cookie.items())
