"""
Page selection rules.

A selection is a list of tokens, any one of which may match:

- "all"         every page
- "last"        the final page
- "3"           page 3 (1-based)
- "2-5"         pages 2 to 5 inclusive
- "2-last"      page 2 through the final page

Tokens that cannot be parsed match nothing.
"""

from typing import Iterable, List, Optional, Tuple, Union

Token = Union[str, int]


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_range(token: str, total_pages: int) -> Optional[Tuple[int, int]]:
    start_str, end_str = token.split("-", 1)
    start = _parse_int(start_str)
    end = total_pages if end_str.strip() == "last" else _parse_int(end_str)
    if start is None or end is None:
        return None
    return start, end


def page_matches(tokens: Iterable[Token], page_index: int, total_pages: int) -> bool:
    """Returns True when ``page_index`` (1-based) is selected by any token."""
    for raw in tokens:
        if isinstance(raw, bool):
            continue
        if isinstance(raw, int):
            if raw == page_index:
                return True
            continue

        token = str(raw).strip().lower()
        if token == "all":
            return True
        if token == "last":
            if page_index == total_pages:
                return True
            continue
        if "-" in token:
            bounds = _parse_range(token, total_pages)
            if bounds and bounds[0] <= page_index <= bounds[1]:
                return True
            continue
        if _parse_int(token) == page_index:
            return True

    return False


def selected_pages(tokens: Iterable[Token], total_pages: int) -> List[int]:
    """Lists the 1-based pages of a document selected by ``tokens``."""
    tokens = list(tokens)
    return [page for page in range(1, total_pages + 1) if page_matches(tokens, page, total_pages)]
