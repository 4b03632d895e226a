import hashlib
from typing import Any, Iterable, List, Optional, Tuple

from fastapi import Request, Response

from utils.negotiation import MediaType, vary_on_accept


CACHE_CONTROL = 'private, max-age=0, must-revalidate'


def representation_variant(media_type: MediaType, paths: Iterable[str] = ()) -> str:
    """
    Identify one representation of a resource: the media type plus the
    embedded/included relationship paths, which change the body too.
    """
    return f"{media_type.value};{','.join(sorted(paths))}"


def related_rows(obj: Any, paths: Iterable[str] = (), **loaded: Any) -> List[Any]:
    """
    ORM rows reachable from `obj` along dotted relationship paths
    ("customer", "items.product"), i.e. the rows an embedded or included
    body is rendered from. `loaded` supplies first-level relationships the
    caller already holds (an item's `order`).
    """
    rows: List[Any] = []
    for path in sorted(paths):
        current = [obj]
        for depth, name in enumerate(path.split(".")):
            found: List[Any] = []
            for row in current:
                value = loaded[name] if depth == 0 and name in loaded else getattr(row, name)
                if value is None:
                    continue
                found.extend(value if isinstance(value, list) else [value])
            rows.extend(found)
            current = found
    return rows


def _row_version(row: Any) -> str:
    return f"{type(row).__name__}:{row.id}:{row.updated_at.isoformat()}"


def generate_etag(obj: Any, variant: Optional[str] = None, related: Iterable[Any] = ()) -> str:
    """
    Generate a strong ETag for an ORM row.

    The row's class, id and updated_at timestamp change whenever the stored
    resource changes (order item edits bump the order's updated_at too), and
    `variant` keeps the plain, HAL and JSON:API bodies of the same row apart.
    `related` holds the embedded/included rows, whose changes alter the body
    as well.
    """
    content = _row_version(obj)
    if variant:
        content = f"{content}:{variant}"
    for row in related:
        content = f"{content}|{_row_version(row)}"

    etag_hash = hashlib.md5(content.encode('utf-8')).hexdigest()
    return f'"{etag_hash}"'


def etag_matches(if_none_match: Optional[str], current_etag: str) -> bool:
    """
    Evaluate an If-None-Match header against the current ETag.

    The header may list several (comma-separated) validators or `*`. A weak
    validator (`W/"..."`) matches its strong counterpart, as GET allows weak
    comparison.
    """
    if not if_none_match:
        return False

    candidates = {tag.strip().removeprefix('W/') for tag in if_none_match.split(',')}
    return '*' in candidates or current_etag in candidates


def set_etag_headers(response: Response, etag: str) -> None:
    response.headers['ETag'] = etag
    response.headers['Cache-Control'] = CACHE_CONTROL


def conditional_get(
    request: Request,
    obj: Any,
    variant: Optional[str] = None,
    related: Iterable[Any] = (),
) -> Tuple[str, Optional[Response]]:
    """
    Compute the ETag for `obj` and, when the client already holds that
    version, the 304 response to send instead of the body.

    Returns:
        tuple: (etag, not_modified_response_or_None)
    """
    etag = generate_etag(obj, variant, related)

    if etag_matches(request.headers.get('if-none-match'), etag):
        not_modified = Response(status_code=304)
        vary_on_accept(not_modified)
        set_etag_headers(not_modified, etag)
        return etag, not_modified

    return etag, None
