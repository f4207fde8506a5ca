"""
Reddit JSON endpoints used as the forum source.

Builds the listing, comment and search URLs and turns the decoded JSON
into plain :class:`Post` objects and comment strings. Decoding errors are
not caught here: a page that is not JSON raises
:class:`json.JSONDecodeError` so the caller can stop walking that
subreddit.
"""

# Import JSON for decoding API responses
import json

# Import urllib helpers for URL building
from urllib.parse import quote_plus

from dataclasses import dataclass

# Import BeautifulSoup for stripping markup and HTML entities
from bs4 import BeautifulSoup

BASE_URL = "https://www.reddit.com"

# Listing, comment and search URL templates
LISTING_URL = BASE_URL + "/r/{sub}/new.json?limit=25&after={after}"
COMMENTS_URL = BASE_URL + "/r/{sub}/comments/{post_id}.json?limit=50"
SEARCH_URL = BASE_URL + "/search.json?q={query}&limit=25&sort=relevance&t=year"

# Search results are kept only from these subreddits (lower-case)
RELEVANT_SUBREDDITS = frozenset(
    {"collegeresults", "applyingtocollege", "chanceme", "collegeadmissions", "a2c"}
)

# Comments shorter than this cannot carry a school, an outcome and scores
MIN_COMMENT_LENGTH = 50


@dataclass(frozen=True)
class Post:
    """One submission from a listing or search page."""
    id: str
    subreddit: str
    title: str
    body: str


def listing_url(subreddit, after=""):
    return LISTING_URL.format(sub=subreddit, after=after or "")


def comments_url(subreddit, post_id):
    return COMMENTS_URL.format(sub=subreddit, post_id=post_id)


def search_url(keyword):
    return SEARCH_URL.format(query=quote_plus(keyword))


def clean_text(value):
    """Strip markup and HTML entities, then collapse whitespace.

    :param value: Raw text from the API, or ``None``.
    :type value: str or None
    :returns: Plain text, or ``""``.
    :rtype: str
    """
    if not value:
        return ""
    if "<" in value or "&" in value:
        value = BeautifulSoup(value, "html.parser").get_text(" ")
    return " ".join(value.split())


def is_substantive(text, min_length=MIN_COMMENT_LENGTH):
    """Return True when ``text`` is long enough to be worth extracting."""
    return len((text or "").strip()) >= min_length


def _post_from_child(child):
    data = child.get("data") or {}
    post_id = data.get("id")
    if child.get("kind") != "t3" or not post_id:
        return None
    return Post(
        id=post_id,
        subreddit=data.get("subreddit") or "",
        title=clean_text(data.get("title")),
        body=clean_text(data.get("selftext")),
    )


def parse_listing(text):
    """Decode a listing or search page.

    :param text: Response body.
    :type text: str
    :returns: The page's posts and the cursor for the next page
        (``None`` on the last page).
    :rtype: tuple[list[Post], str or None]
    :raises json.JSONDecodeError: If ``text`` is not JSON.
    """
    payload = json.loads(text)
    if not isinstance(payload, dict):
        return [], None
    data = payload.get("data") or {}

    posts = []
    for child in data.get("children") or []:
        post = _post_from_child(child)
        if post is not None:
            posts.append(post)
    return posts, data.get("after")


def parse_comments(text):
    """Decode a comment page into the bodies of its top-level comments.

    The page is a two-element array; comments live in the second
    element. Only ``t1`` (comment) children are kept, and bodies shorter
    than :data:`MIN_COMMENT_LENGTH` are dropped.

    :param text: Response body.
    :type text: str
    :returns: Cleaned comment bodies.
    :rtype: list[str]
    :raises json.JSONDecodeError: If ``text`` is not JSON.
    """
    payload = json.loads(text)
    if not isinstance(payload, list) or len(payload) < 2:
        return []

    children = (payload[1].get("data") or {}).get("children") or []
    bodies = []
    for child in children:
        if child.get("kind") != "t1":
            continue
        body = clean_text((child.get("data") or {}).get("body"))
        if is_substantive(body):
            bodies.append(body)
    return bodies


def is_relevant(post):
    """Return True when a search hit comes from an admissions subreddit."""
    return post.subreddit.lower() in RELEVANT_SUBREDDITS
