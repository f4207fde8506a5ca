"""
tests.test_reddit
=================

URL building and response parsing for the subreddit source.
"""

import json

import pytest

from admitflow.scrape import reddit

LONG_COMMENT = "Accepted to Duke ED with a 3.8 GPA and 1500 SAT, good luck everyone!"


def listing(posts, after=None):
    return json.dumps({
        "kind": "Listing",
        "data": {
            "after": after,
            "children": [{"kind": "t3", "data": p} for p in posts],
        },
    })


@pytest.mark.fetch
def test_urls():
    assert reddit.listing_url("chanceme") == (
        "https://www.reddit.com/r/chanceme/new.json?limit=25&after="
    )
    assert reddit.listing_url("chanceme", "t3_abc").endswith("after=t3_abc")
    assert reddit.comments_url("chanceme", "abc") == (
        "https://www.reddit.com/r/chanceme/comments/abc.json?limit=50"
    )
    assert "q=accepted+MIT" in reddit.search_url("accepted MIT")
    assert reddit.search_url("x").endswith("&sort=relevance&t=year")


@pytest.mark.fetch
def test_parse_listing_reads_posts_and_cursor():
    text = listing(
        [
            {"id": "a1", "subreddit": "collegeresults", "title": "Results &amp; stats",
             "selftext": "<p>Accepted   to MIT</p>"},
            {"subreddit": "collegeresults", "title": "no id"},
        ],
        after="t3_a1",
    )
    posts, after = reddit.parse_listing(text)

    assert after == "t3_a1"
    assert posts == [reddit.Post("a1", "collegeresults", "Results & stats", "Accepted to MIT")]


@pytest.mark.fetch
def test_parse_listing_last_page_has_no_cursor():
    posts, after = reddit.parse_listing(listing([]))
    assert posts == [] and after is None


@pytest.mark.fetch
def test_parse_listing_raises_on_malformed_json():
    with pytest.raises(json.JSONDecodeError):
        reddit.parse_listing("<html>rate limited</html>")


@pytest.mark.fetch
def test_parse_comments_keeps_long_t1_bodies():
    text = json.dumps([
        {"data": {"children": []}},
        {"data": {"children": [
            {"kind": "t1", "data": {"body": LONG_COMMENT}},
            {"kind": "t1", "data": {"body": "congrats!"}},
            {"kind": "more", "data": {"children": ["x", "y"]}},
        ]}},
    ])
    assert reddit.parse_comments(text) == [LONG_COMMENT]


@pytest.mark.fetch
def test_parse_comments_tolerates_unexpected_shape():
    assert reddit.parse_comments(json.dumps({"error": 404})) == []


@pytest.mark.fetch
def test_clean_text_and_relevance():
    assert reddit.clean_text("&gt; quoted\n\n text") == "> quoted text"
    assert reddit.clean_text(None) == ""
    assert reddit.is_relevant(reddit.Post("1", "ApplyingToCollege", "", ""))
    assert not reddit.is_relevant(reddit.Post("1", "funny", "", ""))
    assert reddit.is_substantive(LONG_COMMENT)
    assert not reddit.is_substantive("too short")
