"""
The data agent: a long-running collection loop.

Each cycle walks a few listing pages of the next subreddit, runs two
keyword searches, tops up the dataset with synthetic records and passes
every unverified record through the verifier. The loop stops once the
run has lasted ``max_hours`` or the store holds ``target`` records.

Run statistics are an immutable value threaded through the cycles:
:meth:`Agent.run_cycle` takes the current :class:`RunStatistics` and
returns the updated one.
"""

# Import json to catch malformed source responses
import json

# Import time for the pauses between requests and cycles
import time

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .console import log, print_final_report, print_stats
from .models import RunStatistics
from .resolver import SchoolResolver
from .scrape import reddit
from .scrape.extract import Extractor
from .scrape.fetcher import Fetcher
from .store import DuplicateRecordError
from .synthesize import Synthesizer
from .verify import Verifier

SUBREDDITS = (
    "collegeresults",
    "ApplyingToCollege",
    "chanceme",
    "CollegeAdmissions",
)

KEYWORDS = (
    "accepted MIT", "accepted Stanford", "accepted Harvard", "accepted Yale",
    "rejected MIT", "rejected Stanford", "rejected Harvard",
    "college results", "decision results", "admission results",
    "ivy league results", "T20 results", "top 20 results",
    "international student accepted", "international admitted",
    "waitlisted", "deferred",
    "early decision results", "ED results", "early action results",
    "EA results", "regular decision",
    "class of 2025", "class of 2026", "class of 2027", "class of 2028",
    "GPA SAT accepted", "stats accepted", "profile admitted",
    "Chinese student admitted", "Indian student admitted",
    "first gen admitted", "legacy admitted",
    "UC Berkeley admitted", "UCLA admitted", "CMU admitted",
    "Northwestern admitted", "Duke admitted", "UPenn admitted",
)

# Provenance tags; search tags keep the first 20 characters of the keyword
SUBREDDIT_TAG = "source:reddit:{sub}"
SUBREDDIT_COMMENT_TAG = "source:reddit:{sub}:comment"
SEARCH_TAG = "source:reddit:search:{keyword}"
SEARCH_COMMENT_TAG = "source:reddit:search:comment"
SEARCH_TAG_KEYWORD_LENGTH = 20


@dataclass
class AgentConfig:
    """Run limits and per-cycle workload of the agent."""
    max_hours: float = 12
    target: int = 100000
    pages_per_cycle: int = 5
    synthetic_batch: int = 100
    interval_minutes: float = 3
    searches_per_cycle: int = 2
    fetch_comments: bool = True
    request_delay: float = 2.0
    search_delay: float = 2.0
    subreddits: tuple = field(default=SUBREDDITS)
    keywords: tuple = field(default=KEYWORDS)


class Agent:
    """Collection loop over one store.

    Collaborators default to the production implementations and can be
    replaced for tests.

    :param store: Persistence store.
    :param config: Run configuration.
    :type config: AgentConfig or None
    :param sleep: Replacement for :func:`time.sleep`.
    :param clock: Replacement for :meth:`datetime.datetime.now`.
    """

    def __init__(
        self,
        store,
        config=None,
        fetcher=None,
        extractor=None,
        resolver=None,
        synthesizer=None,
        verifier=None,
        sleep=None,
        clock=None,
    ):
        self.store = store
        self.config = config or AgentConfig()
        self.fetcher = fetcher or Fetcher()
        self.extractor = extractor or Extractor()
        self.resolver = resolver or SchoolResolver(store)
        self.synthesizer = synthesizer or Synthesizer(store)
        self.verifier = verifier or Verifier(store)
        self.sleep = sleep
        self.clock = clock or datetime.now
        self.user_id = None

    def _wait(self, seconds):
        (self.sleep or time.sleep)(seconds)

    # ---------- ingestion ----------

    def ingest(self, candidates, source_tag):
        """Persist extracted candidates under one provenance tag.

        :returns: ``(created, skipped)``.
        :rtype: tuple[int, int]
        """
        created = skipped = 0
        for candidate in candidates:
            school_id = self.resolver.resolve(candidate.school_name)
            record = candidate.to_record(school_id, extra_tags=(source_tag,))
            record.user_id = self.user_id

            existing = self.store.find_first_record(
                school_id, record.year, record.outcome, record.gpa, record.sat
            )
            if existing is not None:
                skipped += 1
                continue
            try:
                self.store.create_record(record)
                created += 1
            except DuplicateRecordError:
                skipped += 1
        return created, skipped

    def process_post(self, post, post_tag, comment_tag):
        """Extract from a post and, if it mentioned results, from its comments."""
        candidates = self.extractor.extract(post.title, post.body)
        created, skipped = self.ingest(candidates, post_tag)

        if candidates and self.config.fetch_comments:
            text = self.fetcher.fetch(reddit.comments_url(post.subreddit, post.id))
            if text is not None:
                for body in reddit.parse_comments(text):
                    c, s = self.ingest(self.extractor.extract("", body), comment_tag)
                    created += c
                    skipped += s
        return created, skipped

    # ---------- sources ----------

    def walk_subreddit(self, subreddit):
        """Walk up to ``pages_per_cycle`` listing pages of one subreddit.

        Stops early when the cursor runs out or a page cannot be fetched.
        A malformed page aborts the walk; records already stored are kept.

        :returns: ``(created, skipped)``.
        :rtype: tuple[int, int]
        """
        post_tag = SUBREDDIT_TAG.format(sub=subreddit)
        comment_tag = SUBREDDIT_COMMENT_TAG.format(sub=subreddit)
        created = skipped = 0
        after = ""

        try:
            for page in range(1, self.config.pages_per_cycle + 1):
                log("INFO", f"r/{subreddit} page {page}")
                text = self.fetcher.fetch(reddit.listing_url(subreddit, after))
                if text is None:
                    break

                posts, after = reddit.parse_listing(text)
                for post in posts:
                    c, s = self.process_post(post, post_tag, comment_tag)
                    created += c
                    skipped += s

                if not after or page == self.config.pages_per_cycle:
                    break
                self._wait(self.config.request_delay)
        except json.JSONDecodeError as e:
            log("WARN", f"Malformed response from r/{subreddit}; stopping walk ({e})")

        log("OK", f"r/{subreddit}: +{created} records, {skipped} skipped")
        return created, skipped

    def search(self, keyword):
        """Run one keyword search over the admissions subreddits.

        :returns: ``(created, skipped)``.
        :rtype: tuple[int, int]
        """
        post_tag = SEARCH_TAG.format(keyword=keyword[:SEARCH_TAG_KEYWORD_LENGTH])
        created = skipped = 0

        text = self.fetcher.fetch(reddit.search_url(keyword))
        if text is None:
            return 0, 0
        try:
            posts, _after = reddit.parse_listing(text)
            for post in posts:
                if not reddit.is_relevant(post):
                    continue
                c, s = self.process_post(post, post_tag, SEARCH_COMMENT_TAG)
                created += c
                skipped += s
        except json.JSONDecodeError as e:
            log("WARN", f"Malformed search response for {keyword!r} ({e})")

        log("OK", f"search {keyword!r}: +{created} records, {skipped} skipped")
        return created, skipped

    # ---------- loop ----------

    def next_subreddit(self, stats):
        subs = self.config.subreddits
        return subs[stats.rounds % len(subs)]

    def next_keywords(self, stats):
        words = self.config.keywords
        n = self.config.searches_per_cycle
        start = stats.rounds * n
        return [words[(start + i) % len(words)] for i in range(n)]

    def run_cycle(self, stats):
        """Run one cycle and return the updated statistics.

        An exception in any stage ends the cycle early and is counted in
        ``errors``; counts from the stages that finished are kept.

        :param stats: Statistics so far.
        :type stats: admitflow.models.RunStatistics
        :rtype: admitflow.models.RunStatistics
        """
        log("INFO", f"Cycle {stats.rounds + 1}")
        try:
            created, skipped = self.walk_subreddit(self.next_subreddit(stats))
            stats = stats.add(fetched=created, skipped=skipped)

            for i, keyword in enumerate(self.next_keywords(stats)):
                if i:
                    self._wait(self.config.search_delay)
                created, skipped = self.search(keyword)
                stats = stats.add(fetched=created, skipped=skipped)

            stats = stats.add(synthesized=self.synthesizer.synthesize(self.config.synthetic_batch))

            verified, deleted = self.verifier.verify_all()
            stats = stats.add(verified=verified, deleted=deleted)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log("ERROR", f"Cycle failed: {e}")
            stats = stats.add(errors=1)

        return stats.add(rounds=1)

    def should_stop(self, stats):
        """Return True once the time limit or the record target is reached."""
        elapsed = self.clock() - stats.started_at
        if elapsed >= timedelta(hours=self.config.max_hours):
            log("INFO", f"Time limit of {self.config.max_hours}h reached")
            return True
        total = self.store.count_records()
        if total >= self.config.target:
            log("INFO", f"Target of {self.config.target} records reached ({total})")
            return True
        return False

    def run(self):
        """Run cycles until a stop condition holds, then print the final report.

        :returns: Final statistics.
        :rtype: admitflow.models.RunStatistics
        :raises admitflow.store.StoreUnavailableError: If the store cannot be
            reached at start-up.
        """
        self.user_id = self.store.get_or_create_system_user()
        self.synthesizer.user_id = self.user_id

        stats = RunStatistics(started_at=self.clock())
        log("INFO", f"Agent started: max {self.config.max_hours}h, "
                    f"target {self.config.target} records")

        while not self.should_stop(stats):
            if stats.rounds:
                self._wait(self.config.interval_minutes * 60)
            stats = self.run_cycle(stats)
            print_stats(stats, now=self.clock())

        print_final_report(
            self.store.count_records(),
            self.store.count_records(verified=True),
            stats,
            now=self.clock(),
        )
        return stats
