"""
Console output for the data agent.

Every stage reports progress through :func:`log`; the agent prints a
statistics block after each cycle with :func:`print_stats` and a closing
summary with :func:`print_final_report`.
"""

from datetime import datetime

RULE_WIDTH = 50


def log(level, message):
    """Print one progress line tagged with the wall-clock time and a level.

    :param level: One of ``INFO``, ``WARN``, ``ERROR``, ``OK``.
    :type level: str
    :param message: Text to print.
    :type message: str
    """
    stamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{stamp}] [{level}] {message}")


def print_stats(stats, now=None):
    """Print the running counters of an agent run.

    :param stats: Current run statistics.
    :type stats: admitflow.models.RunStatistics
    :param now: Optional clock override used for the runtime figure.
    :type now: datetime.datetime or None
    """
    print("\n" + "-" * RULE_WIDTH)
    print(f"Run statistics ({stats.runtime_minutes(now)} min)")
    print("-" * RULE_WIDTH)
    print(f"  rounds:      {stats.rounds}")
    print(f"  fetched:     +{stats.fetched}")
    print(f"  synthesized: +{stats.synthesized}")
    print(f"  skipped:     {stats.skipped}")
    print(f"  verified:    {stats.verified}")
    print(f"  deleted:     {stats.deleted}")
    print(f"  errors:      {stats.errors}")
    print("-" * RULE_WIDTH + "\n")


def print_final_report(total, verified, stats, now=None):
    """Print the closing summary once the agent loop stops."""
    print("\n" + "=" * RULE_WIDTH)
    print("Final report")
    print("=" * RULE_WIDTH)
    print(f"Total records:    {total}")
    print(f"Verified records: {verified}")
    print(f"Runtime:          {stats.runtime_minutes(now)} min")
    print("=" * RULE_WIDTH)
