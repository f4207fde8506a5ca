"""
Command-line entry point for the data agent.

Usage::

    admitflow-agent --hours=6 --target=50000

Database credentials come from the ``DB_*`` environment variables (see
:func:`admitflow.store.create_connection`).
"""

import argparse

from .agent import Agent, AgentConfig
from .store import PostgresStore, create_connection


def build_parser():
    defaults = AgentConfig()
    parser = argparse.ArgumentParser(
        prog="admitflow-agent",
        description="Collect, synthesize and verify admission records.",
    )
    parser.add_argument(
        "--hours", type=float, default=defaults.max_hours,
        help=f"Maximum run time in hours (default {defaults.max_hours})",
    )
    parser.add_argument(
        "--target", type=int, default=defaults.target,
        help=f"Stop once the store holds this many records (default {defaults.target})",
    )
    return parser


def main(argv=None, connect=create_connection):
    """Parse arguments, connect to the store and run the agent.

    A store that cannot be reached raises
    :class:`~admitflow.store.StoreUnavailableError` and ends the process.

    :param argv: Argument list; defaults to ``sys.argv[1:]``.
    :type argv: list[str] or None
    :param connect: Connection factory.
    :returns: Final run statistics.
    :rtype: admitflow.models.RunStatistics
    """
    args = build_parser().parse_args(argv)
    config = AgentConfig(max_hours=args.hours, target=args.target)

    connection = connect()
    try:
        store = PostgresStore(connection)
        store.create_schema()
        return Agent(store, config).run()
    finally:
        connection.close()


if __name__ == "__main__":  # pragma: no cover
    main()
