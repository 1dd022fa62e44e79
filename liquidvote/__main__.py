"""A commandline tool for quick tabulation of liquid democracy vote sessions.

Loads a JSON session file with the session, its ballots and the delegations
in force, expands the ballots by the delegations of the topic of the session
and evaluates them by the voting method of the session (or another one).
"""

import argparse
import io
import json
import logging
import sys
import warnings
from typing import Optional, List

import liquidvote.io.session
import liquidvote.system
from liquidvote.delegation.graph import DelegationGraph
from liquidvote.delegation.expand import expand_ballots
from liquidvote.evaluate.core import Result, VotingMethod, UnknownMethodError
from liquidvote.io.core import ParseError, SessionSetup
from liquidvote.member import MemoryMemberDirectory, UnknownMemberError
from liquidvote.vote import ValidationError, WeightedBallot

argparser = argparse.ArgumentParser(
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-i', '--input-file',
    type=argparse.FileType('r', encoding='utf8'),
    help='session file to load the session, ballots and delegations from',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='load the session file from standard input',
)
argparser.add_argument(
    '-m', '--method',
    help=(
        'voting method to tabulate by, overriding the method of the session;'
        ' one of: ' + ', '.join(method.value for method in VotingMethod)
    ),
)
argparser.add_argument(
    '-t', '--topic',
    help=(
        'resolve delegations in the scope of this topic instead of the topic'
        ' of the session'
    ),
)
argparser.add_argument(
    '--json',
    action='store_true',
    help='print the result as JSON',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all evaluator log messages and other info',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any evaluator log messages or other info',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         method: Optional[str] = None,
         topic: Optional[str] = None,
         json: bool = False,
         verbose: bool = False,
         quiet: bool = False,
         ) -> int:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    try:
        setup = liquidvote.io.session.load(input_file)
        result = run_session(setup, method=method, topic=topic)
    except (ParseError, ValidationError, UnknownMethodError,
            UnknownMemberError) as err:
        print(f'error: {err}', file=sys.stderr)
        return 1
    if json:
        show_result_json(result)
    else:
        show_result_full(result)
    return 0


def run_session(setup: SessionSetup,
                method: Optional[str] = None,
                topic: Optional[str] = None,
                ) -> Result:
    """Expand the ballots of a loaded session and tabulate them."""
    session = setup.session
    if method is None:
        method = session.method
    if topic is None:
        topic = session.topic_id
    systems = None
    if setup.systems:
        systems = liquidvote.system.load_systems(setup.systems)
    members = (
        MemoryMemberDirectory(setup.members) if setup.members else None
    )
    graph = DelegationGraph.build(
        setup.delegations, topic_id=topic, at=session.ends_at, members=members
    )
    if members is not None:
        for user_id in sorted(graph.participants):
            members.get_member(user_id)
    weighted = expand_ballots(setup.ballots, graph)
    if not weighted:
        warnings.warn('empty ballots: nobody voted in the session')
    show_ballot_stats(weighted)
    return liquidvote.system.calculate_results(
        method, weighted, session.options, systems=systems
    )


def show_ballot_stats(weighted: List[WeightedBallot]) -> None:
    n_represented = sum(len(ballot.represented) for ballot in weighted)
    logging.info('%d direct ballots carrying %d delegated votes',
                 len(weighted), n_represented)


def show_result_json(result: Result) -> None:
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def show_result_full(result: Result) -> None:
    """Show the result of a session as a plain text table."""
    if result.winner is None:
        print('No winner')
        tied = result.tied()
        if len(tied) > 1:
            print('Tied: ' + ', '.join(tied))
    else:
        print(f'Winner: {result.winner}')
    print(f'Total votes: {result.total_votes:g}')
    if result.majority_achieved:
        print('Majority achieved')
    if result.runoff_candidates:
        print('Runoff between: ' + ', '.join(result.runoff_candidates))
    for title, values in (
        ('Counts', result.counts),
        ('Scores', result.scores),
        ('Rankings', result.rankings),
    ):
        if not values:
            continue
        print()
        print(title + ':')
        n_just_chars = len(max(values.keys(), key=len))
        for option, value in values.items():
            print(option.ljust(n_just_chars), ' ', f'{value:g}')


if __name__ == '__main__':
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
    else:
        sys.exit(main(**vars(args)))
