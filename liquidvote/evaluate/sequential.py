'''Evaluators that count in rounds.

This hosts the two-round methods (:class:`MajorityRunoff` and its
always-two-rounds variant :class:`DualChoice`), which run on simple choices,
and :class:`InstantRunoff`, which eliminates options one round at a time
based on ranked choices.
'''

import logging
from typing import Any, Dict, Collection
from numbers import Number

import liquidvote.convert
import liquidvote.persist
import liquidvote.evaluate.core
import liquidvote.vote
from liquidvote.evaluate.core import Result, Tie
from liquidvote.vote import SimpleChoice, RankedChoice
from liquidvote.persist import simple_serialization

logger = logging.getLogger(__name__)


@simple_serialization
class MajorityRunoff(liquidvote.evaluate.core.Evaluator):
    '''Two-round system: a majority wins outright, otherwise a runoff.

    In the first round, every ballot counts for its option. If an option gets
    more than half of the total weight, it wins. Otherwise the two options
    with the most weight proceed to a runoff, in which only the ballots cast
    for those two options are counted again. If the second place of the first
    round is tied, the runoff cannot be formed and there is no winner.

    :param always_runoff: Hold the runoff even if the first round produced
        a majority.
    '''
    def __init__(self, always_runoff: bool = False):
        self.always_runoff = always_runoff
        self._counter = liquidvote.convert.SimpleToOptionVotes()
        self._subsetter = liquidvote.convert.SubsettedVotes(
            liquidvote.vote.SimpleSubsetter()
        )

    def evaluate(self,
                 votes: Dict[SimpleChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        '''Evaluate the first round and the runoff, if needed.

        :param votes: Simple votes.
        :param options: Option labels of the session.
        '''
        counts = self._counter.convert(votes, options)
        total = sum(votes.values())
        leader = liquidvote.evaluate.core.select_winner(counts)
        if (not self.always_runoff
                and leader is not None
                and counts[leader] > total / 2):
            logger.info('%s has a majority in the first round', leader)
            return Result(
                winner=leader,
                counts=counts,
                total_votes=total,
                majority_achieved=True,
                details={'round': 1},
            )
        finalists = liquidvote.evaluate.core.get_n_best(counts, 2)
        if len(finalists) < 2 or Tie.any(finalists):
            logger.info('runoff cannot be formed, finalists: %s', finalists)
            return Result(
                counts=counts,
                total_votes=total,
                runoff_needed=True,
                details={'round': 1, 'round1Counts': counts},
            )
        logger.info('runoff between %s', finalists)
        runoff_counts = self._counter.convert(
            self._subsetter.convert(votes, finalists), finalists
        )
        return Result(
            winner=liquidvote.evaluate.core.select_winner(runoff_counts),
            counts=counts,
            total_votes=total,
            runoff_needed=True,
            runoff_candidates=finalists,
            details={
                'round': 2,
                'round1Counts': counts,
                'runoffCounts': runoff_counts,
                'totalVotesRunoff': sum(runoff_counts.values()),
            },
        )


class DualChoice(MajorityRunoff):
    '''Dual-choice voting: always two rounds.

    The first round picks the two options with the most weight; the second
    round counts again only the ballots restricted to those two, even if one
    option already had a majority in the first round.
    '''
    def __init__(self):
        super().__init__(always_runoff=True)

    def to_dict(self) -> Dict[str, Any]:
        return {'class': liquidvote.persist.qualified_name(type(self))}


@simple_serialization
class InstantRunoff(liquidvote.evaluate.core.Evaluator):
    '''Instant-runoff voting (IRV, alternative vote).

    Each ballot counts for its best ranked option among the options still in
    the count; options sharing that rank split the ballot's weight equally.
    While no option has more than half of the weight still in the count,
    the options with the least weight are eliminated (all of them if several
    are tied for the last place) and their ballots transfer to the next
    ranked continuing options. Ballots ranking no continuing option are
    exhausted. The count stops when an option has a majority or only one
    option remains; if all remaining options are tied, there is no winner.
    '''
    def __init__(self):
        self._counter = liquidvote.convert.RankedToFirstPreference()

    def evaluate(self,
                 votes: Dict[RankedChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        '''Run the elimination rounds.

        :param votes: Ranked votes.
        :param options: Option labels of the session.
        '''
        continuing = list(options)
        rounds = []
        eliminated = []
        winner = None
        majority = False
        while continuing:
            tallies = self._counter.convert(votes, continuing)
            rounds.append(tallies)
            active = sum(tallies.values())
            logger.debug('round %d tallies: %s', len(rounds), tallies)
            leader = liquidvote.evaluate.core.select_winner(tallies)
            if leader is not None and tallies[leader] > active / 2:
                logger.info('%s has a majority in round %d',
                            leader, len(rounds))
                winner = leader
                majority = True
                break
            if len(continuing) == 1:
                break
            lowest = min(tallies.values())
            losers = [opt for opt in continuing if tallies[opt] == lowest]
            if len(losers) == len(continuing):
                logger.info('all remaining options tied: %s', continuing)
                break
            logger.info('eliminating %s', losers)
            eliminated.append(losers)
            continuing = [opt for opt in continuing if opt not in losers]
        return Result(
            winner=winner,
            counts=(rounds[0] if rounds else {}),
            total_votes=sum(votes.values()),
            majority_achieved=majority,
            runoff_needed=(len(rounds) > 1),
            details={
                'rounds': rounds,
                'eliminated': eliminated,
                'finalCounts': (rounds[-1] if rounds else {}),
            },
        )
