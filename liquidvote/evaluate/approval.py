'''Approval voting evaluator.

Every voter approves of any number of options and each approval counts with
the full effective weight of the ballot. The most approved option wins.
'''

import dataclasses
from typing import Dict, Collection
from numbers import Number

import liquidvote.convert
import liquidvote.evaluate.core
from liquidvote.evaluate.core import Result
from liquidvote.vote import ApprovalChoice
from liquidvote.persist import simple_serialization


@simple_serialization
class ApprovalVoting(liquidvote.evaluate.core.Evaluator):
    '''Approval voting: the option approved by the most weight wins.

    The counts of the result sum to more than the total votes as soon as any
    voter approves of more than one option; the approval shares of the
    options (out of the total votes) are reported in the details.

    :param split: Whether to split the weight of a ballot among all options
        it approves (satisfaction approval voting) instead of giving the full
        weight to each.
    '''
    def __init__(self, split: bool = False):
        self.split = split
        self._conv = liquidvote.convert.ApprovalToSimpleVotes(split=split)
        self._counter = liquidvote.evaluate.core.Plurality()

    def evaluate(self,
                 votes: Dict[ApprovalChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        '''Select the most approved option.

        :param votes: Approval votes.
        :param options: Option labels of the session.
        '''
        counts = self._conv.convert(votes, options)
        result = self._counter.evaluate(counts, options)
        total = sum(votes.values())
        return dataclasses.replace(
            result,
            total_votes=total,
            majority_achieved=(
                result.winner is not None
                and counts[result.winner] > total / 2
            ),
            details={
                'approvalShares': {
                    option: (count / total if total else 0)
                    for option, count in counts.items()
                },
            },
        )
