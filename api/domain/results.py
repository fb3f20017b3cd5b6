# SPDX-License-Identifier: Apache-2.0

"""
Vote tally computation.
"""

from collections import Counter
from typing import Iterable, List, Optional, Tuple

from models.entities import OptionResult


def tally_votes(options: List[str], choices: Iterable[str]) -> Tuple[int, List[OptionResult], Optional[str]]:
    """
    Aggregate ballots into per-option counts, percentages and a winner.

    Per-option results follow the declared option order. The winner is the
    option with the highest count; among ties the first declared option
    wins. With no votes every percentage is 0 and there is no winner.

    Args:
        options: Declared options of the agenda item
        choices: Recorded ballot choices

    Returns:
        Tuple of (total votes, per-option results, winner or None)
    """
    choices = list(choices)
    total_votes = len(choices)
    counts = Counter(choices)

    per_option = []
    for option in options:
        votes = counts.get(option, 0)
        percentage = (votes / total_votes * 100) if total_votes else 0
        per_option.append(OptionResult(option=option, votes=votes, percentage=percentage))

    winner = None
    if total_votes:
        best = max(result.votes for result in per_option)
        if best > 0:
            winner = next(result.option for result in per_option if result.votes == best)

    return total_votes, per_option, winner
