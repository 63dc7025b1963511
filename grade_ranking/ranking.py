"""
Ranking of aggregated students.

Order, best first: GPA, then total weighted grade point, then total raw score,
then student id ascending so that full ties always come out the same way.

How tied students are numbered is a named policy:

    sequential   1, 2, 3 ... even when students tie on every score key
    competition  students tied on GPA, weighted grade point and total score
                 share a rank; the next student is numbered after all of them
                 (1, 1, 3)
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .config import Settings, get_settings
from .models import StudentAggregate


def score_key(agg: StudentAggregate) -> Tuple[float, float, float]:
    return (agg.gpa, agg.total_weighted_grade_point, agg.total_score)


def sort_key(agg: StudentAggregate):
    gpa, weighted, total = score_key(agg)
    return (-gpa, -weighted, -total, agg.student_id)


def sequential_ranks(ordered: List[StudentAggregate]) -> List[int]:
    return list(range(1, len(ordered) + 1))


def competition_ranks(ordered: List[StudentAggregate]) -> List[int]:
    ranks: List[int] = []
    for idx, agg in enumerate(ordered):
        if idx > 0 and score_key(agg) == score_key(ordered[idx - 1]):
            ranks.append(ranks[-1])
        else:
            ranks.append(idx + 1)
    return ranks


RANK_POLICIES: Dict[str, Callable[[List[StudentAggregate]], List[int]]] = {
    "sequential": sequential_ranks,
    "competition": competition_ranks,
}


def rank(
    aggregates: Iterable[StudentAggregate],
    policy: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> List[StudentAggregate]:
    """Sort best-first and set `rank` on the same objects."""
    if policy is None:
        policy = (settings or get_settings()).RANK_POLICY
    try:
        assign = RANK_POLICIES[policy]
    except KeyError:
        raise ValueError(
            f"Unknown rank policy {policy!r}. Expected one of: {sorted(RANK_POLICIES)}"
        ) from None

    ordered = sorted(aggregates, key=sort_key)
    for agg, r in zip(ordered, assign(ordered)):
        agg.rank = r
    return ordered
