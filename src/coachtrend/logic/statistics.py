import statistics
from collections import defaultdict
from typing import Dict, Iterable, Optional, Sequence

from coachtrend.domain.models import BaselineStats, Event


def mean_and_sample_std_dev(scores: Sequence[float]) -> BaselineStats:
    """
    Mean and sample standard deviation (n - 1 denominator).
    A single score has no definable spread, so its deviation is 0.
    """
    n = len(scores)
    if n == 0:
        return BaselineStats(mean=0.0, sample_std_dev=0.0, n=0)
    mean = statistics.fmean(scores)
    if n == 1:
        return BaselineStats(mean=mean, sample_std_dev=0.0, n=1)
    return BaselineStats(mean=mean, sample_std_dev=statistics.stdev(scores), n=n)


def z_score(value: float, baseline: BaselineStats) -> Optional[float]:
    """
    Standardized deviation of value from the baseline.
    Returns None when the baseline has no variance and the value is off the mean;
    callers drop those before charting.
    """
    if baseline.sample_std_dev == 0:
        return 0.0 if value == baseline.mean else None
    return (value - baseline.mean) / baseline.sample_std_dev


def baselines_by_category(events: Iterable[Event]) -> Dict[str, BaselineStats]:
    """One baseline per category over every scored event in that category."""
    scores: Dict[str, list] = defaultdict(list)
    for event in events:
        if event.category_id is None or event.score is None:
            continue
        scores[event.category_id].append(event.score)
    return {category: mean_and_sample_std_dev(values) for category, values in scores.items()}
