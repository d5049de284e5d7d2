"""Selection of reference networks by per-feature voting.

Each candidate network is run through an activity primitive on its own.
For every feature and sample scored by all candidates, the candidate with
the strongest absolute activity wins a vote. The most-voted candidates are
then run together to produce the final activity matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ...errors import AlignmentError, ParameterError
from ...utils.stats import descending_order

ActivityFn = Callable[[pd.DataFrame, List[Any]], pd.DataFrame]
CandidatesLike = Union[Mapping[str, Any], Sequence[Any]]


@dataclass
class SelectionResult:
    """Result from network selection.

    Attributes
    ----------
    votes : pd.Series
        Votes per candidate name, in candidate order
    selected : List[str]
        Names of the selected candidates, most votes first
    activity : pd.DataFrame
        Activity from the selected candidates combined
    n_evaluated : int
        Number of (feature, sample) pairs that were voted on
    """

    votes: pd.Series = field(default_factory=lambda: pd.Series(dtype=int))
    selected: List[str] = field(default_factory=list)
    activity: Optional[pd.DataFrame] = None
    n_evaluated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "votes": {str(k): int(v) for k, v in self.votes.items()},
            "selected": list(self.selected),
            "n_evaluated": self.n_evaluated,
        }


class NetworkSelector:
    """Vote-based selection of candidate networks.

    Parameters
    ----------
    activity_fn : callable
        ``activity_fn(matrix, networks) -> DataFrame`` of features x samples
    top_k : int
        Number of candidates to keep
    n_jobs : int
        Parallel jobs for the per-candidate runs (1 = sequential)
    logger : logging.Logger, optional
        Logger instance

    Example
    -------
    >>> from scnetprep.core.signatures import NetworkSelector, regulon_activity
    >>> selector = NetworkSelector(regulon_activity, top_k=3)
    >>> result = selector.select(expression, {"liver": net_a, "lung": net_b,
    ...                                       "blood": net_c, "skin": net_d})
    >>> result.selected
    ['lung', 'liver', 'blood']
    """

    def __init__(
        self,
        activity_fn: ActivityFn,
        top_k: int = 3,
        n_jobs: int = 1,
        logger: Optional[logging.Logger] = None,
    ):
        self.activity_fn = activity_fn
        self.top_k = top_k
        self.n_jobs = n_jobs
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _named(candidates: CandidatesLike) -> Dict[str, Any]:
        if isinstance(candidates, Mapping):
            return {str(name): net for name, net in candidates.items()}
        return {f"network_{i}": net for i, net in enumerate(candidates)}

    def _evaluate(self, matrix: pd.DataFrame, named: Dict[str, Any]) -> List[pd.DataFrame]:
        if self.n_jobs != 1 and len(named) > 1:
            return Parallel(n_jobs=self.n_jobs)(
                delayed(self.activity_fn)(matrix, [net]) for net in named.values()
            )
        return [self.activity_fn(matrix, [net]) for net in named.values()]

    def tally_votes(self, names: Sequence[str], results: Sequence[pd.DataFrame]) -> pd.Series:
        """Count, per candidate, the (feature, sample) pairs it wins.

        Only features present in every result are voted on. Ties go to the
        earlier candidate; pairs where no candidate has a value are skipped.

        Raises
        ------
        AlignmentError
            If the results do not share the same sample columns
        """
        samples = list(results[0].columns)
        for name, res in zip(names, results):
            if set(res.columns) != set(samples) or len(res.columns) != len(samples):
                raise AlignmentError(
                    f"Activity of candidate '{name}' has different samples than '{names[0]}'"
                )

        shared = results[0].index
        for res in results[1:]:
            shared = shared[shared.isin(res.index)]

        magnitude = np.stack(
            [np.abs(res.loc[shared, samples].to_numpy(dtype=float)) for res in results]
        )
        scored = np.isfinite(magnitude).any(axis=0)
        winners = np.argmax(np.nan_to_num(magnitude, nan=-1.0), axis=0)[scored]
        counts = np.bincount(winners, minlength=len(results))

        self.logger.info(
            f"Voted on {int(scored.sum())} pairs ({len(shared)} shared features x "
            f"{len(samples)} samples)"
        )
        return pd.Series(counts, index=list(names), name="votes")

    def select(self, matrix: pd.DataFrame, candidates: CandidatesLike) -> SelectionResult:
        """Run every candidate, vote, and run the winners together.

        Parameters
        ----------
        matrix : pd.DataFrame
            Expression matrix (features x samples)
        candidates : Mapping or Sequence
            Candidate networks, keyed by name or given in order (named
            ``network_0``, ``network_1``, ...)

        Returns
        -------
        SelectionResult
            Votes, selected names and final activity

        Raises
        ------
        ParameterError
            If ``top_k`` is below 1 or above the number of candidates
        """
        named = self._named(candidates)
        if self.top_k < 1 or self.top_k > len(named):
            raise ParameterError(
                f"top_k must be between 1 and the number of candidates ({len(named)}), "
                f"got {self.top_k}"
            )

        self.logger.info("=" * 70)
        self.logger.info(f"Selecting {self.top_k} of {len(named)} candidate networks...")
        self.logger.info("=" * 70)

        names = list(named)
        results = self._evaluate(matrix, named)
        votes = self.tally_votes(names, results)

        order = descending_order(votes.to_numpy())
        selected = [names[i] for i in order[: self.top_k]]
        for name in selected:
            self.logger.info(f"  {name}: {int(votes[name])} votes")

        activity = self.activity_fn(matrix, [named[name] for name in selected])
        return SelectionResult(
            votes=votes,
            selected=selected,
            activity=activity,
            n_evaluated=int(votes.sum()),
        )
