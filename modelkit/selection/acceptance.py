"""Simulated annealing acceptance criterion for subset search.

Decides whether the search moves from its current subset to a perturbed
candidate, given both subsets' scores and the iteration number.
"""

from typing import Optional, Tuple

import numpy as np


class AcceptanceCriterion:
    """Simulated annealing acceptance decision logic.

    Candidates scoring at least as well as the current subset are always
    accepted. Worse candidates are accepted with probability

        exp(-iteration * (current - candidate) / |current|)

    so the relative loss a move may cost shrinks as the search proceeds.
    Scores are on the internal "higher is better" scale.

    Attributes:
        random_state: Random seed for reproducibility
        rng: NumPy random number generator

    Example:
        >>> criterion = AcceptanceCriterion(random_state=42)
        >>> accept, reason = criterion.should_accept(
        ...     current_score=0.850,
        ...     candidate_score=0.845,
        ...     iteration=3
        ... )
    """

    def __init__(self, random_state: Optional[int] = None):
        self.random_state = random_state
        self.rng = np.random.RandomState(random_state)

    @staticmethod
    def acceptance_probability(
        current_score: float,
        candidate_score: float,
        iteration: int
    ) -> float:
        """Probability of moving to the candidate.

        Raises:
            ValueError: If iteration is not positive
        """
        if iteration < 1:
            raise ValueError(f"iteration must be positive, got {iteration}")

        loss = current_score - candidate_score
        if loss <= 0:
            return 1.0
        if current_score == 0:
            return 0.0
        return float(np.exp(-iteration * loss / abs(current_score)))

    def should_accept(
        self,
        current_score: float,
        candidate_score: float,
        iteration: int
    ) -> Tuple[bool, str]:
        """Decide whether to move to a candidate subset.

        Args:
            current_score: Score of the current subset
            candidate_score: Score of the candidate subset
            iteration: 1-based iteration number

        Returns:
            Tuple of (accept: bool, reason: str)
        """
        if candidate_score > current_score:
            return True, f"Improvement: {candidate_score:.4f} > {current_score:.4f}"

        if candidate_score == current_score:
            return True, f"Equal: {candidate_score:.4f} == {current_score:.4f}"

        acceptance_prob = self.acceptance_probability(current_score, candidate_score, iteration)
        random_value = self.rng.random_sample()

        if random_value < acceptance_prob:
            return True, (
                f"Probabilistic: {candidate_score:.4f} < {current_score:.4f}, "
                f"but accepted (prob={acceptance_prob:.4f}, rand={random_value:.4f})"
            )
        return False, (
            f"Rejected: {candidate_score:.4f} < {current_score:.4f}, "
            f"prob={acceptance_prob:.4f} < rand={random_value:.4f}"
        )
