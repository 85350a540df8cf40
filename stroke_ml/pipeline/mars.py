"""
Multivariate adaptive regression splines for a binary response.

The basis is grown and pruned on the 0/1 response by least squares, then a
logistic model is fitted on the retained hinge functions.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.linear_model import LogisticRegression
from sklearn.utils.validation import check_array, check_is_fitted, check_X_y

logger = logging.getLogger(__name__)

# (feature index, knot, direction); direction +1 is max(0, x - knot), -1 is max(0, knot - x)
Factor = Tuple[int, float, int]
Term = Tuple[Factor, ...]


def _hinge(x: np.ndarray, knot: float, direction: int) -> np.ndarray:
    return np.maximum(direction * (x - knot), 0.0)


class MARSClassifier(ClassifierMixin, BaseEstimator):
    """MARS basis expansion followed by a logistic link."""

    def __init__(self,
                 max_degree: int = 1,
                 max_terms: int = 21,
                 n_prune: Optional[int] = None,
                 penalty: Optional[float] = None,
                 n_knots: int = 10,
                 threshold: float = 0.001,
                 C: float = 1e4,
                 max_iter: int = 1000):
        """
        Initialize MARS classifier.

        Args:
            max_degree: Maximum interaction degree of a basis term
            max_terms: Maximum number of terms (intercept included) after the forward pass
            n_prune: Maximum number of terms (intercept included) kept by pruning; None keeps the GCV optimum
            penalty: GCV cost per knot; defaults to 2 for additive models and 3 otherwise
            n_knots: Number of quantile knot candidates per feature
            threshold: Forward pass stops when the R^2 gain of the best pair drops below this
            C: Inverse regularization strength of the logistic link model
            max_iter: Iterations for the logistic link model
        """
        self.max_degree = max_degree
        self.max_terms = max_terms
        self.n_prune = n_prune
        self.penalty = penalty
        self.n_knots = n_knots
        self.threshold = threshold
        self.C = C
        self.max_iter = max_iter

    def fit(self, X, y):
        """Grow, prune and link the basis."""
        if hasattr(X, 'columns'):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        X, y = check_X_y(X, y, dtype=np.float64)
        self.n_features_in_ = X.shape[1]

        self.classes_ = np.unique(y)
        if len(self.classes_) != 2:
            raise ValueError(f"MARSClassifier supports binary targets only, got classes {self.classes_}")
        if self.max_degree < 1:
            raise ValueError("max_degree must be >= 1")
        if self.max_terms < 1:
            raise ValueError("max_terms must be >= 1")
        target = (y == self.classes_[1]).astype(float)

        knots = [self._knot_candidates(X[:, j]) for j in range(X.shape[1])]
        terms, basis = self._forward_pass(X, target, knots)
        selected = self._backward_pass(basis, target)

        self.terms_: List[Term] = [terms[i] for i in selected]
        design = self._design_matrix(X)
        self.link_model_ = LogisticRegression(C=self.C, max_iter=self.max_iter)
        self.link_model_.fit(design, target)

        logger.debug(f"MARS kept {len(self.terms_)} of {len(terms)} terms (GCV {self.gcv_:.4f})")
        return self

    def _knot_candidates(self, values: np.ndarray) -> np.ndarray:
        unique = np.unique(values)
        if len(unique) < 2:
            return np.empty(0)
        if len(unique) <= self.n_knots + 1:
            # The largest value would give an all-zero hinge
            return unique[:-1]
        quantiles = np.linspace(0, 1, self.n_knots + 2)[1:-1]
        return np.unique(np.quantile(values, quantiles))

    def _forward_pass(self, X: np.ndarray, target: np.ndarray, knots: List[np.ndarray]):
        n_samples, n_features = X.shape
        terms: List[Term] = [()]
        basis = np.ones((n_samples, 1))

        tss = float(np.sum((target - target.mean()) ** 2))
        tol = 1e-9 * max(1.0, n_samples)
        if tss <= 0:
            return terms, basis

        while len(terms) < self.max_terms:
            q, _ = np.linalg.qr(basis)
            residual = target - q @ (q.T @ target)

            best_gain, best = 0.0, None
            for p, parent in enumerate(terms):
                if len(parent) >= self.max_degree:
                    continue
                used = {factor[0] for factor in parent}
                parent_col = basis[:, p]
                for j in range(n_features):
                    if j in used or knots[j].size == 0:
                        continue
                    diff = X[:, [j]] - knots[j][None, :]
                    h_plus = parent_col[:, None] * np.maximum(diff, 0.0)
                    h_minus = parent_col[:, None] * np.maximum(-diff, 0.0)
                    h_plus -= q @ (q.T @ h_plus)
                    h_minus -= q @ (q.T @ h_minus)
                    gains = self._pair_gains(h_plus, h_minus, residual, tol)
                    k = int(np.argmax(gains))
                    if gains[k] > best_gain:
                        best_gain, best = float(gains[k]), (p, j, float(knots[j][k]))

            if best is None or best_gain / tss < self.threshold:
                break

            p, j, knot = best
            n_before = len(terms)
            for direction in (1, -1):
                if len(terms) >= self.max_terms:
                    break
                column = basis[:, p] * _hinge(X[:, j], knot, direction)
                q, _ = np.linalg.qr(basis)
                orthogonal = column - q @ (q.T @ column)
                # Skip hinges that add nothing to the span (e.g. the zero side of a dummy)
                if orthogonal @ orthogonal <= 1e-8 * max(column @ column, tol):
                    continue
                terms.append(terms[p] + ((j, knot, direction),))
                basis = np.column_stack([basis, column])
            if len(terms) == n_before:
                break

        return terms, basis

    @staticmethod
    def _pair_gains(h_plus: np.ndarray, h_minus: np.ndarray, residual: np.ndarray, tol: float) -> np.ndarray:
        """RSS reduction from adding each (h_plus[:, k], h_minus[:, k]) pair to the basis."""
        a = np.einsum('ij,ij->j', h_plus, h_plus)
        b = np.einsum('ij,ij->j', h_plus, h_minus)
        d = np.einsum('ij,ij->j', h_minus, h_minus)
        u = h_plus.T @ residual
        v = h_minus.T @ residual

        gain_plus = np.where(a > tol, u ** 2 / np.where(a > tol, a, 1.0), 0.0)
        gain_minus = np.where(d > tol, v ** 2 / np.where(d > tol, d, 1.0), 0.0)
        det = a * d - b ** 2
        joint = (a > tol) & (d > tol) & (det > 1e-8 * a * d)
        gain_pair = (d * u ** 2 - 2 * b * u * v + a * v ** 2) / np.where(joint, det, 1.0)
        return np.where(joint, gain_pair, np.maximum(gain_plus, gain_minus))

    def _effective_penalty(self) -> float:
        if self.penalty is not None:
            return float(self.penalty)
        return 2.0 if self.max_degree == 1 else 3.0

    def _gcv(self, rss: float, n_terms: int, n_samples: int) -> float:
        effective = n_terms + self._effective_penalty() * (n_terms - 1) / 2
        denominator = 1 - effective / n_samples
        if denominator <= 0:
            return np.inf
        return (rss / n_samples) / denominator ** 2

    @staticmethod
    def _rss(basis: np.ndarray, target: np.ndarray, columns: List[int]) -> float:
        sub = basis[:, columns]
        coef, *_ = np.linalg.lstsq(sub, target, rcond=None)
        residual = target - sub @ coef
        return float(residual @ residual)

    def _backward_pass(self, basis: np.ndarray, target: np.ndarray) -> List[int]:
        n_samples = basis.shape[0]
        active = list(range(basis.shape[1]))
        rss = self._rss(basis, target, active)
        subsets = {len(active): (self._gcv(rss, len(active), n_samples), list(active), rss)}

        # The intercept (column 0) is never removed
        while len(active) > 1:
            best_rss, drop = np.inf, None
            for k in active[1:]:
                candidate = [i for i in active if i != k]
                candidate_rss = self._rss(basis, target, candidate)
                if candidate_rss < best_rss:
                    best_rss, drop = candidate_rss, k
            active = [i for i in active if i != drop]
            subsets[len(active)] = (self._gcv(best_rss, len(active), n_samples), list(active), best_rss)

        # (n_terms, rss, gcv) for every subset visited, largest first
        self.pruning_trace_ = [(size, subsets[size][2], subsets[size][0]) for size in sorted(subsets, reverse=True)]

        sizes = [size for size in subsets if self.n_prune is None or size <= self.n_prune]
        if not sizes:
            sizes = [1]
        best_size = min(sizes, key=lambda size: (subsets[size][0], size))
        self.gcv_, selected, best_rss = subsets[best_size]

        tss = float(np.sum((target - target.mean()) ** 2))
        self.rsq_ = 1 - best_rss / tss if tss > 0 else 0.0
        return selected

    def _design_matrix(self, X: np.ndarray) -> np.ndarray:
        columns = []
        for term in self.terms_[1:]:
            column = np.ones(X.shape[0])
            for j, knot, direction in term:
                column = column * _hinge(X[:, j], knot, direction)
            columns.append(column)
        if not columns:
            # Intercept-only model: a constant zero column keeps the link model well defined
            return np.zeros((X.shape[0], 1))
        return np.column_stack(columns)

    def _validated_design(self, X) -> np.ndarray:
        check_is_fitted(self, 'link_model_')
        X = check_array(X, dtype=np.float64)
        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X has {X.shape[1]} features, but MARSClassifier was fitted with {self.n_features_in_}")
        return self._design_matrix(X)

    def decision_function(self, X) -> np.ndarray:
        """Log-odds of the positive class."""
        return self.link_model_.decision_function(self._validated_design(X))

    def predict_proba(self, X) -> np.ndarray:
        """Class probabilities ordered as ``classes_``."""
        return self.link_model_.predict_proba(self._validated_design(X))

    def predict(self, X) -> np.ndarray:
        """Predict class labels at probability 0.5."""
        proba = self.predict_proba(X)[:, 1]
        return self.classes_[(proba >= 0.5).astype(int)]

    def basis_descriptions(self) -> List[str]:
        """Readable description of each retained term, intercept first."""
        check_is_fitted(self, 'terms_')
        names = getattr(self, 'feature_names_in_', None)
        descriptions = []
        for term in self.terms_:
            if not term:
                descriptions.append('(Intercept)')
                continue
            parts = []
            for j, knot, direction in term:
                name = names[j] if names is not None else f'x{j}'
                parts.append(f'h({name}-{knot:.4g})' if direction == 1 else f'h({knot:.4g}-{name})')
            descriptions.append('*'.join(parts))
        return descriptions
