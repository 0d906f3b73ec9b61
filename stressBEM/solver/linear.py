"""
Dense linear system solution for the BEM influence matrix.

Policy:
- n < direct_threshold: LU factorization (scipy.linalg.lu_factor/lu_solve)
- otherwise: BiCGStab (scipy.sparse.linalg.bicgstab) with a Jacobi
  preconditioner, warm-started from the previous solution when the
  dimension matches

Solutions are cached under a SHA-256 hash of a strided sample of (A, b).
Sampling keeps hashing cheap for large systems; an exact repeat of the same
problem returns the cached solution without factorization.

Failures are explicit: a singular factorization raises SingularMatrixError,
non-convergence or breakdown of BiCGStab raises ConvergenceError, and a
non-finite solution is never returned.

The service keeps mutable cache and warm-start state, so one instance must
not run solve() from two threads at once.
"""

import hashlib
import logging
import time
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve
from scipy.sparse.linalg import LinearOperator, bicgstab

from ..errors import ConvergenceError, InputValidationError, SingularMatrixError

logger = logging.getLogger(__name__)

# Number of samples per dimension used by the problem hash
_HASH_SAMPLES = 100


@dataclass
class SolveInfo:
    """Diagnostics of the last solve() call."""
    method: str = ""
    iterations: int = 0
    residual: float = 0.0
    cache_hit: bool = False
    warm_start: bool = False
    solve_time: float = 0.0


def compute_problem_hash(A: np.ndarray, b: np.ndarray) -> str:
    """
    SHA-256 of a strided sample of the system.

    Every max(1, n // 100)-th row/column and entry is included, plus the
    last row, column and entry, together with the shape.
    """
    n = A.shape[0]
    stride = max(1, n // _HASH_SAMPLES)
    idx = np.unique(np.append(np.arange(0, n, stride), n - 1))

    h = hashlib.sha256()
    h.update(f"{A.shape}".encode())
    h.update(np.ascontiguousarray(A[np.ix_(idx, idx)]).tobytes())
    h.update(np.ascontiguousarray(b[idx]).tobytes())
    return h.hexdigest()


def jacobi_preconditioner(A: np.ndarray) -> LinearOperator:
    """Diagonal preconditioner M^-1 = diag(A)^-1 (1 where the diagonal is zero)."""
    diag = np.diag(A).astype(float)
    inv_diag = np.where(diag != 0.0, 1.0 / np.where(diag != 0.0, diag, 1.0), 1.0)
    n = A.shape[0]
    return LinearOperator((n, n), matvec=lambda x: inv_diag * np.ravel(x), dtype=float)


class MatrixSolverService:
    """
    Direct or iterative solution of A x = b with solution caching.

    Parameters:
        direct_threshold: Systems with fewer unknowns are solved by LU
        tolerance: Relative residual tolerance of BiCGStab
        max_iterations: Iteration cap of BiCGStab
        enable_caching: Reuse solutions on a problem hash match
    """

    def __init__(self, direct_threshold: int = 2000,
                 tolerance: float = 1e-6,
                 max_iterations: int = 1000,
                 enable_caching: bool = True):
        self.direct_threshold = direct_threshold
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.enable_caching = enable_caching

        self._cached_hash: Optional[str] = None
        self._cached_solution: Optional[np.ndarray] = None
        self._previous_solution: Optional[np.ndarray] = None
        self._hits = 0
        self._misses = 0
        self.last_info = SolveInfo()

    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Solve A x = b.

        Parameters:
            A: Square matrix, shape (n, n)
            b: Right-hand side, shape (n,)

        Returns:
            Solution vector, shape (n,)

        Raises:
            InputValidationError: Bad shapes or non-finite input
            SingularMatrixError: Zero pivot in the LU factorization
            ConvergenceError: BiCGStab did not converge or broke down
        """
        A, b = self._validate(A, b)
        t0 = time.perf_counter()

        problem_hash = compute_problem_hash(A, b) if self.enable_caching else None
        if problem_hash is not None and problem_hash == self._cached_hash:
            self._hits += 1
            self.last_info = SolveInfo(method=self.last_info.method, cache_hit=True,
                                       solve_time=time.perf_counter() - t0)
            logger.debug("Solution cache hit (n=%d)", A.shape[0])
            return self._cached_solution.copy()
        self._misses += 1

        n = A.shape[0]
        if n < self.direct_threshold:
            x, info = self._solve_direct(A, b)
        else:
            x, info = self._solve_iterative(A, b)

        if not np.all(np.isfinite(x)):
            raise SingularMatrixError("Linear solve produced non-finite values",
                                      {"n": n, "method": info.method})

        info.solve_time = time.perf_counter() - t0
        self.last_info = info
        self._previous_solution = x.copy()
        if problem_hash is not None:
            self._cached_hash = problem_hash
            self._cached_solution = x.copy()

        logger.debug("Solved %d unknowns by %s in %.3fs", n, info.method, info.solve_time)
        return x

    def _validate(self, A: np.ndarray, b: np.ndarray):
        if A is None or b is None:
            raise InputValidationError("Matrix and right-hand side are required")
        A = np.asarray(A, dtype=float)
        b = np.asarray(b, dtype=float)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise InputValidationError(f"Matrix must be square, got shape {A.shape}")
        if b.ndim != 1 or b.shape[0] != A.shape[0]:
            raise InputValidationError(
                f"Right-hand side of shape {b.shape} does not match matrix {A.shape}"
            )
        if A.shape[0] == 0:
            raise InputValidationError("Cannot solve an empty system")
        if not (np.all(np.isfinite(A)) and np.all(np.isfinite(b))):
            raise InputValidationError("Matrix or right-hand side contains NaN/Inf")
        return A, b

    def _solve_direct(self, A: np.ndarray, b: np.ndarray):
        n = A.shape[0]
        with warnings.catch_warnings():
            # Exact zero pivots are reported below as SingularMatrixError
            warnings.simplefilter("ignore", LinAlgWarning)
            lu, piv = lu_factor(A, check_finite=False)

        pivots = np.abs(np.diag(lu))
        largest = pivots.max()
        if largest == 0.0 or pivots.min() <= np.finfo(float).eps * n * largest:
            raise SingularMatrixError(
                "Influence matrix is singular to working precision",
                {"n": n, "min_pivot": float(pivots.min()), "max_pivot": float(largest)},
            )

        x = lu_solve((lu, piv), b, check_finite=False)
        residual = float(np.linalg.norm(A @ x - b))
        return x, SolveInfo(method="direct", residual=residual)

    def _solve_iterative(self, A: np.ndarray, b: np.ndarray):
        n = A.shape[0]
        warm = self._previous_solution is not None and self._previous_solution.shape == (n,)
        x0 = self._previous_solution.copy() if warm else np.zeros(n)

        iterations = 0

        def count(_xk):
            nonlocal iterations
            iterations += 1

        x, status = bicgstab(A, b, x0=x0, rtol=self.tolerance, atol=0.0,
                             maxiter=self.max_iterations, M=jacobi_preconditioner(A),
                             callback=count)

        b_norm = float(np.linalg.norm(b))
        residual = float(np.linalg.norm(A @ x - b)) / (b_norm if b_norm > 0.0 else 1.0)
        context = {"n": n, "iterations": iterations, "residual": residual,
                   "tolerance": self.tolerance}
        if status > 0:
            raise ConvergenceError("BiCGStab did not converge", context)
        if status < 0:
            raise ConvergenceError("BiCGStab broke down", context)

        return x, SolveInfo(method="bicgstab", iterations=iterations,
                            residual=residual, warm_start=warm)

    def clear_cache(self):
        """Drop the cached solution and the warm-start vector."""
        self._cached_hash = None
        self._cached_solution = None
        self._previous_solution = None

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "has_cached_solution": self._cached_solution is not None,
            "last_method": self.last_info.method,
            "last_iterations": self.last_info.iterations,
        }
