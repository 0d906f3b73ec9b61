"""
Base solver class for BEM.

This module defines the abstract interface shared by excavation solvers:

    can_solve(boundaries, options)      -> bool, never raises
    solve(boundaries, options, grid)    -> solution, raises typed errors
    solve_async(...)                    -> same pipeline off the event loop

Design principles:
1. A solver depends only on Boundary polygons, never on how they were drawn
2. A solver instance is single-writer: its caches are not locked, so
   overlapping solves must use separate instances
3. The async entry point runs the whole synchronous pipeline as one unit
   of work in the default executor; cancellation is checked only before
   the pipeline starts
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from ..config import BEMConfiguration, SolverOptions
from ..geometry.boundary import Boundary
from ..materials import IsotropicMaterial

logger = logging.getLogger(__name__)


class Solver(ABC):
    """
    Abstract base class for BEM solvers.

    Subclasses implement:
    - can_solve: Capability check on the input
    - solve: The synchronous pipeline
    """

    def __init__(self, material: IsotropicMaterial, config: BEMConfiguration):
        """
        Initialize solver.

        Parameters:
            material: Elastic medium
            config: Engine configuration
        """
        self.material = material
        self.config = config

    @abstractmethod
    def can_solve(self, boundaries: Sequence[Boundary], options: SolverOptions) -> bool:
        """True if solve() can analyse this input as given."""
        pass

    @abstractmethod
    def solve(self, boundaries: Sequence[Boundary], options: SolverOptions, grid):
        """
        Run the full analysis.

        Parameters:
            boundaries: Boundary polygons
            options: Solver options
            grid: Output grid

        Returns:
            Solution object of the concrete solver
        """
        pass

    async def solve_async(self, boundaries: Sequence[Boundary], options: SolverOptions,
                          grid, cancel_event=None):
        """
        Run solve() in the event loop's default executor.

        Parameters:
            cancel_event: Optional threading.Event or asyncio.Event; if it is
                          already set the solve does not start

        Raises:
            asyncio.CancelledError: If cancel_event is set before the start
        """
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Solve cancelled before start")
            raise asyncio.CancelledError("Solve cancelled before start")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.solve, boundaries, options, grid)
