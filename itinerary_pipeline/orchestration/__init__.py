"""
Orchestration for the itinerary pipeline: the stage coordinator and the
tolerant parallel join used while gathering context.
"""

from itinerary_pipeline.orchestration.parallel import (
    BranchOutcome,
    TolerantBranch,
    gather_tolerant,
)

__all__ = [
    "BranchOutcome",
    "TolerantBranch",
    "gather_tolerant",
]
