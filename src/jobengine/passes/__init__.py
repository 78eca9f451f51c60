"""Distribution passes for the colony-wide recompute.

Passes are auto-registered via the ``__init_subclass__`` hook and composed
into a Pipeline (see ``jobengine/default_pipeline.yml``):

- primary.py  -> prepare, pinned_roles (A), auto_primaries (B)
- coverage.py -> coverage_guarantee (C), secondary_fill (D),
  quota_enforcement (E)
"""

# Import all passes to trigger auto-registration
from jobengine.passes.coverage import (
    CoverageGuarantee,
    QuotaEnforcement,
    SecondaryFill,
)
from jobengine.passes.primary import AutoPrimaries, PinnedRoles, Prepare

__all__ = [
    "AutoPrimaries",
    "CoverageGuarantee",
    "PinnedRoles",
    "Prepare",
    "QuotaEnforcement",
    "SecondaryFill",
]
