from paramdup.rewrite.engine import (
    ParameterDuplicationTransformer,
    RewriteEngine,
    apply_plan,
    collect_sources,
    duplicate_parameters,
    rewrite_source,
)
from paramdup.rewrite.model import (
    DuplicationOptions,
    DuplicationPlan,
    DuplicationRecord,
    DuplicationResult,
    SkipRecord,
    TextEdit,
)

__all__ = [
    "DuplicationOptions",
    "DuplicationPlan",
    "DuplicationRecord",
    "DuplicationResult",
    "ParameterDuplicationTransformer",
    "RewriteEngine",
    "SkipRecord",
    "TextEdit",
    "apply_plan",
    "collect_sources",
    "duplicate_parameters",
    "rewrite_source",
]
