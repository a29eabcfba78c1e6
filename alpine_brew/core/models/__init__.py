"""
Domain models — Pydantic types shared by services and adapters.

    from alpine_brew.core.models import Action, Receipt, PipelineContext, Stage
"""

from alpine_brew.core.models.action import Action, Receipt
from alpine_brew.core.models.pipeline import PipelineContext, Stage, StageFailure

__all__ = [
    # action.py
    "Action",
    # pipeline.py
    "PipelineContext",
    "Receipt",
    "Stage",
    "StageFailure",
]
