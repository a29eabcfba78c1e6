"""
Pipeline models — the stages of a release preparation and the context
that is handed from one stage to the next.

The pipeline is linear:

    start → runtime-detected → dependencies-validated → fetched
          → checksums-verified → [tested] → organized → done

Any failure moves the context to ``aborted``, which is terminal.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    START = "start"
    RUNTIME_DETECTED = "runtime-detected"
    DEPENDENCIES_VALIDATED = "dependencies-validated"
    FETCHED = "fetched"
    CHECKSUMS_VERIFIED = "checksums-verified"
    TESTED = "tested"
    ORGANIZED = "organized"
    DONE = "done"
    ABORTED = "aborted"


# Allowed forward transitions. TESTED is optional, so CHECKSUMS_VERIFIED
# may go straight to ORGANIZED (all) or DONE (prepare only).
_TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.START: frozenset({Stage.RUNTIME_DETECTED, Stage.DEPENDENCIES_VALIDATED}),
    Stage.RUNTIME_DETECTED: frozenset({Stage.DEPENDENCIES_VALIDATED}),
    Stage.DEPENDENCIES_VALIDATED: frozenset({Stage.FETCHED, Stage.ORGANIZED}),
    Stage.FETCHED: frozenset({Stage.CHECKSUMS_VERIFIED}),
    Stage.CHECKSUMS_VERIFIED: frozenset({Stage.TESTED, Stage.ORGANIZED, Stage.DONE}),
    Stage.TESTED: frozenset({Stage.ORGANIZED, Stage.DONE}),
    Stage.ORGANIZED: frozenset({Stage.DONE}),
    Stage.DONE: frozenset(),
    Stage.ABORTED: frozenset(),
}


class StageFailure(BaseModel):
    """Why the pipeline stopped."""

    stage: Stage            # the stage that was being attempted
    error_type: str
    message: str
    exit_code: int = 1


class PipelineContext(BaseModel):
    """State of one pipeline invocation.

    Created at the start of ``prepare``/``all`` (or ``organize`` on its
    own) and passed explicitly between stages. Nothing here outlives the
    process.
    """

    branch: str
    scratch_dir: Path | None = None
    runtime: str | None = None
    stage: Stage = Stage.START
    history: list[Stage] = Field(default_factory=lambda: [Stage.START])
    tests_run: bool = False
    version: str | None = None
    target_dir: Path | None = None
    failure: StageFailure | None = None

    @property
    def finished(self) -> bool:
        return self.stage in (Stage.DONE, Stage.ABORTED)

    def advance(self, stage: Stage) -> None:
        """Move to ``stage``; raises ValueError on an illegal transition."""
        if stage not in _TRANSITIONS[self.stage]:
            raise ValueError(f"Illegal pipeline transition: {self.stage.value} → {stage.value}")
        self.stage = stage
        self.history.append(stage)

    def abort(self, attempted: Stage, error: BaseException, exit_code: int = 1) -> None:
        """Record a failure and move to the terminal ``aborted`` stage."""
        self.failure = StageFailure(
            stage=attempted,
            error_type=type(error).__name__,
            message=str(error),
            exit_code=exit_code,
        )
        self.stage = Stage.ABORTED
        self.history.append(Stage.ABORTED)
