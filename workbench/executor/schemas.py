"""Executor-side schemas for step results, artifacts and run results.

These are distinct from the orchestrator schemas (which describe plans).
Executor schemas describe what happens during and after execution.
"""

from pydantic import BaseModel, ConfigDict, Field

from workbench.orchestrator.schemas import RunPlan


class WorkspaceDocument(BaseModel):
    """A document read from the store at the start of a run."""

    path: str
    content: str = ""


class StepResult(BaseModel):
    """Notes produced by one executed step."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    step_id: str = Field(alias="stepId")
    title: str
    agent: str
    output: str = ""


class ArtifactSpec(BaseModel):
    """An artifact before it is written."""

    path: str
    content: str = ""


class ArtifactResult(BaseModel):
    """A written artifact, with whatever the file held before."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    output_path: str = Field(alias="outputPath")
    relative_path: str = Field(alias="relativePath")
    content: str
    previous_content: str = Field(default="", alias="previousContent")


class RunResult(BaseModel):
    """Everything a completed run produced."""

    model_config = ConfigDict(populate_by_name=True)

    artifacts: list[ArtifactResult] = Field(default_factory=list)
    steps: list[StepResult] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    main_artifact: str = Field(alias="mainArtifact")
    outputs: list[str] = Field(default_factory=list)
    plan: RunPlan
    turns_used: int = Field(default=0, alias="turnsUsed")
