"""Schemas for run plans.

A RunPlan is the structured proposal the user reviews before execution:
the interpreted goal, ordered steps, the sub-agents that act on them, the
output files to produce and up to three clarifying questions.

The wire shape is camelCase (``interpretedGoal``) to match what the prompt
engine is asked to emit; Python code uses the snake_case attribute names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

AGENT_ARCHETYPES = ("Researcher", "Writer", "Critic", "Organizer")

MAX_STEPS = 8
MAX_AGENTS = 4
MAX_QUESTIONS = 3
GOAL_PREVIEW_CHARS = 120

REQUIRED_OUTPUTS = ("Next Actions.md", "Open Questions.md", "Sources.md")
OPTIONAL_OUTPUTS = ("Outline.md", "Critique.md")
DEFAULT_MAIN_OUTPUT = "Brief.md"


class PlanAgent(BaseModel):
    """A named, role-tagged persona that steers a step's prompt."""

    name: str
    role: str = Field(
        default="Writer",
        description="One of Researcher, Writer, Critic, Organizer",
    )


class PlanStep(BaseModel):
    """One unit of work assigned to a named agent."""

    id: str = ""
    title: str = ""
    description: str = ""
    agent: str = Field(default="", description="Name of the acting agent")


class RunPlan(BaseModel):
    """Execution proposal for a single goal."""

    model_config = ConfigDict(populate_by_name=True)

    interpreted_goal: str = Field(default="", alias="interpretedGoal")
    steps: list[PlanStep] = Field(default_factory=list)
    agents: list[PlanAgent] = Field(default_factory=list)
    outputs: list[str] = Field(
        default_factory=list,
        description="Markdown file names under the workspace docs directory",
    )
    questions: list[str] = Field(default_factory=list)


class PlanRequest(BaseModel):
    """Request to synthesize a plan for a prompt."""

    prompt: str


class PriorArtifact(BaseModel):
    """Previously written artifact handed back for refinement."""

    path: str
    content: str = ""


class StartRunRequest(BaseModel):
    """Request to execute a plan (or synthesize one first when omitted)."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    plan: Optional[RunPlan] = None
    starting_step_index: int = Field(default=0, ge=0, alias="startingStepIndex")
    clarifications: Optional[str] = None
    prior_artifacts: Optional[list[PriorArtifact]] = Field(
        default=None, alias="priorArtifacts"
    )
