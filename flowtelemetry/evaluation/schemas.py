"""Evaluation result schemas."""

from pydantic import BaseModel, Field


class SlowestNode(BaseModel):
    """Node with the longest recorded duration."""

    name: str = Field(..., description="Node name")
    duration_ms: int = Field(..., ge=0, description="Node duration")


class LLMMetrics(BaseModel):
    """Aggregated LLM usage for one execution."""

    total_requests: int = Field(..., ge=0, description="Request/response pairs")
    total_tokens: int | None = Field(default=None, description="Sum of response total_tokens")
    total_latency_ms: int | None = Field(default=None, description="Sum of response durations")


class EvalMetrics(BaseModel):
    """Metrics derived from an execution's event trace."""

    total_duration_ms: int = Field(default=0, ge=0, description="Workflow duration")
    node_count: int = Field(default=0, ge=0, description="Number of node.started events")
    failed_node_count: int = Field(default=0, ge=0, description="Number of node.failed events")
    slowest_node: SlowestNode | None = Field(default=None, description="Slowest node")
    avg_node_duration_ms: int | None = Field(default=None, description="Mean node duration")
    llm_metrics: LLMMetrics | None = Field(default=None, description="LLM usage, if any")


class EvaluationResult(BaseModel):
    """Score, labels and reasons for one execution."""

    score: int = Field(..., ge=0, le=100, description="Quality score 0-100")
    labels: list[str] = Field(default_factory=list, description="Machine tags, rule order")
    reasons: list[str] = Field(default_factory=list, description="Human-readable reasons")
    metrics: EvalMetrics = Field(default_factory=EvalMetrics, description="Derived metrics")

    def to_payload(self) -> dict:
        """Convert to an eval.completed payload."""
        return self.model_dump(mode="json", exclude_none=True)
