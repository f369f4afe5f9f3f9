"""Pydantic schemas for search requests and results."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stepgraph.graph.records import StepPath
from stepgraph.search.controller import ResultPage, SearchMode, SearchOutcome, SearchStatus


class SearchRequest(BaseModel):
    """Parameters of one search."""

    model_config = ConfigDict(populate_by_name=True)

    mode: SearchMode = SearchMode.END_STEPS
    start_id: str | None = Field(default=None, alias="startId")
    end_id: str | None = Field(default=None, alias="endId")
    intermediate_id: str | None = Field(default=None, alias="intermediateId")
    root_ids: list[str] | None = Field(default=None, alias="rootIds")

    @model_validator(mode="after")
    def check_mode_parameters(self) -> "SearchRequest":
        """Ensure the parameters the mode needs are present."""
        if self.mode != SearchMode.LOOPS and not self.start_id:
            raise ValueError(f"start_id is required for {self.mode.value} searches")
        if self.mode == SearchMode.SPECIFIC_END and not self.end_id:
            raise ValueError("end_id is required for specific_end searches")
        if self.mode == SearchMode.INTERMEDIATE_STEP and not self.intermediate_id:
            raise ValueError("intermediate_id is required for intermediate_step searches")
        return self


class StepRefResponse(BaseModel):
    """A step inside a reported path."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    is_sub_step: bool = Field(alias="isSubStep")


class EdgeRuleResponse(BaseModel):
    """A connection taken inside a reported path."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    from_name: str = Field(alias="from")
    to_name: str = Field(alias="to")


class StepPathResponse(BaseModel):
    """A reported path or loop."""

    kind: str
    steps: list[StepRefResponse]
    rules: list[EdgeRuleResponse]

    @classmethod
    def from_path(cls, path: StepPath) -> "StepPathResponse":
        return cls(
            kind=path.kind.value,
            steps=[
                StepRefResponse(id=s.id, name=s.name, is_sub_step=s.is_sub_step)
                for s in path.steps
            ],
            rules=[
                EdgeRuleResponse(type=r.type.value, from_name=r.from_name, to_name=r.to_name)
                for r in path.rules
            ],
        )


class SearchResultResponse(BaseModel):
    """Settled search as handed to report and export code."""

    search_id: str
    mode: SearchMode
    status: SearchStatus
    total: int
    duration_seconds: float
    error: str | None = None
    items: list[StepPathResponse] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SearchResultResponse":
        return cls(
            search_id=outcome.search_id,
            mode=outcome.mode,
            status=outcome.status,
            total=outcome.total,
            duration_seconds=round(outcome.duration_seconds, 6),
            error=outcome.error,
            items=[StepPathResponse.from_path(p) for p in outcome.results],
        )


class ResultPageResponse(BaseModel):
    """Paginated list of paths or loops."""

    items: list[StepPathResponse]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def from_page(cls, page: ResultPage) -> "ResultPageResponse":
        return cls(
            items=[StepPathResponse.from_path(p) for p in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            pages=page.pages,
        )
