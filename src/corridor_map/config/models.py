from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = 1


# ----------------- MAP ---------------------


class BoundsModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @model_validator(mode="after")
    def _check_order(self):
        if self.max_x <= self.min_x or self.max_y <= self.min_y:
            raise ValueError(
                f"bounds are inverted or empty: ({self.min_x}, {self.min_y}, {self.max_x}, {self.max_y})"
            )
        return self


class ObstacleModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    points: list[tuple[float, float]]
    closed: bool = True

    @field_validator("points")
    @classmethod
    def _enough_points(cls, v):
        if len(v) < 2:
            raise ValueError("an obstacle needs at least 2 points")
        return v


class MapModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bounds: BoundsModel
    obstacles: list[ObstacleModel] = Field(default_factory=list)
    points: list[tuple[float, float]] = Field(default_factory=list)  # free-standing point sites
    segments: list[tuple[tuple[float, float], tuple[float, float]]] = Field(default_factory=list)


# ----------------- VORONOI PRODUCERS ---------------------


class VoronoiSampledModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["sampled"] = "sampled"
    sample_step: float = 1.0  # must stay below half the narrowest gap
    merge_tolerance: float = 1e-7

    @field_validator("sample_step", "merge_tolerance")
    def _nonneg(cls, v: float, info: ValidationInfo) -> float:
        if v < 0 or (info.field_name == "sample_step" and v == 0):
            raise ValueError(f"{info.field_name} out of range: {v}")
        return v


VoronoiUnion = Annotated[VoronoiSampledModel, Field(discriminator="kind")]


# ----------------- SERVICES ---------------------


class PlannerModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    heuristic: Literal["euclidean", "squared_legacy"] = "euclidean"
    max_expansions: int | None = None
    alternatives: int = Field(default=12, ge=1)  # medial routes pulled per query


class UpdaterModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    match_tolerance: float = 1e-6
    allow_full_rebuild: bool = True


class GroupModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_workers: int = 1


# ------------------------------------------------------------------


class ScenarioModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    run_id: str = "local"
    log: LogModel = LogModel()
    map: MapModel
    voronoi: VoronoiUnion = Field(default_factory=VoronoiSampledModel)
    planner: PlannerModel = PlannerModel()
    updater: UpdaterModel = UpdaterModel()
    group: GroupModel = GroupModel()
