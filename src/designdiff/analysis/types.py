from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ChangeAnnotation(_Model):
    description: str
    # Position in the "after" image as fractions of its width and height.
    x: float | None = Field(default=None, ge=0.0, le=1.0)
    y: float | None = Field(default=None, ge=0.0, le=1.0)


class ComponentSpec(_Model):
    name: str
    properties: dict[str, str] = {}


class LayoutSpec(_Model):
    property: str
    value: str


class DeveloperSpec(_Model):
    components: list[ComponentSpec] = []
    layout: list[LayoutSpec] = []


class AnalysisResult(_Model):
    change_annotations: list[ChangeAnnotation] = Field(default=[], alias="changeAnnotations")
    developer_spec: DeveloperSpec = Field(default=DeveloperSpec(), alias="developerSpec")
    actionable_tasks: list[str] = Field(default=[], alias="actionableTasks")
    slack_format: str = Field(default="", alias="slackFormat")
    linear_format: str = Field(default="", alias="linearFormat")

    @model_validator(mode="before")
    @classmethod
    def _summary_as_annotations(cls, data: Any) -> Any:
        # Older replies list plain summary strings instead of positioned annotations.
        if not isinstance(data, dict):
            return data
        if "changeAnnotations" in data or "change_annotations" in data:
            return data
        summary = data.get("changeSummary", data.get("change_summary"))
        if isinstance(summary, list):
            data = {k: v for k, v in data.items() if k not in ("changeSummary", "change_summary")}
            data["changeAnnotations"] = [{"description": item} for item in summary]
        return data

    @property
    def change_summary(self) -> list[str]:
        return [annotation.description for annotation in self.change_annotations]
