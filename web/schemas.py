"""Request models for report generation."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _stringify(value: Any) -> Any:
    # JSON clients send IDs and grades as numbers as often as strings.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Career(BaseModel):
    """One recommended career inside a bucket."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    career_name: str = Field(alias="careerName")
    study_path: List[str] = Field(default_factory=list, alias="studyPath")
    # Filled by enrichment from the career catalog, not by the caller.
    recommended_skills: Optional[List[str]] = Field(default=None, alias="recommendedSkills")
    recommended_courses: Optional[List[str]] = Field(default=None, alias="recommendedCourses")


class Bucket(BaseModel):
    """A ranked group of careers."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    bucket_name: Optional[str] = Field(default=None, alias="bucketName")
    top_careers: List[Career] = Field(default_factory=list, alias="topCareers")


class ReportPayload(BaseModel):
    """Assessment results for one student."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    student_name: Optional[str] = Field(default=None, alias="studentName")
    student_id: Optional[str] = Field(default=None, alias="studentID")
    school_name: Optional[str] = Field(default=None, alias="schoolName")
    grade: Optional[str] = None
    board: Optional[str] = None
    summary_paragraph: Optional[str] = Field(default=None, alias="summaryParagraph")
    trait_scores: Dict[str, float] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("traitScores", "vibeScores", "trait_scores"),
    )
    top_buckets: List[Bucket] = Field(
        default_factory=list,
        max_length=5,
        validation_alias=AliasChoices("topBuckets", "top5Buckets", "top5_buckets", "top_buckets"),
    )

    @field_validator("student_id", "grade", mode="before")
    @classmethod
    def coerce_to_string(cls, value: Any) -> Any:
        return _stringify(value)


class ReportRequest(BaseModel):
    """Body of ``POST /generate-pdf``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    report_data: ReportPayload = Field(alias="reportData")
    student_id: Optional[str] = Field(default=None, alias="studentID")
    student_name: Optional[str] = Field(default=None, alias="studentName")
    mobile_no: Optional[str] = Field(default=None, alias="mobileNo")

    @field_validator("student_id", "mobile_no", mode="before")
    @classmethod
    def coerce_to_string(cls, value: Any) -> Any:
        return _stringify(value)
