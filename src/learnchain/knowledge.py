"""
Knowledge tree returned by the LLM.

Field aliases are the wire names used in the JSON schema; every field has a
default so partial or empty responses still validate.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QuizOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selection: str = ""
    is_correct: bool = Field(default=False, alias="is_correct_answer")


class QuizItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = ""
    options: list[QuizOption] = Field(default_factory=list)


class KnowledgeGroup(BaseModel):
    """One topic bundle: summary, quiz and further reading."""

    model_config = ConfigDict(populate_by_name=True)

    group_name: str = Field(default="", alias="knowledge_type_group")
    summary: str = ""
    quiz: list[QuizItem] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    language: str = Field(default="", alias="knowledge_type_language")

    @property
    def question_count(self) -> int:
        return len(self.quiz)

    def quiz_wire(self) -> list[dict[str, Any]]:
        """Quiz items serialized with wire names."""
        return [item.model_dump(by_alias=True) for item in self.quiz]


class LearningResponse(BaseModel):
    """Structured learning payload: a list of knowledge groups."""

    model_config = ConfigDict(populate_by_name=True)

    groups: list[KnowledgeGroup] = Field(default_factory=list, alias="response")

    @property
    def total_questions(self) -> int:
        return sum(group.question_count for group in self.groups)

    def is_empty(self) -> bool:
        return not self.groups

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
