from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Sequence, Union

from models.document import DocumentMetadata

Score = Union[int, float]


@dataclass(frozen=True)
class RubricQuestion:
    """One scored rubric item."""

    id: int
    label: str
    max: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "max": self.max}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RubricQuestion:
        return cls(
            id=int(data["id"]),
            label=str(data.get("label", f"Q{data['id']}")),
            max=int(data.get("max", 10)),
        )


def _default_questions() -> List[RubricQuestion]:
    return [RubricQuestion(id=i, label=f"Q{i}", max=10) for i in (1, 2, 3)]


@dataclass
class Rubric:
    """Ordered rubric questions."""

    questions: List[RubricQuestion] = field(default_factory=_default_questions)

    @property
    def max_total(self) -> int:
        return sum(q.max for q in self.questions)

    def find(self, question_id: int) -> Optional[RubricQuestion]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"questions": [q.to_dict() for q in self.questions]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Rubric:
        if not data or not isinstance(data.get("questions"), list):
            return cls()
        return cls(questions=[RubricQuestion.from_dict(q) for q in data["questions"]])


def rubrics_equal(first: Optional[Rubric], second: Optional[Rubric]) -> bool:
    if first is None or second is None:
        return False
    return first.questions == second.questions


class ScoreBook:
    """Per-document scores keyed by rubric question id."""

    def __init__(self, scores: Optional[Dict[str, Dict[int, Score]]] = None):
        self._scores: Dict[str, Dict[int, Score]] = {}
        for document_id, per_question in (scores or {}).items():
            self._scores[document_id] = {
                int(qid): value for qid, value in (per_question or {}).items()
            }

    def get(self, document_id: str) -> Dict[int, Score]:
        return dict(self._scores.get(document_id, {}))

    def set_score(self, document_id: str, question_id: int, value: Score) -> None:
        self._scores.setdefault(document_id, {})[question_id] = value

    def clear_score(self, document_id: str, question_id: int) -> None:
        self._scores.get(document_id, {}).pop(question_id, None)

    def set_if_absent(self, document_id: str, question_id: int, value: Score) -> bool:
        per_question = self._scores.setdefault(document_id, {})
        if question_id in per_question:
            return False
        per_question[question_id] = value
        return True

    def total(self, document_id: str, rubric: Rubric) -> Score:
        scores = self._scores.get(document_id, {})
        return sum(scores.get(q.id, 0) for q in rubric.questions)

    def is_graded(self, document_id: str) -> bool:
        return bool(self._scores.get(document_id))

    def to_dict(self) -> Dict[str, Dict[str, Score]]:
        # JSON object keys are strings
        return {
            document_id: {str(qid): value for qid, value in per_question.items()}
            for document_id, per_question in self._scores.items()
        }


def summary_lines(rubric: Rubric, scores: Dict[int, Score]) -> List[str]:
    """Lines of the grade summary block stamped onto the first page on export."""
    lines = [f"{q.label}: {scores.get(q.id, 0)}" for q in rubric.questions]
    total = sum(scores.get(q.id, 0) for q in rubric.questions)
    lines.extend(["", f"Total: {total} / {rubric.max_total}"])
    return lines


def grade_rows(
    documents: Sequence[DocumentMetadata],
    rubric: Rubric,
    score_book: ScoreBook,
) -> List[List[Any]]:
    """Tabular grades: a header row, then one row per document."""
    rows: List[List[Any]] = [["ID", "Grade", *[q.label for q in rubric.questions]]]
    for document in documents:
        scores = score_book.get(document.id)
        question_scores = [scores.get(q.id, 0) for q in rubric.questions]
        rows.append([document.stem, sum(question_scores), *question_scores])
    return rows
