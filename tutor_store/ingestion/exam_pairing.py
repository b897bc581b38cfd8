"""
Exam pairing - Matches exam questions with their worked solutions.

An exam upload is two files: the question paper and the solutions. Both
are segmented with the exam rule, then each question is paired with the
solution carrying the same number ("Question 3" <-> "Solution 3"). A
header without a number falls back to its position in the file.

Solution bodies become steps, one per non-empty line. A line such as
``Answer: x = 4`` or ``Final answer: 12`` is the final answer; without
one, the last step is.
"""

import logging
import re
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from tutor_store.exceptions import ValidationError
from tutor_store.ingestion.segmenter import Segment
from tutor_store.models import ExamMetadata, Problem, Solution

logger = logging.getLogger(__name__)

_FINAL_ANSWER = re.compile(
    r"^\s*(?:final\s+answer|answer|ans)\s*[:=]\s*(?P<answer>.+?)\s*$",
    re.IGNORECASE,
)


@dataclass
class PairingResult:
    """
    Attributes:
        pairs: (question, solution) in question order
        unpaired_questions: Questions with no solution, in question order
        surplus_solutions: Solutions no question claimed
    """
    pairs: list[tuple[Segment, Segment]] = field(default_factory=list)
    unpaired_questions: list[Segment] = field(default_factory=list)
    surplus_solutions: list[Segment] = field(default_factory=list)


def question_number(segment: Segment, position: int) -> int:
    """Printed number, or 1-indexed position when the header has none."""
    return segment.number if segment.number is not None else position + 1


def numbered(segments: list[Segment]) -> list[tuple[int, int, Segment]]:
    """
    (number, occurrence, segment) for each segment, in order.

    ``occurrence`` counts repeats of the same number, so a paper with
    "Question 1" in both Section A and Section B gives occurrences 1 and 2.
    """
    seen: dict[int, int] = {}
    result = []
    for position, segment in enumerate(segments):
        number = question_number(segment, position)
        seen[number] = seen.get(number, 0) + 1
        result.append((number, seen[number], segment))
    return result


def pair_questions(questions: list[Segment], solutions: list[Segment]) -> PairingResult:
    """
    Pair questions and solutions by number.

    The k-th question with a number gets the k-th solution with that
    number. Each solution is used at most once.
    """
    by_key = {(number, occurrence): solution for number, occurrence, solution in numbered(solutions)}
    result = PairingResult()
    for number, occurrence, question in numbered(questions):
        solution = by_key.pop((number, occurrence), None)
        if solution is None:
            result.unpaired_questions.append(question)
        else:
            result.pairs.append((question, solution))

    result.surplus_solutions.extend(by_key.values())
    if result.surplus_solutions:
        logger.warning(
            "Ignoring %d solution(s) with no matching question: %s",
            len(result.surplus_solutions),
            ", ".join(s.title for s in result.surplus_solutions),
        )
    return result


def parse_solution(body: str) -> Solution:
    """
    Split a solution body into steps and a final answer.

    Example:
        parse_solution("x^2 = 16\\nx = ±4\\nAnswer: x = 4 or x = -4")
        -> Solution(steps=["x^2 = 16", "x = ±4"], final_answer="x = 4 or x = -4")
    """
    steps = []
    final_answer = ""
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        match = _FINAL_ANSWER.match(line)
        if match:
            final_answer = match.group("answer")
        else:
            steps.append(line)

    if not final_answer and steps:
        final_answer = steps[-1]
    return Solution(steps=steps, final_answer=final_answer)


def problem_id(exam_id: str, number: int, occurrence: int = 1) -> str:
    """``<exam>_q<N>``; a repeated number gets ``_<occurrence>`` appended."""
    if occurrence > 1:
        return f"{exam_id}_q{number}_{occurrence}"
    return f"{exam_id}_q{number}"


def build_problem(
    exam_id: str,
    metadata: ExamMetadata,
    question: Segment,
    solution: Segment,
    number: int,
    occurrence: int = 1,
) -> Problem:
    """
    Build the Problem record for one paired question.

    The upload metadata (year, subject, level, paper, source...) is copied
    onto the problem; only the title changes.

    Raises:
        ValidationError: If the question text is empty
    """
    try:
        return Problem(
            id=problem_id(exam_id, number, occurrence),
            question=question.content,
            solution=parse_solution(solution.content),
            metadata=metadata.model_copy(
                update={"title": f"{metadata.title} - Question {number}"}
            ),
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Question {number} is not a valid problem", detail=str(e)) from e
