"""
Segmenter - Splits extracted text into titled sections.

Each document type has its own idea of a heading. Instead of one
switch statement, the rules live in a table keyed by document type:
adding a type means adding a row.

Key Concepts:
- Header: a line matching the type's pattern (start of a section)
- Body: everything between a header and the next header
- Page number: estimated from how many lines come before the header,
  40 lines to a page (a header on line 80 is on page 3)

Example:
    Text:
        1. Learning objectives
        Students should be able to...
        2. Assessment
        Two written papers...

    segment(text, "syllabus") ->
        Segment(title="1. Learning objectives", content="Students should...")
        Segment(title="2. Assessment", content="Two written papers...")
"""

import re
from dataclasses import dataclass

from tutor_store.config import LINES_PER_PAGE
from tutor_store.models import Section

# Rule key for the solutions file of an exam upload
EXAM_SOLUTIONS = "exam_solutions"


@dataclass(frozen=True)
class SegmentationRule:
    """
    How to find section headers for one document type.

    Attributes:
        pattern: Multiline regex matching one header; named groups feed
            the title template
        title_template: str.format template over the named groups
    """
    pattern: re.Pattern
    title_template: str

    def title_for(self, match: re.Match) -> str:
        groups = {name: (value or "").strip() for name, value in match.groupdict().items()}
        return self.title_template.format(**groups).strip(" :")


@dataclass
class Segment:
    """
    One section found in a text.

    Attributes:
        title: Section title built from the header
        content: Body text (header excluded), stripped
        page_number: Estimated 1-indexed page of the header
        number: Number printed in the header, if the rule captures one
    """
    title: str
    content: str
    page_number: int
    number: int | None = None

    def to_section(self) -> Section:
        return Section(title=self.title, content=self.content, page_number=self.page_number)


SEGMENTATION_RULES: dict[str, SegmentationRule] = {
    # 1. Learning objectives
    "syllabus": SegmentationRule(
        pattern=re.compile(r"^(?P<number>\d+)\.[ \t]+(?P<name>\S[^\n]*)$", re.MULTILINE),
        title_template="{number}. {name}",
    ),
    # Chapter 1: Quadratics / Topic 2. Vectors
    "notes": SegmentationRule(
        pattern=re.compile(
            r"^(?P<label>Chapter|Topic)[ \t]+(?P<number>\d+)[.:][ \t]*(?P<name>[^\n]*)$",
            re.MULTILINE,
        ),
        title_template="{label} {number}: {name}",
    ),
    # Exercise 3: ... / Problem 4. ...
    "worksheet": SegmentationRule(
        pattern=re.compile(r"^(?P<label>Exercise|Problem)[ \t]+(?P<number>\d+)[.:]", re.MULTILINE),
        title_template="{label} {number}",
    ),
    # Question 1 / Q1. / Q 3)
    "exam": SegmentationRule(
        pattern=re.compile(
            r"^[ \t]*(?:Question|Q)\.?[ \t]*(?P<number>\d+)[.:)]?",
            re.MULTILINE | re.IGNORECASE,
        ),
        title_template="Question {number}",
    ),
    # Solution 1 / Answer 1) / Ans 1: (exam solution files only)
    EXAM_SOLUTIONS: SegmentationRule(
        pattern=re.compile(
            r"^[ \t]*(?:Solution|Answer|Ans)\.?[ \t]*(?P<number>\d+)[.:)]?",
            re.MULTILINE | re.IGNORECASE,
        ),
        title_template="Solution {number}",
    ),
}


class Segmenter:
    """
    Finds sections in text using the rule for a document type.

    Example:
        segmenter = Segmenter()
        for segment in segmenter.segment(text, "worksheet"):
            print(f"{segment.title} (page {segment.page_number})")
    """

    def __init__(
        self,
        rules: dict[str, SegmentationRule] | None = None,
        lines_per_page: int | None = None,
    ):
        self.rules = SEGMENTATION_RULES if rules is None else rules
        self.lines_per_page = lines_per_page or LINES_PER_PAGE

    def estimate_page_number(self, text: str, position: int) -> int:
        """Page of the character at ``position``, from newlines before it."""
        return text.count("\n", 0, position) // self.lines_per_page + 1

    def segment(self, text: str, doc_type: str) -> list[Segment]:
        """
        Split ``text`` into sections using the rule for ``doc_type``.

        Text before the first header is not part of any section. No rule
        for the type, empty text or no headers all give an empty list.
        """
        rule = self.rules.get(doc_type)
        if rule is None or not text:
            return []

        matches = list(rule.pattern.finditer(text))
        segments = []
        for i, match in enumerate(matches):
            body_end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            number = match.groupdict().get("number")
            segments.append(
                Segment(
                    title=rule.title_for(match),
                    content=text[match.end():body_end].strip(),
                    page_number=self.estimate_page_number(text, match.start()),
                    number=int(number) if number else None,
                )
            )
        return segments

    def sections(self, text: str, doc_type: str) -> list[Section]:
        return [segment.to_section() for segment in self.segment(text, doc_type)]
