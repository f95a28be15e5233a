"""Result and lifecycle event types of a strictify run."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, computed_field

from strictify.git.vcs import Revision


class FoundSinceRevision(BaseModel):
    """The fork point changes are measured from (None when unknown)."""

    kind: Literal["found_since_revision"] = "found_since_revision"
    revision: Revision | None


class FoundChangedFiles(BaseModel):
    """The extension-filtered change set, before exclusions."""

    kind: Literal["found_changed_files"] = "found_changed_files"
    files: list[str]


class ExamineFile(BaseModel):
    """An included file is about to be correlated."""

    kind: Literal["examine_file"] = "examine_file"
    file: str


class CheckFile(BaseModel):
    """Verdict for one included file."""

    kind: Literal["check_file"] = "check_file"
    file: str
    has_diagnostics: bool
    diagnostics: list[str] = Field(default_factory=list)


StrictifyEvent = Annotated[
    FoundSinceRevision | FoundChangedFiles | ExamineFile | CheckFile,
    Field(discriminator="kind"),
]


class Outcome(BaseModel):
    """Aggregate result: success iff no diagnostics hit included files.

    error_count counts matching diagnostic lines, not failing files.
    """

    error_count: int = 0

    @computed_field
    @property
    def success(self) -> bool:
        return self.error_count == 0


class StrictifyReport(BaseModel):
    """Outcome plus the ordered events that led to it."""

    outcome: Outcome
    events: list[StrictifyEvent] = Field(default_factory=list)

    @property
    def file_results(self) -> dict[str, bool]:
        """Included file -> has at least one diagnostic."""
        return {
            event.file: event.has_diagnostics
            for event in self.events
            if isinstance(event, CheckFile)
        }
