"""
HTTP client for the school backend.

Persistence lives in an external service reached over GraphQL (plus two
REST routes used by onboarding). GraphQL `errors[]` are translated into the
package's error taxonomy by `extensions.code`; anything the client cannot
interpret becomes a RemoteError carrying the backend's message.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from .config import Settings
from .data.models import (
    Break,
    Grade,
    LessonEntry,
    LessonEntryInput,
    Level,
    SchoolSnapshot,
    Stream,
    Subject,
    Teacher,
    Term,
    TimeSlot,
    WeekTemplate,
    WeekTemplateInput,
)
from .errors import (
    ConflictError,
    ConflictReason,
    ReferentialError,
    RemoteError,
    TimetableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Backend Protocol
# =============================================================================

class Backend(Protocol):
    """What the editor and the bulk coordinator need from persistence."""

    def load_school_snapshot(self) -> SchoolSnapshot: ...

    def list_time_slots(self) -> list[TimeSlot]: ...

    def list_breaks(self) -> list[Break]: ...

    def list_entries(self, term_id: str, grade_id: str) -> list[LessonEntry]: ...

    def create_entry(self, data: LessonEntryInput) -> LessonEntry: ...

    def update_entry(self, entry_id: str, changes: dict[str, Any]) -> LessonEntry: ...

    def delete_entry(self, entry_id: str) -> None: ...

    def create_week_template(self, data: WeekTemplateInput) -> WeekTemplate: ...

    def create_time_slots(self, slots: list[TimeSlot]) -> list[TimeSlot]: ...

    def create_breaks(self, breaks: list[Break]) -> list[Break]: ...


# =============================================================================
# GraphQL Documents
# =============================================================================

ENTRY_FIELDS = """
    id
    termId
    gradeId
    streamId
    subjectId
    teacherId
    timeSlotId
    dayOfWeek
    roomNumber
"""

SCHOOL_CONFIG_QUERY = """
query SchoolConfiguration {
  getSchoolConfig {
    selectedLevels {
      id
      name
      gradeLevels {
        id
        name
        shortName
        streams { id name }
      }
      subjects { id name color }
    }
  }
  getTeachersByTenant {
    id
    name
    email
    gradeLevels
    gradeLevelIds
    subjects
  }
}
"""

TIME_SLOTS_QUERY = """
query GetTimeSlots {
  getTimeSlots { id periodNumber displayTime startTime endTime dayOfWeek color }
}
"""

BREAKS_QUERY = """
query GetTimetableBreaks {
  getTimetableBreaks { id name type dayOfWeek afterPeriod durationMinutes }
}
"""

TERMS_QUERY = """
query GetTerms {
  getTerms { id name startDate endDate }
}
"""

ENTRIES_QUERY = f"""
query GetTimetableEntries($termId: ID!, $gradeId: ID!) {{
  getTimetableEntries(termId: $termId, gradeId: $gradeId) {{{ENTRY_FIELDS}  }}
}}
"""

CREATE_ENTRY_MUTATION = f"""
mutation CreateTimetableEntry($input: CreateTimetableEntryInput!) {{
  createTimetableEntry(input: $input) {{{ENTRY_FIELDS}  }}
}}
"""

UPDATE_ENTRY_MUTATION = f"""
mutation UpdateTimetableEntry($id: ID!, $input: UpdateTimetableEntryInput!) {{
  updateTimetableEntry(id: $id, input: $input) {{{ENTRY_FIELDS}  }}
}}
"""

DELETE_ENTRY_MUTATION = """
mutation DeleteTimetableEntry($id: ID!) {
  deleteTimetableEntry(id: $id)
}
"""

CREATE_WEEK_TEMPLATE_MUTATION = """
mutation CreateWeekTemplate($input: CreateWeekTemplateInput!) {
  createWeekTemplate(input: $input) {
    id
    name
    numberOfDays
    termId
    dayTemplates {
      id
      dayOfWeek
      startTime
      periodCount
      periods { id periodNumber startTime endTime }
    }
  }
}
"""

TIME_SLOT_FIELDS = "id periodNumber displayTime startTime endTime dayOfWeek color"
BREAK_FIELDS = "id name type dayOfWeek afterPeriod durationMinutes"

# Error codes sent in `extensions.code`
VALIDATION_CODES = {"BAD_USER_INPUT", "VALIDATION_ERROR", "GRAPHQL_VALIDATION_FAILED"}
CONFLICT_CODES = {"CONFLICT", "CONFLICTEXCEPTION"}
NOT_FOUND_CODES = {"NOT_FOUND", "NOTFOUNDEXCEPTION"}


def error_from_graphql(errors: list[dict[str, Any]]) -> TimetableError:
    """Translate a GraphQL `errors[]` array into one package error."""
    messages = [str(e.get("message") or "Unknown error") for e in errors] or ["Unknown error"]
    message = ", ".join(messages)
    first = errors[0] if errors else {}
    code = str((first.get("extensions") or {}).get("code") or "").upper()

    if code in VALIDATION_CODES:
        return ValidationError(message)
    if code in CONFLICT_CODES:
        reason = (
            ConflictReason.TEACHER_BUSY
            if "teacher" in message.lower()
            else ConflictReason.GRADE_BUSY
        )
        return ConflictError(reason, message)
    if code in NOT_FOUND_CODES:
        return ReferentialError(message)
    return RemoteError(message, code=code or None)


# =============================================================================
# Client
# =============================================================================

class PersistenceClient:
    """
    Synchronous client for the school backend.

    Usage:
        with PersistenceClient(Settings.from_env()) as client:
            snapshot = client.load_school_snapshot()
            entry = client.create_entry(candidate)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or Settings()
        self._http = httpx.Client(
            headers=self.settings.headers,
            timeout=self.settings.timeout,
            transport=transport,
        )

    def __enter__(self) -> "PersistenceClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _post(self, url: str, payload: Any) -> Any:
        try:
            response = self._http.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise RemoteError(f"Request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            if isinstance(body, dict) and body.get("errors"):
                raise error_from_graphql(body["errors"])
            detail = response.text[:200]
            raise RemoteError(
                f"Request failed: {response.status_code} - {detail}",
                status_code=response.status_code,
            )

        if body is None:
            raise RemoteError("Invalid response: body is not JSON", status_code=response.status_code)
        return body

    def execute(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Run a GraphQL document and return its `data` object.

        Raises:
            ValidationError, ConflictError, ReferentialError, RemoteError
        """
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        body = self._post(self.settings.api_url, payload)
        if not isinstance(body, dict):
            raise RemoteError("Invalid response format")
        if body.get("errors"):
            logger.debug("GraphQL errors: %s", body["errors"])
            raise error_from_graphql(body["errors"])
        data = body.get("data")
        if not isinstance(data, dict):
            raise RemoteError("Invalid response format: missing data")
        return data

    def _field(self, data: dict[str, Any], name: str) -> Any:
        if data.get(name) is None:
            raise RemoteError(f"Invalid response format: missing {name} data")
        return data[name]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def load_school_snapshot(self) -> SchoolSnapshot:
        """Fetch levels, grades, streams, subjects and teachers."""
        data = self.execute(SCHOOL_CONFIG_QUERY)
        config = self._field(data, "getSchoolConfig")

        levels, grades, streams, subjects = [], [], [], []
        for level in config.get("selectedLevels") or []:
            levels.append(Level(id=level["id"], name=level["name"]))
            for grade in level.get("gradeLevels") or []:
                grade_streams = grade.get("streams") or []
                for stream in grade_streams:
                    streams.append(Stream(id=stream["id"], name=stream["name"], grade_id=grade["id"]))
                grades.append(Grade(
                    id=grade["id"],
                    name=grade.get("name") or "",
                    level_id=level["id"],
                    short_name=grade.get("shortName"),
                    stream_ids=tuple(s["id"] for s in grade_streams),
                ))
            for subject in level.get("subjects") or []:
                subjects.append(Subject.model_validate({**subject, "levelId": level["id"]}))

        teachers = [
            Teacher.model_validate({k: v for k, v in t.items() if v is not None})
            for t in data.get("getTeachersByTenant") or []
        ]
        snapshot = SchoolSnapshot(
            levels=levels, grades=grades, streams=streams, subjects=subjects, teachers=teachers,
        )
        logger.info("Loaded school configuration: %s", snapshot.summary())
        return snapshot

    def list_time_slots(self) -> list[TimeSlot]:
        data = self.execute(TIME_SLOTS_QUERY)
        return [TimeSlot.model_validate(s) for s in self._field(data, "getTimeSlots")]

    def list_breaks(self) -> list[Break]:
        data = self.execute(BREAKS_QUERY)
        return [Break.from_wire(b) for b in self._field(data, "getTimetableBreaks")]

    def list_terms(self) -> list[Term]:
        data = self.execute(TERMS_QUERY)
        return [Term.model_validate(t) for t in self._field(data, "getTerms")]

    def list_entries(self, term_id: str, grade_id: str) -> list[LessonEntry]:
        data = self.execute(ENTRIES_QUERY, {"termId": term_id, "gradeId": grade_id})
        return [
            self._entry(item, term_id=term_id, grade_id=grade_id)
            for item in self._field(data, "getTimetableEntries")
        ]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_entry(self, data: LessonEntryInput) -> LessonEntry:
        result = self.execute(CREATE_ENTRY_MUTATION, {"input": data.to_wire()})
        created = self._entry(self._field(result, "createTimetableEntry"), fallback=data)
        logger.debug("Created entry %s", created.id)
        return created

    def update_entry(self, entry_id: str, changes: dict[str, Any]) -> LessonEntry:
        wire = {_camel(k): v for k, v in changes.items()}
        result = self.execute(UPDATE_ENTRY_MUTATION, {"id": entry_id, "input": wire})
        return self._entry(self._field(result, "updateTimetableEntry"))

    def delete_entry(self, entry_id: str) -> None:
        result = self.execute(DELETE_ENTRY_MUTATION, {"id": entry_id})
        if result.get("deleteTimetableEntry") is False:
            raise RemoteError(f"Backend refused to delete entry {entry_id}")

    def create_week_template(self, data: WeekTemplateInput) -> WeekTemplate:
        result = self.execute(CREATE_WEEK_TEMPLATE_MUTATION, {"input": data.to_wire()})
        return WeekTemplate.model_validate(self._field(result, "createWeekTemplate"))

    def create_time_slots(self, slots: list[TimeSlot]) -> list[TimeSlot]:
        """Create several time slots in one request using aliased mutations."""
        if not slots:
            return []
        params = ", ".join(f"$s{i}: TimeSlotInput!" for i in range(len(slots)))
        fields = "\n".join(
            f"  slot{i}: createTimeSlot(input: $s{i}) {{ {TIME_SLOT_FIELDS} }}"
            for i in range(len(slots))
        )
        query = f"mutation CreateTimeSlots({params}) {{\n{fields}\n}}"
        variables = {
            f"s{i}": slot.model_dump(by_alias=True, mode="json", exclude={"id"})
            for i, slot in enumerate(slots)
        }
        data = self.execute(query, variables)
        return [TimeSlot.model_validate(self._field(data, f"slot{i}")) for i in range(len(slots))]

    def create_breaks(self, breaks: list[Break]) -> list[Break]:
        """Create several breaks in one request; days and types use the wire convention."""
        if not breaks:
            return []
        params = ", ".join(f"$b{i}: CreateTimetableBreakInput!" for i in range(len(breaks)))
        fields = "\n".join(
            f"  break{i}: createTimetableBreak(input: $b{i}) {{ {BREAK_FIELDS} }}"
            for i in range(len(breaks))
        )
        query = f"mutation CreateTimetableBreaks({params}) {{\n{fields}\n}}"
        variables = {f"b{i}": _without_id(b.to_wire()) for i, b in enumerate(breaks)}
        data = self.execute(query, variables)
        return [Break.from_wire(self._field(data, f"break{i}")) for i in range(len(breaks))]

    # -------------------------------------------------------------------------
    # REST routes
    # -------------------------------------------------------------------------

    def create_term(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST /api/school/create-term."""
        return self._rest("/api/school/create-term", payload)

    def configure_levels(self, level_names: list[str]) -> dict[str, Any]:
        """POST /api/school/configure-levels."""
        return self._rest("/api/school/configure-levels", {"levels": level_names})

    def _rest(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = self.settings.rest_url.rstrip("/") + path
        body = self._post(url, payload)
        if isinstance(body, dict) and body.get("error"):
            details = body.get("details")
            if isinstance(details, list) and details:
                raise error_from_graphql(details)
            raise RemoteError(str(body["error"]))
        return body

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _entry(
        item: dict[str, Any],
        term_id: Optional[str] = None,
        grade_id: Optional[str] = None,
        fallback: Optional[LessonEntryInput] = None,
    ) -> LessonEntry:
        """
        Build an entry from a response, filling fields the backend omitted.
        """
        data = {k: v for k, v in item.items() if v is not None}
        if fallback is not None:
            for key, value in fallback.to_wire().items():
                data.setdefault(key, value)
        if term_id:
            data.setdefault("termId", term_id)
        if grade_id:
            data.setdefault("gradeId", grade_id)
        return LessonEntry.model_validate(data)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _without_id(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id"}
