from enum import Enum
from typing import Optional, Tuple


class RepeatType(Enum):
    """
    How a form repeats within one event.

    SINGLETON: the form occurs at most once per record in the event.
    REPEATING_INSTRUMENT: the form repeats independently within the event.
    REPEATING_EVENT: the whole event repeats, carrying the form along.
    """

    SINGLETON = 0
    REPEATING_INSTRUMENT = 1
    REPEATING_EVENT = 2

    @property
    def is_repeating(self) -> bool:
        return self is not RepeatType.SINGLETON


class Form:
    """
    Represents a REDCap form (instrument) of a project.

    Attributes:
        project_id (str): The ID of the project.
        form_name (str): The name of the form: e.g. "medications".
        fields (Tuple[str, ...]): The fields of the form, in data dictionary order.
        survey_id (Optional[str]): The survey identifier, if the form is a survey.
    """

    def __init__(
        self,
        project_id: str,
        form_name: str,
        fields: Tuple[str, ...],
        survey_id: Optional[str] = None,
    ):
        self._project_id = project_id
        self._form_name = form_name
        self._fields = tuple(fields)
        self._survey_id = survey_id

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def form_name(self) -> str:
        return self._form_name

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    @property
    def survey_id(self) -> Optional[str]:
        return self._survey_id

    @property
    def is_survey(self) -> bool:
        return self._survey_id is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Form):
            return NotImplemented
        return (
            self.project_id,
            self.form_name,
            self.fields,
            self.survey_id,
        ) == (other.project_id, other.form_name, other.fields, other.survey_id)

    def __hash__(self) -> int:
        return hash((self.project_id, self.form_name, self.fields, self.survey_id))

    def __str__(self):
        return f"{self.project_id} {self.form_name}"

    def __repr__(self):
        return f"Form({self.project_id!r}, {self.form_name!r}, {len(self.fields)} fields)"
