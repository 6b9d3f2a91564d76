from typing import Any, Dict, List, Optional, Union

from repeatforms import constants


class Project:
    """
    Snapshot of the metadata of a REDCap project.

    Attributes:
        project_id (str): The ID of the project.
        forms (Dict[str, Dict[str, Any]]): Form name to form attributes.
            Survey enabled forms carry a "survey_id" attribute.
        events_forms (Dict[str, List[str]]): Event ID to the forms enabled in it,
            in event order.
        repeating_forms_events (Dict[str, Union[str, Dict[str, str]]]): Event ID to
            either "WHOLE" (the event repeats) or a mapping of the repeating forms
            to their custom labels.
        longitudinal (bool): Whether the project defines multiple events.
    """

    def __init__(
        self,
        project_id: str,
        forms: Dict[str, Dict[str, Any]],
        events_forms: Dict[str, List[str]],
        repeating_forms_events: Optional[
            Dict[str, Union[str, Dict[str, str]]]
        ] = None,
        longitudinal: bool = False,
    ):
        self.project_id = project_id
        self.forms = forms
        self.events_forms = events_forms
        self.repeating_forms_events = repeating_forms_events or {}
        self.longitudinal = longitudinal

    @property
    def first_event_id(self) -> Optional[str]:
        """
        The first event of the project, the only one for classic projects.
        """
        for event_id in self.events_forms:
            return event_id
        return None

    def is_repeating_event(self, event_id: str) -> bool:
        return self.repeating_forms_events.get(event_id) == constants.repeat_whole_event

    def is_repeating_form(self, event_id: str, form_name: str) -> bool:
        repeating = self.repeating_forms_events.get(event_id)
        return isinstance(repeating, dict) and form_name in repeating

    def __str__(self):
        return f"Project {self.project_id}"

    def __repr__(self):
        return (
            f"Project({self.project_id!r}, {len(self.forms)} forms, "
            f"{len(self.events_forms)} events)"
        )
