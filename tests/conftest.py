"""Shared fixtures: an in-memory record store and two small projects."""

import copy
import logging
import re
from typing import Any, Dict, List, Optional

import pandas as pd
import pytest

from repeatforms import constants
from repeatforms.models.project import Project

LONGITUDINAL_PID = "14"
CLASSIC_PID = "15"

ENROLLMENT = "enrollment_arm_1"
VISIT = "visit_arm_1"
FOLLOWUP = "followup_arm_1"

DICTIONARIES = {
    "demographics": ["record_id", "dob", "sex"],
    "medications": ["med_name", "med_dose", "med_start"],
    "vitals": ["weight", "height"],
}


FILTER_PATTERN = re.compile(r"^\[(\w+)\]\s*(=|<>)\s*'([^']*)'$")


def row_matches(fields: Dict[str, Any], filter_logic: str) -> bool:
    """Evaluates `[field] = 'value'` or `[field] <> 'value'` on one row.

    Missing fields compare as blank, as in REDCap.
    """
    match = FILTER_PATTERN.match(filter_logic.strip())
    if match is None:
        raise ValueError(f"Unsupported filter logic: {filter_logic}")
    field, operator, value = match.groups()
    equal = str(fields.get(field, "")) == value
    return equal if operator == "=" else not equal


def filter_rows(
    record_data: Dict[str, Any], event_id: str, filter_logic: str
) -> Dict[str, Any]:
    """Keeps the rows of one event matching the filter, REDCap filters per row."""
    filtered: Dict[str, Any] = {}

    event_data = record_data.get(event_id)
    if event_data and row_matches(event_data, filter_logic):
        filtered[event_id] = copy.deepcopy(event_data)

    forms = record_data.get(constants.repeat_instances_key, {}).get(event_id, {})
    for form_name, instances in forms.items():
        for instance_id, fields in instances.items():
            if not row_matches(fields, filter_logic):
                continue
            (
                filtered.setdefault(constants.repeat_instances_key, {})
                .setdefault(event_id, {})
                .setdefault(form_name, {})
            )[instance_id] = copy.deepcopy(fields)

    return filtered


class FakeRecordStore:
    """Record store keeping REDCap "array" payloads in memory.

    Every call is recorded in `calls` as (method, args...).
    """

    def __init__(self, projects: List[Project], records: Optional[Dict] = None):
        self.projects = {str(project.project_id): project for project in projects}
        self.records: Dict[str, Dict[str, Any]] = records or {}
        self.calls: List[tuple] = []
        self.save_results: List[Dict[str, Any]] = []

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def get_project(self, project_id):
        self.calls.append(("get_project", project_id))
        return self.projects.get(str(project_id))

    def get_data_dictionary(self, project_id, form_name):
        self.calls.append(("get_data_dictionary", project_id, form_name))
        fields = DICTIONARIES.get(form_name, [])
        return pd.DataFrame(
            {"field_name": fields, "form_name": [form_name] * len(fields)}
        )

    def get_data(self, project_id, records, fields, event_id, filter_logic=None):
        self.calls.append(("get_data", records, event_id, filter_logic))
        result = {}
        for record_id, record_data in self.records.items():
            if records is not None and record_id not in records:
                continue
            repeat_instances = record_data.get(constants.repeat_instances_key, {})
            if event_id not in record_data and event_id not in repeat_instances:
                continue
            if filter_logic is None:
                result[record_id] = copy.deepcopy(record_data)
                continue

            filtered = filter_rows(record_data, event_id, filter_logic)
            if filtered:
                result[record_id] = filtered
        return result

    def save_data(self, project_id, payload):
        self.calls.append(("save_data", copy.deepcopy(payload)))
        if self.save_results:
            return self.save_results.pop(0)

        item_count = 0
        for record_id, record_payload in payload.items():
            stored = self.records.setdefault(record_id, {})
            for key, value in record_payload.items():
                if key != constants.repeat_instances_key:
                    stored.setdefault(key, {}).update(value)
                    item_count += len(value)
                    continue
                for event_id, forms in value.items():
                    for form_name, instances in forms.items():
                        stored_instances = (
                            stored.setdefault(constants.repeat_instances_key, {})
                            .setdefault(event_id, {})
                            .setdefault(form_name, {})
                        )
                        for instance_id, fields in instances.items():
                            stored_instances.setdefault(instance_id, {}).update(fields)
                            item_count += len(fields)

        return {"errors": [], "item_count": item_count}

    def evaluate_logic(
        self, expression, project_id, record, event_name=None, instance=None, form_name=None
    ):
        self.calls.append(("evaluate_logic", expression, record))
        return True

    def get_survey_link(self, record, form_name, event_id, instance_id, project_id):
        self.calls.append(("get_survey_link", record, form_name, event_id, instance_id))
        return f"https://redcap.example.org/surveys/?s={form_name}-{record}-{event_id}-{instance_id}"


def make_longitudinal_project() -> Project:
    return Project(
        project_id=LONGITUDINAL_PID,
        forms={
            "demographics": {"label": "Demographics"},
            "medications": {"label": "Medications"},
            "vitals": {"label": "Vitals", "survey_id": "vitals"},
            "consent": {"label": "Consent"},
        },
        events_forms={
            ENROLLMENT: ["demographics", "medications"],
            VISIT: ["medications", "vitals"],
            FOLLOWUP: ["demographics", "vitals"],
        },
        repeating_forms_events={
            ENROLLMENT: {"medications": ""},
            FOLLOWUP: constants.repeat_whole_event,
        },
        longitudinal=True,
    )


def make_classic_project() -> Project:
    return Project(
        project_id=CLASSIC_PID,
        forms={
            "demographics": {"label": "Demographics"},
            "medications": {"label": "Medications"},
        },
        events_forms={constants.classic_event_name: ["demographics", "medications"]},
        repeating_forms_events={constants.classic_event_name: {"medications": ""}},
        longitudinal=False,
    )


def make_records() -> Dict[str, Dict[str, Any]]:
    return {
        "1": {
            ENROLLMENT: {"record_id": "1", "dob": "1980-01-01", "sex": "1"},
            VISIT: {"med_name": "", "weight": "70"},
            constants.repeat_instances_key: {
                ENROLLMENT: {
                    "medications": {
                        # REDCap may leave the index of the first instance blank
                        "": {"med_name": "aspirin", "med_dose": "100"},
                        "2": {"med_name": "ibuprofen", "med_dose": "200"},
                        "5": {"med_name": "aspirin", "med_dose": "300"},
                    }
                },
                FOLLOWUP: {
                    "": {
                        1: {"weight": "71", "dob": "1980-01-01"},
                        3: {"weight": "69"},
                    }
                },
            },
        },
        "2": {
            ENROLLMENT: {"record_id": "2", "dob": "1990-05-05", "sex": "2"},
        },
        "3": {
            constants.repeat_instances_key: {
                ENROLLMENT: {
                    "medications": {
                        3: {"med_name": "a"},
                        1: {"med_name": "b"},
                        7: {"med_name": "c"},
                    }
                }
            },
        },
    }


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore(
        [make_longitudinal_project(), make_classic_project()],
        records=make_records(),
    )


@pytest.fixture
def empty_store() -> FakeRecordStore:
    return FakeRecordStore([make_longitudinal_project(), make_classic_project()])


@pytest.fixture
def new_root_handlers():
    """Returns the handlers added to the root logger by the test, removed afterwards."""
    root = logging.getLogger()
    before = list(root.handlers)

    yield lambda: [handler for handler in root.handlers if handler not in before]

    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
