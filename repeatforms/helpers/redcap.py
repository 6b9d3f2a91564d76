"""
Helper functions for interacting with the REDCap API.

`RedcapClient` implements the record store used by the form data accessor.
REDCap exports and imports records as flat rows; the client folds them into
the nested "array" convention and back.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import requests

from repeatforms import constants
from repeatforms.errors import RedcapApiError
from repeatforms.helpers import utils
from repeatforms.helpers.config import config
from repeatforms.models.project import Project

logger = logging.getLogger(__name__)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def get_redcap_client(config_file: Optional[Path] = None) -> "RedcapClient":
    """
    Returns a RedcapClient configured from the `redcap` section.

    File logging is set up from the `logging` section if it has a
    `repeatforms` entry.

    Args:
        config_file (Optional[Path], optional): The path to the configuration
            file. Defaults to `config.ini` at the repository root.

    Returns:
        RedcapClient: A REDCap API client.
    """
    config_file = utils.get_config_file_path(config_file)
    utils.configure_logging(config_file, "repeatforms", logger)

    params = config(config_file, "redcap")

    return RedcapClient(
        api_url=params["api_url"],
        api_token=params["api_token"],
        timeout=int(params.get("timeout", 30)),
        verify_ssl=_as_bool(params.get("verify_ssl", "true")),
        show_requests=_as_bool(params.get("show_requests", "false")),
    )


def indexed_params(name: str, values: List[Any]) -> Dict[str, str]:
    """
    Encodes a list the way the REDCap API expects it: name[0], name[1], ...

    Args:
        name (str): The parameter name.
        values (List[Any]): The values.

    Returns:
        Dict[str, str]: The encoded parameters.
    """
    return {f"{name}[{idx}]": str(value) for idx, value in enumerate(values)}


def rows_to_payload(
    rows: List[Dict[str, Any]],
    record_id_field: str,
    default_event: str = constants.classic_event_name,
) -> Dict[str, Dict[str, Any]]:
    """
    Folds flat REDCap export rows into the nested "array" convention.

    Rows with a blank `redcap_repeat_instance` hold singleton data. Repeating
    rows are filed under their `redcap_repeat_instrument`, which is blank
    for repeating events.

    Args:
        rows (List[Dict[str, Any]]): Flat export rows.
        record_id_field (str): The record ID field of the project.
        default_event (str, optional): Event of rows without
            `redcap_event_name` (classic projects).

    Returns:
        Dict[str, Dict[str, Any]]: The nested payload.
    """
    payload: Dict[str, Dict[str, Any]] = {}

    for row in rows:
        record_id = str(row[record_id_field])
        event = row.get(constants.redcap_event_name_col) or default_event
        repeat_instrument = row.get(constants.redcap_repeat_instrument_col) or ""
        repeat_instance = row.get(constants.redcap_repeat_instance_col)

        fields = {
            key: value
            for key, value in row.items()
            if key != record_id_field and key not in constants.redcap_meta_cols
        }

        record_payload = payload.setdefault(record_id, {})
        if repeat_instance is None or repeat_instance == "":
            record_payload.setdefault(event, {}).update(fields)
        else:
            instances = (
                record_payload.setdefault(constants.repeat_instances_key, {})
                .setdefault(event, {})
                .setdefault(repeat_instrument, {})
            )
            instances.setdefault(int(repeat_instance), {}).update(fields)

    return payload


def payload_to_rows(
    payload: Dict[str, Dict[str, Any]],
    record_id_field: str,
    project: Project,
) -> List[Dict[str, Any]]:
    """
    Unfolds a nested "array" payload into flat REDCap import rows.

    Args:
        payload (Dict[str, Dict[str, Any]]): The nested payload.
        record_id_field (str): The record ID field of the project.
        project (Project): The project metadata.

    Returns:
        List[Dict[str, Any]]: Flat import rows.
    """
    rows: List[Dict[str, Any]] = []

    def make_row(record_id: str, event: str) -> Dict[str, Any]:
        row: Dict[str, Any] = {record_id_field: record_id}
        if project.longitudinal:
            row[constants.redcap_event_name_col] = event
        return row

    for record_id, record_payload in payload.items():
        for key, value in record_payload.items():
            if key != constants.repeat_instances_key:
                row = make_row(str(record_id), key)
                row.update(value)
                rows.append(row)
                continue

            for event, forms in value.items():
                for form_name, instances in forms.items():
                    if project.is_repeating_event(event):
                        form_name = constants.repeating_event_form_key
                    for instance_id, fields in instances.items():
                        row = make_row(str(record_id), event)
                        row[constants.redcap_repeat_instrument_col] = form_name
                        row[constants.redcap_repeat_instance_col] = instance_id
                        row.update(fields)
                        rows.append(row)

    return rows


class RedcapClient:
    """
    Record store backed by the REDCap API.

    REDCap API tokens are bound to one project; the client serves the project
    of its token only.
    """

    def __init__(
        self,
        api_url: str,
        api_token: str,
        timeout: int = 30,
        verify_ssl: bool = True,
        show_requests: bool = False,
    ):
        self.api_url = api_url
        self.api_token = api_token
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.show_requests = show_requests

        self._project: Optional[Project] = None
        self._record_id_field: Optional[str] = None

    def _request(self, content: str, **params: Any) -> requests.Response:
        data = {
            "token": self.api_token,
            "content": content,
            "format": "json",
            "returnFormat": "json",
        }
        data.update({key: value for key, value in params.items() if value is not None})

        if self.show_requests:
            console = utils.get_console()
            console.log(f"REDCap API: content={content}", style="bold blue")

        logger.debug(f"POST {self.api_url} content={content}")
        response = requests.post(
            self.api_url,
            data=data,
            timeout=self.timeout,
            verify=self.verify_ssl,
        )
        return response

    def _post(self, content: str, **params: Any) -> Any:
        """
        Posts a request to the API and returns the decoded JSON response.

        Raises:
            RedcapApiError: If the API does not respond with 200.
        """
        response = self._request(content, **params)

        if response.status_code != 200:
            logger.error(
                f"REDCap API request failed. Content: {content}, "
                f"Status code: {response.status_code}, Response: {response.text}"
            )
            raise RedcapApiError(
                f"REDCap API request for {content} failed: {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    # Metadata
    def get_record_id_field(self) -> str:
        """
        Returns the record ID field, the first field of the data dictionary.
        """
        if self._record_id_field is None:
            metadata = self._post("metadata")
            self._record_id_field = metadata[0]["field_name"]
        return self._record_id_field  # type: ignore

    def get_survey_forms(self, forms: List[str]) -> List[str]:
        """
        Returns the forms that are enabled as surveys.

        REDCap has no direct export for this; the participant list can only be
        exported for surveys.
        """
        survey_forms: List[str] = []
        for form_name in forms:
            response = self._request("participantList", instrument=form_name)
            if response.status_code == 200:
                survey_forms.append(form_name)

        return survey_forms

    def get_project(self, project_id: Union[str, int]) -> Optional[Project]:
        """
        Returns the metadata of the project of the API token.

        Args:
            project_id (Union[str, int]): The expected project ID.

        Returns:
            Optional[Project]: The project, None if the token belongs to a
                different project.
        """
        if self._project is not None:
            if str(self._project.project_id) == str(project_id):
                return self._project
            return None

        project_info = self._post("project")
        token_project_id = str(project_info["project_id"])
        if token_project_id != str(project_id):
            logger.warning(
                f"API token belongs to project {token_project_id}, not {project_id}"
            )
            return None

        longitudinal = str(project_info.get("is_longitudinal", 0)) == "1"
        has_repeating = (
            str(project_info.get("has_repeating_instruments_or_events", 0)) == "1"
        )
        surveys_enabled = str(project_info.get("surveys_enabled", 0)) == "1"

        instruments = self._post("instrument")
        form_names = [instrument["instrument_name"] for instrument in instruments]

        events_forms: Dict[str, List[str]] = {}
        if longitudinal:
            for event in self._post("event"):
                events_forms[event["unique_event_name"]] = []
            for mapping in self._post("formEventMapping"):
                events_forms.setdefault(mapping["unique_event_name"], []).append(
                    mapping["form"]
                )
        else:
            events_forms[constants.classic_event_name] = list(form_names)

        repeating_forms_events: Dict[str, Union[str, Dict[str, str]]] = {}
        if has_repeating:
            for repeating in self._post("repeatingFormsEvents"):
                event = repeating.get("event_name") or constants.classic_event_name
                form_name = repeating.get("form_name") or ""
                if form_name == "":
                    repeating_forms_events[event] = constants.repeat_whole_event
                else:
                    event_forms = repeating_forms_events.setdefault(event, {})
                    if isinstance(event_forms, dict):
                        event_forms[form_name] = repeating.get("custom_form_label", "")

        survey_forms = self.get_survey_forms(form_names) if surveys_enabled else []

        forms: Dict[str, Dict[str, Any]] = {}
        for instrument in instruments:
            form_name = instrument["instrument_name"]
            forms[form_name] = {"label": instrument.get("instrument_label")}
            if form_name in survey_forms:
                # REDCap does not export survey ids, the form name identifies the survey
                forms[form_name]["survey_id"] = form_name

        self._project = Project(
            project_id=token_project_id,
            forms=forms,
            events_forms=events_forms,
            repeating_forms_events=repeating_forms_events,
            longitudinal=longitudinal,
        )
        logger.info(
            f"Loaded metadata of project {token_project_id}: "
            f"{len(forms)} forms, {len(events_forms)} events"
        )

        return self._project

    def get_data_dictionary(
        self, project_id: Union[str, int], form_name: str
    ) -> pd.DataFrame:
        """
        Returns the data dictionary of a form.

        Args:
            project_id (Union[str, int]): The project ID.
            form_name (str): The form name.

        Returns:
            pd.DataFrame: Data Dictionary DataFrame
        """
        metadata = self._post("metadata", **indexed_params("forms", [form_name]))
        data_dictionary_df = pd.DataFrame(metadata)

        if data_dictionary_df.empty:
            data_dictionary_df = pd.DataFrame(columns=["field_name", "form_name"])

        return data_dictionary_df

    # Records
    def _require_project(self, project_id: Union[str, int]) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise RedcapApiError(f"API token does not belong to project {project_id}")
        return project

    def _export_records(
        self,
        records: Optional[List[str]],
        fields: List[str],
        event_id: Optional[str],
        filter_logic: Optional[str],
    ) -> List[Dict[str, Any]]:
        project = self._project
        record_id_field = self.get_record_id_field()

        export_fields = list(fields)
        if record_id_field not in export_fields:
            export_fields.insert(0, record_id_field)

        params: Dict[str, Any] = {
            "type": "flat",
            "rawOrLabel": "raw",
            "filterLogic": filter_logic,
        }
        params.update(indexed_params("fields", export_fields))
        if records:
            params.update(indexed_params("records", records))
        if event_id is not None and project is not None and project.longitudinal:
            params.update(indexed_params("events", [event_id]))

        return self._post("record", **params)

    def get_data(
        self,
        project_id: Union[str, int],
        records: Optional[List[str]],
        fields: List[str],
        event_id: str,
        filter_logic: Optional[str] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Exports records of one event in the nested "array" convention.

        Args:
            project_id (Union[str, int]): The project ID.
            records (Optional[List[str]]): The records, all records if None.
            fields (List[str]): The fields to export.
            event_id (str): The unique event name.
            filter_logic (Optional[str], optional): REDCap logic. Defaults to None.

        Returns:
            Dict[str, Dict[str, Any]]: The nested payload.
        """
        self._require_project(project_id)
        rows = self._export_records(records, fields, event_id, filter_logic)
        logger.debug(f"Exported {len(rows)} row(s) for event {event_id}")

        return rows_to_payload(
            rows,
            record_id_field=self.get_record_id_field(),
            default_event=event_id,
        )

    def save_data(
        self, project_id: Union[str, int], payload: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Imports a nested "array" payload.

        API errors are reported in the result rather than raised.

        Args:
            project_id (Union[str, int]): The project ID.
            payload (Dict[str, Dict[str, Any]]): The nested payload.

        Returns:
            Dict[str, Any]: {"errors": List[str], "item_count": int}
        """
        project = self.get_project(project_id)
        if project is None:
            return {
                "errors": [f"API token does not belong to project {project_id}"],
                "item_count": 0,
            }

        rows = payload_to_rows(payload, self.get_record_id_field(), project)
        response = self._request(
            "record",
            type="flat",
            overwriteBehavior="normal",
            returnContent="count",
            data=json.dumps(rows, default=str),
        )

        if response.status_code != 200:
            logger.error(
                f"Failed to import {len(rows)} row(s). Status code: "
                f"{response.status_code}, Response: {response.text}"
            )
            try:
                error = response.json().get("error", response.text)
            except ValueError:
                error = response.text
            return {"errors": [error], "item_count": 0}

        item_count = int(response.json().get("count", 0))
        return {"errors": [], "item_count": item_count}

    def evaluate_logic(
        self,
        expression: str,
        project_id: Union[str, int],
        record: str,
        event_name: Optional[str] = None,
        instance: Optional[int] = None,
        form_name: Optional[str] = None,
    ) -> bool:
        """
        Evaluates REDCap logic for a record by exporting it with the logic as filter.

        Args:
            expression (str): The REDCap logic.
            project_id (Union[str, int]): The project ID.
            record (str): The record ID.
            event_name (Optional[str], optional): The unique event name.
            instance (Optional[int], optional): The repeat instance.
            form_name (Optional[str], optional): The repeating form.

        Returns:
            bool: True if the record (instance) satisfies the logic.
        """
        self._require_project(project_id)
        rows = self._export_records(
            records=[str(record)],
            fields=[],
            event_id=event_name,
            filter_logic=expression,
        )

        if instance is None:
            return len(rows) > 0

        for row in rows:
            row_instance = row.get(constants.redcap_repeat_instance_col) or 1
            row_form = row.get(constants.redcap_repeat_instrument_col) or ""
            if form_name is not None and row_form not in (form_name, ""):
                continue
            if int(row_instance) == int(instance):
                return True

        return False

    def get_survey_link(
        self,
        record: str,
        form_name: str,
        event_id: str,
        instance_id: int,
        project_id: Union[str, int],
    ) -> str:
        """
        Returns the survey link of a record / instance.

        Raises:
            RedcapApiError: If the API does not return a link.
        """
        project = self.get_project(project_id)

        params: Dict[str, Any] = {
            "instrument": form_name,
            "record": record,
            "repeat_instance": instance_id,
        }
        if project is not None and project.longitudinal:
            params["event"] = event_id

        response = self._request("surveyLink", **params)
        if response.status_code != 200:
            logger.error(
                f"Failed to get survey link. Status code: {response.status_code}, "
                f"Response: {response.text}"
            )
            raise RedcapApiError(
                f"Survey link for {form_name} of record {record} not available",
                status_code=response.status_code,
            )

        return response.text.strip()
