"""
Contract of the record store the form data accessor reads from and writes to.

Record payloads use the nested "array" convention of REDCap:

    {
        record: {
            event: {field: value, ...},
            "repeat_instances": {
                event: {form: {instance: {field: value, ...}}},
            },
        },
    }
"""

from typing import Any, Dict, List, Optional, Protocol

import pandas as pd

from repeatforms.models.project import Project


class RecordStore(Protocol):
    def get_project(self, project_id: str) -> Optional[Project]:
        """
        Returns the project metadata, or None if the project cannot be resolved.
        """
        ...

    def get_data_dictionary(self, project_id: str, form_name: str) -> pd.DataFrame:
        """
        Returns the data dictionary rows of a form.

        The DataFrame has at least a `field_name` column.
        """
        ...

    def get_data(
        self,
        project_id: str,
        records: Optional[List[str]],
        fields: List[str],
        event_id: str,
        filter_logic: Optional[str] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Returns the data of the records (all records if None) for one event.
        """
        ...

    def save_data(
        self, project_id: str, payload: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Writes the payload and returns {"errors": ..., "item_count": int}.
        """
        ...

    def evaluate_logic(
        self,
        expression: str,
        project_id: str,
        record: str,
        event_name: Optional[str] = None,
        instance: Optional[int] = None,
        form_name: Optional[str] = None,
    ) -> bool:
        ...

    def get_survey_link(
        self,
        record: str,
        form_name: str,
        event_id: str,
        instance_id: int,
        project_id: str,
    ) -> str:
        ...
