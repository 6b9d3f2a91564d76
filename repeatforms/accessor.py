"""
Uniform access to the data of one REDCap form.

Depending on the project setup a form is a singleton in an event, repeats on
its own within the event (repeating instrument), or repeats along with the
whole event (repeating event). REDCap returns the three variants in different
shapes:

    [record]
        [event]                     => [form data]

    or, for repeating forms / events,

    [record]
        "repeat_instances"
            [event]
                [form]
                    [instance]      => [form data]

The accessor returns the data without the record and event context:

    singleton:  {field: value, ...}
    repeating:  {instance: {field: value, ...}, ...}

Instance ids are positive integers everywhere. REDCap may leave the index of
the first instance blank; that is resolved when data is loaded.
"""

import json
import logging
from collections.abc import Mapping
from numbers import Integral
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

import pandas as pd

from repeatforms import constants
from repeatforms.errors import (
    ConfigurationError,
    FormNotEnabledError,
    InstanceNotFoundError,
    InvalidInputError,
    MissingEventError,
    NotASurveyError,
    NotFoundError,
    SaveError,
    WrongClassificationError,
)
from repeatforms.models.form import Form, RepeatType
from repeatforms.models.project import Project
from repeatforms.models.store import RecordStore

logger = logging.getLogger(__name__)

FieldData = Dict[str, Any]
InstanceData = Dict[int, FieldData]


def get_repeat_type(project: Project, event_id: str, form_name: str) -> RepeatType:
    """
    Returns how the form repeats in the event.

    A form that repeats on its own takes precedence over a repeating event.

    Args:
        project (Project): The project metadata.
        event_id (str): The event ID.
        form_name (str): The form name.

    Returns:
        RepeatType: The repeat type of the form in the event.
    """
    if project.is_repeating_form(event_id, form_name):
        return RepeatType.REPEATING_INSTRUMENT
    if project.is_repeating_event(event_id):
        return RepeatType.REPEATING_EVENT
    return RepeatType.SINGLETON


def get_events_enabled(project: Project, form_name: str) -> Dict[str, RepeatType]:
    """
    Returns the events the form is enabled in, with the repeat type of each.

    Args:
        project (Project): The project metadata.
        form_name (str): The form name.

    Returns:
        Dict[str, RepeatType]: Event ID to repeat type, in event order.
    """
    events_enabled: Dict[str, RepeatType] = {}
    for event_id, forms in project.events_forms.items():
        if form_name in forms:
            events_enabled[event_id] = get_repeat_type(project, event_id, form_name)

    return events_enabled


def parse_instance_id(instance_id: Any) -> int:
    """
    Validates an instance id.

    Integers and strings of digits are accepted. Anything else, including
    booleans and values below 1, is rejected.

    Args:
        instance_id (Any): The instance id to validate.

    Returns:
        int: The instance id.

    Raises:
        InvalidInputError: If the instance id is malformed.
    """
    if isinstance(instance_id, bool):
        raise InvalidInputError(f"Instance ID must be an integer, got {instance_id!r}")

    if isinstance(instance_id, Integral):
        value = int(instance_id)
    elif isinstance(instance_id, str) and instance_id.isdecimal():
        value = int(instance_id)
    else:
        raise InvalidInputError(f"Instance ID must be an integer, got {instance_id!r}")

    if value < 1:
        raise InvalidInputError(f"Instance ID must be 1 or greater, got {value}")

    return value


def normalize_instances(instances: Mapping) -> InstanceData:
    """
    Converts the instances returned by the record store to integer keys.

    The first instance can be stored without an index (None or ""), it
    becomes instance 1.

    Args:
        instances (Mapping): Instance index to field data, as returned by the store.

    Returns:
        InstanceData: Instance id to field data.
    """
    normalized: InstanceData = {}
    for key, fields in instances.items():
        if key is None or key == "":
            instance_id = 1
        else:
            instance_id = parse_instance_id(key)
        normalized.setdefault(instance_id, {}).update(fields)

    return normalized


def validate_fields(data: Any) -> FieldData:
    """
    Checks that the data is a flat mapping of fields to values.

    Raises:
        InvalidInputError: If the data is not a mapping or is keyed by instance.
    """
    if not isinstance(data, Mapping):
        raise InvalidInputError(
            f"Data must be a mapping of fields to values, got {type(data).__name__}"
        )
    for field, value in data.items():
        if isinstance(value, Mapping):
            raise InvalidInputError(
                f"Data must be a flat mapping of fields to values, "
                f"found nested data under {field!r}"
            )

    return dict(data)


def validate_instances(data: Any) -> InstanceData:
    """
    Checks that the data maps instance ids to flat field data.

    Raises:
        InvalidInputError: If the data is not keyed by valid instance ids.
    """
    if not isinstance(data, Mapping):
        raise InvalidInputError(
            f"Data must be a mapping of instance ids to fields, got {type(data).__name__}"
        )

    instances: InstanceData = {}
    for key, fields in data.items():
        instances[parse_instance_id(key)] = validate_fields(fields)

    return instances


def _contains(fields: FieldData, needle: Mapping) -> bool:
    # REDCap stores every value as text
    for key, value in needle.items():
        if key not in fields or str(fields[key]) != str(value):
            return False
    return True


def _as_record_list(records: Union[None, str, int, Iterable]) -> Optional[List[str]]:
    if records is None:
        return None
    if isinstance(records, (str, int)):
        return [str(records)]

    record_list = [str(record) for record in records]
    if len(record_list) == 0:
        return None
    return record_list


class FormDataAccessor:
    """
    Reads, searches and writes the data of one form of a project.

    The repeat type of the form in each event is discovered once, when the
    accessor is constructed. Loaded data is cached for the lifetime of the
    accessor; later loads are merged into the cache. Changes made to the
    project metadata or to the records by someone else are not picked up.

    The accessor holds no locks, share it between threads only with
    external synchronization.

    Attributes:
        store (RecordStore): The record store.
        project (Project): The project metadata.
        project_id (str): The ID of the project.
        form (Form): The form metadata.
    """

    def __init__(
        self,
        store: RecordStore,
        project_id: str,
        form_name: str,
        include_form_status_field: bool = True,
    ):
        """
        Args:
            store (RecordStore): The record store.
            project_id (str): The ID of the project.
            form_name (str): The name of the form.
            include_form_status_field (bool, optional): Whether to include
                the `<form>_complete` field. Defaults to True.

        Raises:
            ConfigurationError: If the project or the form is not valid.
        """
        self.store = store

        project = store.get_project(project_id)
        if project is None or str(project.project_id) != str(project_id):
            msg = f"Unable to determine a valid project for {project_id}"
            logger.error(msg)
            raise ConfigurationError(msg)
        self.project = project
        self.project_id = project_id

        if form_name not in project.forms:
            msg = f"Form {form_name} is not valid in project {project_id}"
            logger.error(msg)
            raise ConfigurationError(msg)

        self._data_dictionary = store.get_data_dictionary(project_id, form_name)
        if "field_name" not in self._data_dictionary.columns:
            msg = f"Data dictionary of {form_name} has no field_name column"
            logger.error(msg)
            raise ConfigurationError(msg)

        fields: List[str] = self._data_dictionary["field_name"].tolist()
        form_status_field = f"{form_name}{constants.form_complete_suffix}"
        if include_form_status_field and form_status_field not in fields:
            fields.append(form_status_field)

        survey_id = project.forms[form_name].get("survey_id")
        self.form = Form(
            project_id=project_id,
            form_name=form_name,
            fields=tuple(fields),
            survey_id=survey_id,
        )

        self._events_enabled = get_events_enabled(project, form_name)

        # record -> event -> field data (singleton) or instance data (repeating)
        self._data: Dict[str, Dict[str, Any]] = {}
        # (record, event) pairs returned by an unfiltered load
        self._loaded: Set[Tuple[str, str]] = set()
        # (record, event) pairs only returned by filtered loads, their cached
        # instances can be a subset of the stored ones
        self._partial: Set[Tuple[str, str]] = set()
        # events for which all records were loaded
        self._exhaustive_events: Set[str] = set()

        logger.debug(
            f"Constructed accessor for {form_name} in project {project_id}: "
            f"{len(fields)} fields, "
            f"{len(self._events_enabled)} events enabled"
        )

    # Metadata
    @property
    def form_name(self) -> str:
        return self.form.form_name

    @property
    def fields(self) -> List[str]:
        return list(self.form.fields)

    @property
    def is_survey(self) -> bool:
        return self.form.is_survey

    @property
    def survey_id(self) -> Optional[str]:
        return self.form.survey_id

    @property
    def events_enabled(self) -> Dict[str, RepeatType]:
        return dict(self._events_enabled)

    @property
    def all_records_loaded(self) -> bool:
        """
        True once all records of an event were loaded without a filter.
        """
        return len(self._exhaustive_events) > 0

    def get_data_dictionary(self) -> pd.DataFrame:
        """
        Returns the data dictionary of the form.

        Returns:
            pd.DataFrame: The data dictionary rows of the form.
        """
        return self._data_dictionary.copy()

    def get_event_type(self, event_id: str) -> Optional[RepeatType]:
        """
        Returns the repeat type of the form in the event.

        Args:
            event_id (str): The event ID.

        Returns:
            Optional[RepeatType]: The repeat type, None if the form is not
                enabled in the event.
        """
        return self._events_enabled.get(event_id)

    def is_repeating(self, event_id: str) -> bool:
        event_type = self.get_event_type(event_id)
        return event_type is not None and event_type.is_repeating

    def resolve_event(self, event_id: Optional[str] = None) -> str:
        """
        Verifies the event is valid for the form.

        Classic projects default to their only event.

        Args:
            event_id (Optional[str], optional): The event ID. Defaults to None.

        Returns:
            str: The event ID.

        Raises:
            MissingEventError: If no event is given for a longitudinal project.
            FormNotEnabledError: If the form is not enabled in the event.
        """
        if event_id is None or event_id == "":
            if self.project.longitudinal:
                raise MissingEventError(
                    f"An event is required for longitudinal project {self.project_id}"
                )
            event_id = self.project.first_event_id

        if event_id not in self._events_enabled:
            raise FormNotEnabledError(
                f"{self.form_name} is not enabled in event {event_id}"
            )

        return event_id  # type: ignore

    def _require_repeating(self, event_id: str, operation: str) -> None:
        if not self._events_enabled[event_id].is_repeating:
            raise WrongClassificationError(
                f"{operation} requires a repeating form, "
                f"{self.form_name} is not repeating in event {event_id}"
            )

    # Load
    def load(
        self,
        records: Union[None, str, int, Iterable] = None,
        event_id: Optional[str] = None,
        filter_logic: Optional[str] = None,
    ) -> int:
        """
        Loads form data from the record store into the cache.

        REDCap applies filter logic to each row, so a filtered load can
        return some of the instances of a record only. Rows returned by a
        filtered load are cached, but a record is only treated as complete
        after an unfiltered load.

        Args:
            records (Union[None, str, int, Iterable], optional): A record or a
                list of records. All records are loaded if None.
            event_id (Optional[str], optional): The event ID. Defaults to None.
            filter_logic (Optional[str], optional): REDCap logic passed on to
                the store. Defaults to None.

        Returns:
            int: The number of records returned by the store.
        """
        event_id = self.resolve_event(event_id)
        record_ids = _as_record_list(records)
        repeat_type = self._events_enabled[event_id]

        logger.debug(
            f"Loading {self.form_name} in event {event_id} "
            f"({repeat_type.name}) for "
            f"{'all' if record_ids is None else len(record_ids)} record(s)"
        )
        query = self.store.get_data(
            self.project_id,
            record_ids,
            list(self.form.fields),
            event_id,
            filter_logic,
        )

        complete = filter_logic is None
        if record_ids is None and complete:
            self._exhaustive_events.add(event_id)

        for record, record_data in query.items():
            record_id = str(record)
            if complete:
                self._loaded.add((record_id, event_id))
                self._partial.discard((record_id, event_id))
            elif not self._is_complete(record_id, event_id):
                self._partial.add((record_id, event_id))

            if repeat_type.is_repeating:
                instances = self._extract_instances(record_data, event_id)
                if instances is None:
                    continue
                cached = self._data.setdefault(record_id, {}).setdefault(event_id, {})
                for instance_id, fields in instances.items():
                    cached.setdefault(instance_id, {}).update(fields)
            else:
                event_data = record_data.get(event_id)
                if not event_data:
                    continue
                cached = self._data.setdefault(record_id, {}).setdefault(event_id, {})
                cached.update(event_data)

        logger.debug(f"Loaded {len(query)} record(s) for {self.form_name}")
        return len(query)

    def _extract_instances(
        self, record_data: Mapping, event_id: str
    ) -> Optional[InstanceData]:
        repeat_instances = record_data.get(constants.repeat_instances_key) or {}
        event_instances = repeat_instances.get(event_id) or {}

        instances = event_instances.get(self.form_name)
        if (
            instances is None
            and self._events_enabled[event_id] is RepeatType.REPEATING_EVENT
        ):
            instances = event_instances.get(constants.repeating_event_form_key)

        if not instances:
            return None
        return normalize_instances(instances)

    def _is_complete(self, record_id: str, event_id: str) -> bool:
        return (
            record_id,
            event_id,
        ) in self._loaded or event_id in self._exhaustive_events

    def _is_cached(self, record_id: str, event_id: str) -> bool:
        return (
            self._is_complete(record_id, event_id)
            or (record_id, event_id) in self._partial
        )

    def _fetch(
        self, record_id: str, event_id: str, filter_logic: Optional[str] = None
    ) -> Any:
        # partial views are reloaded, filtered reads load the matching rows only
        if not self._is_complete(record_id, event_id):
            self.load(record_id, event_id, filter_logic)

        events = self._data.get(record_id, {})
        if event_id in events:
            data = events[event_id]
            if self._events_enabled[event_id].is_repeating:
                return {
                    instance_id: dict(fields) for instance_id, fields in data.items()
                }
            return dict(data)

        if self._is_cached(record_id, event_id):
            return {}

        raise NotFoundError(f"Record {record_id} in event {event_id} does not exist")

    # Read
    def get_all_instances(
        self, record: Union[str, int], event_id: Optional[str] = None
    ) -> Union[InstanceData, FieldData]:
        """
        Returns all the data of the form for a record.

        Data is loaded if it is not cached yet.

        Args:
            record (Union[str, int]): The record ID.
            event_id (Optional[str], optional): The event ID. Defaults to None.

        Returns:
            Union[InstanceData, FieldData]: Instance id to field data for
                repeating forms, field data for singletons. Empty if the record
                has no data for this form.

        Raises:
            NotFoundError: If the record does not exist.
        """
        event_id = self.resolve_event(event_id)
        return self._fetch(str(record), event_id)

    def get(
        self,
        record: Union[str, int],
        event_id: Optional[str] = None,
        instance_id: Optional[Union[int, str]] = None,
        filter_logic: Optional[str] = None,
    ) -> Union[InstanceData, FieldData]:
        """
        Returns the data of one instance, or all instances if no instance is given.

        For singletons the instance is ignored.

        Args:
            record (Union[str, int]): The record ID.
            event_id (Optional[str], optional): The event ID. Defaults to None.
            instance_id (Optional[Union[int, str]], optional): The instance ID.
                Defaults to None.
            filter_logic (Optional[str], optional): REDCap logic used if the
                data has to be loaded. Instances it excludes are left out
                unless they were loaded before. Defaults to None.

        Returns:
            Union[InstanceData, FieldData]: The requested data.

        Raises:
            NotFoundError: If the record does not exist.
            InstanceNotFoundError: If the instance does not exist.
        """
        event_id = self.resolve_event(event_id)
        record_id = str(record)
        data = self._fetch(record_id, event_id, filter_logic)

        if not self._events_enabled[event_id].is_repeating:
            return data

        if instance_id is None:
            return data

        instance_id = parse_instance_id(instance_id)
        if instance_id not in data:
            raise InstanceNotFoundError(
                f"Instance {instance_id} is not valid for record {record_id} "
                f"in event {event_id}"
            )

        return data[instance_id]

    def get_instance_ids(
        self, record: Union[str, int], event_id: Optional[str] = None
    ) -> List[int]:
        """
        Returns the instance ids of a record, sorted numerically.

        Raises:
            WrongClassificationError: If the form is not repeating in the event.
        """
        event_id = self.resolve_event(event_id)
        self._require_repeating(event_id, "get_instance_ids")
        return sorted(self._fetch(str(record), event_id).keys())

    def first_instance_id(
        self, record: Union[str, int], event_id: Optional[str] = None
    ) -> Optional[int]:
        """
        Returns the lowest instance id of a record, None if there are no instances.
        """
        instance_ids = self.get_instance_ids(record, event_id)
        if len(instance_ids) == 0:
            return None
        return instance_ids[0]

    def last_instance_id(
        self, record: Union[str, int], event_id: Optional[str] = None
    ) -> Optional[int]:
        """
        Returns the highest instance id of a record, None if there are no instances.
        """
        instance_ids = self.get_instance_ids(record, event_id)
        if len(instance_ids) == 0:
            return None
        return instance_ids[-1]

    def next_instance_id(
        self, record: Union[str, int], event_id: Optional[str] = None
    ) -> int:
        """
        Returns the instance id following the highest existing one, 1 if none exist.

        Gaps in the existing instance ids are not reused.
        """
        last_instance_id = self.last_instance_id(record, event_id)
        if last_instance_id is None:
            return 1
        return last_instance_id + 1

    def exists(
        self,
        needle: Mapping,
        record: Union[str, int],
        event_id: Optional[str] = None,
    ) -> Optional[int]:
        """
        Looks for an instance containing the supplied data.

        The needle does not need to hold all the fields of the instance, just
        the ones to search on. Data is not loaded by this method, call `load`
        first; after a filtered load only the rows it returned are searched.

        When several instances match, the lowest instance id is returned.

        Args:
            needle (Mapping): The field values to look for.
            record (Union[str, int]): The record ID.
            event_id (Optional[str], optional): The event ID. Defaults to None.

        Returns:
            Optional[int]: The lowest matching instance id (1 for singletons),
                None if no instance matches.

        Raises:
            NotFoundError: If the data of the record was not loaded.
        """
        event_id = self.resolve_event(event_id)
        record_id = str(record)

        if not isinstance(needle, Mapping):
            raise InvalidInputError(
                f"Search data must be a mapping, got {type(needle).__name__}"
            )

        if not self._is_cached(record_id, event_id):
            raise NotFoundError(
                f"Data for record {record_id} in event {event_id} has not been loaded"
            )

        data = self._data.get(record_id, {}).get(event_id, {})
        if self._events_enabled[event_id].is_repeating:
            candidates = sorted(data.items())
        elif data:
            candidates = [(1, data)]
        else:
            candidates = []

        for instance_id, fields in candidates:
            if _contains(fields, needle):
                return instance_id

        logger.debug(f"No instance of {self.form_name} matches {dict(needle)}")
        return None

    def get_survey_url(
        self,
        record: Union[str, int],
        instance_id: Union[int, str] = 1,
        event_id: Optional[str] = None,
    ) -> str:
        """
        Returns the survey url of an instance of the form.

        Raises:
            NotASurveyError: If the form is not a survey.
        """
        if not self.is_survey:
            raise NotASurveyError(
                f"{self.form_name} is not enabled as a survey "
                f"in project {self.project_id}"
            )

        event_id = self.resolve_event(event_id)
        instance_id = parse_instance_id(instance_id)

        return self.store.get_survey_link(
            str(record), self.form_name, event_id, instance_id, self.project_id
        )

    # Write
    def save(
        self,
        record: Union[str, int],
        data: Mapping,
        event_id: Optional[str] = None,
        filter_logic: Optional[str] = None,
    ) -> int:
        """
        Saves the data of the form for a record.

        For singletons the data maps fields to values. For repeating forms the
        data maps instance ids to field data; use `save_instance` to save a
        single instance.

        Args:
            record (Union[str, int]): The record ID.
            data (Mapping): The data to save.
            event_id (Optional[str], optional): The event ID. Defaults to None.
            filter_logic (Optional[str], optional): Accepted for symmetry with
                `get` and ignored, writes are never filtered. Defaults to None.

        Returns:
            int: The number of items written by the store.

        Raises:
            InvalidInputError: If the data does not have the expected shape.
            SaveError: If the store reported errors or wrote nothing.
        """
        event_id = self.resolve_event(event_id)
        record_id = str(record)

        if self._events_enabled[event_id].is_repeating:
            instances = validate_instances(data)
            payload = {
                record_id: {
                    constants.repeat_instances_key: {
                        event_id: {self.form_name: instances}
                    }
                }
            }
            item_count = self._write(record_id, event_id, payload)
            self._merge_saved(record_id, event_id, instances)
        else:
            fields = validate_fields(data)
            payload = {record_id: {event_id: fields}}
            item_count = self._write(record_id, event_id, payload)
            self._merge_saved(record_id, event_id, fields)

        return item_count

    def save_instance(
        self,
        record: Union[str, int],
        data: Mapping,
        instance_id: Union[int, str],
        event_id: Optional[str] = None,
    ) -> int:
        """
        Saves one instance of a repeating form, overwriting existing values.

        Args:
            record (Union[str, int]): The record ID.
            data (Mapping): Field data of the instance.
            instance_id (Union[int, str]): The instance ID, 1 or greater.
            event_id (Optional[str], optional): The event ID. Defaults to None.

        Returns:
            int: The number of items written by the store.

        Raises:
            WrongClassificationError: If the form is not repeating in the event.
            InvalidInputError: If the instance ID or the data is malformed.
            SaveError: If the store reported errors or wrote nothing.
        """
        event_id = self.resolve_event(event_id)
        self._require_repeating(event_id, "save_instance")

        record_id = str(record)
        instance_id = parse_instance_id(instance_id)
        fields = validate_fields(data)

        payload = {
            record_id: {
                constants.repeat_instances_key: {
                    event_id: {self.form_name: {instance_id: fields}}
                }
            }
        }
        item_count = self._write(record_id, event_id, payload)
        self._merge_saved(record_id, event_id, {instance_id: fields})

        return item_count

    def delete_instance(
        self,
        record: Union[str, int],
        instance_id: Union[int, str],
        event_id: Optional[str] = None,
    ) -> None:
        """
        Not supported.

        Deleting an instance also has to clean up attachments, locks,
        e-signatures and survey responses, which is left to REDCap.

        Raises:
            NotImplementedError: Always.
        """
        raise NotImplementedError(
            f"Deleting instance {instance_id} of {self.form_name} for record "
            f"{record} is not supported, use the REDCap record deletion instead"
        )

    def _write(
        self, record_id: str, event_id: str, payload: Dict[str, Dict[str, Any]]
    ) -> int:
        repeat_type = self._events_enabled[event_id]
        logger.debug(
            f"Saving {self.form_name} for record {record_id} in event {event_id} "
            f"({repeat_type.name})"
        )

        result = self.store.save_data(self.project_id, payload)
        logger.debug(f"Save result: {result}")

        result = result or {}
        errors = result.get("errors")
        item_count = result.get("item_count") or 0

        if errors or int(item_count) <= 0:
            msg = (
                f"Problem saving data for record {record_id} in event {event_id} "
                f"(type = {repeat_type.name}) on project {self.project_id}. "
                f"Returned: {json.dumps(result, default=str)}"
            )
            logger.error(msg)
            raise SaveError(msg, result)

        return int(item_count)

    def _merge_saved(self, record_id: str, event_id: str, data: Dict) -> None:
        # Records that were never loaded are read from the store next time,
        # a partial view stays partial.
        if self._is_complete(record_id, event_id):
            self._loaded.add((record_id, event_id))
        elif (record_id, event_id) not in self._partial:
            return

        cached = self._data.setdefault(record_id, {}).setdefault(event_id, {})
        if self._events_enabled[event_id].is_repeating:
            for instance_id, fields in data.items():
                cached.setdefault(instance_id, {}).update(fields)
        else:
            cached.update(data)

    # Export
    def to_dataframe(self, event_id: Optional[str] = None) -> pd.DataFrame:
        """
        Returns the loaded data of an event as a DataFrame.

        One row per record (singletons) or per record and instance (repeating
        forms). Only data already in the cache is included.

        Args:
            event_id (Optional[str], optional): The event ID. Defaults to None.

        Returns:
            pd.DataFrame: `record_id`, `event_id` and `instance_id` columns,
                followed by the fields of the form.
        """
        event_id = self.resolve_event(event_id)
        repeating = self._events_enabled[event_id].is_repeating

        rows: List[Dict[str, Any]] = []
        for record_id, events in self._data.items():
            if event_id not in events:
                continue
            data = events[event_id]
            if repeating:
                for instance_id in sorted(data):
                    rows.append(
                        {
                            **data[instance_id],
                            "record_id": record_id,
                            "event_id": event_id,
                            "instance_id": instance_id,
                        }
                    )
            else:
                rows.append(
                    {
                        **data,
                        "record_id": record_id,
                        "event_id": event_id,
                        "instance_id": None,
                    }
                )

        id_cols = constants.dataframe_id_cols
        if len(rows) == 0:
            return pd.DataFrame(columns=id_cols)

        df = pd.DataFrame(rows)
        field_cols = [
            col for col in self.form.fields if col in df.columns and col not in id_cols
        ]
        other_cols = [
            col for col in df.columns if col not in id_cols and col not in field_cols
        ]

        return df[id_cols + field_cols + other_cols]

    def __str__(self):
        return f"FormDataAccessor({self.form})"

    def __repr__(self):
        return self.__str__()
