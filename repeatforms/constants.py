"""
This module contains constants describing the REDCap data formats.
"""

from typing import List

# Key under which the nested "array" payload keeps repeating data:
#   {record: {"repeat_instances": {event: {form: {instance: fields}}}}}
repeat_instances_key: str = "repeat_instances"

# REDCap files the instances of a repeating event under a blank form name
repeating_event_form_key: str = ""

# Marker for an event that repeats as a whole
repeat_whole_event: str = "WHOLE"

# Suffix of the synthetic completion status field of every form
form_complete_suffix: str = "_complete"

# Classic (non-longitudinal) projects have a single implicit event
classic_event_name: str = "event_1_arm_1"

# Columns added by REDCap to flat record exports / imports
redcap_event_name_col: str = "redcap_event_name"
redcap_repeat_instrument_col: str = "redcap_repeat_instrument"
redcap_repeat_instance_col: str = "redcap_repeat_instance"

redcap_meta_cols: List[str] = [
    redcap_event_name_col,
    redcap_repeat_instrument_col,
    redcap_repeat_instance_col,
    "redcap_data_access_group",
    "redcap_survey_identifier",
]

# Identifier columns of the tabular export of loaded form data
dataframe_id_cols: List[str] = ["record_id", "event_id", "instance_id"]
