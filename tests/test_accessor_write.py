"""Saving form data."""

import pytest

from conftest import CLASSIC_PID, ENROLLMENT, FOLLOWUP, LONGITUDINAL_PID, VISIT
from repeatforms import constants
from repeatforms.accessor import FormDataAccessor
from repeatforms.errors import (
    InstanceNotFoundError,
    InvalidInputError,
    SaveError,
    WrongClassificationError,
)


@pytest.fixture
def medications(empty_store) -> FormDataAccessor:
    return FormDataAccessor(empty_store, LONGITUDINAL_PID, "medications")


# --- save -----------------------------------------------------------------------------

def test_save_singleton_then_read(empty_store):
    demographics = FormDataAccessor(empty_store, LONGITUDINAL_PID, "demographics")
    data = {"record_id": "7", "dob": "2001-02-03", "sex": "2"}

    assert demographics.save("7", data, ENROLLMENT) == 3
    assert empty_store.calls[-1] == ("save_data", {"7": {ENROLLMENT: data}})
    assert demographics.get_all_instances("7", ENROLLMENT) == data


def test_save_ignores_filter_logic(empty_store):
    demographics = FormDataAccessor(empty_store, LONGITUDINAL_PID, "demographics")
    data = {"dob": "2001-02-03"}

    demographics.save("7", data, ENROLLMENT, filter_logic="[sex] = '2'")

    assert empty_store.calls[-1] == ("save_data", {"7": {ENROLLMENT: data}})


def test_save_repeating_then_read(empty_store, medications):
    a = {"med_name": "aspirin", "med_dose": "100"}
    b = {"med_name": "ibuprofen", "med_dose": "200"}

    medications.save("7", {1: a, 2: b}, ENROLLMENT)

    assert empty_store.calls[-1] == (
        "save_data",
        {
            "7": {
                constants.repeat_instances_key: {
                    ENROLLMENT: {"medications": {1: a, 2: b}}
                }
            }
        },
    )
    assert medications.get_all_instances("7", ENROLLMENT) == {1: a, 2: b}
    assert medications.get("7", ENROLLMENT, instance_id=2) == b
    with pytest.raises(InstanceNotFoundError):
        medications.get("7", ENROLLMENT, instance_id=3)


def test_save_repeating_event_uses_form_name(empty_store):
    vitals = FormDataAccessor(empty_store, LONGITUDINAL_PID, "vitals")

    vitals.save("7", {"2": {"weight": "80"}}, FOLLOWUP)

    payload = empty_store.calls[-1][1]
    assert payload["7"][constants.repeat_instances_key][FOLLOWUP] == {
        "vitals": {2: {"weight": "80"}}
    }


def test_save_repeating_requires_instance_keys(empty_store, medications):
    with pytest.raises(InvalidInputError):
        medications.save("7", {"med_name": "aspirin"}, ENROLLMENT)
    with pytest.raises(InvalidInputError):
        medications.save("7", {0: {"med_name": "aspirin"}}, ENROLLMENT)

    assert "save_data" not in empty_store.call_names()


def test_save_singleton_requires_flat_data(empty_store, medications):
    with pytest.raises(InvalidInputError):
        medications.save("7", {1: {"med_name": "aspirin"}}, VISIT)
    with pytest.raises(InvalidInputError):
        medications.save("7", ["aspirin"], VISIT)

    assert "save_data" not in empty_store.call_names()


def test_save_errors_raise_save_error(empty_store, medications):
    result = {"errors": ["med_dose is not a number"], "item_count": 1}
    empty_store.save_results.append(result)

    with pytest.raises(SaveError) as excinfo:
        medications.save("7", {"med_name": "x", "med_dose": "y"}, VISIT)

    assert excinfo.value.result == result
    assert "med_dose is not a number" in str(excinfo.value)


def test_zero_items_written_is_a_save_error(empty_store, medications):
    empty_store.save_results.append({"item_count": 0})

    with pytest.raises(SaveError):
        medications.save("7", {"med_name": "x"}, VISIT)


def test_empty_result_is_a_save_error(empty_store, medications):
    empty_store.save_results.append({})

    with pytest.raises(SaveError) as excinfo:
        medications.save("7", {"med_name": "x"}, VISIT)

    assert excinfo.value.result == {}


def test_save_in_classic_project_uses_only_event(empty_store):
    medications = FormDataAccessor(empty_store, CLASSIC_PID, "medications")

    medications.save_instance("1", {"med_name": "aspirin"}, 1)

    payload = empty_store.calls[-1][1]
    assert payload["1"][constants.repeat_instances_key] == {
        constants.classic_event_name: {"medications": {1: {"med_name": "aspirin"}}}
    }
    assert medications.next_instance_id("1") == 2


# --- save_instance ----------------------------------------------------------------------

def test_save_instance(empty_store, medications):
    assert medications.save_instance(7, {"med_name": "aspirin"}, 3, ENROLLMENT) == 1

    assert empty_store.calls[-1] == (
        "save_data",
        {
            "7": {
                constants.repeat_instances_key: {
                    ENROLLMENT: {"medications": {3: {"med_name": "aspirin"}}}
                }
            }
        },
    )


def test_save_instance_accepts_digit_strings(empty_store, medications):
    medications.save_instance("7", {"med_name": "aspirin"}, "4", ENROLLMENT)

    payload = empty_store.calls[-1][1]
    assert list(payload["7"][constants.repeat_instances_key][ENROLLMENT]["medications"]) == [4]


@pytest.mark.parametrize("instance_id", [0, -1, "0", "-1", "2a", "", 1.5, None, True])
def test_save_instance_rejects_invalid_instance_ids(empty_store, medications, instance_id):
    with pytest.raises(InvalidInputError):
        medications.save_instance("7", {"med_name": "aspirin"}, instance_id, ENROLLMENT)

    assert "save_data" not in empty_store.call_names()


def test_save_instance_rejects_instance_keyed_data(empty_store, medications):
    with pytest.raises(InvalidInputError):
        medications.save_instance("7", {1: {"med_name": "aspirin"}}, 1, ENROLLMENT)
    with pytest.raises(InvalidInputError):
        medications.save_instance("7", "aspirin", 1, ENROLLMENT)

    assert "save_data" not in empty_store.call_names()


def test_save_instance_on_singleton(empty_store, medications):
    with pytest.raises(WrongClassificationError):
        medications.save_instance("7", {"med_name": "aspirin"}, 1, VISIT)

    assert "save_data" not in empty_store.call_names()


def test_save_instance_overwrites(empty_store, medications):
    medications.save_instance("7", {"med_name": "aspirin", "med_dose": "1"}, 1, ENROLLMENT)
    medications.save_instance("7", {"med_dose": "2"}, 1, ENROLLMENT)

    assert medications.get("7", ENROLLMENT, instance_id=1) == {
        "med_name": "aspirin",
        "med_dose": "2",
    }


# --- Cache after writes ---------------------------------------------------------------

def test_save_updates_loaded_data(store):
    medications = FormDataAccessor(store, LONGITUDINAL_PID, "medications")
    medications.load("1", ENROLLMENT)
    loads = store.call_names().count("get_data")

    next_instance = medications.next_instance_id("1", ENROLLMENT)
    medications.save_instance("1", {"med_name": "naproxen"}, next_instance, ENROLLMENT)

    assert medications.get("1", ENROLLMENT, instance_id=6) == {"med_name": "naproxen"}
    assert medications.last_instance_id("1", ENROLLMENT) == 6
    assert store.call_names().count("get_data") == loads


def test_save_of_unloaded_record_reads_from_the_store(store):
    medications = FormDataAccessor(store, LONGITUDINAL_PID, "medications")

    medications.save_instance("1", {"med_name": "naproxen"}, 6, ENROLLMENT)

    assert "get_data" not in store.call_names()
    assert sorted(medications.get_all_instances("1", ENROLLMENT)) == [1, 2, 5, 6]


def test_next_instance_after_filtered_read_keeps_existing_instances(store):
    medications = FormDataAccessor(store, LONGITUDINAL_PID, "medications")
    medications.get("1", ENROLLMENT, instance_id=1, filter_logic="[med_dose] = '100'")

    next_instance = medications.next_instance_id("1", ENROLLMENT)
    medications.save_instance("1", {"med_name": "naproxen"}, next_instance, ENROLLMENT)

    stored = store.records["1"][constants.repeat_instances_key][ENROLLMENT]["medications"]
    assert next_instance == 6
    assert stored["2"] == {"med_name": "ibuprofen", "med_dose": "200"}
    assert stored[6] == {"med_name": "naproxen"}


def test_save_into_filtered_view_stays_partial(store):
    medications = FormDataAccessor(store, LONGITUDINAL_PID, "medications")
    medications.load("1", ENROLLMENT, "[med_dose] = '300'")

    medications.save_instance("1", {"med_name": "naproxen"}, 6, ENROLLMENT)

    assert medications.exists({"med_name": "naproxen"}, "1", ENROLLMENT) == 6
    assert medications.get_instance_ids("1", ENROLLMENT) == [1, 2, 5, 6]
    assert store.calls[-1] == ("get_data", ["1"], ENROLLMENT, None)


def test_save_after_exhaustive_load_updates_cache(store):
    demographics = FormDataAccessor(store, LONGITUDINAL_PID, "demographics")
    demographics.load(event_id=ENROLLMENT)

    demographics.save("8", {"dob": "2000-01-01"}, ENROLLMENT)

    assert demographics.get("8", ENROLLMENT) == {"dob": "2000-01-01"}
    assert demographics.exists({"dob": "2000-01-01"}, "8", ENROLLMENT) == 1


def test_failed_save_leaves_cache_untouched(store):
    medications = FormDataAccessor(store, LONGITUDINAL_PID, "medications")
    medications.load("1", ENROLLMENT)
    store.save_results.append({"errors": ["locked"], "item_count": 0})

    with pytest.raises(SaveError):
        medications.save_instance("1", {"med_name": "naproxen"}, 6, ENROLLMENT)

    assert medications.last_instance_id("1", ENROLLMENT) == 5


# --- delete_instance --------------------------------------------------------------------

def test_delete_instance_is_not_supported(empty_store, medications):
    with pytest.raises(NotImplementedError):
        medications.delete_instance("7", 1, ENROLLMENT)

    assert "save_data" not in empty_store.call_names()
