"""Tests for indicator_stats.followups."""

import threading

import pytest

from conftest import global_slice, indicator_fields
from indicator_stats.exceptions import (
    ConflictError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from indicator_stats.followups import FollowupManager


class TestCreateFollowup:
    def test_created(self, followups, scenario):
        followup = followups.create_followup(scenario.id, 1, 2021, 45.5)
        assert followup.slice_id == scenario.data[1].slice_id
        assert followups.to_record(followup) == {
            "id": followup.id,
            "indicator": scenario.id,
            "data_index": 1,
            "year": 2021,
            "value": 45.5,
        }

    @pytest.mark.parametrize("data_index", [2, 99])
    def test_data_index_out_of_bounds(self, followups, scenario, data_index):
        with pytest.raises(ReferentialIntegrityError):
            followups.create_followup(scenario.id, data_index, 2022, 1)

    def test_negative_data_index(self, followups, scenario):
        with pytest.raises(ReferentialIntegrityError):
            followups.create_followup(scenario.id, -1, 2022, 1)

    def test_indicator_without_slices(self, indicators, followups):
        indicator = indicators.create_indicator(indicator_fields())
        with pytest.raises(ReferentialIntegrityError):
            followups.create_followup(indicator.id, 0, 2020, 1)

    def test_unknown_indicator(self, followups):
        with pytest.raises(NotFoundError):
            followups.create_followup("nope", 0, 2020, 1)

    @pytest.mark.parametrize(
        "year, value, field",
        [
            (None, 1, "year"),
            (1800, 1, "year"),
            ("2020", 1, "year"),
            (2020, None, "value"),
            (2020, float("nan"), "value"),
            (2020, True, "value"),
        ],
    )
    def test_invalid_year_or_value(self, followups, scenario, year, value, field):
        with pytest.raises(ValidationError) as exc:
            followups.create_followup(scenario.id, 0, year, value)
        assert exc.value.field == field

    def test_one_per_slice_and_year(self, followups, scenario):
        with pytest.raises(ConflictError):
            followups.create_followup(scenario.id, 0, 2020, 999)

    def test_uniqueness_can_be_disabled(self, indicator_store, followup_store, scenario):
        manager = FollowupManager(indicator_store, followup_store, unique_per_year=False)
        manager.create_followup(scenario.id, 0, 2020, 999)
        assert len(manager.list_followups(scenario.id, 0)) == 3


class TestReadFollowups:
    def test_list_sorted(self, followups, scenario):
        rows = [followups.to_record(f) for f in followups.list_followups(scenario.id)]
        assert [(r["data_index"], r["year"]) for r in rows] == [(0, 2020), (0, 2021), (1, 2020)]

    def test_list_one_slice(self, followups, scenario):
        rows = followups.list_followups(scenario.id, 1)
        assert [f.value for f in rows] == [40.0]

    def test_list_bad_slice(self, followups, scenario):
        with pytest.raises(ReferentialIntegrityError):
            followups.list_followups(scenario.id, 3)

    def test_get(self, followups, scenario):
        followup = followups.list_followups(scenario.id)[0]
        assert followups.get_followup(followup.id) is followup
        with pytest.raises(NotFoundError):
            followups.get_followup("nope")


class TestUpdateFollowup:
    def test_value_and_year(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 1)[0]
        followups.update_followup(followup.id, year=2022, value=41)
        assert (followup.year, followup.value) == (2022, 41.0)

    def test_move_to_other_slice(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 1)[0]
        followups.update_followup(followup.id, year=2019, data_index=0)
        assert followups.data_index_of(followup) == 0

    def test_move_out_of_bounds(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 1)[0]
        with pytest.raises(ReferentialIntegrityError):
            followups.update_followup(followup.id, data_index=2)

    def test_year_conflict(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 0)[0]
        with pytest.raises(ConflictError):
            followups.update_followup(followup.id, year=2021)

    def test_same_year_is_not_a_conflict(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 0)[0]
        followups.update_followup(followup.id, year=2020, value=101)
        assert followup.value == 101.0

    def test_invalid_value(self, followups, scenario):
        followup = followups.list_followups(scenario.id, 0)[0]
        with pytest.raises(ValidationError):
            followups.update_followup(followup.id, value="beaucoup")
        assert followup.value == 100.0


class TestDeleteFollowup:
    def test_delete(self, followups, followup_store, scenario):
        followup = followups.list_followups(scenario.id)[0]
        followups.delete_followup(followup.id)
        assert len(followup_store) == 2
        with pytest.raises(NotFoundError):
            followups.delete_followup(followup.id)

    def test_followups_follow_their_slice(self, indicators, followups, scenario):
        indicators.append_data_slice(scenario.id, global_slice())
        followups.create_followup(scenario.id, 2, 2020, 7)
        indicators.remove_data_slice(scenario.id, 1)

        moved = followups.list_followups(scenario.id, 1)
        assert [(f.year, f.value) for f in moved] == [(2020, 7.0)]


class TestSerializationWithSliceRemoval:
    def test_write_waits_for_indicator_lock(self, indicator_store, followups, scenario):
        done = threading.Event()

        def write():
            followups.create_followup(scenario.id, 1, 2023, 1)
            done.set()

        with indicator_store.lock(scenario.id):
            worker = threading.Thread(target=write)
            worker.start()
            assert not done.wait(timeout=0.2)
        worker.join(timeout=5)

        assert done.is_set()

    def test_write_to_removed_last_position_is_rejected(self, indicators, followups, scenario):
        indicators.remove_data_slice(scenario.id, 1)
        with pytest.raises(ReferentialIntegrityError):
            followups.create_followup(scenario.id, 1, 2023, 1)

    def test_racing_writes_never_orphan(self, indicators, followups, followup_store):
        indicator = indicators.create_indicator(indicator_fields())
        for _ in range(20):
            indicators.append_data_slice(indicator.id, global_slice())

        barrier = threading.Barrier(2)
        rejected = []

        def remove():
            barrier.wait()
            while indicator.data:
                indicators.remove_data_slice(indicator.id, len(indicator.data) - 1)

        def write():
            barrier.wait()
            for year in range(2000, 2040):
                try:
                    followups.create_followup(indicator.id, 0, year, 1)
                except ReferentialIntegrityError:
                    rejected.append(year)

        threads = [threading.Thread(target=remove), threading.Thread(target=write)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert indicator.data == []
        assert followup_store.select(indicator.id) == []

    def test_update_of_followup_whose_slice_was_removed(self, indicators, followups, scenario):
        followup = followups.list_followups(scenario.id, 0)[0]
        indicators.remove_data_slice(scenario.id, 0)
        with pytest.raises(NotFoundError):
            followups.update_followup(followup.id, value=1)

    def test_update_of_orphaned_followup(self, followups, followup_store, scenario):
        followup = followups.list_followups(scenario.id, 0)[0]
        scenario.data.pop(0)
        assert followup_store.get(followup.id) is followup

        with pytest.raises(NotFoundError):
            followups.update_followup(followup.id, value=1)
        assert followup.value == 100.0

    def test_update_re_addressed_followup(self, indicators, followups, scenario):
        followup = followups.list_followups(scenario.id, 1)[0]
        indicators.remove_data_slice(scenario.id, 0)

        followups.update_followup(followup.id, value=41)
        assert followups.to_record(followup)["data_index"] == 0
        assert followup.value == 41.0
