"""
Tests for the progress calculator: counting window, per-type rules,
percentage capping and completion timestamps.
"""
from datetime import datetime, timedelta, timezone

import pytest

from installer_rewards.models.participation import ParticipationStatus
from installer_rewards.services.progress_calculator import compute_progress, counting_start_date


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestCountingWindow:

    def test_counting_start_is_join_time_when_joined_after_start(self, make_promotion, make_participation):
        promotion = make_promotion()
        participation = make_participation(joined_at=_utc(2026, 2, 1))

        assert counting_start_date(promotion, participation) == _utc(2026, 2, 1)

    def test_counting_start_is_promotion_start_when_joined_early(self, make_promotion, make_participation):
        promotion = make_promotion(start_date=_utc(2026, 3, 1))
        participation = make_participation(joined_at=_utc(2026, 2, 1))

        assert counting_start_date(promotion, participation) == _utc(2026, 3, 1)

    def test_lifetime_counts_records_inside_window_inclusive(
        self, make_promotion, make_participation, installer, add_serials, now
    ):
        promotion = make_promotion(end_date=_utc(2026, 6, 30))
        joined_at = _utc(2026, 2, 1)
        participation = make_participation(joined_at=joined_at)
        records = add_serials(installer.id, [
            joined_at - timedelta(seconds=1),   # before joining
            joined_at,                          # boundary, counted
            _utc(2026, 4, 10),                  # counted
            _utc(2026, 6, 30),                  # end boundary, counted
            _utc(2026, 7, 1),                   # after the promotion
        ])

        snapshot = compute_progress(promotion, participation, records, installer, now)

        assert snapshot.current == 3
        assert snapshot.valid_records == 3
        assert snapshot.counting_start_date == joined_at

    def test_records_from_other_installers_are_ignored(
        self, make_promotion, make_participation, installer, add_installer, add_serials, now
    ):
        other = add_installer("inst-2")
        records = add_serials(other.id, [now, now])

        snapshot = compute_progress(
            make_promotion(), make_participation(joined_at=now - timedelta(days=1)), records, installer, now
        )

        assert snapshot.current == 0

    def test_pre_join_records_are_not_credited(
        self, make_promotion, make_participation, installer, add_serials, now
    ):
        records = add_serials(installer.id, [now - timedelta(days=day) for day in range(1, 11)])
        participation = make_participation(joined_at=now)

        snapshot = compute_progress(make_promotion(), participation, records, installer, now)

        assert snapshot.current == 0
        assert snapshot.percentage == 0
        assert snapshot.is_completed is False
        assert snapshot.completed_at is None


class TestInstallationTarget:

    def test_monthly_target_met_within_month(self, make_promotion, make_participation, installer, add_serials):
        promotion = make_promotion(target={"value": 5, "period": "monthly"})
        participation = make_participation(joined_at=_utc(2026, 3, 1))
        records = add_serials(installer.id, [_utc(2026, 3, day, 10) for day in range(2, 7)])
        now = _utc(2026, 3, 20)

        snapshot = compute_progress(promotion, participation, records, installer, now)

        assert snapshot.current == 5
        assert snapshot.percentage == 100
        assert snapshot.is_completed is True
        assert snapshot.completed_at == now

    def test_monthly_target_only_counts_current_month(self, make_promotion, make_participation, installer, add_serials):
        promotion = make_promotion(target={"value": 5, "period": "monthly"})
        participation = make_participation(joined_at=_utc(2026, 2, 1))
        records = add_serials(installer.id, [
            _utc(2026, 2, 10), _utc(2026, 2, 11), _utc(2026, 2, 12),
            _utc(2026, 3, 2), _utc(2026, 3, 3),
        ])

        snapshot = compute_progress(promotion, participation, records, installer, _utc(2026, 3, 20))

        assert snapshot.current == 2
        assert snapshot.valid_records == 5
        assert snapshot.percentage == pytest.approx(40.0)
        assert snapshot.is_completed is False

    def test_quarterly_target_counts_current_quarter(self, make_promotion, make_participation, installer, add_serials):
        promotion = make_promotion(target={"value": 3, "period": "quarterly"})
        participation = make_participation(joined_at=_utc(2026, 1, 1))
        records = add_serials(installer.id, [
            _utc(2026, 1, 5), _utc(2026, 2, 5), _utc(2026, 3, 5), _utc(2026, 4, 5),
        ])

        snapshot = compute_progress(promotion, participation, records, installer, _utc(2026, 3, 20))

        assert snapshot.current == 3
        assert snapshot.is_completed is True

    def test_percentage_is_capped_at_100(self, make_promotion, make_participation, installer, add_serials, now):
        promotion = make_promotion(target={"value": 2, "period": "lifetime"})
        participation = make_participation(joined_at=now - timedelta(days=5))
        records = add_serials(installer.id, [now - timedelta(days=day) for day in range(4)])

        snapshot = compute_progress(promotion, participation, records, installer, now)

        assert snapshot.current == 4
        assert snapshot.percentage == 100


class TestQualityTarget:

    def _promotion(self, make_promotion):
        return make_promotion(
            type="quality_target",
            target={"value": 1, "installations": 3, "rating": 4.0},
        )

    def test_completed_when_rating_and_installations_met(
        self, make_promotion, make_participation, installer, add_serials, now
    ):
        participation = make_participation(joined_at=now - timedelta(days=10))
        records = add_serials(installer.id, [now - timedelta(days=day) for day in range(1, 4)])

        snapshot = compute_progress(self._promotion(make_promotion), participation, records, installer, now)

        assert snapshot.current == 3
        assert snapshot.target == 3
        assert snapshot.rating == 4.5
        assert snapshot.meets_quality is True
        assert snapshot.is_completed is True

    def test_low_rating_blocks_completion(
        self, make_promotion, make_participation, add_installer, add_serials, now
    ):
        installer = add_installer("inst-low", rating=3.2)
        participation = make_participation(joined_at=now - timedelta(days=10), installer_id=installer.id)
        records = add_serials(installer.id, [now - timedelta(days=day) for day in range(1, 6)])

        snapshot = compute_progress(self._promotion(make_promotion), participation, records, installer, now)

        assert snapshot.current == 5
        assert snapshot.percentage == 100
        assert snapshot.meets_quality is False
        assert snapshot.is_completed is False

    def test_missing_rating_counts_as_zero(
        self, make_promotion, make_participation, add_installer, now
    ):
        installer = add_installer("inst-new", rating=None)
        participation = make_participation(joined_at=now, installer_id=installer.id)

        snapshot = compute_progress(self._promotion(make_promotion), participation, [], installer, now)

        assert snapshot.rating == 0
        assert snapshot.meets_quality is False


class TestGeographicExpansion:

    def test_counts_distinct_cities(self, make_promotion, make_participation, installer, add_serials, now):
        promotion = make_promotion(type="geographic_expansion", target={"value": 3})
        participation = make_participation(joined_at=now - timedelta(days=10))
        records = add_serials(
            installer.id,
            [now - timedelta(days=day) for day in range(1, 6)],
            cities=["Lahore", "Lahore", "Karachi", "Multan", ""],
        )

        snapshot = compute_progress(promotion, participation, records, installer, now)

        assert snapshot.current == 3
        assert snapshot.cities == ["Lahore", "Karachi", "Multan"]
        assert snapshot.valid_records == 5
        assert snapshot.is_completed is True


class TestZeroSnapshot:

    @pytest.mark.parametrize("promotion_type", ["mystery_bonus", "milestone"])
    def test_types_without_a_rule_yield_zero_snapshot(
        self, promotion_type, make_promotion, make_participation, installer, add_serials, now
    ):
        promotion = make_promotion(type=promotion_type)
        participation = make_participation(joined_at=now - timedelta(days=10))
        records = add_serials(installer.id, [now - timedelta(days=1)])

        snapshot = compute_progress(promotion, participation, records, installer, now)

        assert snapshot.current == 0
        assert snapshot.target == 0
        assert snapshot.percentage == 0
        assert snapshot.is_completed is False
        assert snapshot.valid_records == 1


class TestCompletionTimestamp:

    def test_completed_at_is_carried_forward_once_completed(
        self, make_promotion, make_participation, installer, add_serials, now
    ):
        first_completion = now - timedelta(days=3)
        participation = make_participation(
            joined_at=now - timedelta(days=10),
            status=ParticipationStatus.COMPLETED,
            completed_at=first_completion,
        )
        records = add_serials(installer.id, [now - timedelta(days=day) for day in range(1, 8)])

        snapshot = compute_progress(make_promotion(), participation, records, installer, now)

        assert snapshot.is_completed is True
        assert snapshot.completed_at == first_completion

    def test_naive_now_is_treated_as_utc(self, make_promotion, make_participation, installer, add_serials):
        participation = make_participation(joined_at=_utc(2026, 3, 1))
        records = add_serials(installer.id, [_utc(2026, 3, 2 + day) for day in range(5)])

        snapshot = compute_progress(make_promotion(), participation, records, installer, datetime(2026, 3, 20))

        assert snapshot.completed_at == _utc(2026, 3, 20)
