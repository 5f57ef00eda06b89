"""Tests for the SM-2 scheduling function."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from src.domain.errors import ValidationError
from src.domain.review_state import ReviewState
from src.services.srs.srs_algorithm import (
    DEFAULT_POLICY,
    SM2Policy,
    calculate_next_review,
    compute_next,
    ease_factor_delta,
    round_half_up,
    validate_grade,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _new_state(**overrides):
    return replace(ReviewState.new("u1", "card-1", "flashcard", now=NOW), **overrides)


class TestCalculateNextReview:
    def test_first_success_gives_one_day(self):
        assert calculate_next_review(4, 2.5, 0, 0) == (1, 2.5, 1)

    def test_second_success_gives_six_days(self):
        assert calculate_next_review(4, 2.5, 1, 1) == (6, 2.5, 2)

    def test_third_success_multiplies_by_ease_factor(self):
        interval, ef, reps = calculate_next_review(4, 2.5, 6, 2)
        assert interval == 15
        assert reps == 3
        assert ef == pytest.approx(2.5)

    def test_interval_rounds_half_up(self):
        # 5 * 2.5 = 12.5 -> 13, not banker's 12
        interval, _, _ = calculate_next_review(4, 2.5, 5, 2)
        assert interval == 13

    @pytest.mark.parametrize("grade", [0, 1, 2])
    def test_failing_grade_resets(self, grade):
        interval, _, reps = calculate_next_review(grade, 2.5, 30, 5)
        assert interval == 1
        assert reps == 0

    def test_grade_five_raises_ease_factor(self):
        _, ef, _ = calculate_next_review(5, 2.5, 0, 0)
        assert ef == pytest.approx(2.6)

    def test_grade_three_lowers_ease_factor(self):
        _, ef, _ = calculate_next_review(3, 2.5, 0, 0)
        assert ef == pytest.approx(2.36)

    @pytest.mark.parametrize("grade", [0, 1, 2, 3])
    def test_ease_factor_never_below_floor(self, grade):
        ef = 1.3
        for _ in range(10):
            _, ef, _ = calculate_next_review(grade, ef, 1, 0)
            assert ef >= 1.3

    def test_max_interval_cap(self):
        policy = SM2Policy(max_interval_days=180)
        interval, _, _ = calculate_next_review(5, 2.8, 100, 8, policy)
        assert interval == 180

    def test_default_policy_is_uncapped(self):
        assert DEFAULT_POLICY.max_interval_days is None
        interval, _, _ = calculate_next_review(5, 2.8, 100, 8)
        assert interval == 280


class TestValidateGrade:
    @pytest.mark.parametrize("grade", [0, 3, 5])
    def test_accepts_integers_in_range(self, grade):
        assert validate_grade(grade) == grade

    @pytest.mark.parametrize("grade", [-1, 6, 100])
    def test_rejects_out_of_range(self, grade):
        with pytest.raises(ValidationError):
            validate_grade(grade)

    @pytest.mark.parametrize("grade", [3.0, "4", None, True, False])
    def test_rejects_non_integers(self, grade):
        with pytest.raises(ValidationError):
            validate_grade(grade)


def test_ease_factor_delta_values():
    assert ease_factor_delta(5) == pytest.approx(0.1)
    assert ease_factor_delta(4) == pytest.approx(0.0)
    assert ease_factor_delta(2) == pytest.approx(-0.32)
    assert ease_factor_delta(0) == pytest.approx(-0.8)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(14.4) == 14
    assert round_half_up(2.5) == 3
    assert round_half_up(15.5) == 16
    assert round_half_up(0.5) == 1
    assert round_half_up(6 * 2.18) == 13


class TestComputeNext:
    def test_example_trace(self):
        """4, 4, 2 from a new card."""
        state = _new_state()

        state = compute_next(state, 4, now=NOW)
        assert (state.repetitions, state.interval_days) == (1, 1)
        assert state.ease_factor == pytest.approx(2.5)

        state = compute_next(state, 4, now=NOW)
        assert (state.repetitions, state.interval_days) == (2, 6)
        assert state.ease_factor == pytest.approx(2.5)

        state = compute_next(state, 2, now=NOW)
        assert (state.repetitions, state.interval_days, state.lapses) == (0, 1, 1)
        assert state.ease_factor == pytest.approx(2.18)

    def test_sets_review_timestamps(self):
        state = compute_next(_new_state(), 5, now=NOW)
        assert state.last_reviewed_at == NOW
        assert state.next_review_at == NOW + timedelta(days=1)
        assert state.last_grade == 5

    def test_is_pure(self):
        state = _new_state()
        first = compute_next(state, 3, now=NOW)
        second = compute_next(state, 3, now=NOW)
        assert first == second
        assert state.repetitions == 0

    def test_passing_grades_never_shrink_interval(self):
        state = _new_state()
        previous_interval = 0
        previous_reps = 0
        for grade in [3, 5, 4, 3, 5, 3, 4, 5, 3, 3]:
            state = compute_next(state, grade, now=NOW)
            assert state.interval_days >= previous_interval
            assert state.repetitions > previous_reps
            previous_interval = state.interval_days
            previous_reps = state.repetitions

    def test_lapse_keeps_identity_and_suspension_flag(self):
        state = _new_state(folder_id="f1")
        result = compute_next(state, 0, now=NOW)
        assert result.key == state.key
        assert result.folder_id == "f1"
        assert result.suspended is False

    def test_invalid_grade_raises(self):
        with pytest.raises(ValidationError):
            compute_next(_new_state(), 7, now=NOW)
