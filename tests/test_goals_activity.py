"""Tests for user goals and the activity heatmap."""

from datetime import date, datetime, timedelta

import pytest

from learnquest.models.activity import DailyStats, StudyKind
from learnquest.models.mission import GoalCategory
from learnquest.models.results import OperationStatus
from learnquest.models.user_profile import Reward
from learnquest.progression.activity import ActivityLog, calculate_intensity
from learnquest.progression.goals import GoalTracker


@pytest.fixture
def goals(profiles):
    return GoalTracker(profiles)


@pytest.fixture
def activity(profiles):
    return ActivityLog(profiles)


class TestGoals:
    def test_create_goal(self, goals, clock):
        result = goals.create_goal(
            "Read articles", GoalCategory.AI_INFO, 5, clock.now() + timedelta(days=7)
        )
        assert result.status == OperationStatus.APPLIED
        assert result.goal.id.startswith("goal_")
        assert [g.id for g in goals.list_goals()] == [result.goal.id]

    def test_rejects_bad_target_and_past_deadline(self, goals, clock):
        future = clock.now() + timedelta(days=1)
        past = clock.now() - timedelta(days=1)
        assert goals.create_goal("x", GoalCategory.XP, 0, future).status == OperationStatus.INVALID
        assert goals.create_goal("x", GoalCategory.XP, 5, past).status == OperationStatus.INVALID
        assert goals.list_goals() == []

    def test_naive_deadline_uses_clock_timezone(self, goals):
        result = goals.create_goal("x", GoalCategory.XP, 5, datetime(2026, 3, 9, 12, 0))
        assert result.goal.deadline.tzinfo is not None

    def test_completion_rewards_once(self, goals, profiles, clock, recorder):
        goal_id = goals.create_goal(
            "Quiz week",
            GoalCategory.QUIZ,
            3,
            clock.now() + timedelta(days=7),
            reward=Reward(xp=40, points=15),
        ).goal.id
        goals.update_progress(goal_id, 2)
        result = goals.update_progress(goal_id, 5)
        assert result.completed_now
        assert result.goal.current == 3
        assert profiles.get_profile().points == 15
        assert goals.update_progress(goal_id, 1).status == OperationStatus.NOOP
        assert profiles.get_profile().points == 15
        assert len(recorder.of_type("goal_completed")) == 1

    def test_expired_goal_is_inert(self, goals, clock):
        goal_id = goals.create_goal(
            "x", GoalCategory.TERMS, 3, clock.now() + timedelta(days=1)
        ).goal.id
        clock.advance(days=2)
        assert goals.update_progress(goal_id, 1).status == OperationStatus.NOOP

    def test_delete_goal(self, goals, clock):
        deadline = clock.now() + timedelta(days=1)
        goal_id = goals.create_goal("x", GoalCategory.XP, 5, deadline).goal.id
        assert goals.delete_goal(goal_id).status == OperationStatus.APPLIED
        assert goals.delete_goal(goal_id).status == OperationStatus.NOT_FOUND
        assert goals.list_goals() == []


DAY = date(2026, 3, 2)


class TestIntensity:
    @pytest.mark.parametrize(
        "counts,expected",
        [
            ({}, 0),
            ({"ai_info_count": 1}, 1),
            ({"quiz_count": 10}, 1),
            ({"ai_info_count": 2, "terms_learned": 2}, 2),
            ({"ai_info_count": 3}, 3),
            ({"ai_info_count": 4, "study_minutes": 20}, 3),
            ({"ai_info_count": 6}, 4),
        ],
    )
    def test_buckets(self, counts, expected):
        assert calculate_intensity(DailyStats(date=DAY, **counts)) == expected


class TestActivityLog:
    def test_record_accumulates(self, activity):
        activity.record(StudyKind.AI_INFO, count=2, xp=40)
        activity.record(StudyKind.TERM, study_minutes=5)
        stats = activity.stats_for(DAY)
        assert stats.ai_info_count == 2
        assert stats.terms_learned == 1
        assert stats.study_minutes == 5
        assert stats.xp_earned == 40

    def test_heatmap_zero_fills(self, activity):
        activity.record(StudyKind.AI_INFO, count=3)
        cells = activity.heatmap(date(2026, 3, 1), date(2026, 3, 3))
        assert [c.date for c in cells] == [date(2026, 3, 1), DAY, date(2026, 3, 3)]
        assert [c.value for c in cells] == [0, 3, 0]

    def test_longest_run(self, activity, clock):
        for step in (0, 1, 1, 2):
            clock.advance(days=step)
            activity.record(StudyKind.QUIZ)
        # Studied on 3/2, 3/3, 3/4 and 3/6
        assert activity.longest_run(date(2026, 3, 1), date(2026, 3, 7)) == 3
