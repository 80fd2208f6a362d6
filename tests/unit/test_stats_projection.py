"""Stats projection tests: folding one attempt into a UserStats row."""

from datetime import datetime, timezone

from anton.progression.ledger import apply_attempt, new_user_stats

NOW = datetime(2024, 6, 1, 5, 0, tzinfo=timezone.utc)


def _stats(**overrides):
    stats = new_user_stats("user-1", "user-1@example.com", NOW)
    for field, value in overrides.items():
        setattr(stats, field, value)
    return stats


class TestNewUserStats:
    def test_zeroed(self):
        stats = _stats()
        assert stats.total_questions_answered == 0
        assert stats.total_correct_answers == 0
        assert stats.total_xp == 0
        assert stats.current_level == 1
        assert stats.current_title == "Newbie"
        assert stats.current_streak == 0
        assert stats.longest_streak == 0


class TestApplyAttempt:
    def test_correct_answer(self):
        stats = _stats()
        apply_attempt(stats, "HARD", True, 50, NOW)
        assert stats.total_questions_answered == 1
        assert stats.total_correct_answers == 1
        assert stats.hard_questions_answered == 1
        assert stats.hard_correct_answers == 1
        assert stats.current_streak == 1
        assert stats.longest_streak == 1
        assert stats.total_xp == 50
        assert stats.current_level == 2
        assert stats.last_answered_date == NOW

    def test_wrong_answer_resets_streak(self):
        """Streak of 7, wrong answer: current drops to 0, longest keeps 7."""
        stats = _stats(current_streak=7, longest_streak=7, total_questions_answered=7, total_correct_answers=7)
        apply_attempt(stats, "EASY", False, 0, NOW)
        assert stats.current_streak == 0
        assert stats.longest_streak == 7
        assert stats.total_questions_answered == 8
        assert stats.total_correct_answers == 7
        assert stats.easy_questions_answered == 1
        assert stats.easy_correct_answers == 0

    def test_wrong_answer_keeps_last_answered_date(self):
        earlier = datetime(2024, 5, 1, tzinfo=timezone.utc)
        stats = _stats(last_answered_date=earlier)
        apply_attempt(stats, "EASY", False, 0, NOW)
        assert stats.last_answered_date == earlier

    def test_longest_streak_grows_with_current(self):
        stats = _stats(current_streak=3, longest_streak=3)
        apply_attempt(stats, "MEDIUM", True, 0, NOW)
        assert stats.current_streak == 4
        assert stats.longest_streak == 4

    def test_correct_without_xp(self):
        """A correct replay of an already-solved question counts but earns nothing."""
        stats = _stats(total_xp=100, current_level=2, current_title="Intern")
        apply_attempt(stats, "MEDIUM", True, 0, NOW)
        assert stats.total_xp == 100
        assert stats.medium_correct_answers == 1

    def test_level_recomputed_from_xp(self):
        stats = _stats(total_xp=290, current_level=3, current_title="Senior Intern")
        apply_attempt(stats, "EASY", True, 10, NOW)
        assert stats.total_xp == 300
        assert stats.current_level == 4
        assert stats.current_title == "Fresher"

    def test_unknown_difficulty_skips_breakdown(self):
        stats = _stats()
        apply_attempt(stats, "", True, 25, NOW)
        assert stats.total_questions_answered == 1
        assert stats.easy_questions_answered == 0
        assert stats.medium_questions_answered == 0
        assert stats.hard_questions_answered == 0
