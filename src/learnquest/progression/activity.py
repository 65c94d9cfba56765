"""Per-day study counters and heatmap intensity."""

from datetime import date, timedelta

from learnquest.models.activity import DailyStats, HeatmapCell, StudyKind
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction
from learnquest.storage.repository import activity_key


def calculate_intensity(stats: DailyStats) -> int:
    """Map a day's activity to a 0-4 heatmap bucket.

    AI articles weigh most, then terms; quizzes and minutes studied count a
    tenth each.
    """
    score = (
        stats.ai_info_count * 2
        + stats.quiz_count * 0.1
        + stats.terms_learned * 0.5
        + stats.study_minutes * 0.1
    )
    if score == 0:
        return 0
    if score <= 2:
        return 1
    if score <= 5:
        return 2
    if score <= 10:
        return 3
    return 4


class ActivityLog:
    """Daily activity history for one session, keyed by local date."""

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles

    @property
    def session_id(self) -> str:
        return self.profiles.session_id

    def record(
        self, kind: StudyKind, count: int = 1, xp: int = 0, study_minutes: int = 0
    ) -> DailyStats:
        """Add one event to today's counters outside any study flow.

        Raises:
            PersistenceError: If the store cannot be read or written.
        """
        with self.profiles.transaction() as txn:
            return self.apply(txn, kind, count=count, xp=xp, study_minutes=study_minutes)

    def apply(
        self,
        txn: ProfileTransaction,
        kind: StudyKind,
        count: int = 1,
        correct: int = 0,
        xp: int = 0,
        study_minutes: int = 0,
    ) -> DailyStats:
        repository = self.profiles.repository
        key = activity_key(self.session_id)
        activity = txn.working(key, lambda: repository.load_activity(self.session_id))
        today = self.profiles.clock.today()
        stats = activity.setdefault(today, DailyStats(date=today))

        if kind == StudyKind.AI_INFO:
            stats.ai_info_count += count
        elif kind == StudyKind.QUIZ:
            stats.quiz_count += count
            stats.quiz_correct += correct
        elif kind in (StudyKind.TERM, StudyKind.FLASHCARD):
            stats.terms_learned += count
        elif kind == StudyKind.REVIEW:
            stats.reviews_done += count
        stats.study_minutes += study_minutes
        stats.xp_earned += xp

        txn.stage(key, activity, lambda value: repository.save_activity(self.session_id, value))
        return stats.model_copy()

    def stats_for(self, day: date) -> DailyStats:
        with self.profiles.lock:
            activity = self.profiles.repository.load_activity(self.session_id)
        return activity.get(day, DailyStats(date=day))

    def heatmap(self, start: date, end: date) -> list[HeatmapCell]:
        """One cell per date in ``[start, end]``, zero-filled."""
        with self.profiles.lock:
            activity = self.profiles.repository.load_activity(self.session_id)
        cells = []
        day = start
        while day <= end:
            stats = activity.get(day, DailyStats(date=day))
            cells.append(HeatmapCell(date=day, value=calculate_intensity(stats), stats=stats))
            day += timedelta(days=1)
        return cells

    def longest_run(self, start: date, end: date) -> int:
        """Longest run of consecutive studied days in ``[start, end]``."""
        longest = current = 0
        for cell in self.heatmap(start, end):
            if cell.stats.studied:
                current += 1
                longest = max(longest, current)
            else:
                current = 0
        return longest
