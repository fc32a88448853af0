"""
Tests for the background scheduler jobs and the incentives CLI
"""
from datetime import timedelta
from unittest.mock import patch

from app.models import CleanerMetrics, CleanerPunishment, utcnow
from app.scheduler import _expire_badges, _expire_punishments, _monthly_ranking, init_scheduler
from app.services.base import previous_period


class TestInitScheduler:

    def test_disabled_by_default(self, app):
        assert init_scheduler(app) is None

    def test_registers_jobs_and_starts(self, app):
        app.config['ENABLE_SCHEDULER'] = True

        with patch('app.scheduler.BackgroundScheduler') as scheduler_cls:
            scheduler = init_scheduler(app)

        assert scheduler is scheduler_cls.return_value
        job_ids = [call.kwargs['id'] for call in scheduler.add_job.call_args_list]
        assert job_ids == ['expire_punishments', 'expire_top_cleaner_badges', 'monthly_ranking']
        monthly = scheduler.add_job.call_args_list[2]
        assert monthly.args[1] == 'cron'
        assert monthly.kwargs['day'] == 1
        scheduler.start.assert_called_once()


class TestJobs:
    """Job functions run against the app directly"""

    def test_expire_punishments_job(self, app, engines, test_cleaner, db_session):
        punishment = engines.punishment.apply(test_cleaner.id, 'no_show', 'Missed booking')['punishment']
        punishment.blocked_until = utcnow() - timedelta(minutes=1)
        db_session.commit()

        _expire_punishments(app)

        db_session.expire_all()
        assert CleanerPunishment.query.filter_by(state='expired').count() == 1

    def test_expire_badges_job(self, app, engines, cleaner_factory, db_session):
        cleaner = cleaner_factory(top_cleaner_badge=True, top_cleaner_until=utcnow() - timedelta(hours=1))

        _expire_badges(app)

        db_session.expire_all()
        assert db_session.get(type(cleaner), cleaner.id).top_cleaner_badge is False

    def test_monthly_ranking_job(self, app, engines, cleaner_factory, db_session):
        cleaners = [cleaner_factory() for _ in range(2)]
        year, month = previous_period(utcnow())

        _monthly_ranking(app)

        db_session.expire_all()
        rows = CleanerMetrics.query.filter_by(year=year, month=month).all()
        assert len(rows) == len(cleaners)
        assert sorted(row.ranking for row in rows) == [1, 2]


class TestCli:
    """Test `flask incentives ...`"""

    def test_rank(self, app, engines, test_cleaner, db_session):
        db_session.add(CleanerMetrics(cleaner_id=test_cleaner.id, year=2026, month=3, agility_score=8.0))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=['incentives', 'rank', '2026', '3'])

        assert result.exit_code == 0
        assert 'Ranked 1 cleaners for 03/2026 (top 1).' in result.output
        assert 'Maria Silva 8.0' in result.output

    def test_rank_invalid_month(self, app, engines):
        result = app.test_cli_runner().invoke(args=['incentives', 'rank', '2026', '13'])

        assert result.exit_code != 0
        assert 'month must be between 1 and 12' in result.output

    def test_recalc_metrics(self, app, engines, cleaner_factory):
        for _ in range(3):
            cleaner_factory()

        result = app.test_cli_runner().invoke(args=['incentives', 'recalc-metrics', '2026', '3'])

        assert result.exit_code == 0
        assert 'Saved 3 metric snapshots for 03/2026.' in result.output

    def test_expire_commands(self, app, engines):
        runner = app.test_cli_runner()

        assert 'Expired 0 punishments.' in runner.invoke(args=['incentives', 'expire-punishments']).output
        assert 'Expired 0 badges.' in runner.invoke(args=['incentives', 'expire-badges']).output
