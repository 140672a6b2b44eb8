"""
Unit Tests for the Celery sweep tasks
Tests for: result shape, error logging, cleanup of Redis and the engine
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from gatepass.modules.passes.tasks import expire_unused_passes, mark_overdue_passes

TASKS = 'gatepass.modules.passes.tasks'


@pytest.fixture
def worker_env():
    """Patch the task module's Redis client, session factory, engine cleanup and sweeper"""
    db = MagicMock(name='session')
    session_factory = MagicMock()
    session_factory.return_value.__aenter__ = AsyncMock(return_value=db)
    session_factory.return_value.__aexit__ = AsyncMock(return_value=False)

    redis = MagicMock(name='redis')
    redis.disconnect = AsyncMock()

    with patch(f'{TASKS}.RedisClient', return_value=redis), \
            patch(f'{TASKS}.AsyncSessionLocal', session_factory), \
            patch(f'{TASKS}.close_db', new_callable=AsyncMock) as close_db, \
            patch(f'{TASKS}.PassSweeper') as sweeper_cls, \
            patch(f'{TASKS}.logger') as logger:
        yield {
            'db': db,
            'redis': redis,
            'close_db': close_db,
            'sweeper_cls': sweeper_cls,
            'sweeper': sweeper_cls.return_value,
            'logger': logger,
        }


class TestSweepTasks:

    def test_returns_processed_count(self, worker_env):
        worker_env['sweeper'].mark_overdue_passes = AsyncMock(return_value=3)

        result = mark_overdue_passes.run()

        assert result == {'task': mark_overdue_passes.name, 'processed': 3}
        worker_env['sweeper'].mark_overdue_passes.assert_awaited_once()
        db_arg, publisher = worker_env['sweeper_cls'].call_args.args
        assert db_arg is worker_env['db']
        assert publisher.client is worker_env['redis']

    def test_runs_the_configured_sweep(self, worker_env):
        worker_env['sweeper'].expire_unused_passes = AsyncMock(return_value=0)
        worker_env['sweeper'].mark_overdue_passes = AsyncMock(return_value=9)

        result = expire_unused_passes.run()

        assert result['processed'] == 0
        worker_env['sweeper'].mark_overdue_passes.assert_not_awaited()

    def test_cleans_up_after_success(self, worker_env):
        worker_env['sweeper'].mark_overdue_passes = AsyncMock(return_value=1)

        mark_overdue_passes.run()

        worker_env['redis'].disconnect.assert_awaited_once()
        worker_env['close_db'].assert_awaited_once()

    def test_failure_is_logged_and_raised(self, worker_env):
        error = RuntimeError('database unavailable')
        worker_env['sweeper'].mark_overdue_passes = AsyncMock(side_effect=error)

        with pytest.raises(RuntimeError, match='database unavailable'):
            mark_overdue_passes.run()

        worker_env['logger'].log_error_with_context.assert_called_once_with(
            error, context=mark_overdue_passes.name
        )
        worker_env['redis'].disconnect.assert_awaited_once()
        worker_env['close_db'].assert_awaited_once()
