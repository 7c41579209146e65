"""Unit tests for poll_until."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from swupgrade.exceptions import DeviceCommunicationError
from swupgrade.services.poller import DEFAULT_POLL_INTERVAL, poll_until


@pytest.mark.unit
class TestPollUntil:
    """Test the bounded poller against a fake clock."""

    @pytest.mark.asyncio
    async def test_true_on_first_evaluation_does_not_sleep(self, fake_clock):
        """A predicate true on the first call returns immediately."""
        sleep = AsyncMock()
        predicate = MagicMock(return_value=True)

        result = await poll_until(predicate, 5.0, clock=fake_clock, sleep=sleep)

        assert result is True
        predicate.assert_called_once_with()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_never_true_returns_false_after_timeout(self, fake_clock):
        """False is returned only once the timeout elapsed, within one interval."""
        result = await poll_until(
            lambda: False, 1.0, clock=fake_clock, sleep=fake_clock.sleep
        )

        assert result is False
        assert fake_clock.now >= 1.0
        assert fake_clock.now <= 1.0 + DEFAULT_POLL_INTERVAL + 1e-6

    @pytest.mark.asyncio
    async def test_succeeds_after_several_evaluations(self, fake_clock):
        """Polling stops at the first True, sleeping once per failed evaluation."""
        answers = iter([False, False, True])

        result = await poll_until(
            lambda: next(answers), 5.0, clock=fake_clock, sleep=fake_clock.sleep
        )

        assert result is True
        assert fake_clock.sleeps == 2
        assert fake_clock.now == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_awaitable_predicate(self, fake_clock):
        """Coroutine predicates are awaited."""
        calls = []

        async def predicate():
            calls.append(fake_clock())
            return len(calls) == 4

        result = await poll_until(predicate, 5.0, clock=fake_clock, sleep=fake_clock.sleep)

        assert result is True
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_predicate_exception_propagates(self, fake_clock):
        """Read failures are not mistaken for 'not yet true'."""
        predicate = MagicMock(side_effect=DeviceCommunicationError("element unreachable"))

        with pytest.raises(DeviceCommunicationError, match="element unreachable"):
            await poll_until(predicate, 5.0, clock=fake_clock, sleep=fake_clock.sleep)

        assert fake_clock.sleeps == 0

    @pytest.mark.asyncio
    async def test_zero_timeout_still_evaluates_once(self, fake_clock):
        """At least one evaluation happens even without budget."""
        predicate = MagicMock(return_value=False)

        result = await poll_until(predicate, 0.0, clock=fake_clock, sleep=fake_clock.sleep)

        assert result is False
        predicate.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_custom_interval(self, fake_clock):
        """The interval passed in is the one slept."""
        sleep = AsyncMock(side_effect=fake_clock.sleep)

        await poll_until(lambda: False, 2.0, interval=0.5, clock=fake_clock, sleep=sleep)

        for call in sleep.await_args_list:
            assert call.args == (0.5,)
        assert sleep.await_count == 5

    @pytest.mark.asyncio
    async def test_abort_already_set_stops_after_first_evaluation(self, fake_clock):
        """A set abort signal ends polling without sleeping."""
        abort = asyncio.Event()
        abort.set()
        predicate = MagicMock(return_value=False)

        result = await poll_until(
            predicate, 300.0, clock=fake_clock, sleep=fake_clock.sleep, abort=abort
        )

        assert result is False
        predicate.assert_called_once_with()
        assert fake_clock.now == 0.0

    @pytest.mark.asyncio
    async def test_abort_during_polling(self, fake_clock):
        """An abort raised while sleeping is seen right after the sleep."""
        abort = asyncio.Event()

        async def sleep(seconds):
            await fake_clock.sleep(seconds)
            if fake_clock.now >= 1.0:
                abort.set()

        result = await poll_until(
            lambda: False, 300.0, clock=fake_clock, sleep=sleep, abort=abort
        )

        assert result is False
        assert fake_clock.now < 1.2

    @pytest.mark.asyncio
    async def test_real_clock(self):
        """Default clock and sleep work for short timeouts."""
        answers = iter([False, True])

        result = await poll_until(lambda: next(answers), 1.0, interval=0.01)

        assert result is True
