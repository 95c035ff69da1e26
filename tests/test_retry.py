from __future__ import annotations

import unittest
from unittest import IsolatedAsyncioTestCase

from fakes import RecordingSleep

from quickledger.engine.errors import TransientStorageError
from quickledger.engine.retry import RetryPolicy


class RetryPolicyTests(IsolatedAsyncioTestCase):
    def test_exponential_delays_are_capped(self) -> None:
        policy = RetryPolicy(base_delay=0.2, multiplier=2.0, max_delay=1.0)

        delays = [policy.delay_for(attempt) for attempt in range(1, 6)]

        for actual, expected in zip(delays, [0.2, 0.4, 0.8, 1.0, 1.0]):
            self.assertAlmostEqual(actual, expected)

    def test_custom_backoff_replaces_the_formula(self) -> None:
        policy = RetryPolicy(backoff=lambda attempt: attempt * 10.0)
        self.assertEqual(policy.delay_for(3), 30.0)

    def test_at_least_one_attempt(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)

    async def test_retries_until_success(self) -> None:
        sleep = RecordingSleep()
        seen: list[int] = []

        async def operation(attempt: int) -> str:
            seen.append(attempt)
            if attempt < 3:
                raise TransientStorageError("connection reset")
            return "done"

        result = await RetryPolicy(max_attempts=3).run(operation, sleep=sleep)

        self.assertEqual(result, "done")
        self.assertEqual(seen, [1, 2, 3])
        self.assertEqual(len(sleep.delays), 2)

    async def test_last_failure_is_reraised(self) -> None:
        sleep = RecordingSleep()

        async def operation(attempt: int) -> None:
            raise TransientStorageError(f"attempt {attempt}")

        with self.assertRaises(TransientStorageError) as ctx:
            await RetryPolicy(max_attempts=2).run(operation, sleep=sleep)

        self.assertEqual(str(ctx.exception), "attempt 2")
        self.assertEqual(len(sleep.delays), 1)

    async def test_other_errors_are_not_retried(self) -> None:
        sleep = RecordingSleep()
        calls = 0

        async def operation(attempt: int) -> None:
            nonlocal calls
            calls += 1
            raise KeyError("boom")

        with self.assertRaises(KeyError):
            await RetryPolicy(max_attempts=5).run(operation, sleep=sleep)

        self.assertEqual(calls, 1)
        self.assertEqual(sleep.delays, [])


if __name__ == "__main__":
    unittest.main()
