from __future__ import annotations

from datetime import date
from unittest import IsolatedAsyncioTestCase

from fakes import FakeRecordStore, RecordingSleep, make_record

from quickledger.engine.errors import StorageError, TransientStorageError
from quickledger.engine.retry import RetryPolicy
from quickledger.engine.writer import IdempotentWriter, record_prefix, serial_of, to_base36


class IdHelperTests(IsolatedAsyncioTestCase):
    def test_prefix_and_serial(self) -> None:
        prefix = record_prefix(date(2025, 12, 18))
        self.assertEqual(prefix, "20251218")
        self.assertEqual(serial_of("20251218-00042", prefix), 42)
        self.assertEqual(serial_of("20251218-00042-kx1", prefix), 42)
        self.assertEqual(serial_of("20251217-00042", prefix), 0)
        self.assertEqual(serial_of(None, prefix), 0)

    def test_base36(self) -> None:
        self.assertEqual(to_base36(0), "0")
        self.assertEqual(to_base36(35), "z")
        self.assertEqual(to_base36(36), "10")


class IdempotentWriterTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = FakeRecordStore()
        self.sleep = RecordingSleep()
        self.writer = IdempotentWriter(self.store, RetryPolicy(max_attempts=3), sleep=self.sleep)

    async def test_first_record_of_the_day(self) -> None:
        result = await self.writer.write(make_record())

        self.assertEqual(result.record.id, "20251218-00001")
        self.assertFalse(result.duplicate)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(len(self.store.records), 1)

    async def test_serial_continues_from_latest(self) -> None:
        self.store.store(make_record(id="20251218-00007", idempotency_key="evt-0"))

        result = await self.writer.write(make_record())

        self.assertEqual(result.record.id, "20251218-00008")

    async def test_replayed_key_returns_existing_record(self) -> None:
        first = await self.writer.write(make_record())
        second = await self.writer.write(make_record(amount=999))

        self.assertTrue(second.duplicate)
        self.assertEqual(second.record.id, first.record.id)
        self.assertEqual(second.record.amount, 120)
        self.assertEqual(len(self.store.records), 1)

    async def test_id_taken_concurrently_allocates_next(self) -> None:
        def racing_writer(record) -> None:
            if self.store.insert_calls == 1:
                self.store.store(make_record(id=record.id, idempotency_key="evt-other"))

        self.store.on_insert = racing_writer

        result = await self.writer.write(make_record())

        self.assertEqual(result.record.id, "20251218-00002")
        self.assertFalse(result.duplicate)
        self.assertEqual(len(self.store.records), 2)

    async def test_same_key_written_concurrently_is_a_duplicate(self) -> None:
        def racing_writer(record) -> None:
            if self.store.insert_calls == 1:
                self.store.store(make_record(id="20251218-00009", idempotency_key=record.idempotency_key))

        self.store.on_insert = racing_writer

        result = await self.writer.write(make_record())

        self.assertTrue(result.duplicate)
        self.assertEqual(result.record.id, "20251218-00009")
        self.assertEqual(len(self.store.records), 1)

    async def test_lost_acknowledgement_is_not_written_twice(self) -> None:
        self.store.fail_after_store.append(TransientStorageError("ack lost"))

        result = await self.writer.write(make_record())

        self.assertTrue(result.duplicate)
        self.assertEqual(result.attempts, 2)
        self.assertEqual(result.record.id, "20251218-00001")
        self.assertEqual(len(self.store.records), 1)
        self.assertEqual(len(self.sleep.delays), 1)

    async def test_transient_failure_then_success(self) -> None:
        self.store.fail_before_store.append(TransientStorageError("timeout"))

        result = await self.writer.write(make_record())

        self.assertFalse(result.duplicate)
        self.assertEqual(result.attempts, 2)
        self.assertEqual(len(self.store.records), 1)

    async def test_exhausted_retries_raise_storage_error(self) -> None:
        self.store.fail_before_store.extend(TransientStorageError("down") for _ in range(3))

        with self.assertRaises(StorageError):
            await self.writer.write(make_record())

        self.assertEqual(self.store.insert_calls, 3)
        self.assertEqual(self.store.records, [])
        self.assertEqual(len(self.sleep.delays), 2)

    async def test_repeated_collisions_fall_back_to_suffixed_id(self) -> None:
        def racing_writer(record) -> None:
            if self.store.insert_calls <= 4:
                self.store.store(
                    make_record(id=record.id, idempotency_key=f"evt-other-{self.store.insert_calls}")
                )

        self.store.on_insert = racing_writer

        result = await self.writer.write(make_record())

        self.assertTrue(result.record.id.startswith("20251218-00005-"))
        self.assertFalse(result.duplicate)

    async def test_unexpected_errors_propagate(self) -> None:
        self.store.fail_before_store.append(RuntimeError("bug"))

        with self.assertRaises(RuntimeError):
            await self.writer.write(make_record())
        self.assertEqual(self.sleep.delays, [])
