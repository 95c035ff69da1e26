from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from fakes import make_record
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError

from quickledger.engine.errors import DuplicateRecordError, TransientStorageError
from quickledger.models.transaction import TransactionType
from quickledger.models.wallet import WalletType
from quickledger.schemas.category import CategoryCreate
from quickledger.schemas.wallet import WalletCreate
from quickledger.services import records, registry
from quickledger.services.storage import storage_session


class DummySession:
    def __init__(self) -> None:
        self.add = MagicMock()
        self.get: AsyncMock = AsyncMock()
        self.execute: AsyncMock = AsyncMock()
        self.commit: AsyncMock = AsyncMock()
        self.refresh: AsyncMock = AsyncMock()


class DummySessionFactory:
    def __init__(self, session: DummySession) -> None:
        self.session = session

    def __call__(self) -> "DummySessionFactory":
        return self

    async def __aenter__(self) -> DummySession:
        return self.session

    async def __aexit__(self, *exc_info) -> bool:
        return False


class StorageSessionTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.factory = DummySessionFactory(DummySession())

    async def _raise_inside(self, error: Exception) -> None:
        async with storage_session(self.factory):
            raise error

    async def test_unique_violation_is_a_duplicate(self) -> None:
        with self.assertRaises(DuplicateRecordError):
            await self._raise_inside(IntegrityError("INSERT", {}, Exception("duplicate key")))

    async def test_connection_problems_are_transient(self) -> None:
        errors = [
            OperationalError("SELECT 1", {}, Exception("connection refused")),
            DBAPIError("SELECT 1", {}, Exception("closed"), connection_invalidated=True),
            ConnectionResetError("reset by peer"),
            TimeoutError(),
        ]
        for error in errors:
            with self.subTest(error=type(error).__name__):
                with self.assertRaises(TransientStorageError):
                    await self._raise_inside(error)

    async def test_other_database_errors_propagate(self) -> None:
        with self.assertRaises(ProgrammingError):
            await self._raise_inside(ProgrammingError("SELECT", {}, Exception("syntax error")))

    async def test_session_is_yielded(self) -> None:
        async with storage_session(self.factory) as session:
            self.assertIs(session, self.factory.session)


class SynonymHelperTests(IsolatedAsyncioTestCase):
    def test_join_synonyms_drops_blanks_and_duplicates(self) -> None:
        self.assertEqual(registry.join_synonyms(["中餐", " ", "ＤＢＳ", "dbs", "a,b"]), "中餐,ＤＢＳ,a b")

    def test_with_synonym(self) -> None:
        self.assertEqual(registry.with_synonym("中餐", "便當"), "中餐,便當")
        self.assertEqual(registry.with_synonym("", "便當"), "便當")
        self.assertIsNone(registry.with_synonym("中餐,便當", "便當"))

    def test_rows_become_engine_entries(self) -> None:
        category = SimpleNamespace(
            code="101", name="午餐", parent_code=None, synonyms="中餐,便當", is_income=False, active=True
        )
        wallet_id = uuid4()
        wallet = SimpleNamespace(
            id=wallet_id, name="現金", type=WalletType.CASH, synonyms="", is_default=True, active=True
        )

        category_entry = registry.category_to_entry(category)
        wallet_entry = registry.wallet_to_entry(wallet)

        self.assertEqual(category_entry.id, "101")
        self.assertEqual(category_entry.synonyms, frozenset({"中餐", "便當"}))
        self.assertEqual(wallet_entry.id, str(wallet_id))
        self.assertTrue(wallet_entry.is_default)


class RegistryServiceTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = DummySession()

    async def test_create_category(self) -> None:
        payload = CategoryCreate(code="101", name="午餐", synonyms="中餐, 便當")
        with patch("quickledger.services.registry.get_category", new_callable=AsyncMock) as get_mock:
            get_mock.return_value = None

            category = await registry.create_category(self.session, "user_1", payload)

        self.session.add.assert_called_once_with(category)
        self.session.commit.assert_awaited_once()
        self.assertEqual(category.synonyms, "中餐,便當")
        self.assertEqual(category.ledger, "user_1")

    async def test_create_category_rejects_taken_code(self) -> None:
        payload = CategoryCreate(code="101", name="午餐")
        with patch("quickledger.services.registry.get_category", new_callable=AsyncMock) as get_mock:
            get_mock.return_value = SimpleNamespace(code="101")

            with self.assertRaises(registry.CategoryExistsError):
                await registry.create_category(self.session, "user_1", payload)

        self.session.add.assert_not_called()

    async def test_add_category_synonym(self) -> None:
        category = SimpleNamespace(code="101", synonyms="中餐")
        with patch("quickledger.services.registry.get_category", new_callable=AsyncMock) as get_mock:
            get_mock.return_value = category

            await registry.add_category_synonym(self.session, "user_1", "101", "飯糰")
            await registry.add_category_synonym(self.session, "user_1", "101", "飯糰")

        self.assertEqual(category.synonyms, "中餐,飯糰")
        self.session.commit.assert_awaited_once()

    async def test_add_category_synonym_to_missing_category(self) -> None:
        with patch("quickledger.services.registry.get_category", new_callable=AsyncMock) as get_mock:
            get_mock.return_value = None

            with self.assertRaises(registry.CategoryNotFoundError):
                await registry.add_category_synonym(self.session, "user_1", "404", "x")

    async def test_get_wallet_checks_ledger(self) -> None:
        wallet_id = uuid4()
        self.session.get.return_value = SimpleNamespace(id=wallet_id, ledger="user_2")

        self.assertIsNone(await registry.get_wallet(self.session, "user_1", wallet_id))
        self.assertIsNone(await registry.get_wallet(self.session, "user_1", "not-a-uuid"))
        self.session.get.assert_awaited_once_with(registry.Wallet, wallet_id)

    async def test_default_wallet_replaces_previous_default(self) -> None:
        payload = WalletCreate(name="現金", type=WalletType.CASH, make_default=True)

        wallet = await registry.create_wallet(self.session, "user_1", payload)

        self.session.execute.assert_awaited_once()
        self.session.add.assert_called_once_with(wallet)
        self.assertTrue(wallet.is_default)

    async def test_plain_wallet_leaves_defaults_alone(self) -> None:
        payload = WalletCreate(name="悠遊卡", type=WalletType.CREDIT, synonyms=["easycard"])

        wallet = await registry.create_wallet(self.session, "user_1", payload)

        self.session.execute.assert_not_awaited()
        self.assertEqual(wallet.synonyms, "easycard")
        self.assertFalse(wallet.is_default)


class RecordServiceTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = DummySession()

    async def test_insert_record_maps_fields(self) -> None:
        wallet_id = uuid4()
        record = make_record(id="20251218-00001", wallet_id=str(wallet_id))

        transaction = await records.insert_record(self.session, record)

        self.session.add.assert_called_once_with(transaction)
        self.session.commit.assert_awaited_once()
        self.session.refresh.assert_awaited_once_with(transaction)
        self.assertEqual(transaction.record_id, "20251218-00001")
        self.assertEqual(transaction.wallet_id, wallet_id)
        self.assertEqual(transaction.category_code, "101")
        self.assertEqual(transaction.idempotency_key, "evt-1")

    def test_transaction_to_record(self) -> None:
        wallet_id = uuid4()
        created_at = datetime(2025, 12, 18, 4, 30, tzinfo=timezone.utc)
        transaction = SimpleNamespace(
            record_id="20251218-00001",
            ledger="user_1",
            amount=120,
            type=TransactionType.EXPENSE,
            category_code="101",
            category_name="午餐",
            wallet_id=wallet_id,
            wallet_name="現金",
            description=None,
            original_text="午餐120現金",
            occurred_at=date(2025, 12, 18),
            created_at=created_at,
            status="committed",
            idempotency_key="evt-1",
        )

        record = records.transaction_to_record(transaction)

        self.assertEqual(record.id, "20251218-00001")
        self.assertEqual(record.wallet_id, str(wallet_id))
        self.assertEqual(record.description, "")
        self.assertEqual(record.occurred_on, date(2025, 12, 18))

    async def test_sql_store_translates_unique_violation(self) -> None:
        self.session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        store = records.SqlRecordStore(DummySessionFactory(self.session))

        with self.assertRaises(DuplicateRecordError):
            await store.insert_record(make_record(id="20251218-00001", wallet_id=str(uuid4())))
