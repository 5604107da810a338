import os
import tempfile
import unittest
from datetime import date
from unittest import mock

from examdesk.config import Config
from examdesk.selection.quota import DailyQuotaGate, Entitlement
from examdesk.storage.sqlite_repo import SQLiteRepo


class TestConfig(unittest.TestCase):
    @mock.patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = Config.from_env(load_dotenv_file=False)
        self.assertEqual(config.candidate_threshold, 30)
        self.assertEqual(config.selection_size, 20)
        self.assertEqual(config.enrich_max_items, 5)
        self.assertIsNone(config.build_oracle())

    @mock.patch.dict(os.environ, {"CANDIDATE_THRESHOLD": "12", "OPENROUTER_API_KEY": "or-key"}, clear=True)
    def test_overrides_and_key_fallback(self):
        config = Config.from_env(load_dotenv_file=False)
        self.assertEqual(config.candidate_threshold, 12)
        oracle = config.build_oracle()
        self.assertEqual(oracle.api_key, "or-key")
        self.assertEqual(oracle.retry_policy.max_attempts, 3)

    @mock.patch.dict(
        os.environ,
        {"SELECTION_SIZE": "0", "FEED_TIMEOUT": "900", "SEARCH_COUNTRY": "india"},
        clear=True,
    )
    def test_all_errors_reported_together(self):
        with self.assertRaises(ValueError) as ctx:
            Config.from_env(load_dotenv_file=False)
        message = str(ctx.exception)
        self.assertIn("SELECTION_SIZE must be positive", message)
        self.assertIn("FEED_TIMEOUT", message)
        self.assertIn("SEARCH_COUNTRY", message)

    def test_sqlite_is_the_default_store(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = Config.from_env(load_dotenv_file=False)
        config.db_path = os.path.join(self._tmpdir(), "x.db")
        self.assertIsInstance(config.build_repo(), SQLiteRepo)

    def _tmpdir(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return tmp.name


class TestDailyQuotaGate(unittest.TestCase):
    def test_usage_resets_each_day(self):
        today = [date(2025, 3, 5)]
        gate = DailyQuotaGate(default_quota=3, today=lambda: today[0])
        gate.record_usage("u", 2)
        self.assertEqual(gate.remaining("u"), 1)
        self.assertEqual(gate.remaining("someone-else"), 3)
        today[0] = date(2025, 3, 6)
        self.assertEqual(gate.remaining("u"), 3)

    def test_earlier_days_are_dropped_on_record(self):
        today = [date(2025, 3, 5)]
        gate = DailyQuotaGate(default_quota=3, today=lambda: today[0])
        gate.record_usage("u", 1)
        gate.record_usage("v", 2)
        today[0] = date(2025, 3, 6)
        gate.record_usage("u", 1)
        self.assertEqual(list(gate._usage), [("u", date(2025, 3, 6))])
        self.assertEqual(gate.remaining("u"), 2)

    def test_plan_entitlement(self):
        gate = DailyQuotaGate(entitlements={"pro": Entitlement(plan="pro", export_enabled=True, daily_enrich_quota=100)})
        self.assertEqual(gate.entitlement("pro").plan, "pro")
        self.assertEqual(gate.remaining("pro"), 100)
        self.assertEqual(gate.entitlement("anon").plan, "free")


if __name__ == "__main__":
    unittest.main()
