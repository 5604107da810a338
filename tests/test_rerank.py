import unittest
from unittest import mock

from examdesk.llm.oracle import OracleError, OracleUnavailableError
from examdesk.selection.rerank import RerankEngine, SelectionFailedError
from examdesk.storage.repo_base import RepoError

from support import SCOPE, FakeOracle, make_candidate, temp_repo


class TestRerankEngine(unittest.TestCase):
    def setUp(self):
        self.repo = temp_repo(self)
        self.repo.insert_candidates([make_candidate(i, day=i + 1) for i in range(6)])
        self.listed = self.repo.list_candidates(SCOPE, limit=10)

    def test_empty_scope(self):
        oracle = FakeOracle("[0]")
        repo = temp_repo(self)
        result = RerankEngine(repo=repo, oracle=oracle).rerank(SCOPE)
        self.assertEqual(result.source, "empty")
        self.assertEqual(result.items, [])
        self.assertTrue(result.message)
        self.assertEqual(oracle.calls, [])

    def test_invalid_indices_are_dropped(self):
        oracle = FakeOracle("Here you go: [-1, 3, 999]")
        result = RerankEngine(repo=self.repo, oracle=oracle).rerank(SCOPE)
        self.assertEqual(result.source, "fresh")
        self.assertEqual([c.id for c in result.items], [self.listed[3].id])
        self.assertEqual(result.candidate_count, 6)

    def test_second_call_is_served_from_cache(self):
        oracle = FakeOracle("```json\n[2, 0]\n```")
        engine = RerankEngine(repo=self.repo, oracle=oracle)
        first = engine.rerank(SCOPE)
        second = engine.rerank(SCOPE)
        self.assertEqual(first.source, "fresh")
        self.assertEqual(second.source, "cache")
        self.assertEqual([c.id for c in first.items], [c.id for c in second.items])
        self.assertEqual(engine.oracle_calls, 1)

    def test_new_candidate_changes_the_set_hash(self):
        oracle = FakeOracle("[0]")
        engine = RerankEngine(repo=self.repo, oracle=oracle)
        first = engine.rerank(SCOPE)
        self.repo.insert_candidates([make_candidate(100, day=28)])
        second = engine.rerank(SCOPE)
        self.assertNotEqual(first.candidate_set_hash, second.candidate_set_hash)
        self.assertEqual(second.source, "fresh")
        self.assertEqual(engine.oracle_calls, 2)

    def test_prompt_version_bump_recomputes(self):
        oracle = FakeOracle("[1]")
        RerankEngine(repo=self.repo, oracle=oracle, prompt_version=1).rerank(SCOPE)
        result = RerankEngine(repo=self.repo, oracle=oracle, prompt_version=2).rerank(SCOPE)
        self.assertEqual(result.source, "fresh")
        self.assertEqual(len(oracle.calls), 2)

    def test_selection_is_capped(self):
        oracle = FakeOracle("[0, 1, 2, 3, 4, 5]")
        result = RerankEngine(repo=self.repo, oracle=oracle, selection_size=2).rerank(SCOPE)
        self.assertEqual(result.selected_count, 2)

    def test_malformed_or_empty_answers_fail(self):
        for answer in ("I cannot help with that", "[]", "[-5, 42]"):
            with self.subTest(answer=answer):
                repo = temp_repo(self)
                repo.insert_candidates([make_candidate(1)])
                with self.assertRaises(SelectionFailedError):
                    RerankEngine(repo=repo, oracle=FakeOracle(answer)).rerank(SCOPE)
                self.assertIsNone(repo.get_selection(SCOPE, "anything", 1))

    def test_oracle_errors_become_selection_failures(self):
        for err in (OracleUnavailableError("busy"), OracleError("bad key")):
            with self.subTest(err=err):
                with self.assertRaises(SelectionFailedError):
                    RerankEngine(repo=self.repo, oracle=FakeOracle(err)).rerank(SCOPE)

    def test_store_failure_still_returns_selection(self):
        oracle = FakeOracle("[0]")
        engine = RerankEngine(repo=self.repo, oracle=oracle)
        with mock.patch.object(self.repo, "insert_selection", side_effect=RepoError("disk full")):
            result = engine.rerank(SCOPE)
        self.assertEqual(result.source, "fresh")
        self.assertEqual(result.selected_count, 1)

    def test_prompt_lists_every_candidate(self):
        oracle = FakeOracle("[0]")
        RerankEngine(repo=self.repo, oracle=oracle).rerank(SCOPE)
        _, user = oracle.calls[0]
        for i in range(6):
            self.assertIn(f"[{i}]", user)


if __name__ == "__main__":
    unittest.main()
