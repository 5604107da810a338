import json
import unittest

from examdesk.config import Config
from examdesk.selection.quota import DailyQuotaGate, Entitlement
from web_app import create_app

from support import SCOPE, FakeArchive, FakeOracle, make_candidate, raw_item, temp_repo


ENRICHED = json.dumps({"summary": "RBI held rates.", "exam_points": ["Repo 6.5%"]})


class TestWebApp(unittest.TestCase):
    def setUp(self):
        self.repo = temp_repo(self)
        self.archive = FakeArchive([raw_item(i, day=i + 1) for i in range(3)])
        self.oracle = FakeOracle("[1, 0]")
        self.quota = DailyQuotaGate(default_quota=10)
        self.app = create_app(
            Config(), repo=self.repo, oracle=self.oracle, quota=self.quota, archive=self.archive
        )
        self.client = self.app.test_client()

    def _scope_body(self, **overrides):
        body = {"year": SCOPE.year, "month": SCOPE.month, "section": SCOPE.section, "category": SCOPE.category}
        body.update(overrides)
        return body

    def _seed(self, n=4):
        rows = [make_candidate(i, day=i + 1) for i in range(n)]
        self.repo.insert_candidates(rows)
        return rows

    def test_health_and_sections(self):
        self.assertEqual(self.client.get("/api/health").get_json()["status"], "ok")
        sections = self.client.get("/api/sections").get_json()["sections"]
        self.assertIn("banking-finance", [s["id"] for s in sections])

    def test_candidates_endpoint(self):
        resp = self.client.post("/api/candidates", json=self._scope_body(year=2024, month="march"))
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["source"], "fresh")
        self.assertEqual(data["total"], 3)
        self.assertEqual(data["fetched"]["archive"], 3)
        self.assertEqual(data["candidates"][0]["month"], 3)

    def test_candidates_validation(self):
        self.assertEqual(self.client.post("/api/candidates", json={"year": 2025}).status_code, 400)
        resp = self.client.post("/api/candidates", json=self._scope_body(month="smarch"))
        self.assertEqual(resp.status_code, 400)

    def test_rerank_fresh_then_cached(self):
        rows = self._seed()
        first = self.client.post("/api/rerank", json=self._scope_body()).get_json()
        second = self.client.post("/api/rerank", json=self._scope_body()).get_json()
        self.assertEqual(first["source"], "fresh")
        self.assertEqual(second["source"], "cache")
        self.assertEqual(first["selectedCount"], 2)
        self.assertEqual(first["candidateCount"], len(rows))
        self.assertEqual([i["id"] for i in first["items"]], [i["id"] for i in second["items"]])

    def test_rerank_empty_scope(self):
        data = self.client.post("/api/rerank", json=self._scope_body()).get_json()
        self.assertEqual(data["source"], "empty")
        self.assertEqual(data["items"], [])

    def test_rerank_failure_is_bad_gateway(self):
        self._seed()
        self.oracle.answers = ["no idea"]
        self.assertEqual(self.client.post("/api/rerank", json=self._scope_body()).status_code, 502)

    def test_rerank_without_oracle(self):
        app = create_app(Config(), repo=self.repo, quota=self.quota, archive=self.archive)
        resp = app.test_client().post("/api/rerank", json=self._scope_body())
        self.assertEqual(resp.status_code, 500)

    def test_enrich_requires_user(self):
        rows = self._seed(1)
        resp = self.client.post("/api/enrich", json={"candidate_ids": [rows[0].id]})
        self.assertEqual(resp.status_code, 401)

    def test_enrich_flow(self):
        rows = self._seed(2)
        self.oracle.answers = [ENRICHED]
        headers = {"X-User-Id": "user-1"}
        resp = self.client.post("/api/enrich", json={"candidate_ids": [r.id for r in rows]}, headers=headers)
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["source"], "llm")
        self.assertEqual(data["credits_used"], 2)
        self.assertEqual(data["remaining_quota"], 8)

        again = self.client.post("/api/enrich", json={"draft_ids": [rows[0].id]}, headers=headers).get_json()
        self.assertEqual(again["source"], "cache")
        self.assertEqual(again["credits_used"], 0)

    def test_enrich_errors(self):
        rows = self._seed(3)
        headers = {"Authorization": "Bearer user-2"}
        self.assertEqual(self.client.post("/api/enrich", json={"candidate_ids": []}, headers=headers).status_code, 400)
        too_many = {"candidate_ids": [f"id-{i}" for i in range(6)]}
        self.assertEqual(self.client.post("/api/enrich", json=too_many, headers=headers).status_code, 400)
        missing = {"candidate_ids": ["unknown"]}
        self.assertEqual(self.client.post("/api/enrich", json=missing, headers=headers).status_code, 404)

        self.quota.set_entitlement("user-2", Entitlement(plan="free", daily_enrich_quota=2))
        resp = self.client.post("/api/enrich", json={"candidate_ids": [r.id for r in rows]}, headers=headers)
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.get_json()["remaining_quota"], 2)
        self.assertEqual(self.oracle.calls, [])


if __name__ == "__main__":
    unittest.main()
