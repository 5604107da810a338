import unittest

from examdesk.contracts.enrichment import coerce_enrichment, fallback_enrichment, validate_enrichment


class TestEnrichmentContract(unittest.TestCase):
    def test_valid_payload(self):
        payload = {
            "summary": "Cabinet approved the scheme.",
            "exam_points": ["Outlay Rs 10,000 crore"],
            "mcqs": [{"question": "Outlay?", "options": ["1", "2"], "answer": 0}],
        }
        self.assertEqual(validate_enrichment(payload), [])
        out = coerce_enrichment(payload, title="T", snippet="S")
        self.assertFalse(out.degraded)
        self.assertEqual(out.mcqs[0]["question"], "Outlay?")

    def test_missing_fields_reported(self):
        errors = validate_enrichment({"exam_points": "not a list"})
        self.assertTrue(any("summary" in e for e in errors))
        self.assertTrue(any(e.startswith("exam_points") for e in errors))

    def test_broken_fields_fall_back_individually(self):
        out = coerce_enrichment({"summary": "Good summary", "exam_points": []}, title="Title", snippet="Snip")
        self.assertEqual(out.summary, "Good summary")
        self.assertEqual(out.exam_points, ["Title"])
        self.assertTrue(out.degraded)

        out = coerce_enrichment({"summary": 42, "exam_points": ["p"]}, title="Title", snippet=None)
        self.assertEqual(out.summary, "Title")
        self.assertEqual(out.exam_points, ["p"])

    def test_bad_mcqs_dropped_without_degrading(self):
        out = coerce_enrichment(
            {"summary": "s", "exam_points": ["p"], "mcqs": [{"options": []}]}, title="T", snippet=None
        )
        self.assertIsNone(out.mcqs)
        self.assertFalse(out.degraded)

    def test_fallback(self):
        out = fallback_enrichment("Title", "Snippet")
        self.assertEqual((out.summary, out.exam_points, out.degraded), ("Snippet", ["Title"], True))
        self.assertTrue(coerce_enrichment(["not", "an", "object"], title="T", snippet=None).degraded)


if __name__ == "__main__":
    unittest.main()
