import unittest
from unittest import mock

import requests

from examdesk.llm.oracle import OracleClient, OracleError, OracleUnavailableError
from examdesk.llm.retry import RetriesExhaustedError, RetryableStatusError, RetryPolicy


def _resp(status, payload=None, text=""):
    r = mock.Mock()
    r.status_code = status
    r.text = text
    r.json.return_value = payload
    return r


def _ok(content):
    return _resp(200, {"choices": [{"message": {"content": content}}], "usage": {"prompt_tokens": 10}})


class TestRetryPolicy(unittest.TestCase):
    def test_linear_backoff_then_success(self):
        sleeps = []
        policy = RetryPolicy(max_attempts=3, backoff_seconds=2.0, sleep=sleeps.append)
        calls = iter([RetryableStatusError(429), requests.ConnectionError("reset"), "done"])

        def func():
            value = next(calls)
            if isinstance(value, Exception):
                raise value
            return value

        self.assertEqual(policy.run(func), "done")
        self.assertEqual(sleeps, [2.0, 4.0])

    def test_gives_up_after_max_attempts(self):
        sleeps = []
        policy = RetryPolicy(max_attempts=3, backoff_seconds=1.0, sleep=sleeps.append)
        with self.assertRaises(RetriesExhaustedError) as ctx:
            policy.run(mock.Mock(side_effect=RetryableStatusError(503)))
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_non_retryable_propagates_immediately(self):
        func = mock.Mock(side_effect=ValueError("bad"))
        with self.assertRaises(ValueError):
            RetryPolicy(sleep=lambda s: None).run(func)
        self.assertEqual(func.call_count, 1)
        self.assertFalse(RetryPolicy().is_retryable(RetryableStatusError(500)))


class TestOracleClient(unittest.TestCase):
    def _client(self, session, attempts=3):
        return OracleClient(
            api_key="k",
            session=session,
            retry_policy=RetryPolicy(max_attempts=attempts, backoff_seconds=0, sleep=lambda s: None),
        )

    def test_returns_message_content(self):
        session = mock.Mock()
        session.post.return_value = _ok("[1, 2]")
        client = self._client(session)
        self.assertEqual(client.complete("sys", "user", max_tokens=50), "[1, 2]")
        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "https://openrouter.ai/api/v1/chat/completions")
        self.assertEqual(kwargs["json"]["max_tokens"], 50)
        self.assertEqual(kwargs["json"]["messages"][0], {"role": "system", "content": "sys"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer k")

    def test_rate_limit_is_retried(self):
        session = mock.Mock()
        session.post.side_effect = [_resp(429, text="slow down"), _ok("ok")]
        self.assertEqual(self._client(session).complete("s", "u"), "ok")
        self.assertEqual(session.post.call_count, 2)

    def test_persistent_unavailability(self):
        session = mock.Mock()
        session.post.return_value = _resp(503, text="busy")
        with self.assertRaises(OracleUnavailableError):
            self._client(session, attempts=2).complete("s", "u")
        self.assertEqual(session.post.call_count, 2)

    def test_auth_and_server_errors_are_not_retried(self):
        for status in (401, 400, 500):
            with self.subTest(status=status):
                session = mock.Mock()
                session.post.return_value = _resp(status, text="nope")
                with self.assertRaises(OracleError) as ctx:
                    self._client(session).complete("s", "u")
                self.assertNotIsInstance(ctx.exception, OracleUnavailableError)
                self.assertEqual(session.post.call_count, 1)

    def test_unexpected_payload(self):
        session = mock.Mock()
        session.post.return_value = _resp(200, {"error": "weird"})
        with self.assertRaises(OracleError):
            self._client(session).complete("s", "u")


if __name__ == "__main__":
    unittest.main()
