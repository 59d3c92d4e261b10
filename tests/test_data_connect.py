import os
import unittest
from unittest import mock
import pandas as pd
import requests
from tests.conftest import MockConnector, MockResponse, MockSession, make_temp_dir, cleanup_dir
from tidyposts.data_connect.dataset_urls import EMPLOYED_CSV_URL, dataset_url, dataset_urls
from tidyposts.data_connect.http_connector import HttpCsvConnector, fetch_dataset
from tidyposts.exceptions import DataFetchError
from tidyposts.utils.io import read_or_fetch

CSV = "a,b\n1,x\n2,y\n"


class TestDatasetUrls(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(dataset_url("employed"), EMPLOYED_CSV_URL)
            self.assertEqual(set(dataset_urls()), {"employed", "nber_papers", "nber_programs", "nber_paper_programs"})

    def test_env_override(self):
        with mock.patch.dict(os.environ, {"TIDYPOSTS_EMPLOYED_URL": "http://mirror/employed.csv"}):
            self.assertEqual(dataset_url("employed"), "http://mirror/employed.csv")

    def test_unknown(self):
        with self.assertRaises(KeyError):
            dataset_url("nope")


class TestHttpCsvConnector(unittest.TestCase):
    def _connector(self, responses, retries=3):
        session = MockSession(responses)
        return HttpCsvConnector(timeout=1, max_retries=retries, backoff=0, session=session), session

    def test_fetch_csv(self):
        conn, session = self._connector([MockResponse(200, CSV)])
        df = conn.fetch_csv("http://x/data.csv")
        self.assertEqual(list(df.columns), ["a", "b"])
        self.assertEqual(len(df), 2)
        self.assertEqual(session.calls, ["http://x/data.csv"])

    def test_retries_transient_failures(self):
        conn, session = self._connector([
            requests.ConnectionError("reset"),
            MockResponse(503, ""),
            MockResponse(200, CSV),
        ])
        df = conn.fetch_csv("http://x/data.csv")
        self.assertEqual(len(df), 2)
        self.assertEqual(len(session.calls), 3)

    def test_gives_up_after_max_retries(self):
        conn, session = self._connector([requests.Timeout("slow")] * 2, retries=2)
        with self.assertRaises(DataFetchError) as ctx:
            conn.fetch_csv("http://x/data.csv")
        self.assertEqual(ctx.exception.url, "http://x/data.csv")
        self.assertEqual(len(session.calls), 2)

    def test_truncated_body_is_retried(self):
        conn, session = self._connector([
            requests.exceptions.ChunkedEncodingError("cut"),
            MockResponse(200, CSV),
        ])
        self.assertEqual(len(conn.fetch_csv("http://x/data.csv")), 2)
        self.assertEqual(len(session.calls), 2)

    def test_truncated_body_gives_up_as_fetch_error(self):
        conn, session = self._connector([requests.exceptions.ChunkedEncodingError("cut")] * 2, retries=2)
        with self.assertRaises(DataFetchError) as ctx:
            conn.fetch_csv("http://x/data.csv")
        self.assertIn("cut", ctx.exception.reason)
        self.assertEqual(len(session.calls), 2)

    def test_other_request_errors_wrapped_without_retry(self):
        for exc in (requests.TooManyRedirects("loop"), requests.exceptions.InvalidURL("bad")):
            conn, session = self._connector([exc])
            with self.assertRaises(DataFetchError):
                conn.fetch_csv("http://x/data.csv")
            self.assertEqual(len(session.calls), 1)

    def test_not_found_is_not_retried(self):
        conn, session = self._connector([MockResponse(404, "")])
        with self.assertRaises(DataFetchError) as ctx:
            conn.fetch_csv("http://x/missing.csv")
        self.assertIn("404", ctx.exception.reason)
        self.assertEqual(len(session.calls), 1)

    def test_empty_body(self):
        conn, _ = self._connector([MockResponse(200, "")])
        with self.assertRaises(DataFetchError):
            conn.fetch_csv("http://x/empty.csv")

    def test_context_manager_closes_session(self):
        conn, session = self._connector([])
        with conn:
            pass
        self.assertTrue(session.closed)

    def test_invalid_retries(self):
        with self.assertRaises(ValueError):
            HttpCsvConnector(max_retries=0)


class TestDownloadCache(unittest.TestCase):
    def setUp(self):
        self.tmp = make_temp_dir()

    def tearDown(self):
        cleanup_dir(self.tmp)

    def test_read_or_fetch_caches(self):
        calls = []

        def fetch(url):
            calls.append(url)
            return pd.DataFrame({"a": [1, 2]})

        first = read_or_fetch("http://x/a.csv", fetch, cache_dir=self.tmp)
        second = read_or_fetch("http://x/a.csv", fetch, cache_dir=self.tmp)
        pd.testing.assert_frame_equal(first, second)
        self.assertEqual(len(calls), 1)
        read_or_fetch("http://x/a.csv", fetch, cache_dir=self.tmp, force=True)
        self.assertEqual(len(calls), 2)

    def test_fetch_dataset_uses_connector(self):
        frames = {dataset_url("employed"): pd.DataFrame({"employ_n": [1.0]})}
        conn = MockConnector(frames)
        df = fetch_dataset("employed", conn, cache_dir=self.tmp)
        fetch_dataset("employed", conn, cache_dir=self.tmp)
        self.assertEqual(df["employ_n"].tolist(), [1.0])
        self.assertEqual(len(conn.calls), 1)


if __name__ == '__main__':
    unittest.main()
