import unittest

from cf_reports.errors import FetchError
from cf_reports.fetcher import Page, fetch_all, with_page_size


def paged(resources, page_size):
    """Split ``resources`` into a dict of token -> Page, starting at "page-1"."""
    chunks = [resources[idx:idx + page_size] for idx in range(0, len(resources), page_size)] or [[]]
    pages = {}
    for idx, chunk in enumerate(chunks):
        next_token = f"page-{idx + 2}" if idx < len(chunks) - 1 else None
        pages[f"page-{idx + 1}"] = Page(chunk, next_token)
    return pages


class Requester:
    def __init__(self, pages, fail_on=None):
        self.pages = pages
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, token):
        self.calls.append(token)
        if token == self.fail_on:
            raise RuntimeError("connection reset")
        return self.pages[token]


class TestFetchAll(unittest.TestCase):
    def setUp(self):
        self.resources = [{"guid": f"guid-{idx}"} for idx in range(23)]

    def test_same_resources_for_any_page_size(self):
        for page_size in (1, 5, 10, 23, 50):
            pages = paged(self.resources, page_size)
            requester = Requester(pages)
            result = fetch_all(requester, "page-1")
            self.assertEqual(result, self.resources)
            self.assertEqual(len(requester.calls), len(pages))

    def test_empty_first_page(self):
        requester = Requester({"page-1": Page([], None)})
        self.assertEqual(fetch_all(requester, "page-1"), [])
        self.assertEqual(requester.calls, ["page-1"])

    def test_failure_on_any_page_raises(self):
        pages = paged(self.resources, 5)
        for failing in pages:
            requester = Requester(pages, fail_on=failing)
            with self.assertRaises(FetchError) as ctx:
                fetch_all(requester, "page-1")
            self.assertEqual(ctx.exception.endpoint, "page-1")
            self.assertIsInstance(ctx.exception.cause, RuntimeError)
            self.assertEqual(requester.calls[-1], failing)

    def test_fetch_error_from_transport_keeps_cause(self):
        def requester(token):
            raise FetchError(token, "404 not found")

        with self.assertRaises(FetchError) as ctx:
            fetch_all(requester, "/v3/apps")
        self.assertEqual(ctx.exception.cause, "404 not found")

    def test_repeated_token_raises(self):
        pages = {"a": Page([1], "b"), "b": Page([2], "a")}
        with self.assertRaises(FetchError):
            fetch_all(Requester(pages), "a")


class TestWithPageSize(unittest.TestCase):
    def test_adds_per_page(self):
        self.assertEqual(with_page_size("/v3/apps", 100), "/v3/apps?per_page=100")

    def test_appends_to_existing_query(self):
        self.assertEqual(
            with_page_size("/v3/apps?space_guids=abc", 100),
            "/v3/apps?space_guids=abc&per_page=100",
        )

    def test_keeps_existing_per_page(self):
        self.assertEqual(with_page_size("/v3/apps?per_page=10", 100), "/v3/apps?per_page=10")


if __name__ == "__main__":
    unittest.main()
