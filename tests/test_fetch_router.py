import unittest

from tests.support import ORIGIN

from offline_gateway.worker.router import RequestKind, RoutingRules, Strategy, classify, route
from offline_gateway.worker.types import WorkerRequest


class FetchRouterTests(unittest.TestCase):
    def setUp(self):
        self.rules = RoutingRules()

    def _route(self, url, method="GET", accept=""):
        headers = {"Accept": accept} if accept else {}
        return route(WorkerRequest(url=url, method=method, headers=headers), self.rules)

    def test_writes_pass_through(self):
        for method in ("POST", "PUT", "DELETE", "PATCH"):
            selected = self._route(f"{ORIGIN}/api/chat/messages", method=method)
            self.assertEqual(selected.kind, RequestKind.IGNORED)
            self.assertEqual(selected.strategy, Strategy.PASSTHROUGH)

    def test_non_http_scheme_passes_through(self):
        selected = self._route("chrome-extension://abcdef/script.js")
        self.assertEqual(selected.strategy, Strategy.PASSTHROUGH)

    def test_api_prefix_is_network_first(self):
        selected = self._route(f"{ORIGIN}/api/jobs?q=python", accept="text/html")
        self.assertEqual(selected.kind, RequestKind.API)
        self.assertEqual(selected.strategy, Strategy.NETWORK_FIRST)

    def test_api_marker_anywhere_in_path_is_network_first(self):
        selected = self._route(f"{ORIGIN}/services/api.v2/jobs")
        self.assertEqual(selected.kind, RequestKind.API)
        self.assertEqual(selected.strategy, Strategy.NETWORK_FIRST)

    def test_api_subdomain_alone_is_not_api(self):
        selected = self._route("https://api.zewed.test/v2/jobs")
        self.assertEqual(selected.kind, RequestKind.OTHER)

    def test_api_prefix_wins_over_static_extension(self):
        selected = self._route(f"{ORIGIN}/api/export/report.css")
        self.assertEqual(selected.kind, RequestKind.API)

    def test_static_extensions_are_cache_first(self):
        for path in ("/css/main.css", "/js/chat.js", "/assets/icons/icon-72x72.png", "/img/a.jpg",
                     "/logo.svg", "/fonts/a.woff", "/fonts/a.woff2", "/fonts/a.ttf", "/CSS/UPPER.CSS"):
            selected = self._route(ORIGIN + path)
            self.assertEqual(selected.kind, RequestKind.STATIC, path)
            self.assertEqual(selected.strategy, Strategy.CACHE_FIRST, path)

    def test_unlisted_extension_is_not_static(self):
        selected = self._route(f"{ORIGIN}/assets/videos/intro.mp4")
        self.assertEqual(selected.kind, RequestKind.OTHER)

    def test_html_navigation_is_network_first(self):
        selected = self._route(f"{ORIGIN}/job-listings.html", accept="text/html,application/xhtml+xml")
        self.assertEqual(selected.kind, RequestKind.HTML)
        self.assertEqual(selected.strategy, Strategy.NETWORK_FIRST)

    def test_missing_accept_header_falls_to_other(self):
        selected = self._route(f"{ORIGIN}/manifest.json")
        self.assertEqual(selected.kind, RequestKind.OTHER)
        self.assertEqual(selected.strategy, Strategy.NETWORK_FIRST)

    def test_relative_url_is_treated_as_http(self):
        self.assertEqual(classify(WorkerRequest(url="/css/main.css"), self.rules), RequestKind.STATIC)

    def test_custom_rules(self):
        rules = RoutingRules(api_prefix="/backend/", static_extensions=frozenset({"webp"}))
        self.assertEqual(classify(WorkerRequest(url=f"{ORIGIN}/backend/x"), rules), RequestKind.API)
        self.assertEqual(classify(WorkerRequest(url=f"{ORIGIN}/a.webp"), rules), RequestKind.STATIC)
        self.assertEqual(classify(WorkerRequest(url=f"{ORIGIN}/a.css"), rules), RequestKind.OTHER)

    def test_every_kind_has_a_strategy(self):
        urls = [
            ("GET", f"{ORIGIN}/api/x", ""),
            ("GET", f"{ORIGIN}/a.css", ""),
            ("GET", f"{ORIGIN}/page", "text/html"),
            ("GET", f"{ORIGIN}/data", ""),
            ("POST", f"{ORIGIN}/data", ""),
        ]
        kinds = set()
        for method, url, accept in urls:
            selected = self._route(url, method=method, accept=accept)
            self.assertIsInstance(selected.strategy, Strategy)
            kinds.add(selected.kind)
        self.assertEqual(kinds, set(RequestKind))


if __name__ == "__main__":
    unittest.main()
