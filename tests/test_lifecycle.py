import tempfile
import unittest
from pathlib import Path

import httpx

from tests.support import ORIGIN, FakeUpstream, make_state

from offline_gateway.core.precache import clear_precache_manifest_cache, get_precache_manifest
from offline_gateway.worker.events import ActivateEvent, FetchEvent, InstallEvent, dispatch
from offline_gateway.worker.state import WorkerPhase
from offline_gateway.worker.types import WorkerRequest, WorkerResponse

MANIFEST = (
    "/",
    "/offline.html",
    "/css/main.css",
    "/js/chat.js",
    "https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css",
)


class PrecacheManifestTests(unittest.TestCase):
    def tearDown(self):
        clear_precache_manifest_cache()

    def test_repository_manifest_is_ordered_and_includes_offline_page(self):
        assets = get_precache_manifest()
        self.assertEqual(assets[0], "/")
        self.assertIn("/offline.html", assets)
        self.assertIn("/css/main.css", assets)
        self.assertEqual(len(assets), len(set(assets)))

    def test_missing_manifest_raises(self):
        with self.assertRaises(RuntimeError):
            get_precache_manifest("/nonexistent/precache.yaml")

    def test_manifest_requires_assets_list(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "precache.yaml"
            path.write_text("assets: /index.html\n", encoding="utf-8")
            with self.assertRaises(RuntimeError):
                get_precache_manifest(path)


class LifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.upstream = FakeUpstream()
        for url in MANIFEST:
            self.upstream.add(url, body=f"content of {url}")
        self.state = make_state(self.upstream)

    async def asyncTearDown(self):
        await self.state.aclose()

    async def test_install_precaches_every_manifest_url(self):
        installed = await dispatch(self.state, InstallEvent(manifest=MANIFEST))

        self.assertTrue(installed)
        self.assertEqual(self.state.phase, WorkerPhase.INSTALLED)
        self.assertTrue(self.state.skip_waiting)
        entries = self.state.registry.entries("zewed-ai-v2.0.0")
        self.assertEqual(len(entries), len(MANIFEST))
        self.assertIn(f"GET {ORIGIN}/offline.html", entries)
        cdn = WorkerRequest(url=MANIFEST[-1])
        self.assertIsNotNone(self.state.registry.match(cdn))

    async def test_precached_entries_never_keep_cookies(self):
        self.upstream.add(
            "/",
            handler=lambda request: httpx.Response(
                200, content=b"<html></html>", headers={"set-cookie": "sid=abc123"}, request=request
            ),
        )
        await dispatch(self.state, InstallEvent(manifest=MANIFEST))
        cached = self.state.registry.match(WorkerRequest(url=f"{ORIGIN}/"))
        self.assertEqual(cached.body, b"<html></html>")
        self.assertNotIn("set-cookie", cached.headers)

    async def test_install_is_all_or_nothing(self):
        self.upstream.fail("/js/chat.js")

        installed = await dispatch(self.state, InstallEvent(manifest=MANIFEST))

        self.assertFalse(installed)
        self.assertEqual(self.state.phase, WorkerPhase.REDUNDANT)
        self.assertEqual(self.state.registry.keys(), [])

    async def test_install_fails_on_error_status(self):
        self.upstream.add("/css/main.css", status=404, body="missing")
        installed = await dispatch(self.state, InstallEvent(manifest=MANIFEST))
        self.assertFalse(installed)
        self.assertEqual(self.state.registry.keys(), [])

    async def test_failed_reinstall_leaves_serving_version_untouched(self):
        await dispatch(self.state, InstallEvent(manifest=MANIFEST))
        await dispatch(self.state, ActivateEvent())
        before = self.state.registry.entries("zewed-ai-v2.0.0")

        self.upstream.offline = True
        installed = await dispatch(self.state, InstallEvent(manifest=MANIFEST))

        self.assertFalse(installed)
        self.assertEqual(self.state.phase, WorkerPhase.ACTIVATED)
        self.assertEqual(self.state.registry.entries("zewed-ai-v2.0.0"), before)

    async def test_reinstall_keeps_serving_from_cache_until_next_activation(self):
        await dispatch(self.state, InstallEvent(manifest=MANIFEST))
        await dispatch(self.state, ActivateEvent())

        self.assertTrue(await dispatch(self.state, InstallEvent(manifest=MANIFEST)))
        self.assertEqual(self.state.phase, WorkerPhase.INSTALLED)
        self.assertTrue(self.state.intercepting)

        self.upstream.offline = True
        response = await dispatch(self.state, FetchEvent(request=WorkerRequest(url="/css/main.css")))
        await self.state.drain()

        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"content of /css/main.css")

    async def test_activate_deletes_old_versions(self):
        for name in ("zewed-ai-v1.0.0", "zewed-dynamic-v0.1.0", "some-other-cache"):
            self.state.registry.put(name, WorkerRequest(url=f"{ORIGIN}/x.css"), WorkerResponse(status=200, body=b"old"))
        await dispatch(self.state, InstallEvent(manifest=MANIFEST))
        self.state.registry.open("zewed-dynamic-v1.0.0")

        deleted = await dispatch(self.state, ActivateEvent())

        self.assertEqual(sorted(deleted), ["some-other-cache", "zewed-ai-v1.0.0", "zewed-dynamic-v0.1.0"])
        self.assertEqual(sorted(self.state.registry.keys()), ["zewed-ai-v2.0.0", "zewed-dynamic-v1.0.0"])
        self.assertEqual(self.state.phase, WorkerPhase.ACTIVATED)
        self.assertTrue(self.state.intercepting)

    async def test_activate_claims_known_clients(self):
        client = self.state.clients.register(f"{ORIGIN}/index.html")
        await dispatch(self.state, ActivateEvent())
        self.assertTrue(client.controlled)


if __name__ == "__main__":
    unittest.main()
