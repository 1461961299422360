import unittest

from backend.pwa import CachePolicy, build_manifest, service_worker_config
from backend.versioning import BuildSnapshot, PrecacheEntry
from testing_utils import make_settings


class ManifestTests(unittest.TestCase):
    def test_default_manifest(self):
        manifest = build_manifest(make_settings("dist"))
        self.assertEqual(manifest["name"], "KPSS Bilgi Kartları")
        self.assertEqual(manifest["short_name"], "KPSS Kartları")
        self.assertEqual(manifest["display"], "standalone")
        self.assertEqual(manifest["scope"], "/")
        self.assertEqual(manifest["start_url"], "/")
        self.assertEqual(manifest["theme_color"], "#4f46e5")
        self.assertEqual(
            manifest["icons"],
            [
                {
                    "src": "pwa-icon.svg",
                    "sizes": "192x192 512x512",
                    "type": "image/svg+xml",
                }
            ],
        )

    def test_manifest_follows_settings(self):
        manifest = build_manifest(make_settings("dist", app_short_name="Kartlar"))
        self.assertEqual(manifest["short_name"], "Kartlar")


class CachePolicyTests(unittest.TestCase):
    def test_from_settings(self):
        policy = CachePolicy.from_settings(make_settings("dist", skip_waiting=False))
        self.assertEqual(policy.register_type, "autoUpdate")
        self.assertFalse(policy.skip_waiting)
        self.assertTrue(policy.clients_claim)
        self.assertTrue(policy.cleanup_outdated_caches)
        self.assertIn("favicon.ico", policy.include_assets)

    def test_service_worker_config(self):
        snapshot = BuildSnapshot(
            version="abcd1234",
            entries=(PrecacheEntry(url="index.html", revision="r1"),),
        )
        config = service_worker_config(CachePolicy(), snapshot)
        self.assertEqual(config["version"], "abcd1234")
        self.assertEqual(config["precache"], [{"url": "index.html", "revision": "r1"}])
        self.assertTrue(config["skip_waiting"])
        self.assertEqual(config["include_assets"], [])


if __name__ == "__main__":
    unittest.main()
