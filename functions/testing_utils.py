"""
Helpers shared by the backend tests.
"""

from pathlib import Path

from backend.config import Settings

VALID_IDENTITY = {
    "apiKey": "AIzaSyTestKey-kpss-cards",
    "authDomain": "kpss-cards-test.firebaseapp.com",
    "projectId": "kpss-cards-test",
    "storageBucket": "kpss-cards-test.firebasestorage.app",
    "messagingSenderId": "123456789012",
    "appId": "1:123456789012:web:0a1b2c3d4e5f",
}

INDEX_HTML = """<!doctype html>
<html lang="tr">
  <head>
    <meta charset="UTF-8" />
    <title>KPSS Bilgi Kartları</title>
    <script type="module" src="/assets/index.js"></script>
  </head>
  <body>
    <div id="app"></div>
  </body>
</html>
"""


def write_build(dist_dir: Path, *, index_html: str = INDEX_HTML, bundle: str = "") -> Path:
    """Write a minimal built UI to `dist_dir`."""
    dist_dir = Path(dist_dir)
    (dist_dir / "assets").mkdir(parents=True, exist_ok=True)
    (dist_dir / "index.html").write_text(index_html, encoding="utf-8")
    (dist_dir / "assets" / "index.js").write_text(
        bundle or "console.log('cards');\n", encoding="utf-8"
    )
    (dist_dir / "assets" / "index.css").write_text(
        "#app { margin: 0; }\n", encoding="utf-8"
    )
    (dist_dir / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")
    return dist_dir


def make_settings(dist_dir: Path, **overrides) -> Settings:
    values = {
        "dist_dir": str(dist_dir),
        "use_in_memory_backends": True,
        "update_check_interval_seconds": 0,
        "firebase_api_key": VALID_IDENTITY["apiKey"],
        "firebase_auth_domain": VALID_IDENTITY["authDomain"],
        "firebase_project_id": VALID_IDENTITY["projectId"],
        "firebase_storage_bucket": VALID_IDENTITY["storageBucket"],
        "firebase_messaging_sender_id": VALID_IDENTITY["messagingSenderId"],
        "firebase_app_id": VALID_IDENTITY["appId"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
